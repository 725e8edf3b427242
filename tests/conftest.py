from datetime import datetime, timezone

import pytest

from models.data_models import LogEntry

APACHE_LINE = (
    '192.168.1.100 - - [10/Oct/2023:13:55:36 +0000] "GET /api/users HTTP/1.1" 200 1234 '
    '"https://example.com" "Mozilla/5.0"'
)
APACHE_LINE_LONG_UA = (
    '192.168.1.100 - - [10/Oct/2023:13:55:36 +0000] "GET /api/users HTTP/1.1" 200 1234 '
    '"https://example.com" "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"'
)
NGINX_LINE = (
    '192.168.1.101 - - [10/Oct/2023:13:55:37 +0000] "POST /api/login HTTP/1.1" 401 567 '
    '"https://example.com" "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7)" 0.045'
)
GENERIC_LINE = "2023-10-10 13:55:38 INFO User login successful user_id=12345 ip=192.168.1.102"


def apache_line(i: int, status: int = 200, ip: str = "10.0.0.1") -> str:
    return (
        f'{ip} - - [10/Oct/2023:13:55:36 +0000] "GET /item/{i} HTTP/1.1" {status} 100 '
        f'"-" "pytest"'
    )


def make_entry(**kwargs) -> LogEntry:
    defaults = {
        "timestamp": datetime(2023, 10, 10, 13, 0, 0, tzinfo=timezone.utc),
        "log_type": "apache",
        "raw_log": "",
        "source_ip": "10.0.0.1",
        "method": "GET",
        "path": "/",
        "status_code": 200,
    }
    defaults.update(kwargs)
    return LogEntry(**defaults)


@pytest.fixture
def entry_factory():
    return make_entry
