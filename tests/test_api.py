"""Tests for the HTTP API."""

from collections import deque

import pytest
from fastapi.testclient import TestClient

import main
from conftest import APACHE_LINE, GENERIC_LINE, NGINX_LINE
from services.pipeline import LogProcessor
from services.storage import EntryStore, LogStore

ACCESS_LOG = "\n".join([APACHE_LINE, NGINX_LINE.rsplit(" ", 1)[0], "not a log line"]) + "\n"


@pytest.fixture
def client(tmp_path, monkeypatch):
    proc = LogProcessor(worker_count=2)
    monkeypatch.setattr(main, "processor", proc)
    monkeypatch.setattr(main, "log_store", LogStore(str(tmp_path / "upload.log")))
    monkeypatch.setattr(main, "entry_store", EntryStore())
    monkeypatch.setattr(main, "error_history", deque(maxlen=100))
    yield TestClient(main.app)
    proc.close()


def upload(client, content, log_type="apache"):
    return client.post(
        "/api/logs/upload",
        files={"file": ("access.log", content.encode(), "text/plain")},
        data={"log_type": log_type},
    )


def test_health(client):
    resp = client.get("/api/health")

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "healthy"
    assert body["log_file"]["exists"] is False
    assert body["stored_entries"] == 0


def test_upload_ingests_and_reports_errors(client):
    resp = upload(client, ACCESS_LOG)

    assert resp.status_code == 200
    body = resp.json()
    assert body["lines"] == 3
    assert body["processed"] == 2
    assert body["errors"] == 1
    assert body["error_samples"][0].startswith("line 3: invalid Apache log format")

    health = client.get("/api/health").json()
    assert health["stored_entries"] == 2
    assert health["log_file"]["total_lines"] == 3


def test_upload_rejects_unknown_log_type(client):
    assert upload(client, ACCESS_LOG, log_type="iis").status_code == 400


def test_upload_rejects_empty_file(client):
    assert upload(client, "").status_code == 400


def test_get_logs_with_filters(client):
    upload(client, ACCESS_LOG)

    all_logs = client.get("/api/logs").json()
    assert all_logs["count"] == 2
    # newest first
    assert [log["path"] for log in all_logs["logs"]] == ["/api/login", "/api/users"]

    errors_only = client.get("/api/logs", params={"status_code": 401}).json()
    assert [log["method"] for log in errors_only["logs"]] == ["POST"]

    paged = client.get("/api/logs", params={"limit": 1, "offset": 1}).json()
    assert [log["path"] for log in paged["logs"]] == ["/api/users"]


def test_get_logs_rejects_bad_time(client):
    assert client.get("/api/logs", params={"start_time": "yesterday"}).status_code == 400


def test_report_summary(client):
    upload(client, ACCESS_LOG)
    upload(client, GENERIC_LINE + "\n", log_type="generic")

    summary = client.get("/api/reports/summary").json()["summary"]

    assert summary["total_requests"] == 3
    assert summary["error_rate"] == pytest.approx(100 / 3)
    assert len(summary["hourly_traffic"]) == 24
    assert summary["hourly_traffic"][13]["count"] == 3
    assert summary["status_code_breakdown"] == {"200": 1, "401": 1, "0": 1}


def test_report_summary_time_filter(client):
    upload(client, ACCESS_LOG)

    summary = client.get(
        "/api/reports/summary", params={"start_time": "2023-10-10T13:55:37Z"}
    ).json()["summary"]

    assert summary["total_requests"] == 1
    assert summary["top_paths"] == [{"path": "/api/login", "count": 1, "percentage": 100.0}]


def test_log_stats(client):
    upload(client, ACCESS_LOG)

    body = client.get("/api/logs/stats").json()

    assert body["processing"]["total"] == 2
    assert body["processing"]["apache_count"] == 2
    assert body["processing"]["error_count"] == 1
    assert body["store"]["total_requests"] == 2
    assert body["store"]["unique_ips"] == 2


def test_errors_and_clear(client):
    upload(client, ACCESS_LOG)

    errors = client.get("/api/errors").json()
    assert errors["error_count"] == 1
    assert errors["errors"][0]["line_number"] == 3

    cleared = client.delete("/api/logs").json()
    assert cleared["removed"] == 2
    assert client.get("/api/logs").json()["count"] == 0
    assert client.get("/api/errors").json()["errors"] == []
