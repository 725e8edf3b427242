"""Tests for LogStore and EntryStore."""

from datetime import datetime, timezone

import pytest

from conftest import APACHE_LINE, make_entry
from models.data_models import LogFilter
from services.storage import EntryStore, LogStore


class TestLogStore:
    def test_save_and_stat(self, tmp_path):
        store = LogStore(str(tmp_path / "nested" / "upload.log"))

        written = store.save_upload(f"{APACHE_LINE}\n\n{APACHE_LINE}\n".encode())
        status = store.stat(stored_entries=7)

        assert written == 2
        assert status.log_file_exists
        assert status.total_lines == 2
        assert status.size_bytes > 0
        assert status.stored_entries == 7

    def test_open_stream_returns_bytes(self, tmp_path):
        store = LogStore(str(tmp_path / "upload.log"))
        store.save_upload(APACHE_LINE.encode())

        with store.open_stream() as stream:
            assert stream.read() == APACHE_LINE.encode()

    @pytest.mark.parametrize("content", [b"", b"  \n\n"])
    def test_empty_upload_is_rejected(self, tmp_path, content):
        with pytest.raises(ValueError):
            LogStore(str(tmp_path / "upload.log")).save_upload(content)

    def test_stat_missing_file(self, tmp_path):
        status = LogStore(str(tmp_path / "missing.log")).stat()
        assert not status.log_file_exists
        assert status.total_lines == 0


class TestEntryStore:
    @pytest.fixture
    def store(self):
        store = EntryStore()
        store.add_many(
            [
                make_entry(
                    timestamp=datetime(2023, 10, 10, 10, tzinfo=timezone.utc),
                    path="/api/users",
                    status_code=200,
                ),
                make_entry(
                    timestamp=datetime(2023, 10, 10, 12, tzinfo=timezone.utc),
                    log_type="nginx",
                    path="/api/login",
                    method="POST",
                    status_code=401,
                    source_ip="10.0.0.2",
                ),
                make_entry(
                    timestamp=datetime(2023, 10, 10, 11),
                    log_type="generic",
                    path="User login successful",
                    method="",
                    source_ip="",
                ),
            ]
        )
        return store

    def test_query_without_filters_is_newest_first(self, store):
        paths = [e.path for e in store.query(LogFilter())]
        assert paths == ["/api/login", "User login successful", "/api/users"]

    def test_filters(self, store):
        assert [e.path for e in store.query(LogFilter(log_type="nginx"))] == ["/api/login"]
        assert [e.status_code for e in store.query(LogFilter(status_code=200))] == [200, 200]
        assert len(store.query(LogFilter(source_ip="10.0.0.2"))) == 1
        assert len(store.query(LogFilter(path="login"))) == 2
        assert len(store.query(LogFilter(method="POST"))) == 1

    def test_time_range_mixes_naive_and_aware(self, store):
        flt = LogFilter(
            start_time=datetime(2023, 10, 10, 10, 30, tzinfo=timezone.utc),
            end_time=datetime(2023, 10, 10, 11, 30, tzinfo=timezone.utc),
        )
        assert [e.log_type for e in store.query(flt)] == ["generic"]

    def test_limit_and_offset(self, store):
        assert len(store.query(LogFilter(limit=2))) == 2
        assert [e.path for e in store.query(LogFilter(limit=1, offset=2))] == ["/api/users"]

    def test_max_entries_evicts_oldest(self):
        store = EntryStore(max_entries=2)
        store.add_many([make_entry(path=f"/{i}") for i in range(3)])
        assert [e.path for e in store.all()] == ["/1", "/2"]

    def test_clear(self, store):
        assert store.clear() == 3
        assert len(store) == 0
