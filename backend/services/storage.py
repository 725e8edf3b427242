"""
LogStore / EntryStore Classes - Handle file I/O and the materialized entry set

This module manages uploaded log files and the parsed entries kept in memory
for querying and reporting.
"""

import os
import threading
from collections import deque
from typing import BinaryIO, Deque, Iterable, List, Optional

from models.data_models import HealthStatus, LogEntry, LogFilter
from utils.helpers import as_aware


class LogStore:
    """
    Manages the uploaded raw log file.
    Responsibilities:
    - Save uploaded log files
    - Open the saved file as a byte stream for ingestion
    - Provide file statistics
    """

    def __init__(self, file_path: str):
        self.file_path = file_path

    def save_upload(self, content: bytes) -> int:
        """Save raw uploaded bytes (overwrite); returns the number of non-blank lines"""
        if not content or not content.strip():
            raise ValueError("Empty file content")

        self._ensure_parent_dir()
        with open(self.file_path, "wb") as f:
            f.write(content)

        return sum(1 for ln in content.splitlines() if ln.strip())

    def open_stream(self) -> BinaryIO:
        """Open the saved file for line-by-line binary reading"""
        return open(self.file_path, "rb")

    def stat(self, stored_entries: int = 0) -> HealthStatus:
        """Get file statistics"""
        exists = os.path.exists(self.file_path)
        size_bytes = os.path.getsize(self.file_path) if exists else 0
        total_lines = 0

        if exists:
            with open(self.file_path, "rb") as f:
                total_lines = sum(1 for ln in f if ln.strip())

        return HealthStatus(
            status="ok",
            log_file_exists=exists,
            path=os.path.abspath(self.file_path),
            size_bytes=size_bytes,
            total_lines=total_lines,
            stored_entries=stored_entries,
        )

    def _ensure_parent_dir(self) -> None:
        """Create parent directories if needed"""
        os.makedirs(os.path.dirname(os.path.abspath(self.file_path)), exist_ok=True)


class EntryStore:
    """
    Thread-safe in-memory collection of parsed entries.

    With max_entries set, the oldest entries are evicted first.
    """

    def __init__(self, max_entries: Optional[int] = None):
        self._lock = threading.Lock()
        self._entries: Deque[LogEntry] = deque(maxlen=max_entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def add_many(self, entries: Iterable[LogEntry]) -> None:
        with self._lock:
            self._entries.extend(entries)

    def all(self) -> List[LogEntry]:
        with self._lock:
            return list(self._entries)

    def clear(self) -> int:
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
            return removed

    def query(self, flt: LogFilter) -> List[LogEntry]:
        """Entries matching every set field of flt, newest first, then paged"""
        matches = [e for e in self.all() if self.matches(e, flt)]
        matches.sort(key=lambda e: as_aware(e.timestamp), reverse=True)

        start = max(flt.offset, 0)
        end = start + flt.limit if flt.limit is not None else None
        return matches[start:end]

    @staticmethod
    def matches(entry: LogEntry, flt: LogFilter) -> bool:
        if flt.log_type and entry.log_type != flt.log_type:
            return False
        if flt.status_code is not None and entry.status_code != flt.status_code:
            return False
        if flt.source_ip and entry.source_ip != flt.source_ip:
            return False
        if flt.path and flt.path not in entry.path:
            return False
        if flt.method and entry.method != flt.method:
            return False

        ts = as_aware(entry.timestamp)
        if flt.start_time is not None and ts < as_aware(flt.start_time):
            return False
        if flt.end_time is not None and ts > as_aware(flt.end_time):
            return False
        return True
