"""
StatsAggregator Class - Thread-safe running counters for the pipeline
"""

import threading
from datetime import datetime
from typing import Optional

from models.data_models import LOG_TYPE_APACHE, LOG_TYPE_GENERIC, LOG_TYPE_NGINX, ProcessingStats


class StatsAggregator:
    """
    Counters for processed lines (total and per log type) and errors.

    Every mutation and every snapshot goes through one lock, so a reader never
    sees the total incremented without the matching per-type bucket.
    Counters only grow; create a new aggregator to start over.
    """

    def __init__(self, start_time: Optional[datetime] = None):
        self._lock = threading.Lock()
        self._start_time = start_time or datetime.now().astimezone()
        self._total = 0
        self._by_type = {LOG_TYPE_APACHE: 0, LOG_TYPE_NGINX: 0, LOG_TYPE_GENERIC: 0}
        self._errors = 0

    @property
    def start_time(self) -> datetime:
        return self._start_time

    def record_processed(self, log_type: str) -> None:
        with self._lock:
            self._total += 1
            if log_type in self._by_type:
                self._by_type[log_type] += 1

    def record_error(self) -> None:
        with self._lock:
            self._errors += 1

    def snapshot(self) -> ProcessingStats:
        with self._lock:
            return ProcessingStats(
                total=self._total,
                apache_count=self._by_type[LOG_TYPE_APACHE],
                nginx_count=self._by_type[LOG_TYPE_NGINX],
                generic_count=self._by_type[LOG_TYPE_GENERIC],
                error_count=self._errors,
                start_time=self._start_time,
            )
