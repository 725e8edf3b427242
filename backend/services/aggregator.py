"""
ReportAggregator Class - Computes report metrics and statistics

This module aggregates a materialized collection of log entries into the
summary structures consumed by the reporting layer.
"""

from collections import Counter
from typing import Dict, List, Sequence, Tuple

from models.data_models import (
    HourlyTraffic,
    IPSummary,
    LogEntry,
    LogStats,
    PathSummary,
    ReportSummary,
)

DEFAULT_TOP_N = 10


class ReportAggregator:
    """
    Aggregates log entries into report summaries.
    Responsibilities:
    - Compute headline numbers (totals, unique IPs, error rate, response time)
    - Rank top paths and top client IPs
    - Compute status code and hourly traffic distributions

    Every method is a pure function of the entries it is given.
    """

    def __init__(self, top_n: int = DEFAULT_TOP_N):
        self.top_n = top_n

    @staticmethod
    def is_error(entry: LogEntry) -> bool:
        """Check if entry represents an error response (status >= 400)"""
        return entry.status_code >= 400

    @staticmethod
    def avg_response_time(entries: Sequence[LogEntry]) -> float:
        """Mean processing time over entries that report one"""
        durations = [e.processing_time for e in entries if e.processing_time > 0]
        return (sum(durations) / len(durations)) if durations else 0.0

    @classmethod
    def error_rate(cls, entries: Sequence[LogEntry]) -> float:
        total = len(entries)
        error_count = sum(1 for e in entries if cls.is_error(e))
        return (error_count / total * 100.0) if total else 0.0

    @staticmethod
    def top_items(counts: Dict[str, int], n: int) -> List[Tuple[str, int, float]]:
        """
        Return the n most frequent items as (item, count, percentage).

        Percentages are relative to the sum of the returned items, not to the
        overall total. The order among equal counts is not guaranteed.
        """
        items = sorted(counts.items(), key=lambda kv: kv[1], reverse=True)[:n]
        subtotal = sum(count for _, count in items)
        return [
            (item, count, (count / subtotal * 100.0) if subtotal else 0.0)
            for item, count in items
        ]

    def top_paths(self, entries: Sequence[LogEntry]) -> List[PathSummary]:
        counts = Counter(e.path for e in entries)
        return [
            PathSummary(path=path, count=count, percentage=pct)
            for path, count, pct in self.top_items(counts, self.top_n)
        ]

    def top_ips(self, entries: Sequence[LogEntry]) -> List[IPSummary]:
        counts = Counter(e.source_ip for e in entries)
        return [
            IPSummary(ip=ip, count=count, percentage=pct)
            for ip, count, pct in self.top_items(counts, self.top_n)
        ]

    @staticmethod
    def status_code_breakdown(entries: Sequence[LogEntry]) -> Dict[str, int]:
        by_status: Dict[str, int] = {}
        for e in entries:
            key = str(e.status_code)
            by_status[key] = by_status.get(key, 0) + 1
        return by_status

    @staticmethod
    def compute_traffic(entries: Sequence[LogEntry]) -> List[HourlyTraffic]:
        """
        Compute hourly traffic distribution.
        Uses the hour as recorded on each entry (in the offset the log carried).
        """
        hourly: Dict[int, int] = {hour: 0 for hour in range(24)}
        for e in entries:
            hourly[e.timestamp.hour] += 1
        return [HourlyTraffic(hour=hour, count=count) for hour, count in sorted(hourly.items())]

    def compute_summary(self, entries: Sequence[LogEntry]) -> ReportSummary:
        """Compute the full report summary from a finite entry collection"""
        return ReportSummary(
            total_requests=len(entries),
            unique_ips=len({e.source_ip for e in entries}),
            avg_response_time=self.avg_response_time(entries),
            error_rate=self.error_rate(entries),
            top_paths=self.top_paths(entries),
            top_ips=self.top_ips(entries),
            status_code_breakdown=self.status_code_breakdown(entries),
            hourly_traffic=self.compute_traffic(entries),
        )

    def compute_stats(self, entries: Sequence[LogEntry]) -> LogStats:
        """Store-level statistics, without the hourly distribution"""
        return LogStats(
            total_requests=len(entries),
            unique_ips=len({e.source_ip for e in entries}),
            avg_response_time=self.avg_response_time(entries),
            error_rate=self.error_rate(entries),
            top_paths=self.top_paths(entries),
            top_ips=self.top_ips(entries),
            status_code_counts=self.status_code_breakdown(entries),
        )
