"""
Data Models (DTOs - Data Transfer Objects)

This module contains all dataclass definitions used throughout the application.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Union

from models.errors import FormatError

LOG_TYPE_APACHE = "apache"
LOG_TYPE_NGINX = "nginx"
LOG_TYPE_GENERIC = "generic"
LOG_TYPES = (LOG_TYPE_APACHE, LOG_TYPE_NGINX, LOG_TYPE_GENERIC)

MetadataValue = Union[int, float, bool, str]


@dataclass(frozen=True)
class LogEntry:
    """Represents a single parsed log line"""
    timestamp: datetime
    log_type: str
    raw_log: str
    source_ip: str = ""
    method: str = ""
    path: str = ""
    status_code: int = 0
    response_size: int = 0
    user_agent: str = ""
    referer: str = ""
    processing_time: float = 0.0
    level: str = ""
    metadata: Mapping[str, MetadataValue] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    def to_dict(self) -> Dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["timestamp"] = self.timestamp.isoformat()
        data["metadata"] = dict(self.metadata)
        return data


@dataclass(frozen=True)
class LineError:
    """A line that failed its grammar, annotated with its position in the stream"""
    line_number: int
    cause: FormatError

    def __str__(self) -> str:
        return f"line {self.line_number}: {self.cause}"

    def to_dict(self) -> Dict[str, Any]:
        return {"line_number": self.line_number, "cause": str(self.cause)}


@dataclass(frozen=True)
class ParseResult:
    """Outcome of parsing one line: exactly one of entry / error is set"""
    line_number: int
    entry: Optional[LogEntry] = None
    error: Optional[FormatError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ProcessingStats:
    """Consistent snapshot of the pipeline counters"""
    total: int
    apache_count: int
    nginx_count: int
    generic_count: int
    error_count: int
    start_time: datetime

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["start_time"] = self.start_time.isoformat()
        return data


@dataclass
class IngestResult:
    """Materialized output of one ingestion run"""
    entries: List[LogEntry]
    errors: List[LineError]
    dropped_errors: int = 0


@dataclass
class HealthStatus:
    """Health check response"""
    status: str
    log_file_exists: bool
    path: str
    size_bytes: int
    total_lines: int
    stored_entries: int = 0


@dataclass
class LogFilter:
    """Filtering options for entry queries"""
    log_type: Optional[str] = None
    status_code: Optional[int] = None
    source_ip: Optional[str] = None
    path: Optional[str] = None
    method: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    limit: Optional[int] = None
    offset: int = 0


@dataclass
class PathSummary:
    path: str
    count: int
    percentage: float


@dataclass
class IPSummary:
    ip: str
    count: int
    percentage: float


@dataclass
class HourlyTraffic:
    hour: int
    count: int


@dataclass
class ReportSummary:
    """Set-wide statistics computed from a materialized entry collection"""
    total_requests: int
    unique_ips: int
    avg_response_time: float
    error_rate: float
    top_paths: List[PathSummary]
    top_ips: List[IPSummary]
    status_code_breakdown: Dict[str, int]
    hourly_traffic: List[HourlyTraffic]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class LogStats:
    """Aggregated statistics over the stored entries"""
    total_requests: int
    unique_ips: int
    avg_response_time: float
    error_rate: float
    top_paths: List[PathSummary]
    top_ips: List[IPSummary]
    status_code_counts: Dict[str, int]
