"""
Helper Functions

This module contains utility functions used throughout the application.
"""

import logging
import math
import re
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from dateutil import parser as dtparser

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

INT_RE = re.compile(r"^[+-]?\d+$", re.ASCII)

BOOL_VALUES = {
    "1": True, "t": True, "T": True, "TRUE": True, "true": True, "True": True,
    "0": False, "f": False, "F": False, "FALSE": False, "false": False, "False": False,
}


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the process"""
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
    )


def parse_layouts(value: str, layouts: Iterable[str]) -> Optional[datetime]:
    """Try each strptime layout in order; first match wins"""
    for layout in layouts:
        try:
            return datetime.strptime(value, layout)
        except ValueError:
            continue
    return None


def parse_ts(x: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp, assuming UTC when no offset is given"""
    if not x:
        return None
    try:
        dt = dtparser.isoparse(str(x))
    except (ValueError, OverflowError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def as_aware(dt: datetime) -> datetime:
    """Naive timestamps are treated as UTC so they compare with aware ones"""
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)


def safe_int(x: Any) -> Optional[int]:
    """Convert a plain decimal integer string, None otherwise"""
    if x is None:
        return None
    s = str(x)
    if not INT_RE.match(s):
        return None
    return int(s)


def safe_float(x: Any) -> Optional[float]:
    """Safely convert to a finite float"""
    if x is None:
        return None
    s = str(x)
    if "_" in s or not s.isascii():
        return None
    try:
        value = float(s)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def coerce_value(value: str) -> Any:
    """Coerce a key=value token: int, then float, then bool, else str"""
    as_int = safe_int(value)
    if as_int is not None:
        return as_int
    try:
        if "_" not in value and value.isascii():
            return float(value)
    except ValueError:
        pass
    if value in BOOL_VALUES:
        return BOOL_VALUES[value]
    return value
