"""
LogParser Class - Handles parsing of the supported line grammars

This module parses raw log lines into structured LogEntry objects.
"""

import ipaddress
import re
from datetime import datetime
from typing import Dict, List, Tuple

from models.data_models import (
    LOG_TYPE_APACHE,
    LOG_TYPE_GENERIC,
    LOG_TYPE_NGINX,
    LogEntry,
    MetadataValue,
    ParseResult,
)
from models.errors import FormatError, ValidationError
from utils.helpers import coerce_value, parse_layouts, safe_float, safe_int

MIN_COMBINED_FIELDS = 9
MIN_GENERIC_FIELDS = 3

COMBINED_TS_LAYOUTS = (
    "%d/%b/%Y:%H:%M:%S %z",
    "%d/%b/%Y:%H:%M:%S",
)

GENERIC_TS_LAYOUTS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M:%S.%f",
)

KV_PAIR_RE = re.compile(r"(\w+)=(\S+)", re.ASCII)


class LogParser:
    """
    Parses raw log lines into structured LogEntry objects.
    Responsibilities:
    - Tokenize Apache / Nginx combined lines
    - Validate required fields, default optional ones
    - Extract key=value metadata from generic lines
    """

    @staticmethod
    def split_fields(line: str) -> List[str]:
        """
        Split a combined-format line on unquoted spaces.

        Quoted content becomes one token with the quotes removed, a backslash
        escapes the next character, and a [bracketed] group stays one token.
        """
        parts: List[str] = []
        current: List[str] = []
        in_quotes = False
        in_brackets = False
        escape_next = False
        started = False

        for char in line:
            if escape_next:
                current.append(char)
                escape_next = False
                started = True
                continue

            if char == "\\":
                escape_next = True
                continue

            if char == '"' and not in_brackets:
                in_quotes = not in_quotes
                started = True
                continue

            if not in_quotes:
                if char == "[" and not started:
                    in_brackets = True
                elif char == "]" and in_brackets:
                    in_brackets = False

            if char == " " and not in_quotes and not in_brackets:
                if started:
                    parts.append("".join(current))
                    current = []
                    started = False
            else:
                current.append(char)
                started = True

        if started:
            parts.append("".join(current))

        return parts

    @staticmethod
    def is_valid_ip(ip: str) -> bool:
        try:
            ipaddress.ip_address(ip)
        except ValueError:
            return False
        return True

    @staticmethod
    def parse_combined_timestamp(value: str) -> datetime:
        """Parse [dd/Mon/yyyy:HH:mm:ss +zzzz], brackets optional"""
        ts = parse_layouts(value.strip("[]"), COMBINED_TS_LAYOUTS)
        if ts is None:
            raise FormatError(f"invalid timestamp: unable to parse timestamp: {value}")
        return ts

    @staticmethod
    def parse_generic_timestamp(value: str) -> datetime:
        ts = parse_layouts(value, GENERIC_TS_LAYOUTS)
        if ts is None:
            raise FormatError(f"unable to parse timestamp: {value}")
        return ts

    @staticmethod
    def parse_request(request: str) -> Tuple[str, str]:
        """Parse 'GET /api/login HTTP/1.1' into (method, path)"""
        parts = request.split()
        if len(parts) < 2:
            raise FormatError(f"invalid request format: {request}")
        return parts[0], parts[1]

    @staticmethod
    def extract_key_values(message: str) -> Dict[str, MetadataValue]:
        return {key: coerce_value(value) for key, value in KV_PAIR_RE.findall(message)}

    @classmethod
    def _parse_combined(cls, line: str, log_type: str, label: str) -> LogEntry:
        parts = cls.split_fields(line)
        if len(parts) < MIN_COMBINED_FIELDS:
            raise FormatError(
                f"invalid {label} log format: expected at least "
                f"{MIN_COMBINED_FIELDS} parts, got {len(parts)}"
            )

        ip = parts[0]
        if not cls.is_valid_ip(ip):
            raise ValidationError(f"invalid IP address: {ip}")

        timestamp = cls.parse_combined_timestamp(parts[3])
        method, path = cls.parse_request(parts[4])

        status_code = safe_int(parts[5])
        if status_code is None:
            raise ValidationError(f"invalid status code: {parts[5]}")

        # size may be '-'
        response_size = safe_int(parts[6])
        if response_size is None or response_size < 0:
            response_size = 0

        processing_time = 0.0
        if log_type == LOG_TYPE_NGINX and len(parts) > MIN_COMBINED_FIELDS:
            request_time = safe_float(parts[9])
            if request_time is not None and request_time > 0:
                processing_time = request_time

        return LogEntry(
            timestamp=timestamp,
            log_type=log_type,
            raw_log=line,
            source_ip=ip,
            method=method,
            path=path,
            status_code=status_code,
            response_size=response_size,
            referer=parts[7],
            user_agent=parts[8],
            processing_time=processing_time,
        )

    @classmethod
    def parse_apache(cls, line: str) -> LogEntry:
        return cls._parse_combined(line, LOG_TYPE_APACHE, "Apache")

    @classmethod
    def parse_nginx(cls, line: str) -> LogEntry:
        return cls._parse_combined(line, LOG_TYPE_NGINX, "Nginx")

    @classmethod
    def parse_generic(cls, line: str) -> LogEntry:
        """
        Parse '<date> <time> <LEVEL> <message>'.
        An unparseable timestamp falls back to the ingestion wall clock.
        """
        parts = line.split()
        if len(parts) < MIN_GENERIC_FIELDS:
            raise FormatError(
                f"invalid generic log format: expected at least "
                f"{MIN_GENERIC_FIELDS} parts, got {len(parts)}"
            )

        try:
            timestamp = cls.parse_generic_timestamp(f"{parts[0]} {parts[1]}")
        except FormatError:
            timestamp = datetime.now().astimezone()

        message = " ".join(parts[3:])

        return LogEntry(
            timestamp=timestamp,
            log_type=LOG_TYPE_GENERIC,
            raw_log=line,
            path=message,
            level=parts[2],
            metadata=cls.extract_key_values(message),
        )

    @classmethod
    def parse_line(cls, line: str, log_type: str) -> LogEntry:
        """Parse one line with the grammar named by log_type; raises FormatError"""
        if log_type == LOG_TYPE_APACHE:
            return cls.parse_apache(line)
        if log_type == LOG_TYPE_NGINX:
            return cls.parse_nginx(line)
        if log_type == LOG_TYPE_GENERIC:
            return cls.parse_generic(line)
        raise FormatError(f"unsupported log type: {log_type}")

    @classmethod
    def parse_result(cls, line: str, log_type: str, line_number: int) -> ParseResult:
        try:
            entry = cls.parse_line(line, log_type)
        except FormatError as exc:
            return ParseResult(line_number=line_number, error=exc)
        return ParseResult(line_number=line_number, entry=entry)
