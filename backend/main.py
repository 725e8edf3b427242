from __future__ import annotations

import logging
import os
import threading
from collections import deque
from dataclasses import asdict
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional

from fastapi import FastAPI, File, Form, HTTPException, Query, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware

from models.data_models import LOG_TYPES, IngestResult, LogFilter
from models.errors import IngestionCancelled, StreamError
from services.aggregator import ReportAggregator
from services.pipeline import ERROR_POLICY_BLOCK, LogProcessor
from services.storage import EntryStore, LogStore
from utils.helpers import configure_logging, parse_ts

# ──────────────────────────────────────────────────────────────────────────────
# Config
# ──────────────────────────────────────────────────────────────────────────────

VERSION = "1.0.0"
API_PREFIX = "/api"
LOG_FILE_PATH = os.getenv("LOG_FILE", "./data/upload.log")
LOG_WORKERS = int(os.getenv("LOG_WORKERS", "10"))
ERROR_POLICY = os.getenv("ERROR_POLICY", ERROR_POLICY_BLOCK)
INGEST_TIMEOUT_S = float(os.getenv("INGEST_TIMEOUT_S", "0")) or None
MAX_STORED_ENTRIES = int(os.getenv("MAX_STORED_ENTRIES", "0")) or None
ERROR_HISTORY = int(os.getenv("ERROR_HISTORY", "100"))
TOP_N = int(os.getenv("REPORT_TOP_N", "10"))

configure_logging(os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

# ──────────────────────────────────────────────────────────────────────────────
# Services
# ──────────────────────────────────────────────────────────────────────────────

processor = LogProcessor(worker_count=LOG_WORKERS, error_policy=ERROR_POLICY)
log_store = LogStore(LOG_FILE_PATH)
entry_store = EntryStore(max_entries=MAX_STORED_ENTRIES)
aggregator = ReportAggregator(top_n=TOP_N)
error_history: Deque[Dict[str, Any]] = deque(maxlen=ERROR_HISTORY)

# one ingestion at a time: the processor's queues are shared
_ingest_lock = threading.Lock()


def parse_query_time(value: Optional[str], name: str) -> Optional[datetime]:
    if not value:
        return None
    ts = parse_ts(value)
    if ts is None:
        raise HTTPException(status_code=400, detail=f"Invalid {name}: {value}")
    return ts


def build_filter(
    log_type: Optional[str],
    status_code: Optional[int],
    source_ip: Optional[str],
    path: Optional[str],
    method: Optional[str],
    start_time: Optional[str],
    end_time: Optional[str],
    limit: Optional[int] = None,
    offset: int = 0,
) -> LogFilter:
    if log_type and log_type not in LOG_TYPES:
        raise HTTPException(status_code=400, detail=f"Invalid log type: {log_type}")
    return LogFilter(
        log_type=log_type or None,
        status_code=status_code,
        source_ip=source_ip or None,
        path=path or None,
        method=method or None,
        start_time=parse_query_time(start_time, "start_time"),
        end_time=parse_query_time(end_time, "end_time"),
        limit=limit,
        offset=offset,
    )


def ingest_saved_file(log_type: str) -> IngestResult:
    with _ingest_lock:
        with log_store.open_stream() as stream:
            result = processor.collect(stream, log_type, timeout=INGEST_TIMEOUT_S)
        entry_store.add_many(result.entries)
        error_history.extend(err.to_dict() for err in result.errors)
    return result


# ──────────────────────────────────────────────────────────────────────────────
# App
# ──────────────────────────────────────────────────────────────────────────────

app = FastAPI(title="Server Log Analyzer")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # dev OK; lock down in prod
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ──────────────────────────────────────────────────────────────────────────────
# Health
# ──────────────────────────────────────────────────────────────────────────────


@app.get(f"{API_PREFIX}/health")
def health() -> Dict[str, Any]:
    status = log_store.stat(stored_entries=len(entry_store))
    return {
        "status": "healthy",
        "version": VERSION,
        "timestamp": datetime.now().astimezone().isoformat(),
        "log_file": {
            "exists": status.log_file_exists,
            "path": status.path,
            "size_bytes": status.size_bytes,
            "total_lines": status.total_lines,
        },
        "stored_entries": status.stored_entries,
    }


# ──────────────────────────────────────────────────────────────────────────────
# Upload + ingestion
# ──────────────────────────────────────────────────────────────────────────────


@app.post(f"{API_PREFIX}/logs/upload")
async def upload_log_file(
    file: UploadFile = File(...),
    log_type: str = Form("generic"),
) -> Dict[str, Any]:
    """
    Accepts a raw access / application log and ingests it synchronously.
    Lines that fail their grammar are reported, not fatal.
    """
    if log_type not in LOG_TYPES:
        raise HTTPException(
            status_code=400,
            detail="Invalid log type. Must be apache, nginx, or generic",
        )

    content = await file.read()
    try:
        lines = log_store.save_upload(content)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    logger.info("Processing log file: %s, type: %s, lines: %d", file.filename, log_type, lines)

    try:
        result = await run_in_threadpool(ingest_saved_file, log_type)
    except StreamError as exc:
        logger.error("Failed to process log file: %s", exc)
        raise HTTPException(status_code=422, detail=str(exc))
    except IngestionCancelled as exc:
        logger.error("Ingestion timed out: %s", exc)
        raise HTTPException(status_code=504, detail=str(exc))

    return {
        "status": "ok",
        "filename": file.filename,
        "log_type": log_type,
        "lines": lines,
        "processed": len(result.entries),
        "errors": len(result.errors),
        "dropped_errors": result.dropped_errors,
        "error_samples": [str(err) for err in result.errors[:10]],
    }


# ──────────────────────────────────────────────────────────────────────────────
# Entries
# ──────────────────────────────────────────────────────────────────────────────


@app.get(f"{API_PREFIX}/logs")
def get_logs(
    log_type: Optional[str] = Query(None),
    status_code: Optional[int] = Query(None),
    source_ip: Optional[str] = Query(None),
    path: Optional[str] = Query(None),
    method: Optional[str] = Query(None),
    start_time: Optional[str] = Query(None),
    end_time: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=10000),
    offset: int = Query(0, ge=0),
) -> Dict[str, Any]:
    flt = build_filter(
        log_type, status_code, source_ip, path, method, start_time, end_time, limit, offset
    )
    logs = entry_store.query(flt)
    return {
        "logs": [e.to_dict() for e in logs],
        "limit": limit,
        "offset": offset,
        "count": len(logs),
    }


@app.delete(f"{API_PREFIX}/logs")
def clear_logs() -> Dict[str, Any]:
    removed = entry_store.clear()
    error_history.clear()
    return {"status": "ok", "removed": removed}


@app.get(f"{API_PREFIX}/logs/stats")
def get_log_stats() -> Dict[str, Any]:
    stats = aggregator.compute_stats(entry_store.all())
    proc = processor.get_stats()
    return {
        "store": asdict(stats),
        "processing": proc.to_dict(),
    }


# ──────────────────────────────────────────────────────────────────────────────
# Reports + errors
# ──────────────────────────────────────────────────────────────────────────────


@app.get(f"{API_PREFIX}/reports/summary")
def report_summary(
    log_type: Optional[str] = Query(None),
    status_code: Optional[int] = Query(None),
    source_ip: Optional[str] = Query(None),
    path: Optional[str] = Query(None),
    method: Optional[str] = Query(None),
    start_time: Optional[str] = Query(None),
    end_time: Optional[str] = Query(None),
) -> Dict[str, Any]:
    flt = build_filter(log_type, status_code, source_ip, path, method, start_time, end_time)
    entries = entry_store.query(flt)
    return {"summary": aggregator.compute_summary(entries).to_dict()}


@app.get(f"{API_PREFIX}/errors")
def errors(limit: int = Query(20, ge=1, le=200)) -> Dict[str, Any]:
    recent: List[Dict[str, Any]] = list(error_history)[-limit:]
    return {"errors": list(reversed(recent)), "error_count": processor.get_stats().error_count}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8080")),
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
