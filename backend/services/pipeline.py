"""
LogProcessor Class - Concurrent ingestion pipeline

This module drives a line-oriented stream through the LogParser with bounded
parallelism. Every line is isolated: a line that fails its grammar lands on
the error queue and the run carries on.
"""

import io
import logging
import queue
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import IO, Callable, Iterator, List, Optional, Tuple, Union

from models.data_models import IngestResult, LineError, LogEntry, ParseResult, ProcessingStats
from models.errors import FormatError, IngestionCancelled, StreamError
from services.parser import LogParser
from services.stats import StatsAggregator

logger = logging.getLogger(__name__)

DEFAULT_WORKERS = 10
ENTRY_QUEUE_CAPACITY = 1000
ERROR_QUEUE_CAPACITY = 100
MAX_LINE_BYTES = 1024 * 1024

# Producers wait for a consumer when the error queue is full
ERROR_POLICY_BLOCK = "block"
# The oldest queued error is discarded to make room
ERROR_POLICY_DROP_OLDEST = "drop_oldest"
ERROR_POLICIES = (ERROR_POLICY_BLOCK, ERROR_POLICY_DROP_OLDEST)

POLL_SECONDS = 0.05

Stream = Union[IO[bytes], IO[str], bytes, str]


class _Run:
    """Cancellation state shared by the reader and the workers of one run"""

    def __init__(self, cancel_event: Optional[threading.Event], timeout: Optional[float]):
        self._cancel_event = cancel_event
        self._deadline = time.monotonic() + timeout if timeout is not None else None
        self._lock = threading.Lock()
        self.abandoned = 0

    def stopped(self) -> bool:
        if self._cancel_event is not None and self._cancel_event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def abandon(self) -> None:
        with self._lock:
            self.abandoned += 1


class LogProcessor:
    """
    Bounded worker pool turning raw lines into LogEntry objects.
    Responsibilities:
    - Dispatch each non-blank line to a worker, at most worker_count at a time
    - Route successes to the entry queue and failures to the error queue
    - Keep running counters in a StatsAggregator

    Entries arrive on the queue in completion order, not input order.
    """

    def __init__(
        self,
        worker_count: int = DEFAULT_WORKERS,
        entry_capacity: int = ENTRY_QUEUE_CAPACITY,
        error_capacity: int = ERROR_QUEUE_CAPACITY,
        error_policy: str = ERROR_POLICY_BLOCK,
        stats: Optional[StatsAggregator] = None,
    ):
        if worker_count < 1:
            raise ValueError(f"worker_count must be >= 1, got {worker_count}")
        if error_policy not in ERROR_POLICIES:
            raise ValueError(f"unknown error policy: {error_policy}")

        self.worker_count = worker_count
        self.error_policy = error_policy
        self.stats = stats or StatsAggregator()

        self._entries: "queue.Queue[LogEntry]" = queue.Queue(maxsize=entry_capacity)
        self._errors: "queue.Queue[LineError]" = queue.Queue(maxsize=error_capacity)
        self._slots = threading.BoundedSemaphore(worker_count)
        self._executor = ThreadPoolExecutor(
            max_workers=worker_count, thread_name_prefix="log-worker"
        )
        self._error_lock = threading.Lock()
        self._dropped_errors = 0
        self._closed = False

    def __enter__(self) -> "LogProcessor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def entries(self) -> "queue.Queue[LogEntry]":
        """Queue of parsed entries (bounded, unordered)"""
        return self._entries

    @property
    def errors(self) -> "queue.Queue[LineError]":
        """Queue of line errors (bounded)"""
        return self._errors

    @property
    def dropped_errors(self) -> int:
        with self._error_lock:
            return self._dropped_errors

    def get_stats(self) -> ProcessingStats:
        return self.stats.snapshot()

    # ---------- Ingestion ----------

    def process_stream(
        self,
        stream: Stream,
        log_type: str,
        cancel_event: Optional[threading.Event] = None,
        timeout: Optional[float] = None,
    ) -> None:
        """
        Ingest every non-blank line of stream and wait for all of them.

        Per-line failures never raise here; they go to the error queue and the
        error counter. Raises StreamError when the stream cannot be read and
        IngestionCancelled when cancel_event / timeout stopped the run early.
        """
        if self._closed:
            raise RuntimeError("LogProcessor is closed")

        run = _Run(cancel_event, timeout)
        futures: List[Future] = []
        interrupted = False

        logger.info("Ingesting %s stream with %d workers", log_type, self.worker_count)
        try:
            for line_number, line in self._iter_lines(stream):
                if run.stopped() or not self._acquire_slot(run.stopped):
                    interrupted = True
                    break
                try:
                    futures.append(
                        self._executor.submit(self._process_line, line, line_number, log_type, run)
                    )
                except BaseException:
                    self._slots.release()
                    raise
        finally:
            # join barrier: every dispatched line completes before we return
            wait(futures)

        if interrupted or run.abandoned:
            logger.warning(
                "Ingestion cancelled after %d dispatched lines (%d abandoned)",
                len(futures),
                run.abandoned,
            )
            raise IngestionCancelled(
                f"ingestion cancelled after {len(futures)} lines, {run.abandoned} abandoned"
            )

        logger.info("Finished %s stream: %d lines dispatched", log_type, len(futures))

    def collect(
        self,
        stream: Stream,
        log_type: str,
        cancel_event: Optional[threading.Event] = None,
        timeout: Optional[float] = None,
    ) -> IngestResult:
        """
        Run process_stream while a drain thread empties both queues, and
        return everything the run produced.
        """
        entries: List[LogEntry] = []
        errors: List[LineError] = []
        done = threading.Event()
        dropped_before = self.dropped_errors

        def drain() -> None:
            while not done.is_set():
                if not self._drain_once(entries, errors):
                    done.wait(POLL_SECONDS)
            self._drain_once(entries, errors)

        drainer = threading.Thread(target=drain, name="log-drain", daemon=True)
        drainer.start()
        try:
            self.process_stream(stream, log_type, cancel_event=cancel_event, timeout=timeout)
        finally:
            done.set()
            drainer.join()

        return IngestResult(
            entries=entries,
            errors=errors,
            dropped_errors=self.dropped_errors - dropped_before,
        )

    def drain_entries(self) -> List[LogEntry]:
        """Take every entry currently queued without blocking"""
        return _drain_queue(self._entries)

    def drain_errors(self) -> List[LineError]:
        """Take every error currently queued without blocking"""
        return _drain_queue(self._errors)

    def close(self) -> None:
        """
        Shut the worker pool down.

        Only call this once process_stream has returned; closing while a run
        is in flight is not guarded against.
        """
        self._closed = True
        self._executor.shutdown(wait=True)

    # ---------- Internal helpers ----------

    @staticmethod
    def _iter_lines(stream: Stream) -> Iterator[Tuple[int, str]]:
        """Yield (1-based number among non-blank lines, line without terminator)"""
        if isinstance(stream, bytes):
            stream = io.BytesIO(stream)
        elif isinstance(stream, str):
            stream = io.StringIO(stream)

        physical = 0
        line_number = 0
        try:
            for raw in stream:
                physical += 1
                if len(raw) > MAX_LINE_BYTES:
                    raise StreamError(
                        f"error reading stream: line {physical} exceeds {MAX_LINE_BYTES} bytes"
                    )
                line = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
                line = line.rstrip("\r\n")
                if not line.strip():
                    continue
                # blank lines are not numbered
                line_number += 1
                yield line_number, line
        except (OSError, ValueError) as exc:
            raise StreamError(f"error reading stream: {exc}") from exc

    def _acquire_slot(self, stopped: Callable[[], bool]) -> bool:
        while not self._slots.acquire(timeout=POLL_SECONDS):
            if stopped():
                return False
        return True

    def _process_line(self, line: str, line_number: int, log_type: str, run: _Run) -> None:
        try:
            if run.stopped():
                run.abandon()
                return

            try:
                result = LogParser.parse_result(line, log_type, line_number)
            except Exception as exc:
                logger.exception("Unexpected error parsing line %d", line_number)
                result = ParseResult(
                    line_number=line_number,
                    error=FormatError(f"unexpected error: {exc}"),
                )

            if result.ok:
                if self._put(self._entries, result.entry, run):
                    self.stats.record_processed(log_type)
                else:
                    run.abandon()
            else:
                line_error = LineError(line_number=line_number, cause=result.error)
                logger.debug("Rejected %s", line_error)
                self.stats.record_error()
                if not self._push_error(line_error, run):
                    run.abandon()
        finally:
            self._slots.release()

    @staticmethod
    def _put(q: queue.Queue, item, run: _Run) -> bool:
        """Blocking put that gives up only once the run is cancelled"""
        while True:
            try:
                q.put(item, timeout=POLL_SECONDS)
                return True
            except queue.Full:
                if run.stopped():
                    return False

    def _push_error(self, line_error: LineError, run: _Run) -> bool:
        if self.error_policy == ERROR_POLICY_BLOCK:
            return self._put(self._errors, line_error, run)

        with self._error_lock:
            while True:
                try:
                    self._errors.put_nowait(line_error)
                    return True
                except queue.Full:
                    try:
                        self._errors.get_nowait()
                        self._dropped_errors += 1
                    except queue.Empty:
                        pass

    def _drain_once(self, entries: List[LogEntry], errors: List[LineError]) -> bool:
        got_entries = self.drain_entries()
        got_errors = self.drain_errors()
        entries.extend(got_entries)
        errors.extend(got_errors)
        return bool(got_entries or got_errors)


def _drain_queue(q: queue.Queue) -> list:
    items = []
    while True:
        try:
            items.append(q.get_nowait())
        except queue.Empty:
            return items
