"""
Result aggregation for concurrent scans.

A bounded many-producer/one-consumer channel: walker workers send outcome
values (FileRecord or ScanDiagnostic) and the caller drains records one at
a time. Producers block while the channel is full, which throttles fast
workers against a slow consumer.
"""

import logging
import queue
import threading
import time
from collections.abc import Callable
from typing import Optional, Union

from .models import FileRecord, ScanDiagnostic, ScanSummary

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL_CAPACITY = 1024

# How often a blocked producer re-checks whether the consumer has gone away
_SEND_POLL_SECONDS = 0.1

_END_OF_SCAN = object()

Outcome = Union[FileRecord, ScanDiagnostic]


class ResultAggregator:
    """
    Bounded channel between walker workers and the caller.

    Iterate it to pull records, or call drain() to push them into a callback.
    Emission order approximates traversal order but is not deterministic
    across runs or concurrency settings; no sort step is applied.

    Example:
        >>> with scanner.scan() as results:
        ...     for record in results:
        ...         print(record.rel_path)
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CHANNEL_CAPACITY,
        producers: int = 1,
        on_diagnostic: Optional[Callable[[ScanDiagnostic], None]] = None,
    ):
        """
        Initialize the aggregator.

        Args:
            capacity: Maximum number of in-flight outcomes
            producers: Number of producers that will each call release() once
            on_diagnostic: Called on the consumer thread for each per-entry failure
        """
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        if producers < 1:
            raise ValueError(f"producers must be >= 1, got {producers}")

        self._queue: queue.Queue = queue.Queue(maxsize=capacity)
        self._producers = producers
        self._producers_lock = threading.Lock()
        self._closed = threading.Event()
        self._on_diagnostic = on_diagnostic

        self._finished = False
        self._records = 0
        self._diagnostics = 0
        self._started_at = time.monotonic()
        self._summary: Optional[ScanSummary] = None

    @property
    def closed(self) -> bool:
        """True once the consumer has abandoned the scan."""
        return self._closed.is_set()

    @property
    def summary(self) -> Optional[ScanSummary]:
        """Totals for the scan, available once iteration has ended."""
        return self._summary

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    def _put(self, item: object) -> bool:
        while not self._closed.is_set():
            try:
                self._queue.put(item, timeout=_SEND_POLL_SECONDS)
                return True
            except queue.Full:
                continue
        return False

    def send(self, outcome: Outcome) -> bool:
        """
        Hand an outcome to the consumer, blocking while the channel is full.

        Returns:
            False if the consumer has closed the channel and the outcome was dropped
        """
        return self._put(outcome)

    def release(self) -> None:
        """Called once by each producer when it is finished."""
        with self._producers_lock:
            self._producers -= 1
            remaining = self._producers

        if remaining == 0:
            self._put(_END_OF_SCAN)

    # ------------------------------------------------------------------
    # Consumer side
    # ------------------------------------------------------------------

    def __iter__(self) -> "ResultAggregator":
        return self

    def __next__(self) -> FileRecord:
        while not self._finished:
            if self._closed.is_set():
                self._finish()
                break

            item = self._queue.get()
            if item is _END_OF_SCAN:
                self._finish()
                break
            if isinstance(item, ScanDiagnostic):
                self._report(item)
                continue

            self._records += 1
            return item

        raise StopIteration

    def _report(self, diagnostic: ScanDiagnostic) -> None:
        self._diagnostics += 1
        logger.warning(f"Skipping {diagnostic.path}: {diagnostic.message}")
        if self._on_diagnostic is not None:
            self._on_diagnostic(diagnostic)

    def _finish(self) -> None:
        self._finished = True
        self._summary = ScanSummary(
            records=self._records,
            diagnostics=self._diagnostics,
            duration_seconds=time.monotonic() - self._started_at,
        )
        logger.debug(
            f"Scan finished: {self._records} records, {self._diagnostics} diagnostics "
            f"in {self._summary.duration_seconds:.2f}s"
        )

    def drain(self, on_record: Callable[[FileRecord], None]) -> ScanSummary:
        """
        Push every record into a callback until the scan ends.

        If the callback raises, the channel is closed so that blocked
        producers stop, and the exception propagates.

        Returns:
            ScanSummary for the scan
        """
        try:
            for record in self:
                on_record(record)
        except BaseException:
            self.close()
            raise

        return self._summary or ScanSummary()

    def close(self) -> None:
        """
        Abandon the scan.

        Producers stop at their next send and buffered outcomes are discarded.
        Safe to call more than once and after the scan has ended.
        """
        self._closed.set()
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                break
        if not self._finished:
            self._finish()

    def __enter__(self) -> "ResultAggregator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
