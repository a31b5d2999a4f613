"""
Concurrent directory walker.

A fixed pool of worker threads shares a queue of directories: a worker takes
a directory, lists it, queues its subdirectories and filters/classifies its
files, sending each outcome to the ResultAggregator. Subtrees are therefore
distributed dynamically rather than partitioned up front.
"""

import logging
import os
import queue
import stat
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from mf_indexer.core.classifier import is_binary_file
from mf_indexer.core.ignore_rules import IgnoreRuleSet
from mf_indexer.core.include_filter import IncludeFilter
from mf_indexer.core.path_utils import join_rel
from mf_indexer.core.symlink_validator import (
    DirectoryIdentity,
    SymlinkValidator,
    directory_identity,
)

from .aggregator import ResultAggregator
from .models import DiagnosticKind, FileRecord, ScanDiagnostic

logger = logging.getLogger(__name__)

_STOP = None


@dataclass(frozen=True)
class _DirectoryTask:
    """A directory waiting to be listed, with the identities of its ancestors."""

    path: Path
    rel_path: str
    ancestors: frozenset[DirectoryIdentity] = frozenset()


def _mtime_ms(st: os.stat_result) -> int:
    """Modification time in whole milliseconds since epoch; 0 if unavailable."""
    mtime_ns = getattr(st, "st_mtime_ns", None)
    if mtime_ns is None:
        return 0
    return max(0, mtime_ns // 1_000_000)


class ConcurrentWalker:
    """
    Walks a canonical root with a pool of worker threads.

    The rule set and include filter are read-only; the only other state the
    workers share is the directory queue and the aggregator channel.
    """

    def __init__(
        self,
        root: Path,
        rule_set: IgnoreRuleSet,
        include_filter: IncludeFilter,
        aggregator: ResultAggregator,
        workers: int = 1,
        max_size_bytes: Optional[int] = None,
        sample_bytes: int = 4096,
        follow_symlinks: bool = False,
        absolute: bool = False,
    ):
        """
        Initialize the walker.

        Args:
            root: Canonical scan root
            rule_set: Compiled ignore rules
            include_filter: Compiled include globs
            aggregator: Channel receiving outcomes; must expect `workers` producers
            workers: Number of worker threads (clamped to at least 1)
            max_size_bytes: Files larger than this are skipped; None disables the limit
            sample_bytes: Leading bytes sampled by the classifier
            follow_symlinks: Follow symbolic links to files and directories
            absolute: Include absolute paths in records
        """
        self._root = root
        self._rules = rule_set
        self._include = include_filter
        self._aggregator = aggregator
        self._workers = max(1, workers)
        self._max_size_bytes = max_size_bytes
        self._sample_bytes = sample_bytes
        self._follow_symlinks = follow_symlinks
        self._absolute = absolute

        self._symlink_validator = SymlinkValidator()
        self._tasks: queue.Queue = queue.Queue()
        self._threads: list[threading.Thread] = []

    @property
    def worker_count(self) -> int:
        return self._workers

    def start(self) -> None:
        """Queue the root and start the worker pool; returns immediately."""
        ancestors: frozenset[DirectoryIdentity] = frozenset()
        if self._follow_symlinks:
            try:
                ancestors = frozenset([directory_identity(self._root)])
            except OSError as e:
                logger.debug(f"Cannot identify scan root {self._root}: {e}")

        self._tasks.put(_DirectoryTask(self._root, "", ancestors))

        for index in range(self._workers):
            thread = threading.Thread(
                target=self._run_worker, name=f"mf-walker-{index}", daemon=True
            )
            self._threads.append(thread)
            thread.start()

        threading.Thread(target=self._stop_when_done, name="mf-walker-scheduler", daemon=True).start()
        logger.debug(f"Started {self._workers} walker workers for {self._root}")

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for every worker thread to exit."""
        for thread in self._threads:
            thread.join(timeout)

    def _stop_when_done(self) -> None:
        # Every queued directory has been fully processed, so no more work can appear
        self._tasks.join()
        for _ in range(self._workers):
            self._tasks.put(_STOP)

    def _run_worker(self) -> None:
        try:
            while True:
                task = self._tasks.get()
                try:
                    if task is _STOP:
                        return
                    if not self._aggregator.closed:
                        self._walk_directory(task)
                except Exception as e:
                    logger.debug(f"Unexpected error walking {task.path}", exc_info=True)
                    self._aggregator.send(
                        ScanDiagnostic(task.rel_path or ".", DiagnosticKind.WALK, str(e))
                    )
                finally:
                    self._tasks.task_done()
        finally:
            self._aggregator.release()

    def _walk_directory(self, task: _DirectoryTask) -> None:
        try:
            with os.scandir(task.path) as it:
                entries = list(it)
        except OSError as e:
            self._aggregator.send(
                ScanDiagnostic(
                    task.rel_path or ".", DiagnosticKind.DIRECTORY, f"Cannot read directory: {e}"
                )
            )
            return

        for entry in entries:
            if self._aggregator.closed:
                return

            rel_path = join_rel(task.rel_path, entry.name)
            try:
                is_dir = entry.is_dir(follow_symlinks=self._follow_symlinks)
            except OSError as e:
                self._aggregator.send(
                    ScanDiagnostic(rel_path, DiagnosticKind.METADATA, f"Cannot read entry type: {e}")
                )
                continue

            if is_dir:
                self._queue_directory(task, entry, rel_path)
                continue

            outcome = self._process_file(entry, rel_path)
            if outcome is not None:
                self._aggregator.send(outcome)

    def _queue_directory(self, task: _DirectoryTask, entry: os.DirEntry, rel_path: str) -> None:
        if self._include.prunes_directory(rel_path):
            logger.debug(f"Pruned by include patterns: {rel_path}/")
            return

        if self._rules.can_prune(rel_path):
            logger.debug(f"Pruned by ignore rules: {rel_path}/")
            return

        ancestors = task.ancestors
        if self._follow_symlinks:
            result = self._symlink_validator.check_directory(entry.path, ancestors)
            if not result.safe:
                kind = DiagnosticKind.LOOP if result.identity is not None else DiagnosticKind.METADATA
                self._aggregator.send(ScanDiagnostic(rel_path, kind, result.reason or "unsafe directory"))
                return
            ancestors = ancestors | {result.identity}

        self._tasks.put(_DirectoryTask(Path(entry.path), rel_path, ancestors))

    def _process_file(
        self, entry: os.DirEntry, rel_path: str
    ) -> Union[FileRecord, ScanDiagnostic, None]:
        """
        Filter and classify one non-directory entry.

        Returns:
            FileRecord if the file is emitted, ScanDiagnostic if it failed,
            None if it was filtered out
        """
        if not self._include.includes_file(rel_path):
            logger.debug(f"Not matched by include patterns: {rel_path}")
            return None

        if self._rules.should_ignore(rel_path, is_dir=False):
            logger.debug(f"Ignoring: {rel_path}")
            return None

        try:
            st = entry.stat(follow_symlinks=self._follow_symlinks)
        except OSError as e:
            return ScanDiagnostic(rel_path, DiagnosticKind.METADATA, f"Cannot read metadata: {e}")

        if not stat.S_ISREG(st.st_mode):
            logger.debug(f"Not a regular file: {rel_path}")
            return None

        if self._max_size_bytes is not None and st.st_size > self._max_size_bytes:
            logger.debug(f"Skipping large file ({st.st_size} bytes): {rel_path}")
            return None

        path = Path(entry.path)
        try:
            binary = is_binary_file(path, self._sample_bytes)
        except OSError as e:
            return ScanDiagnostic(rel_path, DiagnosticKind.READ, f"Cannot read file: {e}")

        return FileRecord(
            rel_path=rel_path,
            abs_path=str(path) if self._absolute else None,
            size=st.st_size,
            mtime_ms=_mtime_ms(st),
            binary=binary,
        )
