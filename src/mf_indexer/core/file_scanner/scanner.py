"""
FileScanner implementation: wires the rule set, include filter, walker and
aggregator together for one scan.
"""

import logging
from collections.abc import Callable
from dataclasses import replace
from pathlib import Path
from typing import Optional

from mf_indexer.core.config import ScanConfig
from mf_indexer.core.ignore_rules import build_ignore_rule_set
from mf_indexer.core.include_filter import IncludeFilter
from mf_indexer.core.path_utils import canonicalize_root

from .aggregator import ResultAggregator
from .interfaces import FileScannerInterface
from .models import FileRecord, ScanDiagnostic, ScanSummary
from .walker import ConcurrentWalker

logger = logging.getLogger(__name__)


class FileScanner(FileScannerInterface):
    """
    Concrete implementation of FileScannerInterface.

    Provides concurrent directory scanning with:
    - Layered gitignore-style rules (.gitignore, .indexignore, built-ins, caller patterns)
    - Include-glob prefiltering
    - Size limits
    - Text/binary classification by extension and leading-byte sampling
    - Skip-and-continue handling of per-entry failures
    """

    def __init__(
        self,
        config: ScanConfig | None = None,
        on_diagnostic: Optional[Callable[[ScanDiagnostic], None]] = None,
    ):
        """
        Initialize the FileScanner.

        Args:
            config: Scan configuration. If None, uses defaults.
            on_diagnostic: Called on the consuming thread for each skipped-on-error entry.
        """
        self._config = config or ScanConfig()
        self._on_diagnostic = on_diagnostic

    @property
    def config(self) -> ScanConfig:
        return self._config

    def _snapshot(self) -> ScanConfig:
        """Copy the configuration so later edits cannot reach a running scan."""
        return replace(
            self._config,
            include_globs=list(self._config.include_globs),
            extra_ignore=list(self._config.extra_ignore),
        ).validate()

    def scan(self, root_path: Optional[Path] = None) -> ResultAggregator:
        """
        Start a scan and return the live aggregator.

        Everything that can fail fatally happens here, before the workers
        start: root validation, ignore rule compilation and include glob
        compilation.

        Args:
            root_path: Root directory to scan; defaults to the configured root

        Returns:
            ResultAggregator to iterate (or use as a context manager)

        Raises:
            ScanRootError: If the root is missing or not a directory
            IgnoreRuleError: If an ignore file is unreadable or a pattern is rejected
            IncludePatternError: If an include glob is malformed
            ValueError: If the configuration is out of range
        """
        config = self._snapshot()
        root = canonicalize_root(root_path if root_path is not None else config.root)

        rule_set = build_ignore_rule_set(root, config.extra_ignore)
        include_filter = IncludeFilter.compile(config.include_globs)

        aggregator = ResultAggregator(
            capacity=config.channel_capacity,
            producers=config.worker_count,
            on_diagnostic=self._on_diagnostic,
        )
        walker = ConcurrentWalker(
            root=root,
            rule_set=rule_set,
            include_filter=include_filter,
            aggregator=aggregator,
            workers=config.worker_count,
            max_size_bytes=config.max_size_bytes,
            sample_bytes=config.sample_bytes,
            follow_symlinks=config.follow_symlinks,
            absolute=config.absolute,
        )

        logger.info(
            f"Scanning {root} with {walker.worker_count} workers "
            f"({len(rule_set)} ignore rules, {len(include_filter.patterns)} include patterns)"
        )
        walker.start()
        return aggregator

    def scan_each(
        self, on_record: Callable[[FileRecord], None], root_path: Optional[Path] = None
    ) -> ScanSummary:
        """Run a scan to completion, invoking on_record for each record."""
        return self.scan(root_path).drain(on_record)

    def collect(self, root_path: Optional[Path] = None) -> list[FileRecord]:
        """Run a scan to completion and return all records."""
        records: list[FileRecord] = []
        self.scan_each(records.append, root_path)
        return records


def scan_repo(
    config: ScanConfig,
    on_record: Callable[[FileRecord], None],
    on_diagnostic: Optional[Callable[[ScanDiagnostic], None]] = None,
) -> ScanSummary:
    """Scan config.root, delivering each record to on_record."""
    return FileScanner(config, on_diagnostic=on_diagnostic).scan_each(on_record)


def scan_repo_collect(config: ScanConfig) -> list[FileRecord]:
    """Scan config.root and collect the records into a list."""
    return FileScanner(config).collect()
