"""
FileScanner module for mf-indexer.

Provides concurrent directory scanning with layered ignore rules,
include-glob prefiltering, size limits and text/binary classification.
"""

from .aggregator import DEFAULT_CHANNEL_CAPACITY, ResultAggregator
from .interfaces import FileScannerInterface
from .models import DiagnosticKind, FileRecord, ScanDiagnostic, ScanSummary
from .scanner import FileScanner, scan_repo, scan_repo_collect
from .walker import ConcurrentWalker

__all__ = [
    # Main classes
    "FileScanner",
    "FileScannerInterface",
    "ConcurrentWalker",
    "ResultAggregator",
    # Models
    "FileRecord",
    "ScanDiagnostic",
    "DiagnosticKind",
    "ScanSummary",
    # Convenience functions
    "scan_repo",
    "scan_repo_collect",
    # Constants
    "DEFAULT_CHANNEL_CAPACITY",
]
