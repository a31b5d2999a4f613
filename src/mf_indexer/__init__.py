"""
mf-indexer - filesystem inventory for indexing and embedding pipelines.
"""

from mf_indexer.core import (
    FileRecord,
    FileScanner,
    ScanConfig,
    ScanError,
    scan_repo,
    scan_repo_collect,
)

__version__ = "0.1.0"

__all__ = [
    "FileRecord",
    "FileScanner",
    "ScanConfig",
    "ScanError",
    "scan_repo",
    "scan_repo_collect",
    "__version__",
]
