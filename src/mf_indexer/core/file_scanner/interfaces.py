"""
Abstract interfaces for file scanning operations.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Optional

from .models import FileRecord, ScanSummary


class FileScannerInterface(ABC):
    """
    Abstract interface for file scanning operations.

    Implementations validate the root and compile every filter before any
    traversal starts, then deliver records through a pull sequence, a push
    callback, or a collected list.
    """

    @abstractmethod
    def scan(self, root_path: Optional[Path] = None) -> Iterator[FileRecord]:
        """
        Start a scan and return the sequence of records.

        Args:
            root_path: Root directory to scan; defaults to the configured root

        Returns:
            Iterator over FileRecord objects, in best-effort traversal order

        Raises:
            ScanError: If the root is invalid or the filters cannot be compiled.
                Raised before any record is produced.
        """
        pass

    @abstractmethod
    def scan_each(
        self, on_record: Callable[[FileRecord], None], root_path: Optional[Path] = None
    ) -> ScanSummary:
        """
        Run a scan to completion, invoking a callback for each record.

        Returns:
            ScanSummary with record and diagnostic counts
        """
        pass

    @abstractmethod
    def collect(self, root_path: Optional[Path] = None) -> list[FileRecord]:
        """Run a scan to completion and return all records."""
        pass
