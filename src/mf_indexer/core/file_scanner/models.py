"""
Data models for the file scanner module.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


@dataclass(frozen=True)
class FileRecord:
    """
    One scanned file, serialized as a single NDJSON line.

    Attributes:
        rel_path: Forward-slash path relative to the canonical scan root
        size: File size in bytes
        mtime_ms: Modification time in milliseconds since epoch (0 if unavailable)
        binary: Classifier result
        abs_path: Absolute path, only set when absolute output was requested
    """

    rel_path: str
    size: int
    mtime_ms: int
    binary: bool
    abs_path: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Wire form; abs_path is omitted entirely when not set."""
        data: dict[str, Any] = {"rel_path": self.rel_path}
        if self.abs_path is not None:
            data["abs_path"] = self.abs_path
        data["size"] = self.size
        data["mtime_ms"] = self.mtime_ms
        data["binary"] = self.binary
        return data

    def to_json(self) -> str:
        """Serialize to one compact JSON object (no trailing newline)."""
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":"))


class DiagnosticKind(str, Enum):
    """Category of a per-entry failure."""

    METADATA = "metadata"
    READ = "read"
    DIRECTORY = "directory"
    LOOP = "loop"
    WALK = "walk"


@dataclass(frozen=True)
class ScanDiagnostic:
    """A per-entry failure: the entry is skipped and the scan continues."""

    path: str
    kind: DiagnosticKind
    message: str

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.path}: {self.message}"


@dataclass
class ScanSummary:
    """Totals observed by the aggregator for one scan."""

    records: int = 0
    diagnostics: int = 0
    duration_seconds: float = 0.0
