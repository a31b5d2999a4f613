"""
Path utilities for the scanner.

Provides scan-root validation and canonicalization, and the forward-slash
relative path form used by ignore matching and emitted records.
"""

import os
from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import Optional

from mf_indexer.core.errors import ScanRootError


@dataclass
class PathValidationResult:
    """Result of path validation.

    Attributes:
        valid: True if the path can be scanned.
        error_message: Human-readable error message if validation failed.
    """
    valid: bool
    error_message: Optional[str] = None


def to_posix(path: str | PurePath) -> str:
    """Normalize a relative path to forward-slash form, independent of host separator."""
    text = str(path)
    if os.sep != "/":
        text = text.replace(os.sep, "/")
    if os.altsep and os.altsep != "/":
        text = text.replace(os.altsep, "/")
    return text


def join_rel(parent_rel: str, name: str) -> str:
    """Join a relative POSIX directory path and an entry name."""
    return f"{parent_rel}/{name}" if parent_rel else name


def validate_scan_root(path: str | Path) -> PathValidationResult:
    """
    Validate that a path is suitable as a scan root.

    Performs the following checks:
    1. Path exists
    2. Path is a directory

    Args:
        path: Path to validate (string or Path object).

    Returns:
        PathValidationResult with valid=True if all checks pass,
        or valid=False with an appropriate error message.
    """
    try:
        p = Path(path) if isinstance(path, str) else path

        if not p.exists():
            return PathValidationResult(
                valid=False,
                error_message=f"Path '{path}' does not exist"
            )

        if not p.is_dir():
            return PathValidationResult(
                valid=False,
                error_message=f"Path '{path}' is not a directory"
            )

        return PathValidationResult(valid=True)

    except (OSError, ValueError) as e:
        return PathValidationResult(
            valid=False,
            error_message=f"Invalid path '{path}': {e}"
        )


def canonicalize_root(path: str | Path) -> Path:
    """
    Validate a scan root and resolve it to its canonical absolute form.

    Raises:
        ScanRootError: If the path is missing, not a directory, or cannot be resolved.
    """
    validation = validate_scan_root(path)
    if not validation.valid:
        raise ScanRootError(validation.error_message)

    try:
        return Path(path).resolve(strict=True)
    except OSError as e:
        raise ScanRootError(f"Cannot resolve scan root '{path}': {e}") from e
