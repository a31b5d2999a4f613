"""
SymlinkValidator module for mf-indexer.

Guards directory descent when symbolic links are followed. Validates that a
directory about to be queued:
- Can be resolved (not a broken link)
- Does not lead back to one of its own ancestors (a filesystem loop)

Ancestry is carried with each queued directory rather than kept in a shared
visited set, so workers need no common mutable state.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

# (st_dev, st_ino) pair identifying a directory independent of the path used to reach it
DirectoryIdentity = tuple[int, int]


@dataclass
class SymlinkValidationResult:
    """
    Result of directory validation.

    Attributes:
        safe: True if the directory can be descended
        reason: Reason if unsafe (for diagnostics), None if safe
        identity: Directory identity if it could be determined
    """

    safe: bool
    reason: str | None
    identity: Optional[DirectoryIdentity]


def directory_identity(path: str | os.PathLike) -> DirectoryIdentity:
    """
    Identify the directory a path leads to, following symlinks.

    Raises:
        OSError: If the path cannot be stat'ed
    """
    st = os.stat(path)
    return (st.st_dev, st.st_ino)


class SymlinkValidator:
    """
    Validates directories reached while following symlinks.

    Checks:
    - The directory (or link target) can be stat'ed
    - The directory is not one of its own ancestors
    """

    def check_directory(
        self, path: str | os.PathLike, ancestors: frozenset[DirectoryIdentity]
    ) -> SymlinkValidationResult:
        """
        Check if a directory is safe to descend.

        Args:
            path: Directory path as reached during traversal
            ancestors: Identities of every directory on the path from the root

        Returns:
            SymlinkValidationResult with safe status, reason if unsafe, and identity
        """
        try:
            identity = directory_identity(path)
        except OSError as e:
            reason = f"Failed to resolve directory: {e}"
            logger.debug(f"Skipping {path}: {reason}")
            return SymlinkValidationResult(safe=False, reason=reason, identity=None)

        if identity in ancestors:
            reason = "Filesystem loop - directory is one of its own ancestors"
            logger.debug(f"Skipping {path}: {reason}")
            return SymlinkValidationResult(safe=False, reason=reason, identity=identity)

        return SymlinkValidationResult(safe=True, reason=None, identity=identity)
