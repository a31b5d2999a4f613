"""
Include-glob prefilter.

A coarse filter applied before the ignore rules. Patterns use the same
glob syntax as ignore files; a leading "!" excludes. Files must be selected
by a positive pattern, while directories are only pruned when a "!" pattern
excludes them, since a directory never has to match a file glob such as
"*.py" to contain matching files.

A pattern matches only the path it names: "docs" selects an entry called
docs, not the files below a docs/ directory ("docs/**" does that).
"""

import logging
import re
from typing import Iterable, Optional

from mf_indexer.core.errors import IncludePatternError
from mf_indexer.core.ignore_rules import compile_glob, path_only_regex

logger = logging.getLogger(__name__)


def _check_glob_syntax(pattern: str) -> None:
    """
    Reject glob syntax errors that pathspec would silently accept.

    Raises:
        IncludePatternError: On an empty pattern, an unclosed character class
            or a dangling escape.
    """
    body = pattern[1:] if pattern.startswith("!") else pattern
    if not body.strip("/"):
        raise IncludePatternError(f"Empty include pattern: '{pattern}'")

    i = 0
    while i < len(body):
        char = body[i]
        if char == "\\":
            if i + 1 >= len(body):
                raise IncludePatternError(f"Dangling escape in include pattern: '{pattern}'")
            i += 2
            continue
        if char == "[":
            j = i + 1
            if j < len(body) and body[j] in "!^":
                j += 1
            # A "]" right after the opening bracket is a literal member
            if j < len(body) and body[j] == "]":
                j += 1
            close = body.find("]", j)
            if close == -1:
                raise IncludePatternError(
                    f"Unclosed character class in include pattern: '{pattern}'"
                )
            i = close + 1
            continue
        i += 1


class IncludeFilter:
    """Compiled include globs, shared read-only by all workers."""

    __slots__ = ("_patterns",)

    def __init__(self, patterns: Iterable[tuple[str, re.Pattern, bool]] = ()):
        self._patterns: tuple[tuple[str, re.Pattern, bool], ...] = tuple(patterns)

    @classmethod
    def compile(cls, patterns: Iterable[str]) -> "IncludeFilter":
        """
        Compile include globs.

        Args:
            patterns: Glob patterns; an empty collection includes everything

        Returns:
            IncludeFilter instance

        Raises:
            IncludePatternError: If any pattern is malformed
        """
        compiled = []
        for raw in patterns:
            pattern = raw.strip()
            _check_glob_syntax(pattern)
            try:
                spec = compile_glob(pattern)
            except ValueError as e:
                raise IncludePatternError(f"Invalid include pattern '{pattern}': {e}") from e
            if spec.include is None or spec.regex is None:
                raise IncludePatternError(f"Include pattern matches nothing: '{pattern}'")
            compiled.append((pattern, path_only_regex(spec.regex), spec.include))

        logger.debug(f"Compiled {len(compiled)} include patterns")
        return cls(compiled)

    @property
    def patterns(self) -> list[str]:
        """Return the source patterns."""
        return [pattern for pattern, _, _ in self._patterns]

    def _decide(self, candidate: str) -> Optional[bool]:
        decision: Optional[bool] = None
        for _, regex, include in self._patterns:
            if regex.search(candidate) is not None:
                decision = include
        return decision

    def includes_file(self, rel_path: str) -> bool:
        """True if the last include pattern matching the file is a positive one."""
        if not self._patterns:
            return True
        return self._decide(rel_path) is True

    def prunes_directory(self, rel_dir: str) -> bool:
        """True if a "!" include pattern explicitly excludes the directory."""
        if not self._patterns:
            return False
        return self._decide(rel_dir.rstrip("/") + "/") is False
