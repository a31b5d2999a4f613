"""
Ignore rule engine for mf-indexer.

Compiles layered gitignore-style patterns into an immutable rule set with:
- Layer precedence (root .gitignore < .indexignore < built-ins < caller patterns)
- Pattern precedence (later patterns override earlier ones)
- Negation patterns (!)
- Directory-only patterns (trailing /)
- Anchored patterns (leading or inner /)
- Double-star globs (**)
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional

from pathspec.patterns.gitignore.spec import GitIgnoreSpecPattern

from mf_indexer.core.errors import IgnoreRuleError

logger = logging.getLogger(__name__)

# Trailing groups pathspec appends so that a pattern also matches everything
# below the path it names
_DESCENDANT_TAIL = "(?:(?P<ps_d>/)|$)"
_DIRECTORY_TAIL = "(?P<ps_d>/)"

ROOT_IGNORE_FILE = ".gitignore"
CUSTOM_IGNORE_FILE = ".indexignore"

# Always applied after both ignore files, so an ignore file cannot re-include them
BUILTIN_IGNORE_PATTERNS: tuple[str, ...] = (
    ".git/",
    "target/",
    "node_modules/",
    ".DS_Store",
    "Thumbs.db",
    ROOT_IGNORE_FILE,
    CUSTOM_IGNORE_FILE,
)


def compile_glob(line: str) -> GitIgnoreSpecPattern:
    """Compile one gitignore-style line; raises ValueError if pathspec rejects it."""
    return GitIgnoreSpecPattern(line)


def path_only_regex(regex: re.Pattern) -> re.Pattern:
    """
    Narrow a pathspec regex so it matches the named path itself, not its contents.

    A directory candidate carries a trailing "/", so "build" and "build/"
    both still match the directory "build/" but neither matches "build/x.bin".
    Patterns pathspec builds without a descendant tail ("abc/**", "*") are
    returned unchanged.
    """
    source = regex.pattern
    if source.endswith(_DESCENDANT_TAIL):
        return re.compile(source[: -len(_DESCENDANT_TAIL)] + "/?$")
    if source.endswith(_DIRECTORY_TAIL):
        return re.compile(source[: -len(_DIRECTORY_TAIL)] + "/$")
    return regex


class RuleSource(str, Enum):
    """Where an ignore rule came from."""

    ROOT_IGNORE_FILE = "root_ignore_file"
    CUSTOM_IGNORE_FILE = "custom_ignore_file"
    BUILTIN = "builtin"
    EXTRA = "extra"


@dataclass(frozen=True)
class IgnoreRule:
    """
    A parsed ignore pattern with metadata.

    Attributes:
        raw: Original pattern string (e.g., "!/important.py")
        pattern: Pattern without negation, anchoring and trailing-slash markers
        negation: True if pattern starts with ! (re-includes paths)
        directory_only: True if pattern ends with / (matches only directories)
        anchored: True if pattern contains a leading or inner / (root-relative)
        source: Layer the rule belongs to
        source_path: Ignore file containing the rule, None for built-in/caller rules
        line_number: 1-based line within source_path, if any
    """

    raw: str
    pattern: str
    negation: bool
    directory_only: bool
    anchored: bool
    source: RuleSource
    source_path: Optional[Path] = None
    line_number: Optional[int] = None

    @classmethod
    def parse(
        cls,
        raw_line: str,
        source: RuleSource,
        source_path: Optional[Path] = None,
        line_number: Optional[int] = None,
    ) -> "IgnoreRule":
        """
        Parse a raw pattern line into an IgnoreRule.

        Args:
            raw_line: Pattern line (already stripped)
            source: Layer the rule belongs to
            source_path: Ignore file containing the line, if any
            line_number: 1-based line number within source_path

        Returns:
            Parsed IgnoreRule instance
        """
        pattern = raw_line
        negation = False
        directory_only = False

        if pattern.startswith("!"):
            negation = True
            pattern = pattern[1:]

        if pattern.endswith("/") and not pattern.endswith("\\/"):
            directory_only = True
            pattern = pattern[:-1]

        # A slash at the start or in the middle anchors the pattern to the root
        anchored = "/" in pattern
        pattern = pattern.lstrip("/")

        return cls(
            raw=raw_line,
            pattern=pattern,
            negation=negation,
            directory_only=directory_only,
            anchored=anchored,
            source=source,
            source_path=source_path,
            line_number=line_number,
        )

    def describe(self) -> str:
        """Human-readable origin of the rule, for logs and error messages."""
        if self.source_path is not None and self.line_number is not None:
            return f"{self.source_path}:{self.line_number}"
        return self.source.value


class IgnoreRuleSet:
    """
    Compiled, ordered, read-only collection of ignore rules for one scan.

    Built once before any worker starts; nothing mutates it afterwards, so
    it is shared across worker threads without locking.
    """

    __slots__ = ("_root", "_rules", "_regexes", "_has_negations")

    def __init__(self, root: Path, compiled: Iterable[tuple[IgnoreRule, re.Pattern]]):
        compiled = tuple(compiled)
        self._root = root
        self._rules: tuple[IgnoreRule, ...] = tuple(rule for rule, _ in compiled)
        self._regexes: tuple[re.Pattern, ...] = tuple(regex for _, regex in compiled)
        self._has_negations = any(rule.negation for rule in self._rules)

    @property
    def root(self) -> Path:
        """Root directory the rules are relative to."""
        return self._root

    @property
    def rules(self) -> tuple[IgnoreRule, ...]:
        """Rules in increasing precedence order."""
        return self._rules

    @property
    def has_negations(self) -> bool:
        """True if any rule re-includes paths."""
        return self._has_negations

    def __len__(self) -> int:
        return len(self._rules)

    def _decide(self, rel_path: str, is_dir: bool) -> Optional[bool]:
        """
        Decision of the last rule matching rel_path itself.

        Returns:
            True (ignore), False (re-included by a negation), or None (no rule matched)
        """
        # Directory-only rules match "name/" but never a bare "name". Exclusions
        # also cover everything below the path; negations only the path itself,
        # so "!build/" never re-includes a file under build/.
        candidate = rel_path + "/" if is_dir else rel_path
        decision: Optional[bool] = None
        for rule, regex in zip(self._rules, self._regexes):
            if regex.search(candidate) is not None:
                decision = not rule.negation
        return decision

    def should_ignore(self, rel_path: str, is_dir: bool = False) -> bool:
        """
        Check whether a path relative to the root is ignored.

        The path itself is checked first, then each parent directory from the
        nearest outwards; the first of those checks that matches any rule
        decides, using the last matching rule (negation included).

        Args:
            rel_path: Forward-slash path relative to the root
            is_dir: True if the path is a directory

        Returns:
            True if the path should be ignored
        """
        rel_path = rel_path.strip("/")
        if not rel_path or not self._rules:
            return False

        decision = self._decide(rel_path, is_dir)
        if decision is not None:
            return decision

        parent = rel_path
        while "/" in parent:
            parent = parent.rsplit("/", 1)[0]
            decision = self._decide(parent, True)
            if decision is not None:
                return decision

        return False

    def can_prune(self, rel_dir: str) -> bool:
        """
        Check whether a whole directory subtree can be skipped.

        Only safe when no negated rule exists: otherwise a file below an
        ignored directory may still be re-included.
        """
        return not self._has_negations and self.should_ignore(rel_dir, is_dir=True)


class IgnoreRuleBuilder:
    """
    Accumulates ignore rules in precedence order and compiles them.

    Example:
        >>> builder = IgnoreRuleBuilder(root)
        >>> builder.add_file(root / ".gitignore", RuleSource.ROOT_IGNORE_FILE)
        >>> builder.add_line("temp/", RuleSource.EXTRA)
        >>> rule_set = builder.build()
    """

    def __init__(self, root_path: Path):
        self._root_path = Path(root_path)
        self._compiled: list[tuple[IgnoreRule, re.Pattern]] = []

    @property
    def pattern_count(self) -> int:
        """Return the number of rules added so far."""
        return len(self._compiled)

    def add_line(
        self,
        raw_line: str,
        source: RuleSource,
        source_path: Optional[Path] = None,
        line_number: Optional[int] = None,
    ) -> bool:
        """
        Add a single pattern line.

        Blank lines and comments are skipped, as are lines that reduce to an
        empty pattern (such as "!" or "/"), which git treats as matching nothing.

        Returns:
            True if a rule was added

        Raises:
            IgnoreRuleError: If pathspec rejects the pattern
        """
        line = raw_line.strip()
        if not line or line.startswith("#"):
            return False

        rule = IgnoreRule.parse(line, source, source_path, line_number)
        if not rule.pattern:
            logger.debug(f"Skipping empty pattern '{line}' ({rule.describe()})")
            return False

        try:
            compiled = compile_glob(line)
        except ValueError as e:
            raise IgnoreRuleError(f"Invalid ignore pattern '{line}' ({rule.describe()}): {e}") from e

        if compiled.include is None or compiled.regex is None:
            logger.debug(f"Pattern '{line}' matches nothing ({rule.describe()})")
            return False

        regex = path_only_regex(compiled.regex) if rule.negation else compiled.regex
        self._compiled.append((rule, regex))
        return True

    def add_lines(self, lines: Iterable[str], source: RuleSource) -> int:
        """Add caller-supplied or built-in patterns. Returns the number of rules added."""
        return sum(1 for line in lines if self.add_line(line, source))

    def add_file(self, path: Path, source: RuleSource) -> int:
        """
        Add every pattern line of an ignore file.

        A missing file is not an error.

        Returns:
            Number of rules loaded

        Raises:
            IgnoreRuleError: If the file exists but cannot be read or decoded
        """
        path = Path(path)
        if not path.exists():
            logger.debug(f"Ignore file not found: {path}")
            return 0

        try:
            content = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise IgnoreRuleError(f"Invalid UTF-8 encoding in {path}: {e}") from e
        except OSError as e:
            raise IgnoreRuleError(f"Cannot read ignore file {path}: {e}") from e

        loaded = 0
        for line_number, line in enumerate(content.splitlines(), start=1):
            if self.add_line(line, source, source_path=path, line_number=line_number):
                loaded += 1

        logger.debug(f"Loaded {loaded} patterns from {path}")
        return loaded

    def build(self) -> IgnoreRuleSet:
        """Freeze the accumulated rules into an IgnoreRuleSet."""
        return IgnoreRuleSet(self._root_path, self._compiled)


def build_ignore_rule_set(root_path: Path, extra_patterns: Iterable[str] = ()) -> IgnoreRuleSet:
    """
    Build the layered rule set for a scan root.

    Layers in increasing precedence: root .gitignore, root .indexignore,
    built-in excludes, then caller-supplied patterns.

    Args:
        root_path: Canonical scan root
        extra_patterns: Caller-supplied gitignore-style patterns

    Returns:
        Immutable IgnoreRuleSet

    Raises:
        IgnoreRuleError: If an ignore file is unreadable or a pattern is rejected
    """
    root_path = Path(root_path)
    builder = IgnoreRuleBuilder(root_path)

    builder.add_file(root_path / ROOT_IGNORE_FILE, RuleSource.ROOT_IGNORE_FILE)
    builder.add_file(root_path / CUSTOM_IGNORE_FILE, RuleSource.CUSTOM_IGNORE_FILE)
    builder.add_lines(BUILTIN_IGNORE_PATTERNS, RuleSource.BUILTIN)
    builder.add_lines(extra_patterns, RuleSource.EXTRA)

    rule_set = builder.build()
    logger.debug(f"Compiled {len(rule_set)} ignore rules for {root_path}")
    return rule_set
