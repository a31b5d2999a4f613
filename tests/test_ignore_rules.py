"""
Unit tests for the layered ignore rule engine.

Covers layer merging, precedence, negation, directory-only and anchored
patterns, built-in excludes and fatal error handling.
"""

import logging
import warnings
from pathlib import Path

import pytest

from mf_indexer.core.errors import IgnoreRuleError
from mf_indexer.core.ignore_rules import (
    BUILTIN_IGNORE_PATTERNS,
    IgnoreRule,
    IgnoreRuleBuilder,
    RuleSource,
    build_ignore_rule_set,
)


def _rules(tmp_path: Path, *patterns: str):
    return build_ignore_rule_set(tmp_path, list(patterns))


class TestLayeredMerge:
    """Rules from both ignore files, built-ins and caller patterns are combined."""

    def test_merge_and_negation(self, tmp_path):
        """Root ignore file, custom ignore file with a negation, and an extra pattern."""
        (tmp_path / ".gitignore").write_text("foo/\n", encoding="utf-8")
        (tmp_path / ".indexignore").write_text(
            "build/\n!build/README.md\nsecret.txt\n", encoding="utf-8"
        )

        rule_set = build_ignore_rule_set(tmp_path, ["temp/"])

        assert rule_set.should_ignore("foo/a.txt", False)
        assert rule_set.should_ignore("secret.txt", False)
        assert rule_set.should_ignore("temp/x", False)
        assert not rule_set.should_ignore("build/README.md", False)
        assert rule_set.should_ignore("build/app.bin", False)
        assert not rule_set.should_ignore("src/main.rs", False)

    def test_layer_order(self, tmp_path):
        """Layers appear in increasing precedence: root file, custom file, built-ins, extras."""
        (tmp_path / ".gitignore").write_text("a\n", encoding="utf-8")
        (tmp_path / ".indexignore").write_text("b\n", encoding="utf-8")

        rule_set = build_ignore_rule_set(tmp_path, ["c"])
        sources = [rule.source for rule in rule_set.rules]

        assert sources[0] == RuleSource.ROOT_IGNORE_FILE
        assert sources[1] == RuleSource.CUSTOM_IGNORE_FILE
        assert sources[2 : 2 + len(BUILTIN_IGNORE_PATTERNS)] == [RuleSource.BUILTIN] * len(
            BUILTIN_IGNORE_PATTERNS
        )
        assert sources[-1] == RuleSource.EXTRA

    def test_missing_ignore_files_are_not_an_error(self, tmp_path):
        rule_set = build_ignore_rule_set(tmp_path, [])

        assert len(rule_set) == len(BUILTIN_IGNORE_PATTERNS)
        assert not rule_set.should_ignore("main.py", False)

    def test_extra_patterns_override_ignore_files(self, tmp_path):
        """A caller negation re-includes a path excluded by an ignore file."""
        (tmp_path / ".gitignore").write_text("*.log\n", encoding="utf-8")

        rule_set = build_ignore_rule_set(tmp_path, ["!important.log"])

        assert rule_set.should_ignore("debug.log", False)
        assert not rule_set.should_ignore("important.log", False)

    def test_ignore_file_cannot_reinclude_builtins(self, tmp_path):
        """Built-ins come after both ignore files, so a file negation loses."""
        (tmp_path / ".indexignore").write_text("!node_modules/\n", encoding="utf-8")

        rule_set = build_ignore_rule_set(tmp_path, [])

        assert rule_set.should_ignore("node_modules/pkg/index.js", False)

    def test_rule_metadata_records_file_and_line(self, tmp_path):
        (tmp_path / ".indexignore").write_text("# header\n\n*.tmp\n", encoding="utf-8")

        rule_set = build_ignore_rule_set(tmp_path, [])
        rule = rule_set.rules[0]

        assert rule.raw == "*.tmp"
        assert rule.source == RuleSource.CUSTOM_IGNORE_FILE
        assert rule.source_path == tmp_path / ".indexignore"
        assert rule.line_number == 3


class TestPrecedence:
    """The last matching rule decides."""

    def test_later_negation_wins(self, tmp_path):
        rule_set = _rules(tmp_path, "*.log", "!keep.log")

        assert rule_set.should_ignore("a.log", False)
        assert not rule_set.should_ignore("keep.log", False)
        assert not rule_set.should_ignore("sub/keep.log", False)

    def test_later_exclusion_wins(self, tmp_path):
        rule_set = _rules(tmp_path, "!keep.log", "*.log")

        assert rule_set.should_ignore("keep.log", False)

    def test_negation_before_directory_rule_does_not_reinclude(self, tmp_path):
        rule_set = _rules(tmp_path, "!build/keep.txt", "build/")

        assert rule_set.should_ignore("build/keep.txt", False)

    @pytest.mark.parametrize("negation", ["!build/", "!build"])
    def test_directory_negation_does_not_reinclude_contents(self, tmp_path, negation):
        """Re-including a directory leaves files excluded by their own rule ignored."""
        rule_set = _rules(tmp_path, "*.bin", negation)

        assert rule_set.should_ignore("build/x.bin", False)
        assert rule_set.should_ignore("build/sub/y.bin", False)
        assert not rule_set.should_ignore("build/notes.txt", False)

    def test_directory_negation_reincludes_the_directory(self, tmp_path):
        rule_set = _rules(tmp_path, "build*", "!build/")

        assert not rule_set.should_ignore("build", True)
        assert rule_set.should_ignore("build", False)
        assert rule_set.should_ignore("build.log", False)

    def test_whitelist_idiom(self, tmp_path):
        """Ignore everything, re-include every directory, then re-include *.py."""
        rule_set = _rules(tmp_path, "*", "!*/", "!*.py")

        assert not rule_set.should_ignore("main.py", False)
        assert not rule_set.should_ignore("src/pkg/module.py", False)
        assert not rule_set.should_ignore("src", True)
        assert not rule_set.should_ignore("src/pkg", True)
        assert rule_set.should_ignore("README.md", False)
        assert rule_set.should_ignore("src/data.json", False)

    def test_unmatched_path_is_kept(self, tmp_path):
        rule_set = _rules(tmp_path, "*.log")

        assert not rule_set.should_ignore("src/app.py", False)
        assert not rule_set.should_ignore("src", True)


class TestPatternSyntax:
    """Gitignore syntax edge cases."""

    def test_directory_only_pattern(self, tmp_path):
        rule_set = _rules(tmp_path, "cache/")

        assert not rule_set.should_ignore("cache", is_dir=False)
        assert rule_set.should_ignore("cache", is_dir=True)
        assert rule_set.should_ignore("cache/data.bin", False)
        assert rule_set.should_ignore("deep/nested/cache/data.bin", False)

    def test_leading_slash_anchors_to_root(self, tmp_path):
        rule_set = _rules(tmp_path, "/top.txt")

        assert rule_set.should_ignore("top.txt", False)
        assert not rule_set.should_ignore("sub/top.txt", False)

    def test_inner_slash_anchors_to_root(self, tmp_path):
        rule_set = _rules(tmp_path, "doc/frotz")

        assert rule_set.should_ignore("doc/frotz", False)
        assert not rule_set.should_ignore("a/doc/frotz", False)

    def test_name_without_slash_matches_at_any_depth(self, tmp_path):
        rule_set = _rules(tmp_path, "*.pyc")

        assert rule_set.should_ignore("x.pyc", False)
        assert rule_set.should_ignore("a/b/c/x.pyc", False)

    def test_leading_double_star(self, tmp_path):
        rule_set = _rules(tmp_path, "**/logs")

        assert rule_set.should_ignore("logs", True)
        assert rule_set.should_ignore("a/b/logs/today.txt", False)

    def test_inner_double_star(self, tmp_path):
        rule_set = _rules(tmp_path, "a/**/b")

        assert rule_set.should_ignore("a/b", False)
        assert rule_set.should_ignore("a/x/y/b", False)
        assert not rule_set.should_ignore("c/a/b", False)

    def test_trailing_double_star(self, tmp_path):
        rule_set = _rules(tmp_path, "abc/**")

        assert rule_set.should_ignore("abc/x", False)
        assert rule_set.should_ignore("abc/x/y", False)
        assert not rule_set.should_ignore("abcd/x", False)

    def test_escaped_hash_is_a_pattern(self, tmp_path):
        (tmp_path / ".gitignore").write_text("\\#notes\n", encoding="utf-8")

        rule_set = build_ignore_rule_set(tmp_path, [])

        assert rule_set.should_ignore("#notes", False)

    def test_lines_are_trimmed(self, tmp_path):
        (tmp_path / ".gitignore").write_text("   spaced.txt   \n", encoding="utf-8")

        rule_set = build_ignore_rule_set(tmp_path, [])

        assert rule_set.should_ignore("spaced.txt", False)

    def test_empty_patterns_are_skipped(self, tmp_path):
        (tmp_path / ".gitignore").write_text("!\n/\n!/\nvalid\n", encoding="utf-8")

        rule_set = build_ignore_rule_set(tmp_path, [])
        file_rules = [r for r in rule_set.rules if r.source == RuleSource.ROOT_IGNORE_FILE]

        assert [r.raw for r in file_rules] == ["valid"]

    def test_compiling_emits_no_deprecation_warning(self, tmp_path):
        with warnings.catch_warnings():
            warnings.simplefilter("error", DeprecationWarning)
            rule_set = _rules(tmp_path, "*.log", "!keep.log", "docs/**", "/anchored")

        assert rule_set.should_ignore("a/b.log", False)
        assert not rule_set.should_ignore("keep.log", False)


class TestBuiltins:
    """Built-in excludes are always present."""

    @pytest.mark.parametrize(
        "path",
        [
            ".git/config",
            "node_modules/left-pad/index.js",
            "web/node_modules/x.js",
            "target/debug/app",
            ".DS_Store",
            "photos/Thumbs.db",
            ".gitignore",
            ".indexignore",
        ],
    )
    def test_builtin_excluded(self, tmp_path, path):
        assert _rules(tmp_path).should_ignore(path, False)

    @pytest.mark.parametrize("path", ["src/target.rs", ".github/workflows/ci.yml", ".env"])
    def test_similar_names_kept(self, tmp_path, path):
        assert not _rules(tmp_path).should_ignore(path, False)


class TestPruning:
    """Directory pruning is only allowed when nothing below can be re-included."""

    def test_prunes_ignored_directory_without_negations(self, tmp_path):
        rule_set = _rules(tmp_path, "build/")

        assert rule_set.can_prune("build")
        assert not rule_set.can_prune("src")

    def test_no_pruning_with_negations(self, tmp_path):
        rule_set = _rules(tmp_path, "build/", "!build/README.md")

        assert rule_set.has_negations
        assert not rule_set.can_prune("build")


class TestFatalErrors:
    """An ignore file that exists but cannot be used aborts rule compilation."""

    def test_invalid_utf8_is_fatal(self, tmp_path):
        (tmp_path / ".gitignore").write_bytes(b"valid_pattern\n\xff\xfe invalid bytes\n")

        with pytest.raises(IgnoreRuleError, match="Invalid UTF-8"):
            build_ignore_rule_set(tmp_path, [])

    def test_unreadable_ignore_file_is_fatal(self, tmp_path):
        # A directory where the file should be: exists, but cannot be read as text
        (tmp_path / ".indexignore").mkdir()

        with pytest.raises(IgnoreRuleError, match="Cannot read ignore file"):
            build_ignore_rule_set(tmp_path, [])

    def test_builder_logs_loaded_count(self, tmp_path, caplog):
        ignore_file = tmp_path / ".gitignore"
        ignore_file.write_text("a\nb\n", encoding="utf-8")

        builder = IgnoreRuleBuilder(tmp_path)
        with caplog.at_level(logging.DEBUG, logger="mf_indexer.core.ignore_rules"):
            loaded = builder.add_file(ignore_file, RuleSource.ROOT_IGNORE_FILE)

        assert loaded == 2
        assert any("Loaded 2 patterns" in record.message for record in caplog.records)


class TestIgnoreRuleParse:
    """Flags derived from the raw pattern text."""

    @pytest.mark.parametrize(
        "raw, negation, directory_only, anchored, pattern",
        [
            ("*.log", False, False, False, "*.log"),
            ("!keep.log", True, False, False, "keep.log"),
            ("build/", False, True, False, "build"),
            ("/top.txt", False, False, True, "top.txt"),
            ("doc/frotz", False, False, True, "doc/frotz"),
            ("!/out/", True, True, True, "out"),
        ],
    )
    def test_parse_flags(self, raw, negation, directory_only, anchored, pattern):
        rule = IgnoreRule.parse(raw, RuleSource.EXTRA)

        assert rule.negation is negation
        assert rule.directory_only is directory_only
        assert rule.anchored is anchored
        assert rule.pattern == pattern
        assert rule.raw == raw
