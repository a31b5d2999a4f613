"""
Unit tests for the include-glob prefilter.
"""

import warnings

import pytest

from mf_indexer.core.errors import IncludePatternError
from mf_indexer.core.include_filter import IncludeFilter


class TestFileSelection:
    """Files must be selected by a positive include pattern."""

    def test_default_pattern_includes_everything(self):
        include = IncludeFilter.compile(["**/*"])

        assert include.includes_file("a.txt")
        assert include.includes_file("deep/nested/.hidden")

    def test_empty_pattern_list_includes_everything(self):
        include = IncludeFilter.compile([])

        assert include.includes_file("anything/at/all.bin")
        assert not include.prunes_directory("anything")

    def test_extension_glob(self):
        include = IncludeFilter.compile(["*.py"])

        assert include.includes_file("main.py")
        assert include.includes_file("src/pkg/module.py")
        assert not include.includes_file("README.md")

    def test_directory_glob(self):
        include = IncludeFilter.compile(["src/**"])

        assert include.includes_file("src/a/b.txt")
        assert not include.includes_file("lib/a.txt")

    def test_negated_pattern_excludes(self):
        include = IncludeFilter.compile(["**/*", "!*.lock"])

        assert include.includes_file("app.py")
        assert not include.includes_file("poetry.lock")


class TestDirectoryPruning:
    """Directories are only pruned by an explicit "!" include pattern."""

    def test_file_glob_does_not_prune_directories(self):
        include = IncludeFilter.compile(["*.py"])

        assert not include.prunes_directory("src")
        assert not include.prunes_directory("src/pkg")

    def test_negated_directory_is_pruned(self):
        include = IncludeFilter.compile(["**/*", "!vendor/"])

        assert include.prunes_directory("vendor")
        assert include.prunes_directory("third_party/vendor")
        assert not include.prunes_directory("src")

    def test_negated_file_glob_does_not_prune_directory(self):
        include = IncludeFilter.compile(["**/*", "!*.lock"])

        assert not include.prunes_directory("locks")
        assert not include.includes_file("deps/poetry.lock")


class TestPathOnlyMatching:
    """A glob matches the path it names, not the contents of a directory of that name."""

    def test_bare_name_does_not_select_directory_contents(self):
        include = IncludeFilter.compile(["docs"])

        assert include.includes_file("docs")
        assert include.includes_file("sub/docs")
        assert not include.includes_file("docs/guide.md")

    def test_double_star_selects_directory_contents(self):
        include = IncludeFilter.compile(["docs/**"])

        assert include.includes_file("docs/guide.md")
        assert include.includes_file("docs/api/index.md")
        assert not include.includes_file("src/docs.md")


class TestMalformedPatterns:
    """Malformed include globs are fatal compile errors."""

    @pytest.mark.parametrize("pattern", ["src/[abc", "*.[ch", "name\\", "", "!", "/"])
    def test_malformed_pattern_rejected(self, pattern):
        with pytest.raises(IncludePatternError):
            IncludeFilter.compile(["**/*", pattern])

    @pytest.mark.parametrize("pattern", ["*.[ch]", "[!a]*.txt", "file\\[1\\].txt"])
    def test_valid_bracket_and_escape_patterns(self, pattern):
        include = IncludeFilter.compile([pattern])

        assert include.patterns == [pattern]

    def test_character_class_matches(self):
        include = IncludeFilter.compile(["*.[ch]"])

        assert include.includes_file("main.c")
        assert include.includes_file("include/main.h")
        assert not include.includes_file("main.o")

    def test_compiling_emits_no_deprecation_warning(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error", DeprecationWarning)
            include = IncludeFilter.compile(["**/*.py", "!tests/"])

        assert include.includes_file("src/app.py")
        assert include.prunes_directory("tests")
