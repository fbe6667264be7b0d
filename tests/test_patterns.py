import pytest

from gitdigest.services.ingestion.patterns import (
    DEFAULT_IGNORE_PATTERNS,
    GlobPattern,
    is_vcs_path,
    parse_patterns,
    should_include,
)

PATHS = [
    "README.md",
    "src/main.py",
    "src/main.pyc",
    "src/utils/helpers.ts",
    "docs/index.md",
    "docs/img/logo.png",
    "node_modules/react/index.js",
    "app.log",
    "tests/test_main.py",
    "Makefile",
]


def test_default_list_size():
    assert len(DEFAULT_IGNORE_PATTERNS) == 24


def test_glob_translation():
    p = GlobPattern("src/*.p?")
    assert p.matches("src/main.py")
    assert p.matches("src/deep/main.py")  # * crosses directories
    assert not p.matches("lib/main.py")


def test_literal_characters_are_escaped():
    p = GlobPattern("a+b.txt")
    assert p.matches("a+b.txt")
    assert not p.regex.fullmatch("aab.txt")
    assert not GlobPattern("file.txt").regex.fullmatch("fileXtxt")


def test_partial_pattern_matches_as_substring():
    # "docs/" is not a full-path glob but still excludes everything under docs
    assert not should_include("docs/index.md", [], ["docs/"])
    assert should_include("src/docs.py", [], ["docs/"])


def test_wildcard_only_pattern_does_not_match_everything_by_substring():
    assert GlobPattern("*").literal == ""
    assert GlobPattern("*").matches("anything")  # via the regex
    assert not GlobPattern("?").matches("ab")


@pytest.mark.parametrize("path", ["node_modules/react/index.js", "src/main.pyc", "app.log", "docs/img/logo.png", ".git/config"])
def test_default_ignores(path):
    assert not should_include(path, DEFAULT_IGNORE_PATTERNS)


@pytest.mark.parametrize("path", ["README.md", "src/main.py", "Makefile"])
def test_ordinary_files_pass(path):
    assert should_include(path, DEFAULT_IGNORE_PATTERNS)


def test_exclude_patterns():
    assert not should_include("tests/test_main.py", DEFAULT_IGNORE_PATTERNS, ["tests/*"])
    assert should_include("src/main.py", DEFAULT_IGNORE_PATTERNS, ["tests/*"])


def test_include_patterns_require_a_match():
    include = ["*.py"]
    kept = [p for p in PATHS if should_include(p, DEFAULT_IGNORE_PATTERNS, None, include)]
    assert kept == ["src/main.py", "tests/test_main.py"]


def test_default_ignores_beat_include_patterns():
    assert not should_include("app.log", DEFAULT_IGNORE_PATTERNS, None, ["*.log"])
    assert not should_include("node_modules/x.js", DEFAULT_IGNORE_PATTERNS, None, ["node_modules/*"])


def test_exclude_beats_include():
    assert not should_include("src/main.py", [], ["src/*"], ["*.py"])


def test_no_include_patterns_means_allowed():
    assert should_include("anything.txt", [], None, [])
    assert should_include("anything.txt", [], None, None)


def test_filter_is_idempotent():
    exclude = ["tests", "*.md"]
    once = [p for p in PATHS if should_include(p, DEFAULT_IGNORE_PATTERNS, exclude)]
    twice = [p for p in once if should_include(p, DEFAULT_IGNORE_PATTERNS, exclude)]
    assert once == twice
    assert once == ["src/main.py", "src/utils/helpers.ts", "Makefile"]


def test_vcs_paths():
    assert is_vcs_path(".git")
    assert is_vcs_path(".git/HEAD")
    assert not is_vcs_path(".github/workflows/ci.yml")


def test_parse_patterns():
    assert parse_patterns("*.md, tests/ ,, src/*.py  build") == ["*.md", "tests/", "src/*.py", "build"]
    assert parse_patterns("") == []
    assert parse_patterns(None) == []
