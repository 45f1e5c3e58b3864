import pytest

from concat_files.exceptions import PatternError
from concat_files.patterns import (
    DEFAULT_EXCLUDES,
    match_any,
    match_path,
    normalize_pattern,
    translate,
    validate_pattern,
)


@pytest.mark.unit
def test_normalize_pattern_strips_and_normalizes() -> None:
    assert normalize_pattern("  src\\**\\*.js ") == "src/**/*.js"
    assert normalize_pattern("./a//b/") == "a/b/**"


@pytest.mark.unit
@pytest.mark.parametrize(
    ("pattern", "rel", "expected"),
    [
        ("*.txt", "a.txt", True),
        ("*.txt", "sub/a.txt", False),
        ("**/*.txt", "a.txt", True),
        ("**/*.txt", "sub/deep/a.txt", True),
        ("sub/**", "sub", True),
        ("sub/**", "sub/x/y.js", True),
        ("sub/**", "subway/y.js", False),
        ("a/**/b.js", "a/b.js", True),
        ("a/**/b.js", "a/x/y/b.js", True),
        ("?.js", "a.js", True),
        ("?.js", "ab.js", False),
        ("a**b.txt", "axxb.txt", True),
        ("a**b.txt", "a/b.txt", False),
        ("lib/", "lib/jquery.js", True),
        ("file[1].txt", "file[1].txt", True),
        ("file[1].txt", "file1.txt", False),
    ],
)
def test_match_path_ant_semantics(pattern: str, rel: str, expected: bool) -> None:
    assert match_path(rel, pattern) is expected


@pytest.mark.unit
def test_match_path_is_case_sensitive_by_default() -> None:
    assert not match_path("README.TXT", "*.txt")
    assert match_path("README.TXT", "*.txt", case_sensitive=False)


@pytest.mark.unit
def test_translate_double_star_only() -> None:
    assert translate("**") == ".*"
    assert match_path("any/where/file", "**")
    assert match_path("any/where/file", "**/**")


@pytest.mark.unit
@pytest.mark.parametrize("pattern", ["", "   ", "/etc/passwd", "C:/temp/*.txt", "../*.txt", "a/../b", "a\x00b"])
def test_validate_pattern_rejects_malformed_patterns(pattern: str) -> None:
    with pytest.raises(PatternError):
        validate_pattern(pattern)


@pytest.mark.unit
def test_default_excludes_cover_scm_and_editor_files() -> None:
    assert match_any(".git/config", DEFAULT_EXCLUDES)
    assert match_any("sub/.svn/entries", DEFAULT_EXCLUDES)
    assert match_any("notes.txt~", DEFAULT_EXCLUDES)
    assert match_any(".idea/workspace.xml", DEFAULT_EXCLUDES)
    assert match_any("a/.DS_Store", DEFAULT_EXCLUDES)
    assert not match_any("src/app.js", DEFAULT_EXCLUDES)
