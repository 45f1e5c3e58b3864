"""Ant-style path patterns.

The dialect is fixed here rather than delegated to ``fnmatch`` or ``glob`` so that
matching behaves the same on every platform:

- patterns are matched against relative paths using ``/`` as separator
  (backslashes in patterns are normalized to ``/``);
- ``?`` matches exactly one character other than ``/``;
- ``*`` matches zero or more characters other than ``/``;
- ``**`` used as a whole path segment matches zero or more directories
  (``**`` inside a segment, as in ``a**b``, behaves like ``*``);
- a pattern ending with ``/`` is treated as if it ended with ``/**``;
- matching is case sensitive unless explicitly requested otherwise.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import TYPE_CHECKING

from concat_files.exceptions import PatternError

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

_DRIVE_PATTERN = re.compile(r"^[A-Za-z]:")
_REPEATED_SLASHES = re.compile(r"/{2,}")

DEFAULT_EXCLUDES: tuple[str, ...] = (
    # Miscellaneous editor backups and OS metadata
    "**/*~",
    "**/#*#",
    "**/.#*",
    "**/%*%",
    "**/._*",
    "**/.DS_Store",
    # CVS
    "**/CVS",
    "**/CVS/**",
    "**/.cvsignore",
    # RCS
    "**/RCS",
    "**/RCS/**",
    # SCCS
    "**/SCCS",
    "**/SCCS/**",
    # Visual SourceSafe
    "**/vssver.scc",
    # MKS
    "**/project.pj",
    # Subversion
    "**/.svn",
    "**/.svn/**",
    # Arch
    "**/.arch-ids",
    "**/.arch-ids/**",
    # Bazaar
    "**/.bzr",
    "**/.bzr/**",
    # SurroundSCM
    "**/.MySCMServerInfo",
    # Mercurial
    "**/.hg",
    "**/.hg/**",
    "**/.hgignore",
    # Git
    "**/.git",
    "**/.git/**",
    "**/.gitignore",
    "**/.gitattributes",
    # BitKeeper
    "**/BitKeeper",
    "**/BitKeeper/**",
    "**/ChangeSet",
    "**/ChangeSet/**",
    # darcs
    "**/_darcs",
    "**/_darcs/**",
    "**/.darcsrepo",
    "**/.darcsrepo/**",
    "**/-darcs-backup*",
    "**/.darcs-temp-mail",
    # IDE metadata
    "**/.metadata",
    "**/.metadata/**",
    "**/.idea/**",
    "**/.vscode/**",
)


def normalize_pattern(pattern: str) -> str:
    """Normalize a path pattern.

    Strips surrounding whitespace, turns backslashes into forward slashes,
    collapses repeated slashes, drops a leading ``./`` and expands a trailing
    ``/`` into ``/**``.

    Args:
        pattern (str): the raw pattern

    Returns:
        str: the normalized pattern (may be empty if the input was blank)
    """
    p = (pattern or "").strip().replace("\\", "/")
    p = _REPEATED_SLASHES.sub("/", p)
    while p.startswith("./"):
        p = p[2:]
    if p.endswith("/"):
        p += "**"
    return p


def validate_pattern(pattern: str) -> str:
    """Validate a pattern and return its normalized form.

    Args:
        pattern (str): the raw pattern

    Raises:
        PatternError: if the pattern is blank, absolute, climbs out of the base
            directory with ``..`` or contains a NUL character.

    Returns:
        str: the normalized pattern
    """
    if pattern is None or not isinstance(pattern, str):
        raise PatternError(pattern=repr(pattern), message=f"Pattern must be a string, got: {pattern!r}")
    p = normalize_pattern(pattern)
    if not p:
        raise PatternError(pattern=pattern, message="Pattern must not be empty")
    if "\x00" in p:
        raise PatternError(pattern=pattern, message=f"Pattern contains a NUL character: {pattern!r}")
    if p.startswith("/") or _DRIVE_PATTERN.match(p):
        raise PatternError(pattern=pattern, message=f"Pattern must be relative to the base directory: {pattern}")
    if ".." in p.split("/"):
        raise PatternError(pattern=pattern, message=f"Pattern must not contain '..' segments: {pattern}")
    return p


def _segment_to_regex(segment: str) -> str:
    out: list[str] = []
    for ch in segment:
        if ch == "*":
            if not out or out[-1] != "[^/]*":
                out.append("[^/]*")
        elif ch == "?":
            out.append("[^/]")
        else:
            out.append(re.escape(ch))
    return "".join(out)


def translate(pattern: str) -> str:
    """Translate a normalized ant-style pattern into a regular expression.

    Args:
        pattern (str): a pattern as returned by `validate_pattern`

    Returns:
        str: a regular expression to be used with `re.fullmatch`
    """
    segments = pattern.split("/")
    regex = ""
    last = len(segments) - 1
    for i, seg in enumerate(segments):
        if seg == "**":
            if i == last:
                if regex.endswith("/"):
                    # "a/**" also matches "a" itself
                    regex = regex[:-1] + "(?:/.*)?"
                else:
                    regex += ".*"
            else:
                regex += "(?:[^/]+/)*"
        else:
            regex += _segment_to_regex(seg)
            if i != last:
                regex += "/"
    return regex


@lru_cache(maxsize=512)
def compile_pattern(pattern: str, *, case_sensitive: bool = True) -> re.Pattern[str]:
    """Validate and compile a pattern.

    Args:
        pattern (str): the raw pattern
        case_sensitive (bool, optional): whether matching is case sensitive. Defaults to True.

    Returns:
        re.Pattern[str]: the compiled expression
    """
    flags = re.DOTALL if case_sensitive else re.DOTALL | re.IGNORECASE
    return re.compile(translate(validate_pattern(pattern)), flags)


def match_path(rel: str, pattern: str, *, case_sensitive: bool = True) -> bool:
    """Check if a relative path matches a pattern.

    Args:
        rel (str): the relative path, ``/`` separated
        pattern (str): the pattern
        case_sensitive (bool, optional): whether matching is case sensitive. Defaults to True.

    Returns:
        bool: True if `rel` matches `pattern`
    """
    return compile_pattern(pattern, case_sensitive=case_sensitive).fullmatch(rel) is not None


def match_any(rel: str, patterns: Iterable[str], *, case_sensitive: bool = True) -> bool:
    """Check if a relative path matches any of the provided patterns."""
    return any(match_path(rel, p, case_sensitive=case_sensitive) for p in patterns)


def validate_patterns(patterns: Sequence[str]) -> list[str]:
    """Validate every pattern of a sequence, keeping their order."""
    return [validate_pattern(p) for p in patterns]
