from __future__ import annotations

import os
import stat
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING

from concat_files.exceptions import ConfigurationError, NoMatchError
from concat_files.logging import logger
from concat_files.patterns import DEFAULT_EXCLUDES, compile_pattern, match_any, validate_patterns

if TYPE_CHECKING:
    from collections.abc import Sequence


class NoMatchPolicy(StrEnum):
    """What to do when an include pattern matches no file."""

    WARN = "warn"
    FAIL = "fail"


def relpath(path: Path, root: Path) -> str:
    """Send the relative path of path from root.

    Args:
        path (Path): the path to "relativise"
        root (Path): the root to relativise from

    Returns:
        str: the relative path from root to path, with POSIX separators.
    """
    return path.relative_to(root).as_posix()


def is_regular_file(path: Path) -> bool:
    """Check if a file is regular.

    Args:
        path (Path): path to test.

    Returns:
        bool: True if the file is regular, False otherwise.
    """
    try:
        st = path.stat()
    except OSError:
        return False
    return stat.S_ISREG(st.st_mode)


def check_base_dir(base_dir: Path) -> Path:
    """Ensure `base_dir` exists and is a directory.

    Args:
        base_dir (Path): the directory files are selected from

    Raises:
        ConfigurationError: if `base_dir` is missing or is not a directory

    Returns:
        Path: the absolute base directory
    """
    if not base_dir.exists():
        msg = f"sourceDirectory {base_dir} does not exist"
        raise ConfigurationError(message=msg)
    if not base_dir.is_dir():
        msg = f"sourceDirectory {base_dir} is not a directory"
        raise ConfigurationError(message=msg)
    return base_dir.absolute()


def walk_files(base_dir: Path) -> list[str]:
    """Walk the directory tree rooted at `base_dir` and list its regular files.

    Symbolic links to directories are not followed.

    Args:
        base_dir (Path): the root directory to walk

    Returns:
        list[str]: the relative paths of all files found, sorted
    """
    results: list[str] = []
    for root, dirs, files in os.walk(base_dir):
        dirs.sort()
        for f in files:
            p = Path(root) / f
            if is_regular_file(p):
                results.append(relpath(p, base_dir))
    return sorted(results)


def scan(
    candidates: Sequence[str],
    include: str,
    excludes: Sequence[str],
    *,
    case_sensitive: bool = True,
) -> list[str]:
    """Select the candidates matching one include pattern and none of the excludes.

    Args:
        candidates (Sequence[str]): relative paths of the files available under the base directory
        include (str): the include pattern
        excludes (Sequence[str]): exclude patterns, default excludes included
        case_sensitive (bool, optional): whether matching is case sensitive. Defaults to True.

    Returns:
        list[str]: the matching relative paths, sorted alphabetically
    """
    regex = compile_pattern(include, case_sensitive=case_sensitive)
    return sorted(
        rel
        for rel in candidates
        if regex.fullmatch(rel) and not match_any(rel, excludes, case_sensitive=case_sensitive)
    )


def resolve(
    base_dir: Path,
    includes: Sequence[str],
    excludes: Sequence[str] = (),
    *,
    on_no_match: NoMatchPolicy = NoMatchPolicy.WARN,
    case_sensitive: bool = True,
) -> list[str]:
    """Resolve include/exclude patterns into an ordered list of unique relative paths.

    Each include pattern is evaluated on its own: its matches are sorted
    alphabetically and appended to the result in the order the patterns were
    declared. A file matched by several patterns is kept at its first position.
    `DEFAULT_EXCLUDES` are always applied on top of `excludes`.

    Args:
        base_dir (Path): the directory patterns are relative to
        includes (Sequence[str]): include patterns, in declaration order
        excludes (Sequence[str], optional): exclude patterns. Defaults to ().
        on_no_match (NoMatchPolicy, optional): policy for an include pattern that
            matches nothing. Defaults to NoMatchPolicy.WARN.
        case_sensitive (bool, optional): whether matching is case sensitive. Defaults to True.

    Raises:
        ConfigurationError: if `base_dir` is missing or not a directory, or no include is given
        PatternError: if a pattern is malformed
        NoMatchError: if an include pattern matches nothing and the policy is NoMatchPolicy.FAIL

    Returns:
        list[str]: the matched relative paths, POSIX separated
    """
    base = check_base_dir(base_dir)
    if not includes:
        msg = "Please specify the file(s) to concatenate"
        raise ConfigurationError(message=msg)
    incs = validate_patterns(includes)
    excs = [*validate_patterns(excludes), *DEFAULT_EXCLUDES]

    candidates = walk_files(base)
    selected: dict[str, None] = {}
    for include in incs:
        matched = scan(candidates, include, excs, case_sensitive=case_sensitive)
        if not matched:
            if on_no_match == NoMatchPolicy.FAIL:
                msg = f"Include pattern {include!r} matched no file under {base}"
                raise NoMatchError(pattern=include, message=msg)
            logger.warning("no_match", pattern=include, base_dir=str(base))
            continue
        logger.debug("pattern_matched", pattern=include, count=len(matched))
        for rel in matched:
            selected.setdefault(rel, None)
    return list(selected)
