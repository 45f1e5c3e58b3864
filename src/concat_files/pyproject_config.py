"""Read concatenation settings from the ``[tool.concat-files]`` table of a ``pyproject.toml``.

Two layouts are supported. A single run::

    [tool.concat-files]
    source-directory = "src/js"
    output-file = "build/app.js"
    includes = ["vendor/*.js", "**/*.js"]
    append-newline = true

or several named executions sharing the options of the parent table::

    [tool.concat-files]
    source-encoding = "utf-8"

    [[tool.concat-files.executions]]
    id = "js"
    output-file = "build/app.js"
    includes = ["**/*.js"]

Relative paths are resolved against the directory holding the ``pyproject.toml``,
which is also the default source directory.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

import tomlkit
from tomlkit.exceptions import TOMLKitError

from concat_files.exceptions import ConfigurationError
from concat_files.settings import ConcatSettings

if TYPE_CHECKING:
    from collections.abc import Mapping

TOOL_NAME = "concat-files"
EXECUTIONS_KEY = "executions"
DEFAULT_EXECUTION_ID = "default"
_PATH_KEYS = frozenset({"base_dir", "output_file"})


def find_pyproject(path: Path) -> Path:
    """Find the nearest ``pyproject.toml`` by searching upward from ``path``.

    Args:
        path (Path): Starting directory.

    Raises:
        ConfigurationError: If no ``pyproject.toml`` is found in ``path`` or its parents.

    Returns:
        Path: Located ``pyproject.toml`` path.
    """
    current = path.resolve()
    while True:
        candidate = current / "pyproject.toml"
        if candidate.exists():
            return candidate
        if current.parent == current:
            msg = f"No pyproject.toml found in {path} or its parents"
            raise ConfigurationError(message=msg)
        current = current.parent


def to_abs(root: Path, maybe_rel: str | Path) -> Path:
    """Resolve ``maybe_rel`` against ``root`` when it is not absolute.

    Args:
        root (Path): Base directory.
        maybe_rel (str | Path): Candidate relative or absolute path.

    Returns:
        Path: Absolute path.
    """
    path = Path(maybe_rel)
    return path if path.is_absolute() else root / path


def normalize_keys(options: Mapping[str, Any]) -> dict[str, Any]:
    """Key options by settings field name.

    TOML style ``kebab-case`` keys become ``snake_case`` ones, then option names
    such as ``sourceDirectory`` or ``source_directory`` become field names
    (``base_dir``), so that two spellings of an option cannot both be kept.
    """
    return ConcatSettings.canonical_options({key.replace("-", "_"): value for key, value in options.items()})


def load_tool_table(pyproject: Path) -> dict[str, Any]:
    """Load the ``[tool.concat-files]`` table.

    Args:
        pyproject (Path): the ``pyproject.toml`` to read

    Raises:
        ConfigurationError: if the file cannot be read or parsed, or has no such table

    Returns:
        dict[str, Any]: the table as plain Python values
    """
    try:
        doc = tomlkit.parse(pyproject.read_text(encoding="utf-8"))
    except OSError as e:
        msg = f"Cannot read {pyproject}: {e}"
        raise ConfigurationError(message=msg) from e
    except TOMLKitError as e:
        msg = f"Invalid TOML in {pyproject}: {e}"
        raise ConfigurationError(message=msg) from e

    table = doc.unwrap().get("tool", {}).get(TOOL_NAME)
    if not isinstance(table, dict):
        msg = f"No [tool.{TOOL_NAME}] table in {pyproject}"
        raise ConfigurationError(message=msg)
    return table


def load_executions(pyproject: Path) -> dict[str, dict[str, Any]]:
    """Load the raw options of every execution, in declaration order.

    Options of the parent table are shared by all executions; an execution
    overrides them.

    Args:
        pyproject (Path): the ``pyproject.toml`` to read

    Raises:
        ConfigurationError: if an execution has no ``id``, or an ``id`` is repeated

    Returns:
        dict[str, dict[str, Any]]: options by execution id
    """
    table = load_tool_table(pyproject)
    executions = table.pop(EXECUTIONS_KEY, None)
    shared = normalize_keys(table)
    if executions is None:
        return {DEFAULT_EXECUTION_ID: shared}
    if not isinstance(executions, list) or not all(isinstance(e, dict) for e in executions):
        msg = f"[[tool.{TOOL_NAME}.{EXECUTIONS_KEY}]] in {pyproject} must be an array of tables"
        raise ConfigurationError(message=msg)

    out: dict[str, dict[str, Any]] = {}
    for i, execution in enumerate(executions):
        options = normalize_keys(execution)
        exec_id = str(options.pop("id", "")).strip()
        if not exec_id:
            msg = f"Execution #{i + 1} of [tool.{TOOL_NAME}] in {pyproject} has no id"
            raise ConfigurationError(message=msg)
        if exec_id in out:
            msg = f"Duplicate execution id {exec_id!r} in {pyproject}"
            raise ConfigurationError(message=msg)
        out[exec_id] = {**shared, **options}
    return out


def resolve_paths(options: Mapping[str, Any], root: Path) -> dict[str, Any]:
    """Make the path options of `options` absolute, relative to `root`.

    The source directory defaults to `root`.
    """
    out = dict(options)
    for key in _PATH_KEYS & out.keys():
        out[key] = to_abs(root, out[key])
    out.setdefault("base_dir", root)
    return out


def load_settings(
    pyproject: Path | None = None,
    execution: str | None = None,
    *,
    start: Path | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> dict[str, ConcatSettings]:
    """Build validated settings from a ``pyproject.toml``.

    Args:
        pyproject (Path | None, optional): the file to read. Defaults to the nearest
            ``pyproject.toml`` upward from `start`.
        execution (str | None, optional): only load this execution. Defaults to all of them.
        start (Path | None, optional): where to start looking for ``pyproject.toml``.
            Defaults to the current directory.
        overrides (Mapping[str, Any] | None, optional): options taking precedence over
            the file content; None values are ignored.

    Raises:
        ConfigurationError: if the file or the requested execution is missing, or an
            execution is invalid

    Returns:
        dict[str, ConcatSettings]: settings by execution id, in declaration order
    """
    path = pyproject.resolve() if pyproject else find_pyproject(start or Path.cwd())
    executions = load_executions(path)
    if execution is not None:
        if execution not in executions:
            msg = f"Unknown execution {execution!r} in {path} (known: {', '.join(executions)})"
            raise ConfigurationError(message=msg)
        executions = {execution: executions[execution]}

    extra = normalize_keys({k: v for k, v in (overrides or {}).items() if v is not None})
    return {
        exec_id: ConcatSettings.from_options(**resolve_paths({**options, **extra}, path.parent))
        for exec_id, options in executions.items()
    }
