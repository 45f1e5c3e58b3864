"""
concat_files — Concatenate files selected by ant-style patterns into a single file.

Usage
-----
Run `python -m concat_files --help` for full options. Common examples:
    - All JavaScript files of a directory, one newline between each:
        concat-files --base-dir src/js --include "**/*.js" --output-file build/app.js --append-newline

    - Explicit order first, then the remaining files:
        concat-files --include header.txt --include "*.txt" --exclude footer.txt --output-file out.txt

    - Every execution configured in pyproject.toml ([tool.concat-files]):
        concat-files --config pyproject.toml
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

from concat_files import __version__
from concat_files.exceptions import ConcatError
from concat_files.logging import logger, setup_logging
from concat_files.pyproject_config import load_settings
from concat_files.runner import ConcatRun
from concat_files.selector import NoMatchPolicy
from concat_files.settings import ConcatSettings

if TYPE_CHECKING:
    from collections.abc import Sequence


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser.

    Returns:
        argparse.ArgumentParser: the parser
    """
    p = argparse.ArgumentParser(
        prog="concat-files",
        description="Concatenate files matched by include/exclude patterns into one output file.",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument(
        "--base-dir",
        "--source-directory",
        dest="base_dir",
        type=Path,
        default=None,
        help="Directory patterns are relative to (default: current directory).",
    )
    p.add_argument("--output-file", type=Path, default=None, help="Destination file.")
    p.add_argument(
        "--include",
        dest="includes",
        action="append",
        default=None,
        help="Include pattern (repeatable, order matters).",
    )
    p.add_argument(
        "--exclude",
        dest="excludes",
        action="append",
        default=None,
        help="Exclude pattern (repeatable).",
    )
    p.add_argument(
        "--encoding",
        "--source-encoding",
        dest="encoding",
        default=None,
        help="Text encoding of inputs and output.",
    )
    p.add_argument(
        "--append-newline",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Write a line separator after each file.",
    )
    p.add_argument(
        "--append-to-output",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Append to the output file instead of overwriting it.",
    )
    p.add_argument(
        "--strict",
        action="store_true",
        help="Fail when an include pattern matches no file.",
    )
    p.add_argument("--ignore-case", action="store_true", help="Case insensitive pattern matching.")
    p.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Read [tool.concat-files] from this pyproject.toml.",
    )
    p.add_argument(
        "--execution",
        default=None,
        help="Only run this execution of the configuration file.",
    )
    p.add_argument("--log-file", type=str, default="", help="Log file path.")
    p.add_argument("--verbose", action="store_true", help="Log every concatenated file.")
    return p


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Args:
        argv (Sequence[str] | None): Optional CLI args.

    Returns:
        argparse.Namespace: the parsed arguments
    """
    return build_parser().parse_args(argv)


def cli_options(args: argparse.Namespace) -> dict[str, Any]:
    """Extract the run options given on the command line.

    Options not given are None. Paths are made absolute against the current directory.

    Args:
        args (argparse.Namespace): parsed arguments

    Returns:
        dict[str, Any]: options by settings field name
    """
    return {
        "base_dir": args.base_dir.absolute() if args.base_dir else None,
        "output_file": args.output_file.absolute() if args.output_file else None,
        "includes": args.includes,
        "excludes": args.excludes,
        "encoding": args.encoding,
        "append_newline": args.append_newline,
        "append_to_output": args.append_to_output,
        "on_no_match": NoMatchPolicy.FAIL if args.strict else None,
        "case_sensitive": False if args.ignore_case else None,
    }


def collect_settings(args: argparse.Namespace) -> dict[str, ConcatSettings]:
    """Build the settings of every run requested on the command line.

    Args:
        args (argparse.Namespace): parsed arguments

    Raises:
        ConfigurationError: if the options are missing or invalid

    Returns:
        dict[str, ConcatSettings]: settings by execution id
    """
    options = cli_options(args)
    if args.config is not None or args.execution is not None:
        return load_settings(args.config, args.execution, overrides=options)
    return {"default": ConcatSettings.from_options(**options)}


def main(argv: Sequence[str] | None = None) -> int:
    """Concatenate files as requested on the command line.

    Args:
        argv (Sequence[str] | None): Optional CLI arguments.

    Returns:
        int: Process exit code, 1 if a run failed.
    """
    args = parse_args(argv)
    if args.log_file or args.verbose:
        setup_logging(args.log_file or None, logging.DEBUG if args.verbose else logging.INFO, force=True)

    try:
        for name, settings in collect_settings(args).items():
            result = ConcatRun(settings, name=name).execute()
            print(f"Wrote {result.output_file} files={len(result.files)}")
    except ConcatError as e:
        logger.error("concat_failed", error=str(e))
        sys.stderr.write(f"ERROR: {e}\n")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
