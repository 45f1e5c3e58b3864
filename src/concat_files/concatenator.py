from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from concat_files.exceptions import ConcatIOError, SelfInclusionError
from concat_files.logging import logger

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

DEFAULT_BUFFER_SIZE = 64 * 1024


class ConcatResult(BaseModel):
    """Outcome of a successful concatenation.

    Attributes:
        output_file: Absolute path of the written file.
        files: Relative paths of the concatenated files, in order.
        chars_written: Number of characters written during this run
            (content of pre-existing output excluded).
    """

    model_config = ConfigDict(frozen=True)

    output_file: Path = Field(..., description="Absolute output path")
    files: tuple[str, ...] = Field(default=(), description="Concatenated files, in order")
    chars_written: int = Field(default=0, ge=0, description="Characters written")


def same_file(a: Path, b: Path) -> bool:
    """Check if two paths point to the same file once normalized.

    Args:
        a (Path): first path
        b (Path): second path

    Returns:
        bool: True if both paths resolve to the same location
    """
    ra, rb = a.resolve(), b.resolve()
    if os.path.normcase(ra) == os.path.normcase(rb):
        return True
    try:
        return ra.samefile(rb)
    except OSError:
        return False


def ensure_parent_dir(output_file: Path) -> None:
    """Create the missing parent directories of `output_file`.

    A failure is only logged: opening the output will report the real error.

    Args:
        output_file (Path): the output file
    """
    parent = output_file.parent
    if parent.is_dir():
        return
    try:
        parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.warning("parent_dir_not_created", directory=str(parent), error=str(e))


def read_blocks(path: Path, encoding: str, buffer_size: int = DEFAULT_BUFFER_SIZE) -> Iterator[str]:
    """Read the decoded content of `path` in blocks of at most `buffer_size` characters.

    Args:
        path (Path): the file to read
        encoding (str): text encoding of the file
        buffer_size (int, optional): maximum number of characters per block. Defaults to 64 KiB.

    Raises:
        ConcatIOError: if the file cannot be opened, read or decoded

    Yields:
        Iterator[str]: the successive blocks, content unchanged
    """
    try:
        with path.open(encoding=encoding, newline="") as src:
            yield from iter(lambda: src.read(buffer_size), "")
    except (OSError, UnicodeError) as e:
        msg = f"Failed to read {path}: {e}"
        raise ConcatIOError(path=path, message=msg) from e


def concatenate(
    files: Sequence[str],
    base_dir: Path,
    output_file: Path,
    *,
    encoding: str,
    append_newline: bool = False,
    append_to_output: bool = False,
    buffer_size: int = DEFAULT_BUFFER_SIZE,
) -> ConcatResult:
    """Concatenate `files` into `output_file`.

    The output is truncated unless `append_to_output` is set. Content is copied
    verbatim (no newline translation) using `encoding` for both reading and
    writing. With `append_newline`, ``os.linesep`` is written after each file.

    Args:
        files (Sequence[str]): relative paths of the files to concatenate, in order
        base_dir (Path): the directory `files` are relative to
        output_file (Path): the file to write
        encoding (str): text encoding of the inputs and of the output
        append_newline (bool, optional): write a line separator after each file. Defaults to False.
        append_to_output (bool, optional): append to the existing output instead of
            truncating it. Defaults to False.
        buffer_size (int, optional): copy buffer size in characters. Defaults to 64 KiB.

    Raises:
        SelfInclusionError: if one of `files` is the output file
        ConcatIOError: if an input cannot be read or the output cannot be written

    Returns:
        ConcatResult: what was written
    """
    out_path = output_file.absolute()
    ensure_parent_dir(out_path)
    mode = "a" if append_to_output else "w"
    logger.info("concatenate_start", output=str(out_path), files=len(files), mode=mode)

    written: list[str] = []
    chars = 0
    try:
        out = out_path.open(mode, encoding=encoding, newline="")
    except OSError as e:
        msg = f"Cannot open output file {out_path}: {e}"
        raise ConcatIOError(path=out_path, message=msg) from e

    try:
        with out:
            for rel in files:
                input_file = base_dir / rel
                if same_file(input_file, out_path):
                    msg = f"Output file {out_path} is also matched as input {rel}"
                    raise SelfInclusionError(path=out_path, message=msg)

                logger.debug("concatenate_file", file=str(input_file.absolute()))
                for blk in read_blocks(input_file, encoding, buffer_size):
                    out.write(blk)
                    chars += len(blk)
                if append_newline:
                    out.write(os.linesep)
                    chars += len(os.linesep)
                written.append(rel)
    except (OSError, UnicodeError) as e:
        msg = f"Failed to write output file {out_path}: {e}"
        raise ConcatIOError(path=out_path, message=msg) from e

    if not written:
        logger.warning("no_file_concatenated", output=str(out_path))
    return ConcatResult(output_file=out_path, files=tuple(written), chars_written=chars)
