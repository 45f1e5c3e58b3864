from __future__ import annotations

import io
import os
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from concat_files.concatenator import concatenate, read_blocks, same_file
from concat_files.exceptions import ConcatIOError, SelfInclusionError

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8", newline="")
    return path


def _read(path: Path) -> str:
    return path.read_bytes().decode("utf-8")


@pytest.fixture
def base(tmp_path: Path) -> Path:
    src = tmp_path / "src"
    _write(src / "a.txt", "X")
    _write(src / "b.txt", "Y")
    return src


@pytest.mark.unit
def test_read_blocks_uses_bounded_reads(tmp_path: Path) -> None:
    source = _write(tmp_path / "src.txt", "abcdefghij")

    blocks = list(read_blocks(source, "utf-8", buffer_size=3))

    assert blocks == ["abc", "def", "ghi", "j"]


@pytest.mark.unit
def test_concatenate_in_order(base: Path, tmp_path: Path) -> None:
    output = tmp_path / "out" / "all.txt"

    result = concatenate(["b.txt", "a.txt"], base, output, encoding="utf-8")

    assert _read(output) == "YX"
    assert result.files == ("b.txt", "a.txt")
    assert result.chars_written == 2
    assert result.output_file == output.absolute()


@pytest.mark.unit
def test_concatenate_appends_platform_newline(base: Path, tmp_path: Path) -> None:
    output = tmp_path / "all.txt"

    concatenate(["a.txt", "b.txt"], base, output, encoding="utf-8", append_newline=True)

    assert _read(output) == f"X{os.linesep}Y{os.linesep}"


@pytest.mark.unit
def test_concatenate_copies_content_verbatim(tmp_path: Path) -> None:
    src = tmp_path / "src"
    _write(src / "crlf.txt", "line1\r\nline2\n")
    output = tmp_path / "out.txt"

    concatenate(["crlf.txt"], src, output, encoding="utf-8")

    assert output.read_bytes() == b"line1\r\nline2\n"


@pytest.mark.unit
def test_concatenate_truncates_by_default(base: Path, tmp_path: Path) -> None:
    output = _write(tmp_path / "all.txt", "old content")

    concatenate(["a.txt"], base, output, encoding="utf-8")
    concatenate(["a.txt"], base, output, encoding="utf-8")

    assert _read(output) == "X"


@pytest.mark.unit
def test_concatenate_append_to_output_keeps_existing_content(base: Path, tmp_path: Path) -> None:
    output = _write(tmp_path / "all.txt", "old|")

    concatenate(["a.txt", "b.txt"], base, output, encoding="utf-8", append_to_output=True)

    assert _read(output) == "old|XY"


@pytest.mark.unit
def test_concatenate_creates_parent_directories(base: Path, tmp_path: Path) -> None:
    output = tmp_path / "deep" / "er" / "all.txt"

    concatenate(["a.txt"], base, output, encoding="utf-8")

    assert _read(output) == "X"


@pytest.mark.unit
def test_concatenate_without_files_creates_empty_output(base: Path, tmp_path: Path) -> None:
    output = tmp_path / "empty.txt"

    result = concatenate([], base, output, encoding="utf-8")

    assert output.exists()
    assert _read(output) == ""
    assert result.files == ()


@pytest.mark.unit
def test_concatenate_refuses_to_read_its_output(base: Path) -> None:
    output = base / "b.txt"

    with pytest.raises(SelfInclusionError) as exc_info:
        concatenate(["a.txt", "b.txt"], base, output, encoding="utf-8")

    assert exc_info.value.path == output.absolute()
    # content written before the offending file is kept
    assert _read(output) == "X"


@pytest.mark.unit
def test_concatenate_detects_output_through_unnormalized_path(base: Path) -> None:
    output = base / "sub" / ".." / "a.txt"
    (base / "sub").mkdir()

    with pytest.raises(SelfInclusionError):
        concatenate(["a.txt"], base, output, encoding="utf-8")


@pytest.mark.unit
def test_concatenate_missing_input_raises_io_error(base: Path, tmp_path: Path) -> None:
    output = tmp_path / "all.txt"

    with pytest.raises(ConcatIOError) as exc_info:
        concatenate(["a.txt", "missing.txt"], base, output, encoding="utf-8")

    assert exc_info.value.path == base / "missing.txt"
    assert isinstance(exc_info.value.__cause__, OSError)
    assert _read(output) == "X"


@pytest.mark.unit
def test_concatenate_undecodable_input_raises_io_error(tmp_path: Path) -> None:
    src = tmp_path / "src"
    src.mkdir()
    (src / "latin.txt").write_bytes("café".encode("latin-1"))

    with pytest.raises(ConcatIOError):
        concatenate(["latin.txt"], src, tmp_path / "out.txt", encoding="utf-8")


@pytest.mark.unit
def test_concatenate_uses_configured_encoding(tmp_path: Path) -> None:
    src = tmp_path / "src"
    src.mkdir()
    (src / "latin.txt").write_bytes("café".encode("latin-1"))
    output = tmp_path / "out.txt"

    concatenate(["latin.txt"], src, output, encoding="latin-1")

    assert output.read_bytes() == "café".encode("latin-1")


@pytest.mark.unit
def test_concatenate_unwritable_output_raises_io_error(base: Path, tmp_path: Path) -> None:
    blocker = _write(tmp_path / "blocker", "not a directory")

    with pytest.raises(ConcatIOError):
        concatenate(["a.txt"], base, blocker / "out.txt", encoding="utf-8")


@pytest.mark.unit
def test_same_file_normalizes_paths(tmp_path: Path) -> None:
    target = _write(tmp_path / "a.txt", "x")

    assert same_file(tmp_path / "." / "a.txt", target)
    assert not same_file(tmp_path / "b.txt", target)


@pytest.mark.unit
def test_concatenate_refuses_to_read_its_output_in_append_mode(base: Path) -> None:
    output = base / "b.txt"

    with pytest.raises(SelfInclusionError):
        concatenate(["a.txt", "b.txt"], base, output, encoding="utf-8", append_to_output=True)

    # existing content kept, the file is never copied into itself
    assert _read(output) == "YX"


class _FullDisk(io.StringIO):
    def write(self, s: str) -> int:
        raise OSError(28, "No space left on device")


@pytest.mark.unit
def test_concatenate_output_write_failure_blames_output(base: Path, tmp_path: Path, mocker: MockerFixture) -> None:
    output = tmp_path / "all.txt"
    real_open = Path.open

    def fake_open(self: Path, mode: str = "r", *args: object, **kwargs: object) -> object:
        if "w" in mode or "a" in mode:
            return _FullDisk()
        return real_open(self, mode, *args, **kwargs)

    mocker.patch.object(Path, "open", autospec=True, side_effect=fake_open)

    with pytest.raises(ConcatIOError) as exc_info:
        concatenate(["a.txt"], base, output, encoding="utf-8")

    assert exc_info.value.path == output.absolute()
    assert "output" in str(exc_info.value)
    assert isinstance(exc_info.value.__cause__, OSError)


@pytest.mark.unit
def test_concatenate_read_failure_blames_input(base: Path, tmp_path: Path) -> None:
    with pytest.raises(ConcatIOError, match="Failed to read") as exc_info:
        concatenate(["missing.txt"], base, tmp_path / "all.txt", encoding="utf-8")

    assert exc_info.value.path == base / "missing.txt"
