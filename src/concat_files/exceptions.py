from dataclasses import dataclass
from pathlib import Path


@dataclass(eq=False)
class ConcatError(Exception):
    """Base exception for errors in the concat_files package."""

    message: str = "Failed to concatenate"

    def __str__(self) -> str:
        return self.message


@dataclass(eq=False)
class ConfigurationError(ConcatError):
    """Raised when a required parameter is missing or invalid."""

    message: str = "Invalid configuration."


@dataclass(eq=False)
class NoMatchError(ConfigurationError):
    """Raised in strict mode when an include pattern matches no file."""

    pattern: str = ""
    message: str = "Include pattern matched no file."


@dataclass(eq=False)
class PatternError(ConcatError):
    """Raised when an include or exclude pattern is malformed."""

    pattern: str = ""
    message: str = "Malformed pattern."


@dataclass(eq=False)
class SelfInclusionError(ConcatError):
    """Raised when the output file would also be read as an input."""

    path: Path | None = None
    message: str = "The output file is part of the matched files."


@dataclass(eq=False)
class ConcatIOError(ConcatError):
    """Raised when reading an input or writing the output fails."""

    path: Path | None = None
    message: str = "I/O failure while concatenating."
