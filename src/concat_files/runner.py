from __future__ import annotations

from enum import StrEnum, auto
from typing import TYPE_CHECKING, Any

from concat_files.concatenator import concatenate
from concat_files.exceptions import ConcatError
from concat_files.logging import logger
from concat_files.selector import resolve
from concat_files.settings import ConcatSettings

if TYPE_CHECKING:
    from collections.abc import Mapping

    from concat_files.concatenator import ConcatResult


class RunState(StrEnum):
    """Lifecycle of a concatenation run. COMMITTED and FAILED are terminal."""

    UNVALIDATED = auto()
    VALIDATED = auto()
    SELECTING = auto()
    WRITING = auto()
    COMMITTED = auto()
    FAILED = auto()


TERMINAL_STATES = frozenset({RunState.COMMITTED, RunState.FAILED})


class ConcatRun:
    """A single concatenation run.

    The run validates its configuration, selects the files and writes the
    output. The first error moves it to `RunState.FAILED` and is re-raised.
    A run executes at most once.
    """

    def __init__(self, options: ConcatSettings | Mapping[str, Any], *, name: str = "default") -> None:
        self.name = name
        self.state = RunState.UNVALIDATED
        self.settings: ConcatSettings | None = options if isinstance(options, ConcatSettings) else None
        self.files: list[str] = []
        self.result: ConcatResult | None = None
        self._options = options
        self._log = logger.bind(execution=name)

    def _move(self, state: RunState) -> None:
        self._log.debug("run_state", previous=str(self.state), state=str(state))
        self.state = state

    def execute(self) -> ConcatResult:
        """Run the whole pipeline.

        Raises:
            ConcatError: if the run already finished, or on the first failure

        Returns:
            ConcatResult: what was written
        """
        if self.state in TERMINAL_STATES:
            msg = f"Run {self.name!r} already finished ({self.state})"
            raise ConcatError(message=msg)
        try:
            if self.settings is None:
                self.settings = ConcatSettings.from_options(**self._options)
            settings = self.settings
            self._move(RunState.VALIDATED)
            self._log.debug("concatenate_destination", output=str(settings.output_file))

            self._move(RunState.SELECTING)
            self.files = resolve(
                settings.base_dir,
                settings.includes,
                settings.excludes,
                on_no_match=settings.on_no_match,
                case_sensitive=settings.case_sensitive,
            )

            self._move(RunState.WRITING)
            self.result = concatenate(
                self.files,
                settings.base_dir,
                settings.output_file,
                encoding=settings.encoding,
                append_newline=settings.append_newline,
                append_to_output=settings.append_to_output,
            )
        except Exception as e:
            self._log.error("run_failed", state=str(self.state), error=str(e))
            self._move(RunState.FAILED)
            raise

        self._move(RunState.COMMITTED)
        self._log.info(
            "run_committed",
            output=str(self.result.output_file),
            files=len(self.result.files),
            chars=self.result.chars_written,
        )
        return self.result


def run(options: ConcatSettings | Mapping[str, Any], *, name: str = "default") -> ConcatResult:
    """Validate `options`, then select and concatenate the matching files.

    Args:
        options (ConcatSettings | Mapping[str, Any]): validated settings or raw options
        name (str, optional): name of the run, used in logs. Defaults to "default".

    Returns:
        ConcatResult: what was written
    """
    return ConcatRun(options, name=name).execute()
