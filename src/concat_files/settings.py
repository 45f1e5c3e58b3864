from __future__ import annotations

import codecs
import locale
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any

from dotenv import dotenv_values, find_dotenv
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from concat_files.exceptions import ConfigurationError
from concat_files.patterns import validate_patterns
from concat_files.selector import NoMatchPolicy, check_base_dir

if TYPE_CHECKING:
    from collections.abc import Mapping

ENCODING_ENV_VAR = "CONCAT_SOURCE_ENCODING"


def default_encoding() -> str:
    """Get the encoding used when none is configured.

    The project default comes from the ``CONCAT_SOURCE_ENCODING`` environment
    variable, or from a ``.env`` file found from the current directory. The
    platform preferred encoding is used otherwise.

    Returns:
        str: the default text encoding
    """
    value = os.environ.get(ENCODING_ENV_VAR)
    if not value:
        env_file = find_dotenv(usecwd=True)
        if env_file:
            value = dotenv_values(env_file).get(ENCODING_ENV_VAR)
    return value or locale.getpreferredencoding(do_setlocale=False)


def _as_pattern_list(value: Any) -> Any:  # noqa: ANN401
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return value


class ConcatSettings(BaseModel):
    """Configuration of a single concatenation run.

    Every field accepts its snake_case name as well as the camelCase option
    name of the build configuration (``sourceDirectory``, ``outputFile``...).
    Values are validated as soon as the model is built.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    base_dir: Path = Field(
        default_factory=Path.cwd,
        validation_alias=AliasChoices("base_dir", "baseDir", "sourceDirectory", "source_directory"),
        description="Directory patterns and files are relative to.",
    )
    output_file: Path = Field(
        ...,
        validation_alias=AliasChoices("output_file", "outputFile"),
        description="Destination file.",
    )
    includes: tuple[str, ...] = Field(
        ...,
        validation_alias=AliasChoices("includes", "concatFiles", "concat_files"),
        description="Include patterns, in declaration order.",
    )
    excludes: tuple[str, ...] = Field(default=(), description="Exclude patterns.")
    encoding: str = Field(
        default_factory=default_encoding,
        validation_alias=AliasChoices("encoding", "sourceEncoding", "source_encoding"),
        description="Text encoding for both read and write.",
    )
    append_newline: bool = Field(
        default=False,
        validation_alias=AliasChoices("append_newline", "appendNewline"),
        description="Write a line separator after each file.",
    )
    append_to_output: bool = Field(
        default=False,
        validation_alias=AliasChoices("append_to_output", "appendToOutput"),
        description="Append to the output instead of truncating it.",
    )
    on_no_match: NoMatchPolicy = Field(
        default=NoMatchPolicy.WARN,
        validation_alias=AliasChoices("on_no_match", "onNoMatch"),
        description="Policy for an include pattern matching no file.",
    )
    case_sensitive: bool = Field(
        default=True,
        validation_alias=AliasChoices("case_sensitive", "caseSensitive"),
        description="Case sensitive pattern matching.",
    )

    @field_validator("base_dir", mode="after")
    @classmethod
    def _check_base_dir(cls, value: Path) -> Path:
        return check_base_dir(value)

    @field_validator("output_file", mode="after")
    @classmethod
    def _check_output_file(cls, value: Path) -> Path:
        if str(value) in {"", "."} or value.is_dir():
            msg = f"Please specify a correct outputFile (got: {value})"
            raise ConfigurationError(message=msg)
        return value.absolute()

    @field_validator("includes", mode="before")
    @classmethod
    def _coerce_includes(cls, value: Any) -> Any:  # noqa: ANN401
        return _as_pattern_list(value)

    @field_validator("includes", mode="after")
    @classmethod
    def _check_includes(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not [p for p in value if p and p.strip()]:
            msg = "Please specify the file(s) to concatenate"
            raise ConfigurationError(message=msg)
        return tuple(validate_patterns(value))

    @field_validator("excludes", mode="before")
    @classmethod
    def _coerce_excludes(cls, value: Any) -> Any:  # noqa: ANN401
        return _as_pattern_list(value)

    @field_validator("excludes", mode="after")
    @classmethod
    def _check_excludes(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(validate_patterns(value))

    @field_validator("encoding", mode="after")
    @classmethod
    def _check_encoding(cls, value: str) -> str:
        try:
            codecs.lookup(value)
        except LookupError as e:
            msg = f"Unknown sourceEncoding: {value}"
            raise ConfigurationError(message=msg) from e
        return value

    @classmethod
    def canonical_options(cls, options: Mapping[str, Any]) -> dict[str, Any]:
        """Rename option names to field names (``outputFile`` -> ``output_file``...).

        Unknown names are kept as given so that validation reports them.

        Args:
            options (Mapping[str, Any]): options keyed by field name or option name

        Returns:
            dict[str, Any]: options keyed by field name
        """
        names: dict[str, str] = {}
        for field_name, info in cls.model_fields.items():
            names[field_name] = field_name
            if isinstance(info.validation_alias, AliasChoices):
                for choice in info.validation_alias.choices:
                    if isinstance(choice, str):
                        names[choice] = field_name
        return {names.get(key, key): value for key, value in options.items()}

    @classmethod
    def from_options(cls, **options: Any) -> ConcatSettings:  # noqa: ANN401
        """Build settings from keyword options, reporting every problem as a `ConfigurationError`.

        Options set to None are treated as not given.

        Args:
            **options: field values, by field name or option name

        Raises:
            ConfigurationError: if an option is missing, unknown or invalid

        Returns:
            ConcatSettings: the validated settings
        """
        values = {k: v for k, v in options.items() if v is not None}
        try:
            return cls.model_validate(values)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(loc) for loc in err['loc']) or 'settings'}: {err['msg']}" for err in e.errors()
            )
            msg = f"Invalid configuration: {problems}"
            raise ConfigurationError(message=msg) from e
