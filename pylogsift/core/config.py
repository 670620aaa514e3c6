"""Defines the scan configuration and its validation.

A `Config` is created once per run from `new_default_config()`, overlaid with
user values (see `pylogsift.core.loader`) and then passed through
`Config.validate()` exactly once. Validation compiles the regular expressions
the scanner reuses for every file and normalizes the output format. Once it
succeeds the configuration is treated as read-only by everything downstream.
"""

import logging
import os
import re
import stat
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Pattern, Tuple

from .errors import (
    InvalidEnumValueError,
    InvalidPathError,
    InvalidPatternError,
    InvalidRangeError,
    MissingRequiredFieldError,
    MutuallyExclusiveFlagsError,
)

logger = logging.getLogger(__name__)

FORMAT_JSON = "json"
FORMAT_TEXT = "text"
OUTPUT_FORMATS: Tuple[str, ...] = (FORMAT_JSON, FORMAT_TEXT)

DEFAULT_FILE_REGEX = r".*\.log$"
DEFAULT_ARCHIVE_REGEX = r"\.(7z|bz2|gz|tar|xz|zip|zst|lz)$"


@dataclass(frozen=True)
class Option:
    """Describes one user-facing option.

    Attributes:
        key (str): The dotted key used in TOML files and `config get`.
        attr (str): The `Config` attribute the option populates.
        short (str): The single-letter command-line flag.
        kind (type): The Python type the raw value is cast to.
        description (str): Help text shown by the CLI.
    """

    key: str
    attr: str
    short: str
    kind: type
    description: str

    @property
    def env_var(self) -> str:
        """The environment variable that overrides this option."""
        return "LOGSIFT_" + self.key.upper().replace(".", "_")

    @property
    def flag(self) -> str:
        """The long command-line flag for this option."""
        return "--" + self.key.replace(".", "-")


OPTIONS: Tuple[Option, ...] = (
    Option("phrase.regex", "phrase_regex", "p", str, "regex to search for that a player said"),
    Option("search.dir", "search_dir", "d", str, "directory to search for files recursively"),
    Option("file.regex", "file_regex", "f", str, "regex to match files in the search dir"),
    Option("deduplicate", "deduplicate", "D", bool, "deduplicate objects based on all fields"),
    Option("extended", "extended", "e", bool, "add two additional fields, file and id to the output"),
    Option("ips.only", "ips_only", "i", bool, "only print IP addresses"),
    Option("output", "output", "o", str, "output format, one of 'json' or 'text'"),
    Option("archive.regex", "archive_regex", "a", str, "regex to match archive files in the search dir"),
    Option("include.archive", "include_archives", "A", bool, "search inside archive files"),
    Option("concurrency", "concurrency", "t", int, "number of concurrent workers to use"),
)

OPTIONS_BY_KEY: Dict[str, Option] = {opt.key: opt for opt in OPTIONS}


def _default_concurrency() -> int:
    # Honour the CPU affinity mask where the platform exposes one.
    try:
        available = len(os.sched_getaffinity(0))
    except AttributeError:
        available = os.cpu_count() or 1
    return max(1, available)


@dataclass
class Config:
    """Options for a single scan run.

    The `*_pattern` fields are derived by `validate()` and stay `None` until
    then. `archive_pattern` remains `None` after validation when archive
    scanning is disabled.
    """

    phrase_regex: str = ""
    search_dir: str = "."
    file_regex: str = DEFAULT_FILE_REGEX
    deduplicate: bool = False
    extended: bool = False
    ips_only: bool = False
    output: str = FORMAT_TEXT
    archive_regex: str = DEFAULT_ARCHIVE_REGEX
    include_archives: bool = False
    concurrency: int = field(default_factory=_default_concurrency)

    phrase_pattern: Optional[Pattern[str]] = field(default=None, repr=False, compare=False)
    file_pattern: Optional[Pattern[str]] = field(default=None, repr=False, compare=False)
    archive_pattern: Optional[Pattern[str]] = field(default=None, repr=False, compare=False)

    def validate(self) -> None:
        """Validates the options and prepares them for scanning.

        Checks run in a fixed order and stop at the first failure, so the
        same input always reports the same error. On success the compiled
        patterns are stored on the instance and `output` is lower-cased.
        After a failure the instance is partially updated and must not be
        used.

        Raises:
            MissingRequiredFieldError: If the phrase regex, search dir or
                file regex is empty.
            InvalidPatternError: If a regex does not compile.
            InvalidPathError: If the search dir does not exist or is not a
                directory.
            InvalidEnumValueError: If the output format is unknown or a flag
                is not a boolean.
            MutuallyExclusiveFlagsError: If both extended and ips-only are set.
            InvalidRangeError: If concurrency is below 1.
        """
        if not self.phrase_regex:
            raise MissingRequiredFieldError("phrase regex")
        self.phrase_pattern = _compile("phrase", self.phrase_regex)

        if not self.search_dir:
            raise MissingRequiredFieldError("search dir")
        _check_directory(self.search_dir)

        if not self.file_regex:
            raise MissingRequiredFieldError("file regex")
        self.file_pattern = _compile("file", self.file_regex)

        output = self.output.lower() if isinstance(self.output, str) else None
        if output not in OUTPUT_FORMATS:
            raise InvalidEnumValueError("output", self.output, OUTPUT_FORMATS)
        self.output = output

        _check_flag("deduplicate", self.deduplicate)
        _check_flag("extended", self.extended)
        _check_flag("ips-only", self.ips_only)
        if self.extended and self.ips_only:
            raise MutuallyExclusiveFlagsError("extended", "ips-only")

        _check_flag("include-archive", self.include_archives)
        # A non-empty archive regex enables archive matching on its own.
        if self.include_archives or self.archive_regex:
            self.archive_pattern = _compile("archive", self.archive_regex)

        concurrency = self.concurrency
        if isinstance(concurrency, bool) or not isinstance(concurrency, int) or concurrency < 1:
            raise InvalidRangeError("concurrency", minimum=1, value=self.concurrency)

        logger.debug(
            "Validated config: dir=%s output=%s archives=%s concurrency=%d",
            self.search_dir, self.output, self.archive_pattern is not None, self.concurrency,
        )

    def as_dict(self) -> Dict[str, Any]:
        """Returns the user-facing options keyed by their dotted option keys."""
        return {opt.key: getattr(self, opt.attr) for opt in OPTIONS}


def new_default_config() -> Config:
    """Creates a configuration populated with working defaults.

    The phrase regex is left empty and must be supplied by the user. No
    validation happens here.

    Returns:
        Config: A fresh, unvalidated configuration.
    """
    return Config()


def validate_config(cfg: Config) -> None:
    """Validates `cfg` in place. See `Config.validate`."""
    cfg.validate()


def _compile(field_name: str, pattern: Any) -> Pattern[str]:
    if not isinstance(pattern, str):
        raise InvalidPatternError(field_name, TypeError(f"expected a string, got {type(pattern).__name__}"))
    try:
        return re.compile(pattern)
    except re.error as e:
        raise InvalidPatternError(field_name, e) from e


def _check_flag(field_name: str, value: Any) -> None:
    if not isinstance(value, bool):
        raise InvalidEnumValueError(field_name, value, ("true", "false"))


def _check_directory(path: Any) -> None:
    # os.stat would treat an int as an open file descriptor.
    if not isinstance(path, (str, os.PathLike)):
        raise InvalidPathError(str(path), "is not a path")
    try:
        mode = os.stat(path).st_mode
    except (OSError, ValueError) as e:
        raise InvalidPathError(str(path), "does not exist or is inaccessible", e) from e
    if not stat.S_ISDIR(mode):
        raise InvalidPathError(str(path), "not a directory")
