"""Error types raised while building and validating a scan configuration.

Every error derives from `ConfigError`, so callers can stop on a single
exception type. Each subclass keeps the structured details of the failure as
attributes and renders a message that can be shown to the user as-is.
"""

from pathlib import Path
from typing import Any, Optional, Sequence, Union


class ConfigError(Exception):
    """Base class for all configuration errors."""


class MissingRequiredFieldError(ConfigError):
    """A required option was left empty."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"{name} is required")


class InvalidPatternError(ConfigError):
    """A regular expression option could not be compiled.

    Attributes:
        field (str): The option that holds the pattern ("phrase", "file" or
            "archive").
        cause (Exception): The error reported by the regex compiler.
    """

    def __init__(self, field: str, cause: Exception) -> None:
        self.field = field
        self.cause = cause
        super().__init__(f"invalid {field} regex: {cause}")


class InvalidPathError(ConfigError):
    """The search directory is missing, unreadable or not a directory."""

    def __init__(self, path: str, reason: str, cause: Optional[Exception] = None) -> None:
        self.path = path
        self.reason = reason
        self.cause = cause
        message = f"invalid search dir {path!r}: {reason}"
        if cause is not None:
            message += f" ({cause})"
        super().__init__(message)


class InvalidEnumValueError(ConfigError):
    """An option only accepts a fixed set of values."""

    def __init__(self, field: str, value: Any, allowed: Sequence[str]) -> None:
        self.field = field
        self.value = value
        self.allowed = tuple(allowed)
        choices = ", ".join(repr(v) for v in self.allowed)
        super().__init__(f"invalid {field} value {value!r}: must be one of {choices}")


class MutuallyExclusiveFlagsError(ConfigError):
    """Two flags were enabled together that cannot be combined."""

    def __init__(self, first: str, second: str) -> None:
        self.first = first
        self.second = second
        super().__init__(f"{first} and {second} flags are mutually exclusive")


class InvalidRangeError(ConfigError):
    """A numeric option is below its allowed minimum."""

    def __init__(self, field: str, minimum: int, value: Any = None) -> None:
        self.field = field
        self.minimum = minimum
        self.value = value
        super().__init__(f"{field} must be at least {minimum}, got {value!r}")


class ConfigFileError(ConfigError):
    """An explicitly requested configuration file could not be loaded."""

    def __init__(self, path: Union[str, Path], cause: Exception) -> None:
        self.path = str(path)
        self.cause = cause
        super().__init__(f"could not load config from {self.path}: {cause}")
