"""Core components for the pylogsift application.

This package contains the scan configuration and its validator, the loader
that layers files, environment variables and flags onto the defaults, and
the errors raised when the resulting options are unusable.
"""
from .config import Config, new_default_config, validate_config
from .errors import ConfigError
from .loader import load_config

__all__ = ["Config", "ConfigError", "load_config", "new_default_config", "validate_config"]
