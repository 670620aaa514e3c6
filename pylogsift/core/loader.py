"""Loads user options onto the default scan configuration.

Options are layered on top of `new_default_config()` with the following
precedence, lowest first:

1.  Project-specific `logsift.toml` in the current directory.
2.  User-level `~/.config/logsift/config.toml`.
3.  A configuration file given explicitly (replaces 1 and 2).
4.  `LOGSIFT_*` environment variables.
5.  Explicit overrides, usually the command-line flags.

Nothing here validates the result; call `Config.validate()` afterwards.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from .config import OPTIONS, OPTIONS_BY_KEY, Config, Option, new_default_config
from .errors import ConfigFileError

logger = logging.getLogger(__name__)

PROJECT_CONFIG_NAME = "logsift.toml"
# The default path for the user-specific global configuration file.
USER_CONFIG_PATH = Path.home() / ".config" / "logsift" / "config.toml"

_TRUE_VALUES = ("true", "1", "yes", "on")


class ConfigLoader:
    """Collects option values from files, the environment and overrides.

    Values are gathered in a flat dictionary keyed by dotted option key and
    applied to a fresh default `Config` by `load()`.

    Attributes:
        values (Dict[str, Any]): The merged option values collected so far.
    """

    def __init__(
        self,
        project_dir: Optional[Path] = None,
        user_config_path: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> None:
        """Initializes the loader.

        Args:
            project_dir (Optional[Path]): Directory searched for
                `logsift.toml`. Defaults to the current working directory.
            user_config_path (Optional[Path]): The user-level config file.
                Defaults to `USER_CONFIG_PATH`.
            env (Optional[Mapping[str, str]]): Environment to read
                `LOGSIFT_*` variables from. Defaults to `os.environ`.
        """
        self.project_dir = project_dir if project_dir is not None else Path.cwd()
        self.user_config_path = user_config_path if user_config_path is not None else USER_CONFIG_PATH
        self.env = env if env is not None else os.environ
        self.values: Dict[str, Any] = {}

    def load(
        self,
        config_path: Optional[Union[str, Path]] = None,
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> Config:
        """Builds a configuration from every layer.

        Args:
            config_path: A specific config file. When given, the project and
                user files are not read.
            overrides: Dotted option keys mapped to values. `None` values are
                skipped so that unset flags do not hide lower layers.

        Returns:
            Config: The overlaid, not yet validated configuration.

        Raises:
            ConfigFileError: If `config_path` cannot be read or parsed.
        """
        if config_path:
            self._load_file_config(Path(config_path), required=True)
        else:
            self._load_default_configs()

        self._load_env_config()

        for key, value in (overrides or {}).items():
            if value is not None:
                self._set_value(key, value, source="overrides")

        cfg = new_default_config()
        for key, value in self.values.items():
            setattr(cfg, OPTIONS_BY_KEY[key].attr, value)
        return cfg

    def _load_default_configs(self) -> None:
        """Loads configs from standard locations if they exist."""
        project_config = self.project_dir / PROJECT_CONFIG_NAME
        if project_config.is_file():
            self._load_file_config(project_config)

        if self.user_config_path.is_file():
            self._load_file_config(self.user_config_path)

    def _load_file_config(self, config_path: Path, required: bool = False) -> None:
        """Loads and merges options from a TOML file.

        Args:
            config_path (Path): The path to the TOML configuration file.
            required (bool): Raise instead of warning when the file cannot be
                loaded.
        """
        try:
            with open(config_path, "rb") as f:
                file_config = tomllib.load(f)
        except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as e:
            if required:
                raise ConfigFileError(config_path, e) from e
            logger.warning("Could not load config from %s: %s", config_path, e)
            return

        logger.debug("Loaded config from %s", config_path)
        for key, value in _flatten(file_config).items():
            if key not in OPTIONS_BY_KEY:
                logger.warning("Ignoring unknown option %r in %s", key, config_path)
                continue
            self._set_value(key, value, source=str(config_path))

    def _load_env_config(self) -> None:
        """Loads and merges options from `LOGSIFT_*` environment variables."""
        for option in OPTIONS:
            value = self.env.get(option.env_var)
            if value is not None:
                self._set_value(option.key, value, source=option.env_var)

    def _set_value(self, key: str, value: Any, source: str) -> None:
        """Stores a value, casting strings to the option's type.

        Strings reach this point from environment variables and from loosely
        typed files. Values of any other type are stored untouched and left
        for validation to judge.
        """
        option = OPTIONS_BY_KEY[key]
        if isinstance(value, str):
            try:
                value = _cast(option, value)
            except ValueError:
                logger.warning("Ignoring invalid integer value for %s from %s: %r", key, source, value)
                return
        self.values[key] = value


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> Config:
    """Loads a configuration from the default locations.

    See `ConfigLoader.load` for the arguments.
    """
    return ConfigLoader(env=env).load(config_path=config_path, overrides=overrides)


def _cast(option: Option, value: str) -> Any:
    if option.kind is bool:
        return value.strip().lower() in _TRUE_VALUES
    if option.kind is int:
        return int(value.strip())
    return value


def _flatten(data: Mapping[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Flattens nested TOML tables into dotted keys."""
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        full_key = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, prefix=full_key + "."))
        else:
            flat[full_key] = value
    return flat
