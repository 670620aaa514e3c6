"""Defines the command-line interface for the logsift application.

This module uses the `click` library to build the `logsift` command. It
loads the scan options from files, the environment and flags, validates them
and reports either the effective configuration or a precise error.
"""
import json
import sys
import logging
from typing import Any, Callable, Dict, NoReturn, Optional

import click
from click.core import ParameterSource
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from . import __version__
from .core.config import OPTIONS, OPTIONS_BY_KEY, OUTPUT_FORMATS, FORMAT_JSON, Config
from .core.errors import ConfigError
from .core.loader import load_config

console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger(__name__)


class AliasedGroup(click.Group):
    """A custom click Group that supports command aliases and case-insensitivity."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._aliases: Dict[str, str] = {}

    def get_command(self, ctx: click.Context, cmd_name: str) -> Optional[click.Command]:
        """Gets a command by name, checking for aliases and prefixes.

        Args:
            ctx: The click context.
            cmd_name: The command name entered by the user.

        Returns:
            The matched click command, or None.
        """
        cmd_name = cmd_name.lower()
        rv = super().get_command(ctx, cmd_name)
        if rv is not None:
            return rv
        if cmd_name in self._aliases:
            return super().get_command(ctx, self._aliases[cmd_name])
        matches = [x for x in self.list_commands(ctx) if x.startswith(cmd_name)]
        if not matches:
            return None
        if len(matches) == 1:
            return super().get_command(ctx, matches[0])
        ctx.fail(f"Ambiguous command: '{cmd_name}'. Matches: {', '.join(sorted(matches))}")
        return None

    def add_alias(self, alias: str, command_name: str) -> None:
        """Adds an alias for a command."""
        self._aliases[alias.lower()] = command_name.lower()


def _param_name(key: str) -> str:
    return key.replace(".", "_")


def scan_options(func: Callable) -> Callable:
    """Attaches one click option per entry in the option table."""
    for option in reversed(OPTIONS):
        if option.kind is bool:
            # On/off pair so a true value from a file or env can be switched off.
            decls = [f"{option.flag}/--no-{option.flag[2:]}", f"-{option.short}", _param_name(option.key)]
            func = click.option(*decls, default=False, help=option.description)(func)
        else:
            decls = [option.flag, f"-{option.short}", _param_name(option.key)]
            func = click.option(*decls, type=option.kind, default=None, help=option.description)(func)
    return func


def _explicit_overrides(ctx: click.Context, params: Dict[str, Any]) -> Dict[str, Any]:
    """Keeps only the scan options the user actually passed on the command line."""
    overrides = {}
    for option in OPTIONS:
        name = _param_name(option.key)
        if ctx.get_parameter_source(name) == ParameterSource.COMMANDLINE:
            overrides[option.key] = params[name]
    return overrides


def _fail(error: Exception) -> NoReturn:
    err_console.print(f"[red]Error: {escape(str(error))}[/red]", soft_wrap=True)
    sys.exit(1)


def _display_config(cfg: Config) -> None:
    """Prints the effective configuration in the configured output format."""
    values = cfg.as_dict()
    if cfg.output == FORMAT_JSON:
        click.echo(json.dumps(values, indent=2))
        return

    table = Table(title="Effective Configuration")
    table.add_column("Option", style="cyan")
    table.add_column("Value")
    for key, value in values.items():
        table.add_row(key, Text(str(value)))
    table.add_row("archive scanning", Text("enabled" if cfg.archive_pattern is not None else "disabled"))
    console.print(table)


@click.group(cls=AliasedGroup, invoke_without_command=True, context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="logsift")
@click.option("--verbose", is_flag=True, help="Enable verbose output.")
@click.option("--debug", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, verbose: bool, debug: bool) -> None:
    """Search server logs and archives for phrases players said.

    Options are read from logsift.toml, ~/.config/logsift/config.toml,
    LOGSIFT_* environment variables and command-line flags, in that order
    of precedence, and validated before any scanning starts.
    """
    log_level = logging.DEBUG if debug else logging.INFO if verbose else logging.WARNING
    logging.basicConfig(level=log_level, format='%(asctime)s - %(levelname)s - %(message)s')
    logger.debug("Debug mode enabled.")

    if ctx.invoked_subcommand is None:
        console.print("Use 'logsift check -p <regex>' to validate scan options, or 'logsift --help' for more commands.")


@main.command()
@scan_options
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False), help="Path to a custom config file.")
@click.pass_context
def check(ctx: click.Context, config_path: Optional[str], **params: Any) -> None:
    """Validate the scan options and show the effective configuration.

    Exits with status 1 and a description of the first problem found when
    the options cannot be used for a scan.
    """
    try:
        cfg = load_config(config_path=config_path, overrides=_explicit_overrides(ctx, params))
        cfg.validate()
    except ConfigError as e:
        _fail(e)
    _display_config(cfg)


@main.command()
@click.argument("action", type=click.Choice(["get", "list"]), required=True)
@click.argument("key", type=str, required=False)
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False), help="Path to config file.")
def config(action: str, key: Optional[str], config_path: Optional[str]) -> None:
    """Show the merged configuration before validation.

    \b
    ACTION:
        get <key>       Get a single option, e.g. 'phrase.regex'.
        list            List all options.
    """
    try:
        values = load_config(config_path=config_path).as_dict()
    except ConfigError as e:
        _fail(e)

    if action == "list":
        console.print(Panel(Text(json.dumps(values, indent=2, default=str)), title="Current Configuration"))
    elif action == "get":
        if not key:
            err_console.print("[red]Error: 'get' action requires a key.[/red]")
            sys.exit(1)
        if key not in OPTIONS_BY_KEY:
            err_console.print(f"[red]Error: unknown option {escape(repr(key))}.[/red]", soft_wrap=True)
            sys.exit(1)
        click.echo(values[key])


@main.command(name="options")
def list_options() -> None:
    """List every scan option with its flags and environment variable."""
    table = Table(title="Scan Options")
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Flags", style="magenta")
    table.add_column("Environment", no_wrap=True)
    table.add_column("Description")
    for option in OPTIONS:
        table.add_row(option.key, f"-{option.short}, {option.flag}", option.env_var, option.description)
    console.print(table)
    console.print(f"Output formats: {', '.join(OUTPUT_FORMATS)}")


main.add_alias('validate', 'check')
main.add_alias('opts', 'options')

if __name__ == "__main__":
    main()
