"""
dyst — CLI entrypoint.

Usage:
    dyst --help
    dyst install sharkdp/bat
    dyst update
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import click

from dyst import __version__
from dyst.core.errors import ConfigError
from dyst.core.observability.logging_config import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="dyst")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to config.yml (default: $XDG_CONFIG_HOME/dyst/config.yml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """dyst — install executables from GitHub releases."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("DYST_LOG_LEVEL", "WARNING")

    try:
        setup_logging(
            level=level,
            log_file=os.environ.get("DYST_LOG_FILE"),
            log_file_level=os.environ.get("DYST_LOG_FILE_LEVEL"),
        )
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)


from dyst.ui.cli.packages import (  # noqa: E402
    allow_prereleases_cmd,
    install,
    list_execs,
    list_packages,
    lock_cmd,
    remove,
    rename_cmd,
    search,
    unlock_cmd,
    update,
)

cli.add_command(install)
cli.add_command(remove)
cli.add_command(list_packages)
cli.add_command(search)
cli.add_command(update)
cli.add_command(lock_cmd)
cli.add_command(unlock_cmd)
cli.add_command(allow_prereleases_cmd)
cli.add_command(list_execs)
cli.add_command(rename_cmd)


if __name__ == "__main__":
    cli()
