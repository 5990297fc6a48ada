"""
appconsole — CLI entrypoint.

Usage:
    python -m appconsole.main --help
    python -m appconsole.main apps list --container bcserver
    python -m appconsole.main apps install ./apps --container bcserver
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from appconsole import __version__
from appconsole.core.observability.logging_config import (
    ENV_FILE,
    ENV_FILE_LEVEL,
    resolve_level,
    setup_logging,
)


@click.group()
@click.version_option(version=__version__, prog_name="appconsole")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging, including PowerShell output.")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to appconsole.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """App console — plan and install apps in development containers."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet),
        log_file=os.environ.get(ENV_FILE),
        log_file_level=os.environ.get(ENV_FILE_LEVEL),
        quiet_powershell=not debug,
    )


@cli.group()
def config() -> None:
    """Console configuration commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate appconsole.yml and show the resolved settings."""
    from appconsole.core.config.loader import ConfigError, find_config_file, load_config

    config_path: Path | None = ctx.obj.get("config_path")
    try:
        cfg = load_config(config_path)
    except ConfigError as e:
        if as_json:
            click.echo(json.dumps({"valid": False, "error": str(e)}, indent=2))
        else:
            click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    source = config_path or find_config_file()
    if as_json:
        click.echo(json.dumps(
            {"valid": True, "source": str(source) if source else None, "config": cfg.model_dump()},
            indent=2,
        ))
        return

    click.secho("✅ Configuration is valid", fg="green", bold=True)
    click.echo(f"   Source:    {source or '(defaults)'}")
    click.echo(f"   Container: {cfg.container or '-'}")
    click.echo(f"   Tenant:    {cfg.tenant}")
    click.echo(f"   Host:      {cfg.powershell} + {cfg.module}")
    click.echo(f"   Superseded versions: {'unpublish' if cfg.unpublish_superseded else 'keep'}")
    click.echo(f"   On publish failure:  {'continue' if cfg.continue_on_error else 'stop'}")
    click.echo()


# ── Register sub-command groups from appconsole/ui/cli/ ──────────

from appconsole.ui.cli.apps import apps  # noqa: E402

cli.add_command(apps)


if __name__ == "__main__":
    cli()
