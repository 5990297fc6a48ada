"""
CLI commands for app inventory and installation.

Thin wrappers over ``appconsole.core.use_cases``. The container is
resolved once per command (``--container`` > config) and passed down
explicitly.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from appconsole.core.models.config import ConsoleConfig
from appconsole.core.models.plan import EntryState, ExecutionSummary, PlanAction, PlanEntry

_ACTION_STYLE: dict[PlanAction, tuple[str, str, str]] = {
    PlanAction.NEW_INSTALL: ("✚", "new", "green"),
    PlanAction.UPGRADE: ("⬆", "upgrade", "cyan"),
    PlanAction.DOWNGRADE: ("⬇", "downgrade", "yellow"),
    PlanAction.SKIP: ("⊘", "skip", "white"),
}

_STATE_STYLE: dict[EntryState, tuple[str, str]] = {
    EntryState.SUCCEEDED: ("✓", "green"),
    EntryState.FAILED: ("✗", "red"),
    EntryState.SKIPPED: ("⊘", "yellow"),
    EntryState.NOT_ATTEMPTED: ("·", "white"),
}


def _load_config(ctx: click.Context) -> ConsoleConfig:
    """Load config or exit with the error."""
    from appconsole.core.config.loader import ConfigError, load_config

    try:
        return load_config(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)


def _resolve_container(container: str | None, cfg: ConsoleConfig) -> str:
    resolved = container or cfg.container
    if not resolved:
        click.secho(
            "❌ No container given. Use --container or set 'container' in appconsole.yml.",
            fg="red",
        )
        sys.exit(1)
    return resolved


def _audit_path(ctx: click.Context, cfg: ConsoleConfig) -> Path:
    """Relative ledger paths resolve against the config file's directory."""
    from appconsole.core.config.loader import config_root, find_config_file

    path = Path(cfg.audit_file)
    if path.is_absolute():
        return path
    config_path: Path | None = ctx.obj.get("config_path") or find_config_file()
    return config_root(config_path) / path


def _container_option(f):
    return click.option(
        "--container", "-n", default=None, help="Target container (default: from config)."
    )(f)


@click.group()
def apps() -> None:
    """Apps — list, plan and install app packages in a container."""


# ── Observe ─────────────────────────────────────────────────────


@apps.command("list")
@_container_option
@click.option("--mock", is_flag=True, help="Use the mock environment (no PowerShell).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_cmd(ctx: click.Context, container: str | None, mock: bool, as_json: bool) -> None:
    """List apps published in a container."""
    from appconsole.core.use_cases.install import build_environment
    from appconsole.core.use_cases.inventory import list_apps

    cfg = _load_config(ctx)
    target = _resolve_container(container, cfg)
    result = list_apps(target, build_environment(cfg, mock_mode=mock))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error:
            sys.exit(1)
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    if not result.apps:
        click.secho(f"No apps found in {target}.", fg="yellow")
        return

    click.secho(
        f"📦 Apps in {target} ({result.installed_count}/{len(result.apps)} installed):",
        fg="cyan",
        bold=True,
    )
    for app in result.apps:
        icon = "🟢" if app.is_installed else "⚪"
        click.echo(f"   {icon} {app.publisher:<24} {app.name:<40} {app.version}")
    click.echo()


@apps.command("history")
@click.option("--limit", "-l", default=10, type=int, help="Number of runs to show.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def history(ctx: click.Context, limit: int, as_json: bool) -> None:
    """Show recent install runs from the ledger."""
    from appconsole.core.persistence.audit import AuditWriter

    cfg = _load_config(ctx)
    entries = AuditWriter(_audit_path(ctx, cfg)).read_recent(limit)

    if as_json:
        click.echo(json.dumps([e.model_dump(mode="json") for e in entries], indent=2))
        return

    if not entries:
        click.secho("No install runs recorded.", fg="yellow")
        return

    color = {"ok": "green", "partial": "yellow", "failed": "red"}
    for entry in entries:
        counts = entry.counts
        click.secho(f"   {entry.status:<8}", fg=color.get(entry.status, "white"), nl=False)
        click.echo(
            f" {entry.timestamp[:19]}  {entry.container:<16} "
            f"{counts.get('succeeded', 0)}/{counts.get('total', 0)} succeeded"
            f"{'  (aborted)' if entry.aborted else ''}"
        )


# ── Plan & install ──────────────────────────────────────────────


@apps.command("plan")
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=False))
@_container_option
@click.option("--allow-duplicates", is_flag=True, help="Plan packages sharing an AppId independently.")
@click.option("--mock", is_flag=True, help="Use the mock environment (no PowerShell).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def plan(
    ctx: click.Context,
    paths: tuple[str, ...],
    container: str | None,
    allow_duplicates: bool,
    mock: bool,
    as_json: bool,
) -> None:
    """Show what installing PATHS would do, without doing it.

    PATHS are package files or directories of *.app files.
    """
    from appconsole.core.use_cases.install import build_environment, plan_install

    cfg = _load_config(ctx)
    target = _resolve_container(container, cfg)
    result = plan_install(
        target,
        list(paths),
        build_environment(cfg, mock_mode=mock),
        allow_duplicates=allow_duplicates,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error:
            sys.exit(1)
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    _render_plan(target, result.plan, quiet=ctx.obj.get("quiet", False))
    click.echo()


@apps.command("install")
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=False))
@_container_option
@click.option(
    "--unpublish-superseded/--keep-superseded",
    default=None,
    help="Remove old versions after successful upgrades (default: from config).",
)
@click.option(
    "--continue-on-error/--stop-on-error",
    default=None,
    help="Keep going after a failed publish (default: from config).",
)
@click.option("--ask-on-error", is_flag=True, help="Ask whether to continue after each failure.")
@click.option("--allow-duplicates", is_flag=True, help="Plan packages sharing an AppId independently.")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
@click.option("--mock", is_flag=True, help="Use the mock environment (no PowerShell).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def install(
    ctx: click.Context,
    paths: tuple[str, ...],
    container: str | None,
    unpublish_superseded: bool | None,
    continue_on_error: bool | None,
    ask_on_error: bool,
    allow_duplicates: bool,
    yes: bool,
    mock: bool,
    as_json: bool,
) -> None:
    """Install or upgrade PATHS in dependency order.

    PATHS are package files or directories of *.app files.

    Examples:

        appconsole apps install ./apps --container bcserver

        appconsole apps install base.app ext.app -n bcserver --stop-on-error
    """
    from appconsole.core.engine.planner import FailureDecision
    from appconsole.core.persistence.audit import AuditWriter
    from appconsole.core.use_cases.install import PlanResult, build_environment, run_install

    if as_json and (not yes or ask_on_error):
        click.secho("❌ --json runs unattended: pass --yes and drop --ask-on-error.", fg="red")
        sys.exit(1)

    cfg = _load_config(ctx)
    target = _resolve_container(container, cfg)
    if unpublish_superseded is None:
        unpublish_superseded = cfg.unpublish_superseded
    if continue_on_error is None:
        continue_on_error = cfg.continue_on_error

    def confirm(planning: PlanResult) -> bool:
        _render_plan(target, planning.plan, quiet=ctx.obj.get("quiet", False))
        if yes or not planning.has_work:
            return True
        click.echo()
        if planning.downgrades:
            click.secho(
                f"   ⚠️  {len(planning.downgrades)} package(s) will be DOWNGRADED.",
                fg="yellow",
                bold=True,
            )
            if not click.confirm("   Allow downgrades?", default=False):
                return False
        return click.confirm("   Proceed with installation?", default=True)

    def on_failure(entry: PlanEntry, error: Exception) -> FailureDecision:
        if ask_on_error:
            click.secho(f"   ✗ {entry.package.label}: {error}", fg="red")
            proceed = click.confirm("   Continue with the remaining apps?", default=True)
            return FailureDecision.CONTINUE if proceed else FailureDecision.ABORT
        return FailureDecision.CONTINUE if continue_on_error else FailureDecision.ABORT

    result = run_install(
        target,
        list(paths),
        build_environment(cfg, mock_mode=mock),
        unpublish_superseded=unpublish_superseded,
        on_failure=on_failure,
        confirm=None if as_json else confirm,
        allow_duplicates=allow_duplicates,
        audit_writer=AuditWriter(_audit_path(ctx, cfg)),
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error or (result.summary and result.summary.failed > 0):
            sys.exit(1)
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    if result.cancelled:
        click.secho("   Cancelled — nothing was installed.", fg="yellow")
        return

    summary = result.summary
    assert summary is not None
    _render_summary(summary, verbose=ctx.obj.get("verbose", False))

    if summary.failed > 0:
        click.echo()
        sys.exit(1)

    click.echo()


# ── Rendering ───────────────────────────────────────────────────


def _render_plan(container: str, entries: list[PlanEntry], quiet: bool = False) -> None:
    click.secho(f"\n📋 Install plan — {container} ({len(entries)} packages)", fg="cyan", bold=True)
    if quiet:
        return
    for entry in entries:
        icon, label, color = _ACTION_STYLE[entry.action]
        pkg = entry.package
        click.secho(f"   {entry.position:>2}. {icon} {label:<10}", fg=color, nl=False)
        installed = f"  (installed {entry.existing_version})" if entry.existing else ""
        click.echo(f" {pkg.publisher:<20} {pkg.name:<36} {pkg.version}{installed}")


def _render_summary(summary: ExecutionSummary, verbose: bool = False) -> None:
    click.echo()
    for entry in summary.plan:
        state = summary.state_of(entry.position)
        icon, color = _STATE_STYLE[state]
        click.secho(f"   {icon} {entry.package.label}", fg=color, nl=False)
        click.echo(f"  [{state.value}]")

        outcome = next((o for o in summary.outcomes if o.entry.position == entry.position), None)
        if outcome is None:
            continue
        if outcome.error:
            lines = outcome.error.split("\n")
            for line in lines if verbose else lines[:5]:
                click.echo(f"     │ {line}")
        if outcome.superseded is not None:
            s = outcome.superseded
            click.echo(f"     └ superseded {s.name} {s.version}: {s.state.value}")
            if s.error:
                click.echo(f"       │ {s.error}")

    click.echo()
    status_color = {"ok": "green", "partial": "yellow", "failed": "red"}.get(summary.status, "white")
    click.secho(
        f"   Result: {summary.succeeded}/{summary.total} succeeded",
        fg=status_color,
        bold=True,
    )
    click.echo(
        f"   Skipped: {summary.skipped}  Failed: {summary.failed}  "
        f"Not attempted: {summary.not_attempted}"
    )
    click.echo(
        f"   New installs: {summary.new_installs}  Upgrades: {summary.upgrades}  "
        f"Superseded removed: {summary.superseded_removed}  "
        f"Remove failed: {summary.superseded_remove_failed}"
    )
    if summary.aborted:
        click.secho("   Aborted after a failed publish.", fg="red")
