"""
devbox — workstation provisioning CLI entrypoint.

Usage:
    devbox --help
    sudo devbox run
    sudo devbox run --step fix-dependencies --yes
    devbox steps
    devbox sources list
"""

from __future__ import annotations

import json
import logging
import os
import signal
import sys
import threading
from pathlib import Path
from typing import Any

import click

from devbox import __version__
from devbox.core.observability.logging_config import setup_logging

logger = logging.getLogger(__name__)

# Exit codes
EXIT_OK = 0
EXIT_FAILED = 1
EXIT_WARNINGS = 2

_STATUS_STYLE = {
    "ok": ("✓", "green"),
    "warning": ("⚠", "yellow"),
    "failed": ("✗", "red"),
}


@click.group()
@click.version_option(version=__version__, prog_name="devbox")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Only show errors.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option("--no-color", is_flag=True, help="Disable colored output.")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, dir_okay=False),
    default=None,
    help="Path to devbox.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    no_color: bool,
    config_path: str | None,
) -> None:
    """devbox — idempotent development workstation provisioning."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["color"] = not no_color
    ctx.obj["config_path"] = Path(config_path) if config_path else None
    if no_color:
        ctx.color = False

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("DEVBOX_LOG_LEVEL", "INFO")

    setup_logging(
        level=level,
        log_file=os.environ.get("DEVBOX_LOG_FILE"),
        log_file_level=os.environ.get("DEVBOX_LOG_FILE_LEVEL"),
        color=False if no_color else None,
        quiet_third_party=not debug,
    )


def _load_config(ctx: click.Context, **overrides: Any):
    """Load devbox.yml and apply CLI overrides; exit 1 on error."""
    from devbox.core.config.loader import load_config
    from devbox.core.errors import ConfigError

    try:
        config = load_config(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(EXIT_FAILED)

    updates = {k: v for k, v in overrides.items() if v}
    return config.model_copy(update=updates) if updates else config


def _make_runner(config, *, mock: bool = False):
    from devbox.adapters.shell.command import CommandRunner

    # in mock mode systemctl and plain commands are only logged
    return CommandRunner(
        default_timeout=config.command_timeout,
        env=config.env,
        dry_run=config.dry_run or mock,
    )


def _builtins_for(config, distro=None) -> dict[str, str]:
    from devbox.core.config.plan_loader import builtin_variables

    if distro is None:
        return builtin_variables(instructions_dir=config.instructions_dir)
    return builtin_variables(
        distro_id=distro.id,
        codename=distro.release_tag,
        release=distro.version_id,
        instructions_dir=config.instructions_dir,
    )


def _print_report(report) -> None:
    """Itemized, colored summary of a run."""
    click.echo()
    title = "Provisioning summary" + (" (dry-run)" if report.dry_run else "")
    click.secho(f"══ {title} ══", fg="cyan", bold=True)

    for step in report.steps:
        icon, color = _STATUS_STYLE[step.status]
        click.secho(f"  {icon} {step.name}", fg=color)
        for err in step.errors:
            click.echo(f"      • {err}")

    click.echo()
    click.echo(
        f"  {report.ok} ok, {report.warnings} warning(s), {report.failed} failed"
    )
    if report.completed:
        color = "yellow" if report.has_warnings else "green"
        click.secho(f"  Run completed{' with warnings' if report.has_warnings else ''}", fg=color, bold=True)
    else:
        click.secho(f"  Run aborted: {report.abort_reason}", fg="red", bold=True)
    click.echo()


# ── run ─────────────────────────────────────────────────────────


@cli.command()
@click.option("--yes", "-y", is_flag=True, help="Do not prompt; answer yes to every question.")
@click.option("--dry-run", is_flag=True, help="Show what would change without changing anything.")
@click.option("--mock", is_flag=True, help="Use the in-memory mock backend (no package manager calls).")
@click.option(
    "--plan",
    "plan_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Plan YAML file (default: built-in workstation plan).",
)
@click.option("--step", "step_names", multiple=True, help="Run only this step (repeatable).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output the report as JSON.")
@click.option("--strict", is_flag=True, help="Exit 2 when the run completed with warnings.")
@click.pass_context
def run(
    ctx: click.Context,
    yes: bool,
    dry_run: bool,
    mock: bool,
    plan_path: Path | None,
    step_names: tuple[str, ...],
    as_json: bool,
    strict: bool,
) -> None:
    """Provision this machine: run the plan's steps in order."""
    from devbox.adapters.mock import MockBackend
    from devbox.adapters.registry import default_registry
    from devbox.core.config.plan_loader import load_plan
    from devbox.core.engine.orchestrator import Orchestrator
    from devbox.core.errors import PlanError, PreconditionError
    from devbox.core.models.report import RunReport, RunState
    from devbox.core.services.preconditions import check_preconditions

    config = _load_config(ctx, assume_yes=yes, dry_run=dry_run)
    runner = _make_runner(config, mock=mock)
    registry = default_registry(runner)

    # ── Preconditions (fatal, before any step) ──────────────────
    try:
        # mock runs touch no package state, so they do not need root
        pre = check_preconditions(config, registry, euid=0 if mock else None)
    except PreconditionError as e:
        report = RunReport(state=RunState.ABORTED, abort_reason=str(e), dry_run=config.dry_run)
        if as_json:
            click.echo(json.dumps(report.to_dict(), indent=2))
        else:
            click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(EXIT_FAILED)

    if pre.warnings and not config.assume_yes:
        if not click.confirm("Continue anyway?", default=False, err=True):
            click.secho("Aborted by user", fg="yellow", err=True)
            sys.exit(EXIT_FAILED)

    # ── Plan ────────────────────────────────────────────────────
    try:
        graph = load_plan(
            plan_path,
            builtins=_builtins_for(config, pre.distro),
            variables=config.variables,
        )
        if step_names:
            graph = graph.select(step_names)
    except PlanError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(EXIT_FAILED)

    backend = MockBackend(backend_name=pre.backend) if mock else registry.select(pre.distro.id)

    # ── Confirmation ────────────────────────────────────────────
    if not config.assume_yes:
        click.secho(f"\n⚡ {pre.distro.pretty} — {backend.name} backend", bold=True, err=True)
        for name in graph.names():
            click.echo(f"   • {name}", err=True)
        if not click.confirm("Proceed with provisioning?", default=True, err=True):
            click.secho("Aborted by user", fg="yellow", err=True)
            sys.exit(EXIT_OK)

    # ── Run ─────────────────────────────────────────────────────
    cancel = threading.Event()

    def _on_sigint(signum, frame):
        if cancel.is_set():
            raise KeyboardInterrupt
        cancel.set()
        logger.warning("Interrupt received: stopping after the current step (Ctrl-C again to force)")

    orchestrator = Orchestrator.from_config(
        config,
        backend,
        runner=runner,
        confirm=lambda prompt: click.confirm(prompt, default=True, err=True),
        cancel=cancel,
        release_tag=pre.distro.release_tag,
        offline=mock,
    )

    previous = signal.signal(signal.SIGINT, _on_sigint)
    try:
        report = orchestrator.run(graph)
    finally:
        signal.signal(signal.SIGINT, previous)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        _print_report(report)

    if not report.completed:
        sys.exit(EXIT_FAILED)
    if strict and report.has_warnings:
        sys.exit(EXIT_WARNINGS)


# ── steps ───────────────────────────────────────────────────────


@cli.command()
@click.option(
    "--plan",
    "plan_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Plan YAML file (default: built-in workstation plan).",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def steps(ctx: click.Context, plan_path: Path | None, as_json: bool) -> None:
    """List the plan's steps in execution order."""
    from devbox.core.config.plan_loader import load_plan
    from devbox.core.errors import PlanError, PreconditionError
    from devbox.core.services.preconditions import parse_os_release

    config = _load_config(ctx)
    try:
        distro = parse_os_release(config.os_release_path)
    except PreconditionError:
        distro = None

    try:
        graph = load_plan(plan_path, builtins=_builtins_for(config, distro), variables=config.variables)
    except PlanError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(EXIT_FAILED)

    if as_json:
        click.echo(json.dumps([
            {
                "name": s.name,
                "description": s.description,
                "fatal": s.fatal,
                "actions": [a.display for a in s.actions],
            }
            for s in graph
        ], indent=2))
        return

    click.secho(f"📋 {len(graph)} step(s):", fg="cyan", bold=True)
    for i, step in enumerate(graph):
        fatal = click.style(" [fatal]", fg="red") if step.fatal else ""
        click.echo(f"  {i:>2}. {step.name}{fatal}  — {step.description}")
        for action in step.actions:
            only = f" ({', '.join(action.backends)})" if action.backends else ""
            click.echo(f"        · {action.display}{only}")
    click.echo()


# ── check ───────────────────────────────────────────────────────


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def check(ctx: click.Context, as_json: bool) -> None:
    """Run only the precondition checks (distribution, privilege)."""
    from devbox.adapters.registry import default_registry
    from devbox.core.errors import PreconditionError
    from devbox.core.services.preconditions import check_preconditions

    config = _load_config(ctx)
    registry = default_registry(_make_runner(config))

    try:
        pre = check_preconditions(config, registry)
    except PreconditionError as e:
        if as_json:
            click.echo(json.dumps({"ok": False, "error": str(e)}, indent=2))
        else:
            click.secho(f"❌ {e}", fg="red")
        sys.exit(EXIT_FAILED)

    if as_json:
        click.echo(json.dumps({"ok": True, **pre.to_dict()}, indent=2))
        return

    click.secho("✅ Preconditions met", fg="green", bold=True)
    click.echo(f"   Distribution: {pre.distro.pretty}")
    click.echo(f"   Backend:      {pre.backend}")
    for w in pre.warnings:
        click.secho(f"   ⚠️  {w}", fg="yellow")


# ── Register sub-command groups from devbox/ui/cli/ ───────────────

from devbox.ui.cli.sources import sources  # noqa: E402

cli.add_command(sources)


if __name__ == "__main__":
    cli()
