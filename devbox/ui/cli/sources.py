"""
CLI commands for repository sources and pins.

Thin wrappers over ``devbox.core.services.sources`` for targeted
repair: list entries, deduplicate, add or remove a repository,
enable a component, write a pin.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click


def _registry(ctx: click.Context, dry_run: bool = False):
    """Build a SourceRegistry from devbox.yml; exit 1 on bad config."""
    from devbox.adapters.shell.command import CommandRunner
    from devbox.core.config.loader import load_config
    from devbox.core.errors import ConfigError
    from devbox.core.services.sources.registry import SourceRegistry

    try:
        config = load_config(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)
    if dry_run:
        config = config.model_copy(update={"dry_run": True})

    runner = CommandRunner(
        default_timeout=config.command_timeout,
        env=config.env,
        dry_run=config.dry_run,
    )
    return SourceRegistry.from_config(config, runner)


def _fail(e: Exception) -> None:
    click.secho(f"❌ {e}", fg="red", err=True)
    sys.exit(1)


def _dry_note(dry_run: bool) -> None:
    if dry_run:
        click.secho("   (dry-run: nothing was written)", fg="yellow")


@click.group()
def sources() -> None:
    """Sources — list, dedupe, add, remove, enable-component, pin."""


# ── Observe ─────────────────────────────────────────────────────


@sources.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_cmd(ctx: click.Context, as_json: bool) -> None:
    """Show every active repository line, in processing order."""
    from devbox.core.errors import ProvisionError

    registry = _registry(ctx)
    try:
        entries = registry.list_entries()
    except ProvisionError as e:
        _fail(e)

    if as_json:
        click.echo(json.dumps(
            [{"file": str(e.path), "line": e.line_no, "entry": e.line} for e in entries],
            indent=2,
        ))
        return

    if not entries:
        click.secho("⚠️  No active repository entries", fg="yellow")
        return

    seen: set[str] = set()
    current: Path | None = None
    for entry in entries:
        if entry.path != current:
            current = entry.path
            click.secho(f"📄 {current}", fg="cyan", bold=True)
        dup = entry.line in seen
        seen.add(entry.line)
        marker = click.style("  (duplicate)", fg="yellow") if dup else ""
        click.echo(f"   {entry.line_no:>4}  {entry.line}{marker}")
    click.echo()


# ── Repair ──────────────────────────────────────────────────────


@sources.command()
@click.option("--dry-run", is_flag=True, help="Report without writing.")
@click.pass_context
def dedupe(ctx: click.Context, dry_run: bool) -> None:
    """Remove duplicate repository lines across all source files."""
    from devbox.core.errors import ProvisionError

    registry = _registry(ctx, dry_run)
    try:
        removed = registry.deduplicate_all()
    except ProvisionError as e:
        _fail(e)

    if removed:
        click.secho(f"✅ {removed} duplicate line(s) removed", fg="green")
    else:
        click.secho("✅ No duplicate sources found", fg="green")
    _dry_note(dry_run)


@sources.command()
@click.argument("source_id")
@click.argument("entry_line")
@click.option("--key-url", default=None, help="Signing key URL.")
@click.option("--keyring", default=None, help="Keyring path (default: /etc/apt/keyrings/<id>.gpg).")
@click.option("--no-dearmor", is_flag=True, help="Store the key as downloaded.")
@click.option("--dry-run", is_flag=True, help="Report without writing.")
@click.pass_context
def add(
    ctx: click.Context,
    source_id: str,
    entry_line: str,
    key_url: str | None,
    keyring: str | None,
    no_dearmor: bool,
    dry_run: bool,
) -> None:
    """Add a repository line (and its signing key) unless already present."""
    from pydantic import ValidationError

    from devbox.core.errors import ProvisionError
    from devbox.core.models.source import AddResult, RepoSource, SigningKey

    try:
        key = None
        if key_url:
            key = SigningKey(
                url=key_url,
                keyring=keyring or f"/etc/apt/keyrings/{source_id}.gpg",
                dearmor=not no_dearmor,
            )
        source = RepoSource(id=source_id, entry_line=entry_line, signing_key=key)
    except ValidationError as e:
        _fail(e)

    registry = _registry(ctx, dry_run)
    try:
        registry.install_signing_key(source)
        result = registry.add_repo(source)
    except ProvisionError as e:
        _fail(e)

    if result is AddResult.ADDED:
        click.secho(f"✅ Added {source_id} → {registry.source_path(source)}", fg="green")
        click.echo("   Refresh the package index to use it.")
    else:
        click.secho(f"✅ {source_id} already configured", fg="green")
    _dry_note(dry_run)


@sources.command()
@click.argument("source_id")
@click.option("--dry-run", is_flag=True, help="Report without deleting.")
@click.pass_context
def remove(ctx: click.Context, source_id: str, dry_run: bool) -> None:
    """Delete a repository's dedicated file."""
    from devbox.core.errors import ProvisionError
    from devbox.core.models.source import RemoveResult, RepoSource

    # the entry line is not needed to locate the file
    source = RepoSource(id=source_id, entry_line="deb -")
    registry = _registry(ctx, dry_run)
    try:
        result = registry.remove_repo(source)
    except ProvisionError as e:
        _fail(e)

    if result is RemoveResult.REMOVED:
        click.secho(f"✅ Removed {registry.source_path(source)}", fg="green")
    else:
        click.secho(f"⚠️  {source_id} is not configured", fg="yellow")
    _dry_note(dry_run)


@sources.command("enable-component")
@click.argument("component")
@click.option("--dry-run", is_flag=True, help="Report without writing.")
@click.pass_context
def enable_component(ctx: click.Context, component: str, dry_run: bool) -> None:
    """Add a component (e.g. non-free) to every line of the primary file."""
    from devbox.core.errors import ProvisionError

    registry = _registry(ctx, dry_run)
    try:
        result = registry.enable_foreign_release_component(component)
    except ProvisionError as e:
        _fail(e)

    click.secho(f"✅ {component}: {result.lines_changed} line(s) changed", fg="green")
    for path in result.removed_files:
        click.echo(f"   Removed redundant {path}")
    _dry_note(dry_run)


@sources.command()
@click.argument("pin_id")
@click.option("--package", "-p", "packages", multiple=True, required=True, help="Package name or pattern (repeatable).")
@click.option("--release", "release_tag", required=True, help="Release to pin to (codename or a=/n= expression).")
@click.option("--priority", default=1001, show_default=True, type=int)
@click.option("--per-package", is_flag=True, help="One stanza per package.")
@click.option("--dry-run", is_flag=True, help="Report without writing.")
@click.pass_context
def pin(
    ctx: click.Context,
    pin_id: str,
    packages: tuple[str, ...],
    release_tag: str,
    priority: int,
    per_package: bool,
    dry_run: bool,
) -> None:
    """Write (overwrite) a pin file forcing a release's versions to win."""
    from pydantic import ValidationError

    from devbox.core.errors import ProvisionError
    from devbox.core.models.source import PinRule, WriteResult

    try:
        rule = PinRule(
            id=pin_id,
            package_patterns=list(packages),
            release_tag=release_tag,
            priority=priority,
            per_package=per_package,
        )
    except ValidationError as e:
        _fail(e)

    registry = _registry(ctx, dry_run)
    try:
        result = registry.apply_pin(rule)
    except ProvisionError as e:
        _fail(e)

    if result is WriteResult.WRITTEN:
        click.secho(f"✅ Pin written: {registry.pin_path(rule)}", fg="green")
    else:
        click.secho(f"✅ Pin unchanged: {registry.pin_path(rule)}", fg="green")
    _dry_note(dry_run)
