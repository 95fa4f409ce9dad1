#!/usr/bin/env python3
"""
GitHub → Vault Sync CLI

Usage:
    python sync.py fetch stars            # Incremental star sync
    python sync.py fetch stars --force    # Re-fetch all stars
    python sync.py fetch prs              # Incremental pull request sync
    python sync.py fetch prs --force      # Re-fetch all pull requests
    python sync.py start                  # Sync everything that is configured
    python sync.py status                 # Show settings and watermarks
    python sync.py config show            # List settings
    python sync.py config set KEY VALUE   # Change one setting
"""

import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from github_vault_sync import __version__
from github_vault_sync.config import PULLS, STARS, Config, ConfigurationError
from github_vault_sync.sync_engine import SyncEngine, mask_token

console = Console()


@click.group()
@click.option(
    "--vault",
    type=click.Path(file_okay=False, path_type=Path),
    help="Vault directory (defaults to GITHUB_VAULT_PATH or the current directory)",
)
@click.option("--dry-run", is_flag=True, help="Preview changes without writing notes")
@click.option("--debug", is_flag=True, help="Enable debug output")
@click.pass_context
def cli(ctx, vault: Optional[Path], dry_run: bool, debug: bool):
    """
    GitHub → Vault Sync

    Synchronizes GitHub stars and pull requests into Markdown notes.
    """
    ctx.ensure_object(dict)
    ctx.obj["vault"] = vault
    ctx.obj["dry_run"] = dry_run
    ctx.obj["debug"] = debug


def load_engine(ctx) -> SyncEngine:
    """Build the engine from environment and CLI overrides."""
    config = Config.from_env(vault_root=ctx.obj.get("vault"))

    if ctx.obj.get("dry_run"):
        config.dry_run = True
    if ctx.obj.get("debug"):
        config.debug = True

    return SyncEngine(config)


def run_sync(ctx, kind: str, force: bool) -> None:
    """Run one sync and exit non-zero on failure."""
    try:
        engine = load_engine(ctx)
        result = engine.sync(kind, force=force)

        if not result.success:
            sys.exit(1)

    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Sync cancelled.[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        if ctx.obj.get("debug"):
            console.print_exception()
        sys.exit(1)


@cli.group()
def fetch():
    """Fetch GitHub data into the vault."""


@fetch.command("stars")
@click.option("--force", is_flag=True, help="Ignore the watermark and re-fetch every page")
@click.pass_context
def fetch_stars(ctx, force: bool):
    """Fetch starred repositories."""
    run_sync(ctx, STARS, force)


@fetch.command("prs")
@click.option("--force", is_flag=True, help="Ignore the watermark and re-fetch every page")
@click.pass_context
def fetch_prs(ctx, force: bool):
    """Fetch pull requests authored by the user."""
    run_sync(ctx, PULLS, force)


@cli.command()
@click.pass_context
def start(ctx):
    """Sync every entity type that is fully configured."""
    try:
        engine = load_engine(ctx)
        results = engine.maybe_sync_on_start()
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Sync cancelled.[/yellow]")
        sys.exit(130)

    if not all(r.success for r in results):
        sys.exit(1)


@cli.command()
@click.pass_context
def status(ctx):
    """Show current settings and sync status."""
    try:
        engine = load_engine(ctx)
        engine.status()
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(1)


@cli.group("config")
def config_group():
    """Show or change persisted settings."""


@config_group.command("show")
@click.pass_context
def config_show(ctx):
    """List all settings."""
    try:
        engine = load_engine(ctx)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(1)

    table = Table(title=f"Settings ({engine.config.settings_file})")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")

    for key, value in engine.settings.to_dict().items():
        if key == "api_token" and value:
            value = mask_token(value)
        table.add_row(key, str(value))

    console.print(table)


@config_group.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def config_set(ctx, key: str, value: str):
    """Change one setting, e.g. `config set stars_directory GitHub/Stars`."""
    try:
        engine = load_engine(ctx)
        engine.settings.update(key, value)
        engine.save_settings()
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(1)

    shown = mask_token(value) if key == "api_token" else getattr(engine.settings, key)
    console.print(f"[green]Saved[/green] {key} = {shown}")

    for kind, command in ((STARS, "stars"), (PULLS, "prs")):
        relevant = key.startswith(kind) or key in ("username", "api_token")
        if relevant and engine.settings.is_valid_for(kind):
            console.print(f"[dim]Run 'sync.py fetch {command}' to sync now.[/dim]")


@cli.command()
def version():
    """Show version information."""
    console.print(f"GitHub → Vault Sync v{__version__}")


def main():
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
