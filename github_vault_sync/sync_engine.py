"""
Main sync engine for GitHub → Vault synchronization.

Orchestrates, per entity type (stars, pull requests):
- Watermark handling (first fetch vs incremental fetch)
- Page-by-page fetching from GitHub
- Note materialization
- Settings persistence
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .config import ENTITY_KINDS, PULLS, STARS, Config, ConfigurationError, Settings, SettingsStore
from .github_api import GitHubAPI, Page, PullRequest, StarredRepo
from .notes import NoteWriter
from .vault import Vault

console = Console()

LABELS = {
    STARS: "GitHub stars",
    PULLS: "GitHub pull requests",
}

DECODERS = {
    STARS: StarredRepo.from_api_response,
    PULLS: PullRequest.from_api_response,
}


@dataclass
class SyncResult:
    """Result of one sync run for one entity type."""

    kind: str
    first_fetch: bool = False
    created: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    pages_fetched: int = 0
    stopped_early: bool = False
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        """A run succeeds unless the page loop aborted; item failures are tolerated."""
        return self.error is None

    @property
    def processed(self) -> int:
        return len(self.created) + len(self.updated) + len(self.failed)


class SyncEngine:
    """
    Drives incremental synchronization.

    A run without a watermark walks every page until a short page comes
    back. A run with a watermark stops at the first record whose note
    already exists, relying on GitHub returning newest items first.
    """

    def __init__(
        self,
        config: Config,
        api: Optional[GitHubAPI] = None,
        now: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize sync engine.

        Args:
            config: Configuration instance.
            api: Optional GitHub client; built from settings when omitted.
            now: Clock used for watermarks.
        """
        self.config = config
        self.store: SettingsStore = config.settings_store()
        self.settings: Settings = self.store.load()
        self.vault = Vault(config.vault_root)
        self.notes = NoteWriter(self.vault, self.settings, dry_run=config.dry_run)
        self._api = api
        self._now = now or (lambda: datetime.now(timezone.utc))
        self._started = False

    @property
    def github_api(self) -> GitHubAPI:
        if self._api is None:
            self._api = GitHubAPI(
                username=self.settings.username,
                token=self.settings.api_token or self.config.env_token,
                debug=self.config.debug,
            )
        return self._api

    def save_settings(self) -> None:
        self.store.save(self.settings)

    def sync_stars(self, force: bool = False) -> SyncResult:
        """Fetch starred repositories into notes."""
        self.settings.validate_for(STARS)
        return self._sync(STARS, self.github_api.get_starred_page, force)

    def sync_pull_requests(self, force: bool = False) -> SyncResult:
        """Fetch authored pull requests into notes."""
        self.settings.validate_for(PULLS)
        return self._sync(PULLS, self.github_api.get_pull_requests_page, force)

    def sync(self, kind: str, force: bool = False) -> SyncResult:
        """
        Sync one entity type by name.

        Raises:
            ConfigurationError: If `kind` is not a known entity type.
        """
        runners = {STARS: self.sync_stars, PULLS: self.sync_pull_requests}
        if kind not in runners:
            raise ConfigurationError(
                f"Unknown entity type '{kind}'. Known types: {', '.join(ENTITY_KINDS)}"
            )
        return runners[kind](force)

    def maybe_sync_on_start(self) -> list[SyncResult]:
        """
        Start-up hook: sync every entity type whose settings are complete.

        Only the first call on an engine does anything.
        """
        if self._started:
            return []
        self._started = True

        results = []
        for kind in ENTITY_KINDS:
            if not self.settings.is_valid_for(kind):
                console.print(f"[dim]Skipping {LABELS[kind]} (not configured)[/dim]")
                continue
            try:
                results.append(self.sync(kind))
            except ConfigurationError as e:
                console.print(f"[yellow]Skipping {LABELS[kind]}: {e}[/yellow]")
        return results

    def _sync(
        self,
        kind: str,
        fetch_page: Callable[[int], Page],
        force: bool,
    ) -> SyncResult:
        label = LABELS[kind]

        if force:
            console.print(f"[yellow]Forcing full fetch of {label}[/yellow]")
            self.settings.set_watermark(kind, "")
            if not self.config.dry_run:
                self.save_settings()

        result = SyncResult(kind=kind, first_fetch=not self.settings.watermark_for(kind))
        mode = "full" if result.first_fetch else "incremental"

        console.print(f"\n[bold blue]🔄 Fetching {label} ({mode})[/bold blue]\n")

        try:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
                transient=True,
            ) as progress:
                task = progress.add_task(f"Fetching {label}...", total=None)
                page_number = 1

                while True:
                    page = fetch_page(page_number)
                    result.pages_fetched += 1

                    if self.config.debug:
                        console.print(f"[dim]Page {page_number}: {len(page.items)} items[/dim]")

                    for item in page.items:
                        created = self._materialize(kind, item, result)
                        if created is False and not result.first_fetch:
                            result.stopped_early = True
                            break

                    progress.update(task, description=f"Fetched {result.processed} {label}")
                    console.print(f"Fetched {result.processed} {label}")

                    if result.stopped_early or not page.has_more:
                        break

                    page_number += 1

        except Exception as e:
            result.error = str(e)
            console.print(f"[red]Error fetching {label}: {e}[/red]")
            if self.config.debug:
                console.print_exception()
            self._print_summary(result)
            return result

        if not self.config.dry_run:
            self.settings.set_watermark(kind, self._now().isoformat())
            self.save_settings()

        self._print_summary(result)
        return result

    def _materialize(self, kind: str, item: dict, result: SyncResult) -> Optional[bool]:
        """
        Decode one raw listing item and write its note.

        Returns:
            True if created, False if it already existed, None if it failed.
        """
        name = _item_name(item)

        try:
            record = DECODERS[kind](item)
            name = record_name(record)
            created = self.notes.materialize(kind, record)
        except Exception as e:
            console.print(f"[yellow]Warning: Failed to write note for {name}: {e}[/yellow]")
            result.failed.append(name)
            return None

        if created:
            console.print(f"[cyan]Created:[/cyan] {name}")
            result.created.append(name)
        else:
            if self.config.debug:
                console.print(f"[dim]Updated {name}[/dim]")
            result.updated.append(name)

        return created

    def _print_summary(self, result: SyncResult) -> None:
        """Print sync summary."""
        console.print("\n" + "=" * 50)
        console.print(f"[bold]{LABELS[result.kind].capitalize()} Summary[/bold]")
        console.print("=" * 50)

        table = Table(show_header=False, box=None)
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="white")

        table.add_row("Mode", "full" if result.first_fetch else "incremental")
        table.add_row("Pages fetched", str(result.pages_fetched))
        table.add_row("Notes created", str(len(result.created)))
        table.add_row("Notes updated", str(len(result.updated)))
        table.add_row("Notes failed", str(len(result.failed)))
        table.add_row("Stopped early", "✓" if result.stopped_early else "✗")
        if self._api is not None:
            table.add_row("API requests", str(self._api.request_count))

        console.print(table)

        if result.failed:
            console.print(f"\n[red]Failed:[/red] {', '.join(result.failed)}")

        if result.error:
            console.print(f"\n[red]Sync aborted:[/red] {result.error}")
        elif self.config.dry_run:
            console.print("\n[dim]Dry run: no notes written, watermark unchanged[/dim]")

        console.print("")

    def status(self) -> None:
        """Print current settings and sync status."""
        console.print("\n[bold]Sync Status[/bold]\n")

        settings = self.settings
        token = settings.api_token or self.config.env_token

        table = Table(title="Settings")
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("Vault", str(self.config.vault_root))
        table.add_row("Username", settings.username or "[red]not set[/red]")
        table.add_row("Token", mask_token(token) if token else "[dim]none[/dim]")
        console.print(table)

        table = Table(title="Entities")
        table.add_column("Type", style="cyan")
        table.add_column("Directory", style="green")
        table.add_column("Template", style="magenta")
        table.add_column("Notes", style="white")
        table.add_column("Last Synced", style="blue")

        for kind in ENTITY_KINDS:
            directory = settings.directory_for(kind)
            template = (
                "built-in" if settings.uses_builtin_template(kind)
                else settings.template_path_for(kind) or "[red]missing[/red]"
            )
            watermark = settings.watermark_for(kind)
            if watermark:
                synced = datetime.fromisoformat(watermark).strftime("%Y-%m-%d %H:%M UTC")
            else:
                synced = "never"

            table.add_row(
                LABELS[kind],
                directory or "[red]not set[/red]",
                template,
                str(self.vault.count_notes(directory)) if directory else "-",
                synced,
            )

        console.print(table)


def mask_token(token: str) -> str:
    """Show only the last four characters of a secret."""
    if len(token) <= 4:
        return "*" * len(token)
    return "*" * (len(token) - 4) + token[-4:]


def record_name(record) -> str:
    if isinstance(record, StarredRepo):
        return record.full_name
    return f"{record.repository}#{record.number}"


def _item_name(item) -> str:
    """Best-effort label for an item that may not decode."""
    if isinstance(item, dict):
        return str(item.get("full_name") or item.get("html_url") or "<unnamed item>")
    return "<unnamed item>"
