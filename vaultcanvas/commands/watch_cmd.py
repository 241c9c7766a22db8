"""Watch command - keep folder views in sync while the vault changes."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from rich.console import Console

from ..errors import VaultCanvasError
from ..models import Selector
from ..views.loader import ViewLoader, ViewOutcome
from ..watcher import run_watch_loop


def format_outcome(outcome: ViewOutcome) -> str:
    ts = datetime.now().strftime("%H:%M:%S")
    name = outcome.selector.view_id
    if outcome.stale:
        return f"[dim]{ts}[/dim] {name} [dim]superseded[/dim]"
    if outcome.error is not None:
        return f"[dim]{ts}[/dim] {name} [yellow]{outcome.error}[/yellow]"
    if outcome.saved:
        return f"[dim]{ts}[/dim] {name} [green]updated[/green]"
    return f"[dim]{ts}[/dim] {name} [dim]unchanged[/dim]"


def run_watch(vault_path: Path, selectors: tuple[str, ...] = ()) -> int:
    """
    Watch the vault and rebuild affected folder views.

    This is a blocking command that runs until interrupted (Ctrl+C). Views
    that were opened before (stored) are rebuilt when their content changes;
    selectors given explicitly are rebuilt even if never stored.
    """
    console = Console(stderr=True)

    try:
        pinned = {Selector.parse(s) for s in selectors}
        loader = ViewLoader.for_vault(vault_path)
    except VaultCanvasError as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1

    non_folder = [s for s in pinned if s.kind != "folder"]
    if non_folder:
        console.print(f"[yellow]Only folder views are watched; ignoring {', '.join(map(str, non_folder))}[/yellow]")
        pinned -= set(non_folder)

    console.print(f"[bold]Watching[/bold] {vault_path}")
    if pinned:
        console.print(f"  Pinned views: {', '.join(sorted(map(str, pinned)))}")
    console.print()
    console.print("[dim]Press Ctrl+C to stop watching[/dim]")
    console.print()

    run_watch_loop(loader, vault_path, pinned=pinned, on_rebuild=lambda o: console.print(format_outcome(o)))
    return 0
