"""Canvas commands - the library of user-authored canvases."""

from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console
from rich.table import Table

from ..config import load_config
from ..errors import VaultCanvasError
from ..views.store import DocumentStore


def _store(vault_path: Path) -> DocumentStore:
    return DocumentStore(load_config(vault_path).state_path(vault_path))


def run_canvas_new(vault_path: Path, title: str) -> int:
    console = Console(stderr=True)
    try:
        doc = _store(vault_path).create_canvas(title)
    except VaultCanvasError as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1

    console.print(f"[green]Created canvas[/green] {doc.title}")
    print(doc.selector.view_id)
    return 0


def run_canvas_list(vault_path: Path, output_json: bool = False) -> int:
    console = Console(stderr=True)
    try:
        canvases = _store(vault_path).list_canvases()
    except VaultCanvasError as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1

    if output_json:
        print(json.dumps([c.to_dict() for c in canvases], indent=2, ensure_ascii=False))
        return 0

    if not canvases:
        console.print("[dim]No canvases yet. Create one with: vaultcanvas canvas new TITLE[/dim]")
        return 0

    table = Table(title="Canvases")
    table.add_column("Selector", style="cyan")
    table.add_column("Title")
    table.add_column("Updated", style="dim")
    for c in canvases:
        table.add_row(f"canvas:{c.id}", c.title, c.updated or "")
    Console().print(table)
    return 0
