"""Node commands - direct user edits that bypass re-derivation."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

from rich.console import Console

from ..errors import VaultCanvasError
from ..models import Selector, ViewDocument
from ..views.loader import ViewLoader


def _run_edit(vault_path: Path, selector_text: str, edit: Callable[[ViewLoader, Selector], ViewDocument], done: str) -> int:
    console = Console(stderr=True)
    try:
        selector = Selector.parse(selector_text)
        loader = ViewLoader.for_vault(vault_path)
        edit(loader, selector)
    except VaultCanvasError as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1

    console.print(f"[green]{done}[/green]")
    return 0


def run_node_move(vault_path: Path, selector_text: str, node_id: str, x: float, y: float) -> int:
    return _run_edit(
        vault_path,
        selector_text,
        lambda loader, sel: loader.move_node(sel, node_id, x, y),
        f"Moved {node_id} to ({x:g}, {y:g})",
    )


def run_node_add_text(vault_path: Path, selector_text: str, text: str, at: tuple[float, float] | None = None) -> int:
    return _run_edit(
        vault_path,
        selector_text,
        lambda loader, sel: loader.add_text(sel, text, at=at),
        "Added text node",
    )


def run_node_add_link(
    vault_path: Path,
    selector_text: str,
    url: str,
    title: str | None = None,
    at: tuple[float, float] | None = None,
) -> int:
    return _run_edit(
        vault_path,
        selector_text,
        lambda loader, sel: loader.add_link(sel, url, title=title, at=at),
        "Added link node",
    )


def run_node_add_frame(vault_path: Path, selector_text: str, title: str, at: tuple[float, float] | None = None) -> int:
    return _run_edit(
        vault_path,
        selector_text,
        lambda loader, sel: loader.add_frame(sel, title, at=at),
        "Added frame",
    )


def run_node_remove(vault_path: Path, selector_text: str, node_id: str) -> int:
    return _run_edit(
        vault_path,
        selector_text,
        lambda loader, sel: loader.remove_node(sel, node_id),
        f"Removed {node_id}",
    )


def run_node_connect(vault_path: Path, selector_text: str, source: str, target: str, label: str | None = None) -> int:
    return _run_edit(
        vault_path,
        selector_text,
        lambda loader, sel: loader.connect(sel, source, target, label=label),
        f"Connected {source} -> {target}",
    )
