"""View command - build or refresh a view and print its nodes."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

from rich.console import Console
from rich.table import Table

from ..errors import VaultCanvasError
from ..models import Node, Selector, ViewDocument
from ..views.loader import ViewLoader


def describe_node(node: Node) -> str:
    """One-line description of a node's data for tables."""
    data = node.data
    if node.type == "folder":
        text = f"{data.get('total_markdown', 0)} notes / {data.get('total_files', 0)} files"
        if data.get("preview_truncated"):
            text += " (scan truncated)"
        recent = [r.get("name", "") for r in data.get("recent_markdown", [])]
        if recent:
            text += f" - recent: {', '.join(recent)}"
        return text
    if node.type == "text":
        return str(data.get("text", "")).split("\n", 1)[0]
    if node.type == "link":
        return str(data.get("url", ""))
    return str(data.get("title", ""))


def render_document(doc: ViewDocument, console: Console) -> None:
    table = Table(title=f"{doc.title} [dim]({doc.id})[/dim]")
    table.add_column("Type", style="cyan")
    table.add_column("ID")
    table.add_column("Position", justify="right")
    table.add_column("Details")

    for node in doc.nodes:
        pos = f"{node.position.x:g}, {node.position.y:g}"
        if node.parent_id:
            pos += f" in {node.parent_id}"
        table.add_row(node.type, node.id, pos, describe_node(node))

    console.print(table)
    if doc.edges:
        console.print(f"[dim]{len(doc.edges)} edge(s)[/dim]")


def run_view(vault_path: Path, selector_text: str, output_json: bool = False) -> int:
    """Build the view for a selector, persist it if it changed, and print it."""
    console = Console(stderr=True)

    try:
        selector = Selector.parse(selector_text)
        loader = ViewLoader.for_vault(vault_path)
        outcome = asyncio.run(loader.open(selector))
    except VaultCanvasError as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1

    if outcome.error is not None:
        console.print(f"[yellow]Warning:[/yellow] {outcome.error}")
    if outcome.document is None:
        return 1

    doc = outcome.document
    if output_json:
        print(json.dumps(doc.to_dict(), indent=2, ensure_ascii=False))
    else:
        render_document(doc, Console())
        if outcome.saved:
            console.print("[green]View updated[/green]")
        elif not outcome.changed:
            console.print("[dim]View unchanged[/dim]")

    return 1 if outcome.error is not None else 0
