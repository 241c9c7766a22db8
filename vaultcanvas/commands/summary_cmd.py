"""Summary command - recursive counts and recent notes per subfolder."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.table import Table

from ..config import load_config
from ..errors import VaultCanvasError
from ..vault.summary import summarize


def _format_mtime(mtime_ms: int) -> str:
    return datetime.fromtimestamp(mtime_ms / 1000).strftime("%Y-%m-%d %H:%M")


def run_summary(
    vault_path: Path,
    dir: str = "",
    *,
    limit: int | None = None,
    output_json: bool = False,
) -> int:
    """Print DirectorySummary rows for each subfolder of `dir`."""
    console = Console(stderr=True)

    try:
        config = load_config(vault_path)
        summaries = summarize(
            vault_path,
            dir,
            preview_limit=limit or config.preview_limit,
            max_scan_files=config.max_scan_files,
        )
    except VaultCanvasError as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1

    if output_json:
        print(json.dumps([s.to_dict() for s in summaries], indent=2, ensure_ascii=False))
        return 0

    if not summaries:
        console.print(f"[dim]No subfolders in {dir or 'vault root'}[/dim]")
        return 0

    table = Table(title=f"Subfolders of {dir or 'vault root'}")
    table.add_column("Folder", style="cyan")
    table.add_column("Files", justify="right")
    table.add_column("Notes", justify="right")
    table.add_column("Recent notes")

    for s in summaries:
        files = f"{s.total_files_recursive}+" if s.truncated else str(s.total_files_recursive)
        recent = "\n".join(f"{r.name} [dim]{_format_mtime(r.mtime)}[/dim]" for r in s.recent_markdown)
        table.add_row(s.dir_path, files, str(s.total_markdown_recursive), recent)

    Console().print(table)
    if any(s.truncated for s in summaries):
        console.print("[yellow]Some folders were too large to scan completely[/yellow]")
    return 0
