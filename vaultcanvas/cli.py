"""CLI entrypoint for vaultcanvas."""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .config import STATE_DIR_NAME


def _auto_detect_vault(start: Path) -> Path:
    """Nearest directory (walking up from `start`) holding a state dir, else `start`."""
    cur = start.resolve()
    for p in (cur, *cur.parents):
        if (p / STATE_DIR_NAME).is_dir():
            return p
    return cur


def _configure_logging(verbose: bool) -> None:
    handler = RichHandler(console=Console(stderr=True), show_path=False, show_time=False)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[handler],
        force=True,
    )


def _parse_at(at: tuple[float, float] | None) -> tuple[float, float] | None:
    # click gives an empty-ish tuple when a nargs=2 option is omitted
    if not at:
        return None
    return at[0], at[1]


@click.group()
@click.version_option(__version__, prog_name="vaultcanvas")
@click.option(
    "--vault",
    "-v",
    type=click.Path(exists=False, file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help="Path to the vault (defaults to the nearest folder with a .vaultcanvas directory, else cwd)",
)
@click.option("--verbose", is_flag=True, help="Show debug logging")
@click.pass_context
def cli(ctx: click.Context, vault: Path | None, verbose: bool) -> None:
    """vaultcanvas - spatial canvas views over a markdown vault.

    Folders, searches and tags are shown as canvases whose layout you
    arrange; rebuilding a view refreshes its contents without losing your
    arrangement or your own notes on it.
    """
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    if vault is None:
        vault = _auto_detect_vault(Path.cwd())

    if not vault.exists() or not vault.is_dir():
        raise click.BadParameter(f"Directory '{vault}' does not exist.", param_hint="--vault / -v")

    ctx.obj["vault"] = vault.resolve()


@cli.command()
@click.argument("selector")
@click.option("--json", "output_json", is_flag=True, help="Output the document as JSON")
@click.pass_context
def view(ctx: click.Context, selector: str, output_json: bool) -> None:
    """Build or refresh a view and print it.

    SELECTOR is KIND:VALUE where KIND is folder, search, tag or canvas.

    Examples:

        vaultcanvas view folder:Projects

        vaultcanvas view "search:meeting notes"

        vaultcanvas view tag:#idea
    """
    from .commands.view_cmd import run_view

    sys.exit(run_view(ctx.obj["vault"], selector, output_json))


@cli.command()
@click.argument("dir", default="")
@click.option("--limit", type=click.IntRange(1, 20), default=None, help="Recent notes per folder")
@click.option("--json", "output_json", is_flag=True, help="Output summaries as JSON")
@click.pass_context
def summary(ctx: click.Context, dir: str, limit: int | None, output_json: bool) -> None:
    """Summarize the subfolders of DIR (default: vault root)."""
    from .commands.summary_cmd import run_summary

    sys.exit(run_summary(ctx.obj["vault"], dir, limit=limit, output_json=output_json))


# -----------------------------------------------------------------------------
# Canvas library
# -----------------------------------------------------------------------------


@cli.group()
def canvas() -> None:
    """Manage free-form canvases."""
    pass


@canvas.command("new")
@click.argument("title")
@click.pass_context
def canvas_new(ctx: click.Context, title: str) -> None:
    """Create an empty canvas and print its selector."""
    from .commands.canvas_cmd import run_canvas_new

    sys.exit(run_canvas_new(ctx.obj["vault"], title))


@canvas.command("list")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def canvas_list(ctx: click.Context, output_json: bool) -> None:
    """List canvases, most recently updated first."""
    from .commands.canvas_cmd import run_canvas_list

    sys.exit(run_canvas_list(ctx.obj["vault"], output_json))


# -----------------------------------------------------------------------------
# Node edits
# -----------------------------------------------------------------------------


@cli.group()
def node() -> None:
    """Edit nodes on a view directly."""
    pass


@node.command("move")
@click.argument("selector")
@click.argument("node_id")
@click.argument("x", type=float)
@click.argument("y", type=float)
@click.pass_context
def node_move(ctx: click.Context, selector: str, node_id: str, x: float, y: float) -> None:
    """Move NODE_ID on SELECTOR's view to (X, Y)."""
    from .commands.node_cmd import run_node_move

    sys.exit(run_node_move(ctx.obj["vault"], selector, node_id, x, y))


@node.command("add-text")
@click.argument("selector")
@click.argument("text")
@click.option("--at", nargs=2, type=float, default=None, help="Position X Y (default: first free cell)")
@click.pass_context
def node_add_text(ctx: click.Context, selector: str, text: str, at: tuple[float, float] | None) -> None:
    """Add a text annotation."""
    from .commands.node_cmd import run_node_add_text

    sys.exit(run_node_add_text(ctx.obj["vault"], selector, text, _parse_at(at)))


@node.command("add-link")
@click.argument("selector")
@click.argument("url")
@click.option("--title", default=None, help="Display title")
@click.option("--at", nargs=2, type=float, default=None, help="Position X Y (default: first free cell)")
@click.pass_context
def node_add_link(
    ctx: click.Context, selector: str, url: str, title: str | None, at: tuple[float, float] | None
) -> None:
    """Add an external link."""
    from .commands.node_cmd import run_node_add_link

    sys.exit(run_node_add_link(ctx.obj["vault"], selector, url, title, _parse_at(at)))


@node.command("add-frame")
@click.argument("selector")
@click.argument("title")
@click.option("--at", nargs=2, type=float, default=None, help="Position X Y (default: first free cell)")
@click.pass_context
def node_add_frame(ctx: click.Context, selector: str, title: str, at: tuple[float, float] | None) -> None:
    """Add a grouping frame."""
    from .commands.node_cmd import run_node_add_frame

    sys.exit(run_node_add_frame(ctx.obj["vault"], selector, title, _parse_at(at)))


@node.command("remove")
@click.argument("selector")
@click.argument("node_id")
@click.pass_context
def node_remove(ctx: click.Context, selector: str, node_id: str) -> None:
    """Remove a node and its edges."""
    from .commands.node_cmd import run_node_remove

    sys.exit(run_node_remove(ctx.obj["vault"], selector, node_id))


@node.command("connect")
@click.argument("selector")
@click.argument("source")
@click.argument("target")
@click.option("--label", default=None, help="Edge label")
@click.pass_context
def node_connect(ctx: click.Context, selector: str, source: str, target: str, label: str | None) -> None:
    """Draw an edge from SOURCE to TARGET."""
    from .commands.node_cmd import run_node_connect

    sys.exit(run_node_connect(ctx.obj["vault"], selector, source, target, label))


# -----------------------------------------------------------------------------
# Watch
# -----------------------------------------------------------------------------


@cli.command()
@click.argument("selectors", nargs=-1)
@click.pass_context
def watch(ctx: click.Context, selectors: tuple[str, ...]) -> None:
    """Rebuild folder views as the vault changes.

    Runs until interrupted (Ctrl+C). Stored folder views are rebuilt when
    affected; SELECTORS are rebuilt even if never opened before.

    Examples:

        vaultcanvas watch

        vaultcanvas watch folder: folder:Projects
    """
    from .commands.watch_cmd import run_watch

    sys.exit(run_watch(ctx.obj["vault"], selectors))


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
