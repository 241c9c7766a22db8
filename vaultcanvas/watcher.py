"""
File system watcher that keeps folder views in sync with the vault.

This module provides:
- Watchdog-based file monitoring
- Debounced collection of changed paths
- Mapping of changed paths to the folder views they affect
- A blocking loop that rebuilds affected views
"""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Callable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .models import Selector
from .vault.paths import is_hidden_rel_path
from .views.loader import ViewLoader, ViewOutcome

logger = logging.getLogger(__name__)


def affected_folders(rel_path: str) -> set[Selector]:
    """Folder views whose content depends on `rel_path`.

    The containing directory lists the entry itself; every further ancestor
    shows a folder node with recursive counts that include it.
    """
    parts = [p for p in rel_path.split("/") if p]
    return {Selector.folder("/".join(parts[:i])) for i in range(len(parts))}


class VaultChangeHandler(FileSystemEventHandler):
    """
    Collects changed vault paths and reports affected folder views.

    Key behaviors:
    - Ignores hidden paths (which includes the state directory)
    - Debounces bursts of events (editor save cycles, bulk copies)
    - Treats moves as a change at both the old and the new location
    """

    DEBOUNCE_SECONDS = 1.0

    def __init__(self, vault_path: Path):
        super().__init__()
        self.vault_path = vault_path.resolve()
        self.pending: dict[str, float] = {}  # rel path -> last event time

    def _relative(self, path: str | bytes) -> str | None:
        if isinstance(path, bytes):
            path = path.decode("utf-8", errors="replace")
        try:
            rel = Path(path).resolve().relative_to(self.vault_path).as_posix()
        except ValueError:
            return None
        if rel in ("", ".") or is_hidden_rel_path(rel):
            return None
        return rel

    def _touch(self, path: str | bytes) -> None:
        rel = self._relative(path)
        if rel is not None:
            self.pending[rel] = time.time()

    def on_created(self, event: FileSystemEvent) -> None:
        self._touch(event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._touch(event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        # Directory mtime changes are already covered by their entries' events
        if not event.is_directory:
            self._touch(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._touch(event.src_path)
        self._touch(event.dest_path)

    def flush_pending(self, now: float | None = None) -> set[Selector]:
        """Pop paths that have been quiet for the debounce window."""
        now = time.time() if now is None else now
        affected: set[Selector] = set()
        # The observer thread keeps inserting while we flush
        for rel, ts in list(self.pending.items()):
            if now - ts >= self.DEBOUNCE_SECONDS:
                self.pending.pop(rel, None)
                affected |= affected_folders(rel)
        return affected


def watch_vault(vault_path: Path) -> tuple[Observer, VaultChangeHandler]:
    """
    Start watching a vault.

    Returns:
        Tuple of (observer, handler) - caller should call observer.stop() to stop watching
    """
    handler = VaultChangeHandler(vault_path)
    observer = Observer()
    observer.schedule(handler, str(vault_path), recursive=True)
    observer.start()
    return observer, handler


def rebuild_targets(loader: ViewLoader, affected: set[Selector], pinned: set[Selector]) -> list[Selector]:
    """Affected views worth rebuilding: ones already stored, or pinned by the caller."""
    stored = set(loader.store.stored_selectors("folder"))
    return sorted((affected & (stored | pinned)), key=lambda s: s.value)


def run_watch_loop(
    loader: ViewLoader,
    vault_path: Path,
    pinned: set[Selector] | None = None,
    on_rebuild: Callable[[ViewOutcome], None] | None = None,
    poll_seconds: float = 0.5,
) -> None:
    """
    Run the watch loop until interrupted.

    This is a blocking function that flushes pending changes periodically and
    rebuilds the affected folder views.
    """
    pinned = pinned or set()
    observer, handler = watch_vault(vault_path)

    try:
        while True:
            time.sleep(poll_seconds)
            affected = handler.flush_pending()
            if not affected:
                continue
            targets = rebuild_targets(loader, affected, pinned)
            if not targets:
                continue
            logger.debug("Rebuilding %d view(s)", len(targets))
            for outcome in asyncio.run(loader.open_many(targets)):
                if on_rebuild:
                    on_rebuild(outcome)
    except KeyboardInterrupt:
        observer.stop()

    observer.join()
