"""Bounded recursive summaries of a directory's subfolders.

For every immediate subfolder we count files and markdown notes across the
whole subtree and keep the few most recently modified notes. The walk keeps a
fixed-size min-heap instead of the full file list, and stops at a safety cap
so pathological trees (huge archives, link farms) cannot stall a view build.
"""

from __future__ import annotations

import heapq
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from ..errors import FetchFailure
from ..ids import is_markdown_path, to_slash
from ..models import DirectorySummary, RecentMarkdown
from .paths import deny_hidden_rel_path, join_under, should_hide

logger = logging.getLogger(__name__)

MAX_PREVIEW_LIMIT = 20
MAX_RECENT_ENTRIES = 50
MAX_SCAN_FILES = 200_000


@dataclass
class RecentEntry:
    """A file directly inside a directory, for "recently modified" lists."""

    path: str
    name: str
    is_markdown: bool
    mtime: int

    def to_dict(self) -> dict:
        return {"path": self.path, "name": self.name, "is_markdown": self.is_markdown, "mtime": self.mtime}


def _mtime_ms(entry: os.DirEntry) -> int:
    try:
        return int(entry.stat(follow_symlinks=False).st_mtime * 1000)
    except OSError:
        return 0


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def _list_dir(root: Path, rel_dir: str) -> list[os.DirEntry]:
    """Visible entries of a directory sorted by name. Raises OSError."""
    abs_dir = join_under(root, rel_dir)
    with os.scandir(abs_dir) as it:
        entries = [e for e in it if not should_hide(e.name)]
    entries.sort(key=lambda e: e.name)
    return entries


def summarize_subtree(
    root: Path,
    rel_dir: str,
    preview_limit: int = 5,
    max_scan_files: int = MAX_SCAN_FILES,
) -> DirectorySummary:
    """Summarize a single directory subtree (the folder itself included)."""
    limit = _clamp(preview_limit, 1, MAX_PREVIEW_LIMIT)
    rel_dir = to_slash(rel_dir)
    summary = DirectorySummary(dir_path=rel_dir, name=rel_dir.rsplit("/", 1)[-1])

    # (mtime, path, name); heap[0] is the oldest of the kept notes
    heap: list[tuple[int, str, str]] = []
    stack = [rel_dir]

    while stack:
        current = stack.pop()
        try:
            entries = _list_dir(root, current)
        except OSError as e:
            logger.debug("Skipping unreadable directory %s: %s", current, e)
            continue

        for entry in entries:
            child_rel = f"{current}/{entry.name}" if current else entry.name
            try:
                if entry.is_dir(follow_symlinks=False):
                    stack.append(child_rel)
                    continue
                if not entry.is_file(follow_symlinks=False):
                    continue
            except OSError:
                continue

            if summary.total_files_recursive >= max_scan_files:
                summary.truncated = True
                break

            summary.total_files_recursive += 1
            if not is_markdown_path(entry.name):
                continue

            summary.total_markdown_recursive += 1
            item = (_mtime_ms(entry), child_rel, entry.name)
            if len(heap) < limit:
                heapq.heappush(heap, item)
            elif item > heap[0]:
                heapq.heapreplace(heap, item)

        if summary.truncated:
            logger.info(
                "Summary of %s stopped after %d files", rel_dir or ".", summary.total_files_recursive
            )
            break

    recent = [RecentMarkdown(path=p, name=n, mtime=m) for m, p, n in heap]
    recent.sort(key=lambda r: (-r.mtime, r.path.lower()))
    summary.recent_markdown = recent
    return summary


def summarize(
    root: Path,
    dir: str = "",
    preview_limit: int = 5,
    max_scan_files: int = MAX_SCAN_FILES,
) -> list[DirectorySummary]:
    """Summarize every immediate, visible subfolder of `dir`.

    Args:
        root: Vault root
        dir: Vault-relative directory ("" for the root)
        preview_limit: Recent notes to keep per subfolder (clamped to 1..20)
        max_scan_files: Files visited per subfolder before giving up

    Returns:
        One DirectorySummary per subfolder, sorted by name (case-insensitive).
        A missing directory yields an empty list.

    Raises:
        HiddenPathError / VaultPathError: `dir` is hidden or escapes the vault
        FetchFailure: `dir` exists but cannot be listed
    """
    dir = to_slash(dir)
    deny_hidden_rel_path(dir)
    abs_dir = join_under(root, dir)
    if not abs_dir.is_dir():
        return []

    try:
        entries = _list_dir(root, dir)
    except OSError as e:
        raise FetchFailure(f"Could not list {dir or '.'}: {e}", selector=f"folder:{dir}") from e

    out = []
    for entry in entries:
        try:
            if not entry.is_dir(follow_symlinks=False):
                continue
        except OSError:
            continue
        child_rel = f"{dir}/{entry.name}" if dir else entry.name
        out.append(summarize_subtree(root, child_rel, preview_limit, max_scan_files))

    out.sort(key=lambda s: s.name.lower())
    return out


def recent_entries(root: Path, dir: str = "", limit: int = 5) -> list[RecentEntry]:
    """Most recently modified files directly inside `dir` (limit clamped to 1..50)."""
    dir = to_slash(dir)
    deny_hidden_rel_path(dir)
    limit = _clamp(limit, 1, MAX_RECENT_ENTRIES)
    if not join_under(root, dir).is_dir():
        return []

    try:
        entries = _list_dir(root, dir)
    except OSError as e:
        raise FetchFailure(f"Could not list {dir or '.'}: {e}", selector=f"folder:{dir}") from e

    heap: list[tuple[int, str, str]] = []
    for entry in entries:
        try:
            if not entry.is_file(follow_symlinks=False):
                continue
        except OSError:
            continue
        rel = f"{dir}/{entry.name}" if dir else entry.name
        item = (_mtime_ms(entry), rel, entry.name)
        if len(heap) < limit:
            heapq.heappush(heap, item)
        elif item > heap[0]:
            heapq.heapreplace(heap, item)

    out = [RecentEntry(path=p, name=n, is_markdown=is_markdown_path(n), mtime=m) for m, p, n in heap]
    out.sort(key=lambda e: (-e.mtime, e.path.lower()))
    return out
