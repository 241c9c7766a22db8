"""Filesystem-backed entity source.

Answers "what should this view show right now?" for each selector kind. The
engine never talks to the filesystem itself; it only sees the Entity lists
produced here.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path

from ..config import VaultConfig
from ..errors import FetchFailure
from ..ids import is_markdown_path, title_for_file, to_slash
from ..models import DirectorySummary, Entity, Selector
from .paths import deny_hidden_rel_path, is_hidden_rel_path, join_under, rel_posix, should_hide
from .preview import parse_note_preview, split_frontmatter
from .summary import summarize

logger = logging.getLogger(__name__)

# #tag or #nested/tag, not a markdown heading ("# Title") and not a URL fragment
INLINE_TAG_PATTERN = re.compile(r"(?<![\w#/&])#([A-Za-z0-9_][\w\-/]*)")

TITLE_WEIGHT = 3
MAX_HITS_PER_TERM = 10


@dataclass
class NoteRecord:
    """A markdown note read from disk."""

    path: str
    title: str
    excerpt: str
    body: str
    tags: set[str]

    def to_entity(self) -> Entity:
        return Entity(kind="note", path=self.path, title=self.title, excerpt=self.excerpt)


def normalize_tag(tag: str) -> str:
    tag = tag.strip().lower()
    if tag and not tag.startswith("#"):
        tag = f"#{tag}"
    return tag


def extract_tags(metadata: dict, body: str) -> set[str]:
    """Tags from frontmatter `tags`/`tag` (list or string) plus inline #tags."""
    tags: set[str] = set()
    for key in ("tags", "tag"):
        raw = metadata.get(key)
        if isinstance(raw, str):
            raw = re.split(r"[,\s]+", raw)
        if isinstance(raw, list):
            tags.update(normalize_tag(str(t)) for t in raw if str(t).strip())
    tags.update(normalize_tag(m) for m in INLINE_TAG_PATTERN.findall(body))
    tags.discard("")
    return tags


def tag_matches(note_tags: set[str], wanted: str) -> bool:
    """Exact match, or a nested tag under `wanted` (#a/b matches #a)."""
    wanted = normalize_tag(wanted)
    return any(t == wanted or t.startswith(wanted + "/") for t in note_tags)


def score_note(note: NoteRecord, terms: list[str]) -> int:
    """Relevance of a note for lowercase query terms; 0 if any term is missing."""
    title = note.title.lower()
    body = note.body.lower()
    path = note.path.lower()
    score = 0
    for term in terms:
        in_title = title.count(term)
        in_body = body.count(term)
        if not (in_title or in_body or term in path):
            return 0
        score += min(in_title, MAX_HITS_PER_TERM) * TITLE_WEIGHT
        score += min(in_body, MAX_HITS_PER_TERM)
        score += 1 if term in path else 0
    return score


class VaultSource:
    """Entity source over a vault directory."""

    def __init__(self, root: Path, config: VaultConfig | None = None):
        self.root = root
        self.config = config or VaultConfig()

    def read_note(self, rel_path: str) -> NoteRecord:
        """Read a note; unreadable files still yield a title-only record."""
        path = join_under(self.root, rel_path)
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.warning("Could not read %s: %s", rel_path, e)
            return NoteRecord(path=rel_path, title=title_for_file(rel_path), excerpt="", body="", tags=set())

        metadata, body = split_frontmatter(text)
        title, excerpt = parse_note_preview(rel_path, text)
        return NoteRecord(
            path=rel_path,
            title=title,
            excerpt=excerpt,
            body=body,
            tags=extract_tags(metadata, body),
        )

    def iter_notes(self):
        """Yield every visible markdown note in the vault."""
        # rglob patterns are case-sensitive; NOTE.MD is a note too
        for md_file in sorted(self.root.rglob("*")):
            if not is_markdown_path(md_file.name):
                continue
            rel = rel_posix(md_file, self.root)
            if is_hidden_rel_path(rel) or not md_file.is_file():
                continue
            yield self.read_note(rel)

    def folder_entities(self, dir: str = "", limit: int | None = None) -> list[Entity]:
        """Subfolders and files directly inside `dir`.

        Subfolders come first, then files, each sorted case-insensitively.
        Files inside subfolders are deliberately not listed: they are only
        reachable through the subfolder's own view.

        Raises:
            FetchFailure: the directory is missing or cannot be listed
        """
        dir = to_slash(dir)
        deny_hidden_rel_path(dir)
        limit = limit or self.config.folder_limit
        abs_dir = join_under(self.root, dir)

        try:
            with os.scandir(abs_dir) as it:
                entries = [e for e in it if not should_hide(e.name)]
        except OSError as e:
            raise FetchFailure(f"Could not list {dir or '.'}: {e}", selector=f"folder:{dir}") from e

        folders: list[Entity] = []
        files: list[str] = []
        for entry in entries:
            rel = f"{dir}/{entry.name}" if dir else entry.name
            try:
                if entry.is_dir(follow_symlinks=False):
                    folders.append(Entity(kind="folder", path=rel, title=entry.name))
                elif entry.is_file(follow_symlinks=False):
                    files.append(rel)
            except OSError:
                continue

        folders.sort(key=lambda f: f.path.lower())
        files.sort(key=str.lower)
        if len(files) > limit:
            logger.info("Folder %s has %d files; showing the first %d", dir or ".", len(files), limit)
            files = files[:limit]

        out = list(folders)
        for rel in files:
            if is_markdown_path(rel):
                out.append(self.read_note(rel).to_entity())
            else:
                out.append(Entity(kind="file", path=rel, title=Path(rel).name))
        return out

    def search(self, query: str, limit: int | None = None) -> list[Entity]:
        """Notes containing every term of `query`, best match first."""
        limit = limit or self.config.search_limit
        terms = [t for t in query.lower().split() if t]
        if not terms:
            return []
        try:
            scored = [(score_note(note, terms), note) for note in self.iter_notes()]
        except OSError as e:
            raise FetchFailure(f"Search failed: {e}", selector=f"search:{query}") from e
        hits = [(s, n) for s, n in scored if s > 0]
        hits.sort(key=lambda pair: (-pair[0], pair[1].path.lower()))
        return [note.to_entity() for _, note in hits[:limit]]

    def tag_notes(self, tag: str, limit: int | None = None) -> list[Entity]:
        """Notes carrying `tag`, sorted by path."""
        limit = limit or self.config.tag_limit
        if not normalize_tag(tag).lstrip("#"):
            return []
        try:
            notes = [note for note in self.iter_notes() if tag_matches(note.tags, tag)]
        except OSError as e:
            raise FetchFailure(f"Tag lookup failed: {e}", selector=f"tag:{tag}") from e
        notes.sort(key=lambda n: n.path.lower())
        return [note.to_entity() for note in notes[:limit]]

    def entities_for(self, selector: Selector) -> list[Entity]:
        if selector.kind == "folder":
            return self.folder_entities(selector.value)
        if selector.kind == "search":
            return self.search(selector.value)
        if selector.kind == "tag":
            return self.tag_notes(selector.value)
        # Canvas documents are entirely user-authored
        return []

    def summaries_for(self, selector: Selector) -> list[DirectorySummary] | None:
        if selector.kind != "folder":
            return None
        return summarize(
            self.root,
            selector.value,
            preview_limit=self.config.preview_limit,
            max_scan_files=self.config.max_scan_files,
        )
