"""
Document store for view documents.

One JSON document per selector, stored under the vault's state directory:

    .vaultcanvas/views/<kind>/<sha256(view_id)>.json

Hashing the view id keeps arbitrary search queries and tags out of file
names. Writes replace the whole document atomically (temp file, then rename);
the store does no merging of its own, so concurrent writers are
last-writer-wins per selector.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from ..errors import SelectorError, StoreWriteError
from ..models import DOCUMENT_VERSION, Selector, ViewDocument

logger = logging.getLogger(__name__)


@dataclass
class CanvasMeta:
    """Library entry for a user canvas."""

    id: str
    title: str
    updated: str | None

    def to_dict(self) -> dict:
        return {"id": self.id, "title": self.title, "updated": self.updated}


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class DocumentStore:
    """Load and save view documents keyed by selector."""

    def __init__(self, state_dir: Path):
        """
        Initialize the store.

        Args:
            state_dir: Path to the vault's .vaultcanvas directory
        """
        self.state_dir = state_dir
        self.views_dir = state_dir / "views"

    @staticmethod
    def key_for(selector: Selector) -> str:
        return hashlib.sha256(selector.view_id.encode("utf-8")).hexdigest()

    def path_for(self, selector: Selector) -> Path:
        return self.views_dir / selector.kind / f"{self.key_for(selector)}.json"

    def exists(self, selector: Selector) -> bool:
        return self.path_for(selector).is_file()

    def _read(self, path: Path) -> ViewDocument | None:
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("Could not read view document %s: %s", path, e)
            return None

        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError("not a JSON object")
            if data.get("version") != DOCUMENT_VERSION:
                raise ValueError(f"unsupported version {data.get('version')!r}")
            return ViewDocument.from_dict(data)
        except (ValueError, KeyError, TypeError, AttributeError, SelectorError) as e:
            logger.warning("Ignoring unreadable view document %s: %s", path, e)
            return None

    def load(self, selector: Selector) -> ViewDocument | None:
        """Load the document for `selector`; None when missing or unreadable."""
        doc = self._read(self.path_for(selector))
        if doc is not None and doc.selector != selector:
            # sha256 collision or hand-edited file
            logger.warning("Stored document %s belongs to %s", self.path_for(selector), doc.selector)
            return None
        return doc

    def save(self, document: ViewDocument) -> Path:
        """Write the whole document atomically.

        Raises:
            StoreWriteError: the document could not be written
        """
        path = self.path_for(document.selector)
        serialized = json.dumps(document.to_dict(), indent=2, ensure_ascii=False)

        temp_path = path.parent / f".{path.name}.{uuid.uuid4().hex[:8]}.tmp"
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            temp_path.write_text(serialized + "\n", encoding="utf-8")
            os.replace(temp_path, path)
        except OSError as e:
            if temp_path.exists():
                temp_path.unlink()
            raise StoreWriteError(f"Could not save {document.id}: {e}", path=path) from e

        logger.debug("Saved %s to %s", document.id, path)
        return path

    def delete(self, selector: Selector) -> bool:
        path = self.path_for(selector)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StoreWriteError(f"Could not delete {selector.view_id}: {e}", path=path) from e
        return True

    def iter_documents(self, kind: str):
        """Yield every readable stored document of one selector kind."""
        kind_dir = self.views_dir / kind
        if not kind_dir.is_dir():
            return
        for path in sorted(kind_dir.glob("*.json")):
            doc = self._read(path)
            if doc is not None and doc.selector.kind == kind:
                yield doc

    def stored_selectors(self, kind: str) -> list[Selector]:
        return [doc.selector for doc in self.iter_documents(kind)]

    def create_canvas(self, title: str) -> ViewDocument:
        """Create and save an empty user canvas."""
        selector = Selector.canvas(uuid.uuid4().hex[:12])
        doc = ViewDocument.empty(selector, title=title.strip() or "Untitled canvas")
        doc.options = {"source": "manual"}
        doc.updated = utc_now()
        self.save(doc)
        return doc

    def list_canvases(self) -> list[CanvasMeta]:
        """All user canvases, most recently updated first."""
        items = [
            CanvasMeta(id=doc.selector.value, title=doc.title, updated=doc.updated)
            for doc in self.iter_documents("canvas")
        ]
        items.sort(key=lambda c: c.updated or "", reverse=True)
        return items
