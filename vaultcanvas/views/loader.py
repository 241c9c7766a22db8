"""Load, rebuild and edit views.

The loader ties the entity source, the engine and the document store
together. Builds are asynchronous and may overlap (rapid folder switching),
so every build captures a per-selector sequence token when it starts and only
commits if that token is still the latest one when it finishes. User edits
write straight to the store and also advance the token, which makes any build
that started before the edit discard its result instead of clobbering it.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from ..config import load_config
from ..errors import FetchFailure, NodeNotFoundError, SelectorError, StoreWriteError, VaultCanvasError
from ..ids import new_node_id
from ..models import DirectorySummary, Edge, Entity, Node, Position, Selector, ViewDocument
from ..vault.source import VaultSource
from .engine import build
from .layout import absolute_position, place_nodes
from .store import DocumentStore, utc_now

logger = logging.getLogger(__name__)


@dataclass
class ViewOutcome:
    """Result of opening a view."""

    selector: Selector
    document: ViewDocument | None
    changed: bool = False
    saved: bool = False
    stale: bool = False  # superseded by a newer build or an edit; nothing committed
    error: VaultCanvasError | None = None


class ViewLoader:
    """Opens views and applies user edits for one vault."""

    def __init__(self, source: VaultSource, store: DocumentStore):
        self.source = source
        self.store = store
        self._latest: dict[Selector, int] = {}
        self._documents: dict[Selector, ViewDocument] = {}  # last good document per view
        self._unsaved: set[Selector] = set()  # session documents the store is behind on

    @classmethod
    def for_vault(cls, vault_path: Path) -> "ViewLoader":
        """Loader wired to a vault's config, filesystem and state directory."""
        config = load_config(vault_path)
        return cls(VaultSource(vault_path, config), DocumentStore(config.state_path(vault_path)))

    # -- sequence tokens ---------------------------------------------------

    def issue(self, selector: Selector) -> int:
        token = self._latest.get(selector, 0) + 1
        self._latest[selector] = token
        return token

    def is_current(self, selector: Selector, token: int) -> bool:
        return self._latest.get(selector) == token

    # -- building ----------------------------------------------------------

    def current_document(self, selector: Selector) -> ViewDocument | None:
        """The session's document for a view, else the stored one."""
        doc = self._documents.get(selector)
        if doc is None:
            doc = self.store.load(selector)
        return doc

    async def fetch(self, selector: Selector) -> tuple[list[Entity], list[DirectorySummary] | None]:
        """Entities and folder summaries for a view, scanned off the event loop.

        Raises:
            FetchFailure: the source could not answer
        """
        try:
            entities = await asyncio.to_thread(self.source.entities_for, selector)
            summaries = await asyncio.to_thread(self.source.summaries_for, selector)
        except OSError as e:
            raise FetchFailure(str(e), selector=selector.view_id) from e
        return entities, summaries

    async def open(self, selector: Selector) -> ViewOutcome:
        """Rebuild a view against the vault and persist it if it changed.

        A failed fetch never reaches the engine: the last good document is
        returned with the error attached. A failed save leaves the merged
        document as the session's copy and attaches the error.
        """
        token = self.issue(selector)
        # The session copy wins over the store: it may hold edits whose save failed
        loaded = self._documents.get(selector)
        if loaded is None:
            loaded = await asyncio.to_thread(self.store.load, selector)
        if selector.kind == "canvas" and loaded is None:
            raise SelectorError(f"No canvas with id {selector.value!r}")

        try:
            entities, summaries = await self.fetch(selector)
        except FetchFailure as e:
            if not self.is_current(selector, token):
                return ViewOutcome(selector=selector, document=None, stale=True)
            logger.warning("Keeping last good %s: %s", selector.view_id, e)
            return ViewOutcome(selector=selector, document=loaded, error=e)

        result = build(selector, entities, summaries, loaded)
        if not self.is_current(selector, token):
            logger.debug("Discarding superseded build of %s", selector.view_id)
            return ViewOutcome(selector=selector, document=None, stale=True)

        doc = result.document
        saved = False
        error = None
        if result.changed or selector in self._unsaved:
            doc.title = loaded.title if loaded else selector.default_title
            doc.updated = utc_now()
            try:
                self.store.save(doc)
                saved = True
                self._unsaved.discard(selector)
            except StoreWriteError as e:
                logger.error("Could not save %s: %s", selector.view_id, e)
                self._unsaved.add(selector)
                error = e

        self._documents[selector] = doc
        return ViewOutcome(selector=selector, document=doc, changed=result.changed, saved=saved, error=error)

    async def open_many(self, selectors: list[Selector]) -> list[ViewOutcome]:
        return list(await asyncio.gather(*(self.open(s) for s in selectors)))

    # -- user edits --------------------------------------------------------

    def _edit(self, selector: Selector, mutate: Callable[[ViewDocument], None]) -> ViewDocument:
        """Apply an edit and write it through, bypassing re-derivation.

        The edited document becomes the session copy before it is saved, so a
        StoreWriteError does not lose the edit for the current session.
        """
        current = self.current_document(selector)
        if current is None and selector.kind == "canvas":
            raise SelectorError(f"No canvas with id {selector.value!r}")
        self.issue(selector)
        doc = current.copy() if current else ViewDocument.empty(selector)
        mutate(doc)
        doc.updated = utc_now()
        self._documents[selector] = doc
        try:
            self.store.save(doc)
        except StoreWriteError:
            self._unsaved.add(selector)
            raise
        self._unsaved.discard(selector)
        return doc

    @staticmethod
    def _require(doc: ViewDocument, node_id: str) -> Node:
        node = doc.node(node_id)
        if node is None:
            raise NodeNotFoundError(f"No node {node_id!r} in {doc.id}")
        return node

    def move_node(self, selector: Selector, node_id: str, x: float, y: float) -> ViewDocument:
        def mutate(doc: ViewDocument) -> None:
            self._require(doc, node_id).position = Position(x, y)

        return self._edit(selector, mutate)

    def _add_node(self, selector: Selector, node: Node, at: tuple[float, float] | None) -> ViewDocument:
        def mutate(doc: ViewDocument) -> None:
            if at is None:
                place_nodes([node], doc.nodes)
            else:
                node.position = Position(*at)
            doc.nodes.append(node)

        return self._edit(selector, mutate)

    def add_text(self, selector: Selector, text: str, at: tuple[float, float] | None = None) -> ViewDocument:
        node = Node(id=new_node_id("text"), type="text", data={"text": text})
        return self._add_node(selector, node, at)

    def add_link(
        self,
        selector: Selector,
        url: str,
        title: str | None = None,
        at: tuple[float, float] | None = None,
    ) -> ViewDocument:
        node = Node(id=new_node_id("link"), type="link", data={"url": url, "title": title or url})
        return self._add_node(selector, node, at)

    def add_frame(
        self,
        selector: Selector,
        title: str,
        at: tuple[float, float] | None = None,
        size: tuple[float, float] = (600, 400),
    ) -> ViewDocument:
        node = Node(
            id=new_node_id("frame"),
            type="frame",
            data={"title": title},
            style={"width": size[0], "height": size[1]},
        )
        return self._add_node(selector, node, at)

    def remove_node(self, selector: Selector, node_id: str) -> ViewDocument:
        """Remove a node and its edges; its children keep their absolute place.

        Derived nodes removed here come back on the next rebuild while their
        entity still exists.
        """

        def mutate(doc: ViewDocument) -> None:
            self._require(doc, node_id)
            by_id = {n.id: n for n in doc.nodes}
            children = [n for n in doc.nodes if n.parent_id == node_id]
            absolute = {n.id: absolute_position(n, by_id) for n in children}
            for child in children:
                child.position = absolute[child.id]
                child.parent_id = None
            doc.nodes = [n for n in doc.nodes if n.id != node_id]
            doc.edges = [e for e in doc.edges if node_id not in (e.source, e.target)]

        return self._edit(selector, mutate)

    def connect(self, selector: Selector, source: str, target: str, label: str | None = None) -> ViewDocument:
        def mutate(doc: ViewDocument) -> None:
            self._require(doc, source)
            self._require(doc, target)
            doc.edges.append(Edge(id=new_node_id("edge"), source=source, target=target, label=label))

        return self._edit(selector, mutate)
