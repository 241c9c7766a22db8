"""View synchronization: merge live vault entities into a stored layout.

`build()` is a pure function. Given what the vault currently says a view
should contain and the document the user last saw, it produces a merged
document that:

- keeps every position and parent the user arranged,
- refreshes the data of derived nodes (note, file, folder) from the vault,
- removes derived nodes whose entity is gone, but never user-authored ones
  (text, link, frame),
- places new entities where they overlap nothing,
- migrates auto-generated folder frames from the old layout scheme.

It also reports whether the result differs from the loaded document, so the
caller writes only when something actually changed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from ..ids import basename, is_legacy_frame_id
from ..models import DirectorySummary, Edge, Entity, Node, Position, Selector, ViewDocument
from .layout import place_nodes

logger = logging.getLogger(__name__)


@dataclass
class BuildResult:
    document: ViewDocument
    changed: bool


def note_data(entity: Entity) -> dict[str, Any]:
    return {"noteId": entity.path, "title": entity.title or basename(entity.path), "content": entity.excerpt}


def file_data(entity: Entity) -> dict[str, Any]:
    return {"path": entity.path, "title": entity.title or basename(entity.path)}


def folder_data(entity: Entity, summary: DirectorySummary | None) -> dict[str, Any]:
    return {
        "dir": entity.path,
        "name": entity.title or basename(entity.path),
        "total_files": summary.total_files_recursive if summary else 0,
        "total_markdown": summary.total_markdown_recursive if summary else 0,
        "recent_markdown": [r.to_dict() for r in summary.recent_markdown] if summary else [],
        "preview_truncated": summary.truncated if summary else False,
    }


def node_data_for(entity: Entity, summaries: Mapping[str, DirectorySummary]) -> dict[str, Any]:
    if entity.kind == "folder":
        return folder_data(entity, summaries.get(entity.path))
    if entity.kind == "note":
        return note_data(entity)
    if entity.kind == "file":
        return file_data(entity)
    raise ValueError(f"Unknown entity kind: {entity.kind!r}")


def _index_summaries(
    summaries: Iterable[DirectorySummary] | Mapping[str, DirectorySummary] | None,
) -> dict[str, DirectorySummary]:
    if summaries is None:
        return {}
    if isinstance(summaries, Mapping):
        return dict(summaries)
    return {s.dir_path: s for s in summaries}


def migrate_legacy_frames(nodes: list[Node]) -> list[Node]:
    """Flatten children out of legacy folder frames and drop the frames.

    A child of a legacy frame gets the absolute position frame + child and
    loses its parent. A child whose parent id looks like a legacy frame that
    no longer exists is left as it is.
    """
    frames = {n.id: n for n in nodes if n.is_legacy_frame}
    ids = {n.id for n in nodes}

    out = []
    for node in nodes:
        if node.id in frames:
            continue
        parent_id = node.parent_id
        if parent_id is None:
            out.append(node)
            continue
        if parent_id not in frames:
            if is_legacy_frame_id(parent_id) and parent_id not in ids:
                logger.warning("Node %s references missing frame %s; leaving it in place", node.id, parent_id)
            out.append(node)
            continue

        migrated = node.copy()
        pos = Position(node.position.x, node.position.y)
        seen = set()
        # Legacy frames could nest; accumulate up to the first non-legacy parent
        while parent_id in frames and parent_id not in seen:
            seen.add(parent_id)
            frame = frames[parent_id]
            pos = pos.offset(frame.position)
            parent_id = frame.parent_id
        migrated.position = pos
        migrated.parent_id = parent_id
        migrated.extent = None
        out.append(migrated)

    if frames:
        logger.info("Migrated %d legacy frame(s)", len(frames))
    return out


def _should_remove(node: Node, selector: Selector) -> bool:
    # Canvas documents own every node they contain
    if selector.kind == "canvas":
        return False
    return node.is_derived


def _same_position(a: Position, b: Position) -> bool:
    return a.x == b.x and a.y == b.y


def has_document_changed(loaded: ViewDocument | None, nodes: list[Node], edges: list[Edge]) -> bool:
    """Whether the merged nodes/edges differ from the loaded document."""
    if loaded is None:
        return True
    if len(loaded.nodes) != len(nodes) or len(loaded.edges) != len(edges):
        return True

    prev_nodes = {n.id: n for n in loaded.nodes}
    if set(prev_nodes) != {n.id for n in nodes}:
        return True
    for node in nodes:
        prev = prev_nodes[node.id]
        if prev.type != node.type or prev.parent_id != node.parent_id:
            return True
        if not _same_position(prev.position, node.position):
            return True
        if prev.data != node.data:
            return True

    prev_edges = {e.id: e for e in loaded.edges}
    if set(prev_edges) != {e.id for e in edges}:
        return True
    for edge in edges:
        prev = prev_edges[edge.id]
        if prev.source != edge.source or prev.target != edge.target:
            return True
    return False


def build(
    selector: Selector,
    desired: Iterable[Entity],
    summaries: Iterable[DirectorySummary] | Mapping[str, DirectorySummary] | None = None,
    loaded: ViewDocument | None = None,
    options: dict[str, Any] | None = None,
) -> BuildResult:
    """Merge `desired` entities into `loaded` for `selector`.

    Args:
        selector: The view being built
        desired: Entities that should currently be on the view
        summaries: Folder summaries keyed by (or carrying) the subfolder path
        loaded: Previously stored document, if any
        options: View options to record; defaults to the loaded document's

    Returns:
        BuildResult with the merged document and the changed flag. Title and
        `updated` are carried over; the caller stamps them on save.
    """
    summary_by_path = _index_summaries(summaries)
    prev_nodes = migrate_legacy_frames([n.copy() for n in loaded.nodes]) if loaded else []

    desired_by_id: dict[str, Entity] = {}
    if selector.kind != "canvas":
        for entity in desired:
            desired_by_id.setdefault(entity.node_id, entity)

    next_nodes: list[Node] = []
    seen: set[str] = set()
    refreshed = removed = 0
    for node in prev_nodes:
        if node.id in seen:
            continue
        entity = desired_by_id.get(node.id)
        if entity is not None:
            node.type = entity.kind
            node.data = node_data_for(entity, summary_by_path)
            refreshed += 1
        elif _should_remove(node, selector):
            removed += 1
            continue
        next_nodes.append(node)
        seen.add(node.id)

    new_nodes = [
        Node(id=node_id, type=entity.kind, data=node_data_for(entity, summary_by_path))
        for node_id, entity in desired_by_id.items()
        if node_id not in seen
    ]
    if new_nodes:
        place_nodes(new_nodes, next_nodes)
        next_nodes.extend(new_nodes)

    surviving = {n.id for n in next_nodes}
    prev_edges = list(loaded.edges) if loaded else []
    next_edges = [e for e in prev_edges if e.source in surviving and e.target in surviving]

    document = ViewDocument(
        id=selector.view_id,
        title=loaded.title if loaded else selector.default_title,
        selector=selector,
        nodes=next_nodes,
        edges=[Edge.from_dict(e.to_dict()) for e in next_edges],
        options=dict(options if options is not None else (loaded.options if loaded else {})),
        updated=loaded.updated if loaded else None,
    )
    changed = has_document_changed(loaded, next_nodes, document.edges)

    logger.debug(
        "Built %s: %d refreshed, %d added, %d removed, changed=%s",
        selector.view_id,
        refreshed,
        len(new_nodes),
        removed,
        changed,
    )
    return BuildResult(document=document, changed=changed)
