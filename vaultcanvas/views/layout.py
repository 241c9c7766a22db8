"""Node size estimates and placement of newly inserted nodes."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

from ..models import Node, Position

GRID_SIZE = 24
GRID_GAP = GRID_SIZE * 4

# Placement cells are big enough for any derived node plus a gap
CELL_WIDTH = GRID_SIZE * 13
CELL_HEIGHT = GRID_SIZE * 12

MIN_COLUMNS = 2
MAX_COLUMNS = 8

FOLDER_NODE_WIDTH = 280
FOLDER_NODE_HEIGHT = 220

_FIXED_SIZES = {
    "file": (220, 200),
    "folder": (FOLDER_NODE_WIDTH, FOLDER_NODE_HEIGHT),
    "link": (260, 200),
    "text": (190, 110),
    "frame": (300, 220),
}
_DEFAULT_SIZE = (220, 160)


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    w: float
    h: float

    def overlaps(self, other: "Rect") -> bool:
        return (
            self.x < other.x + other.w
            and other.x < self.x + self.w
            and self.y < other.y + other.h
            and other.y < self.y + self.h
        )


def snap_to_grid(value: float, grid: int = GRID_SIZE) -> int:
    return int(round(value / grid)) * grid


def snap_point(point: Position, grid: int = GRID_SIZE) -> Position:
    return Position(snap_to_grid(point.x, grid), snap_to_grid(point.y, grid))


def _estimate_text_lines(text: str, chars_per_line: int) -> int:
    if not text:
        return 0
    return sum(max(1, math.ceil(len(line.strip()) / chars_per_line)) for line in text.split("\n"))


def _estimate_note_size(title: str, content: str) -> tuple[int, int]:
    width = 230
    min_height, max_height = 150, 260
    line_height = 16
    base_padding = 56

    title_lines = max(1, _estimate_text_lines(title, 24))
    content_lines = min(10, _estimate_text_lines(content, 32))
    height = base_padding + (title_lines + content_lines) * line_height
    return width, min(max_height, max(min_height, height))


def estimate_node_size(node_type: str, data: dict | None = None, style: dict | None = None) -> tuple[float, float]:
    """Approximate rendered (width, height) of a node.

    An explicit numeric width/height in `style` (set by the renderer when the
    user resizes a node) takes precedence over the estimate.
    """
    data = data or {}
    if node_type == "note":
        title = data.get("title") if isinstance(data.get("title"), str) else ""
        content = data.get("content") if isinstance(data.get("content"), str) else ""
        w, h = _estimate_note_size(title, content)
    else:
        w, h = _FIXED_SIZES.get(node_type, _DEFAULT_SIZE)

    if isinstance(style, dict):
        sw, sh = style.get("width"), style.get("height")
        if isinstance(sw, (int, float)) and not isinstance(sw, bool) and sw > 0:
            w = sw
        if isinstance(sh, (int, float)) and not isinstance(sh, bool) and sh > 0:
            h = sh
    return w, h


def absolute_position(node: Node, by_id: dict[str, Node]) -> Position:
    """Resolve a node's position through its parent chain."""
    pos = Position(node.position.x, node.position.y)
    seen = {node.id}
    parent_id = node.parent_id
    while parent_id and parent_id in by_id and parent_id not in seen:
        seen.add(parent_id)
        parent = by_id[parent_id]
        pos = pos.offset(parent.position)
        parent_id = parent.parent_id
    return pos


def node_rect(node: Node, by_id: dict[str, Node] | None = None) -> Rect:
    pos = absolute_position(node, by_id or {})
    w, h = estimate_node_size(node.type, node.data, node.style)
    return Rect(pos.x, pos.y, w, h)


def columns_for(total: int) -> int:
    return max(MIN_COLUMNS, min(MAX_COLUMNS, math.ceil(math.sqrt(max(total, 1)))))


def place_nodes(new_nodes: list[Node], existing: Iterable[Node]) -> None:
    """Assign positions to `new_nodes` in place.

    Cells are visited left-to-right, top-to-bottom; a cell is used only when
    the node placed there would overlap neither an existing node nor a node
    placed earlier in this call.
    """
    existing = list(existing)
    by_id = {n.id: n for n in existing}
    occupied = [node_rect(n, by_id) for n in existing]
    columns = columns_for(len(existing) + len(new_nodes))

    cell = 0
    for node in new_nodes:
        w, h = estimate_node_size(node.type, node.data, node.style)
        while True:
            row, col = divmod(cell, columns)
            cell += 1
            candidate = Rect(col * CELL_WIDTH, row * CELL_HEIGHT, w, h)
            if not any(candidate.overlaps(r) for r in occupied):
                break
        node.position = Position(candidate.x, candidate.y)
        node.parent_id = None
        occupied.append(candidate)
