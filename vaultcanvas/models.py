"""Data models for selectors, canvas nodes and view documents."""

from __future__ import annotations

import copy
import math
from dataclasses import dataclass, field
from typing import Any, Literal

from .errors import SelectorError
from .ids import basename, folder_node_id, is_legacy_frame_id, note_node_id, to_slash

SelectorKind = Literal["folder", "search", "tag", "canvas"]

NodeKind = Literal["note", "file", "folder", "frame", "text", "link"]

EntityKind = Literal["note", "file", "folder"]

SELECTOR_KINDS: tuple[str, ...] = ("folder", "search", "tag", "canvas")

# Existence and data owned by the vault; recomputed and possibly removed on rebuild
DERIVED_KINDS = frozenset({"note", "file", "folder"})

# Existence owned by the user; never removed by reconciliation
USER_KINDS = frozenset({"frame", "text", "link"})

DOCUMENT_VERSION = 1


def is_derived_kind(kind: str) -> bool:
    return kind in DERIVED_KINDS


@dataclass(frozen=True)
class Selector:
    """Identifies what a view shows; one stored document per selector."""

    kind: str
    value: str = ""

    def __post_init__(self):
        if self.kind not in SELECTOR_KINDS:
            raise SelectorError(f"Unknown selector kind: {self.kind!r}")
        object.__setattr__(self, "value", _normalize_value(self.kind, self.value))

    @classmethod
    def folder(cls, dir: str = "") -> "Selector":
        return cls("folder", dir)

    @classmethod
    def search(cls, query: str) -> "Selector":
        return cls("search", query)

    @classmethod
    def tag(cls, tag: str) -> "Selector":
        return cls("tag", tag)

    @classmethod
    def canvas(cls, canvas_id: str) -> "Selector":
        return cls("canvas", canvas_id)

    @classmethod
    def parse(cls, text: str) -> "Selector":
        """Parse `kind:value` (e.g. `folder:Projects`, `tag:#idea`).

        A bare `folder` means the vault root.
        """
        kind, sep, value = text.partition(":")
        kind = kind.strip().lower()
        if not sep and kind != "folder":
            raise SelectorError(f"Expected KIND:VALUE, got {text!r}")
        if kind not in SELECTOR_KINDS:
            raise SelectorError(f"Unknown selector kind: {kind!r}")
        if kind in ("search", "tag", "canvas") and not value.strip():
            raise SelectorError(f"Selector {kind!r} needs a value")
        return cls(kind, value)

    @property
    def view_id(self) -> str:
        return f"{self.kind}:{self.value}"

    @property
    def default_title(self) -> str:
        if self.kind == "folder":
            return basename(self.value) if self.value else "Vault"
        if self.kind == "tag":
            return self.value
        if self.kind == "search":
            return f"Search: {self.value}".strip()
        return "Canvas"

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind, "value": self.value}

    @classmethod
    def from_dict(cls, data: dict) -> "Selector":
        return cls(data["kind"], data.get("value", ""))

    def __str__(self) -> str:
        return self.view_id


def _normalize_value(kind: str, value: str) -> str:
    value = value or ""
    if kind == "folder":
        return to_slash(value)
    if kind == "tag":
        tag = value.strip()
        if tag and not tag.startswith("#"):
            tag = f"#{tag}"
        return tag
    return value.strip()


@dataclass
class Position:
    x: float = 0
    y: float = 0

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: dict | None) -> "Position":
        """Raises ValueError unless x and y are finite numbers."""
        if not data:
            return cls()
        x, y = data.get("x", 0), data.get("y", 0)
        for value in (x, y):
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                raise ValueError(f"invalid position coordinate {value!r}")
        return cls(x=x, y=y)

    def offset(self, other: "Position") -> "Position":
        return Position(self.x + other.x, self.y + other.y)


@dataclass
class Node:
    """A positioned canvas node. `type` is the kind discriminator."""

    id: str
    type: str
    position: Position = field(default_factory=Position)
    data: dict[str, Any] = field(default_factory=dict)
    parent_id: str | None = None
    style: dict[str, Any] | None = None  # passthrough for the renderer
    extent: Any = None  # passthrough for the renderer

    @property
    def is_derived(self) -> bool:
        return is_derived_kind(self.type)

    @property
    def is_legacy_frame(self) -> bool:
        return self.type == "frame" and is_legacy_frame_id(self.id)

    def copy(self) -> "Node":
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "position": self.position.to_dict(),
            "data": self.data,
        }
        if self.parent_id:
            d["parentId"] = self.parent_id
        if self.style is not None:
            d["style"] = self.style
        if self.extent is not None:
            d["extent"] = self.extent
        return d

    @classmethod
    def from_dict(cls, data: dict) -> "Node":
        # Older documents store the parent under "parentNode"
        parent = data.get("parentId") or data.get("parentNode")
        return cls(
            id=str(data["id"]),
            type=str(data.get("type") or ""),
            position=Position.from_dict(data.get("position")),
            data=dict(data.get("data") or {}),
            parent_id=parent if isinstance(parent, str) and parent else None,
            style=data.get("style"),
            extent=data.get("extent"),
        )


@dataclass
class Edge:
    id: str
    source: str
    target: str
    type: str = "default"
    data: dict[str, Any] = field(default_factory=dict)
    label: str | None = None
    style: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "type": self.type,
            "data": self.data,
        }
        if self.label is not None:
            d["label"] = self.label
        if self.style is not None:
            d["style"] = self.style
        return d

    @classmethod
    def from_dict(cls, data: dict) -> "Edge":
        return cls(
            id=str(data["id"]),
            source=str(data["source"]),
            target=str(data["target"]),
            type=str(data.get("type") or "default"),
            data=dict(data.get("data") or {}),
            label=data.get("label"),
            style=data.get("style"),
        )


@dataclass
class ViewDocument:
    """The persisted and rendered unit: a node/edge graph plus view metadata."""

    id: str
    title: str
    selector: Selector
    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)
    options: dict[str, Any] = field(default_factory=dict)
    updated: str | None = None  # ISO timestamp, stamped on save
    version: int = DOCUMENT_VERSION

    @classmethod
    def empty(cls, selector: Selector, title: str | None = None) -> "ViewDocument":
        return cls(id=selector.view_id, title=title or selector.default_title, selector=selector)

    def node(self, node_id: str) -> Node | None:
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None

    def copy(self) -> "ViewDocument":
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "id": self.id,
            "title": self.title,
            "selector": self.selector.to_dict(),
            "updated": self.updated,
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
            "options": self.options,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ViewDocument":
        """Create from dictionary. Raises KeyError/TypeError/ValueError on malformed input."""
        if not isinstance(data.get("nodes"), list) or not isinstance(data.get("edges"), list):
            raise ValueError("document nodes/edges must be lists")
        selector = Selector.from_dict(data["selector"])
        return cls(
            version=int(data.get("version", DOCUMENT_VERSION)),
            id=str(data.get("id") or selector.view_id),
            title=str(data.get("title") or selector.default_title),
            selector=selector,
            updated=data.get("updated"),
            nodes=[Node.from_dict(n) for n in data["nodes"]],
            edges=[Edge.from_dict(e) for e in data["edges"]],
            options=dict(data.get("options") or {}),
        )


@dataclass
class Entity:
    """Something the vault says should appear on a view."""

    kind: str  # note, file or folder
    path: str  # relative path, forward slashes
    title: str = ""
    excerpt: str = ""

    @property
    def node_id(self) -> str:
        if self.kind == "folder":
            return folder_node_id(self.path)
        return note_node_id(self.path)


@dataclass
class RecentMarkdown:
    path: str
    name: str
    mtime: int  # milliseconds since epoch

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "name": self.name, "mtime": self.mtime}


@dataclass
class DirectorySummary:
    """Recursive counts and recent notes for one subfolder. Never persisted."""

    dir_path: str
    name: str
    total_files_recursive: int = 0
    total_markdown_recursive: int = 0
    recent_markdown: list[RecentMarkdown] = field(default_factory=list)
    truncated: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "dir_path": self.dir_path,
            "name": self.name,
            "total_files_recursive": self.total_files_recursive,
            "total_markdown_recursive": self.total_markdown_recursive,
            "recent_markdown": [r.to_dict() for r in self.recent_markdown],
            "truncated": self.truncated,
        }
