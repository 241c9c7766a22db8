"""Stable node identifiers.

Derived nodes get IDs that can be recomputed from the entity they represent,
so reconciliation can match the same note, file or folder across rebuilds.
User-authored nodes get a random ID once, at creation.
"""

import uuid

# Folder nodes share the namespace with file paths; the prefix keeps a folder
# "notes" distinct from a file called "notes".
FOLDER_ID_PREFIX = "folder:"

# Earlier layouts grouped a folder's notes inside an auto-generated frame whose
# id used the folder prefix. Such frames are migrated away on encounter.
LEGACY_FRAME_PREFIX = FOLDER_ID_PREFIX


def to_slash(rel_path: str) -> str:
    """Normalize a relative path to forward slashes without outer slashes."""
    return rel_path.strip().replace("\\", "/").strip("/")


def note_node_id(rel_path: str) -> str:
    return to_slash(rel_path)


def file_node_id(rel_path: str) -> str:
    return to_slash(rel_path)


def folder_node_id(rel_dir: str) -> str:
    return f"{FOLDER_ID_PREFIX}{to_slash(rel_dir)}"


def new_node_id(kind: str) -> str:
    """Random id for a user-authored node (text, link, frame)."""
    return f"{kind}-{uuid.uuid4().hex[:12]}"


def is_legacy_frame_id(node_id: str) -> bool:
    return node_id.startswith(LEGACY_FRAME_PREFIX)


def basename(rel_path: str) -> str:
    parts = [p for p in to_slash(rel_path).split("/") if p]
    return parts[-1] if parts else rel_path


def title_for_file(rel_path: str) -> str:
    """File name without a trailing .md extension."""
    name = basename(rel_path)
    if name.lower().endswith(".md"):
        return name[:-3]
    return name


def is_markdown_path(rel_path: str) -> bool:
    return rel_path.lower().endswith(".md")
