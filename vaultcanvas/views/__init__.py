"""View building, layout and persistence."""

from .engine import BuildResult, build, migrate_legacy_frames
from .loader import ViewLoader, ViewOutcome
from .store import DocumentStore

__all__ = [
    "BuildResult",
    "build",
    "migrate_legacy_frames",
    "ViewLoader",
    "ViewOutcome",
    "DocumentStore",
]
