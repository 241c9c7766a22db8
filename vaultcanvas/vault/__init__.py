"""Vault reading: entity source, note previews and directory summaries."""

from .preview import parse_note_preview
from .source import VaultSource
from .summary import recent_entries, summarize

__all__ = [
    "parse_note_preview",
    "VaultSource",
    "recent_entries",
    "summarize",
]
