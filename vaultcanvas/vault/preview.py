"""Note titles and excerpts for canvas cards."""

import logging
import re

import frontmatter
import yaml

from ..ids import title_for_file

logger = logging.getLogger(__name__)

MAX_PREVIEW_LINES = 20

HEADING_PATTERN = re.compile(r"^#\s+(.+)$", re.MULTILINE)


def split_frontmatter(text: str) -> tuple[dict, str]:
    """Return (metadata, body). Malformed frontmatter yields ({}, text)."""
    try:
        post = frontmatter.loads(text)
    except (yaml.YAMLError, ValueError, TypeError) as e:
        logger.debug("Ignoring malformed frontmatter: %s", e)
        return {}, text
    metadata = post.metadata if isinstance(post.metadata, dict) else {}
    return metadata, post.content


def parse_note_preview(rel_path: str, text: str) -> tuple[str, str]:
    """Extract (title, content) for a note.

    Title comes from frontmatter `title`, then the first H1 heading, then the
    file name. Content is the body without frontmatter, cut to
    MAX_PREVIEW_LINES lines.
    """
    metadata, body = split_frontmatter(text)

    title = title_for_file(rel_path)
    fm_title = metadata.get("title")
    if isinstance(fm_title, str) and fm_title.strip():
        title = fm_title.strip()
    else:
        match = HEADING_PATTERN.search(body)
        if match:
            title = match.group(1).strip()

    content = body.strip()
    lines = content.split("\n")
    if len(lines) > MAX_PREVIEW_LINES:
        content = "\n".join(lines[:MAX_PREVIEW_LINES]) + "\n…"

    return title, content
