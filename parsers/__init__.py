"""parsers/ — EPUB extraction and rendering pipeline."""

import logging
from pathlib import Path
from typing import BinaryIO

from errors import ArchiveError
from models import RenderableDocument
from parsers.base import empty_placeholder, error_placeholder, readable_text
from parsers.epub_parser import iter_content_fragments, read_content_fragments
from parsers.html_normalizer import normalize_fragments, strip_container_tags

logger = logging.getLogger(__name__)

EPUB_MIME_TYPE = "application/epub+zip"
PDF_MIME_TYPE = "application/pdf"
SUPPORTED_MIME_TYPES = frozenset({PDF_MIME_TYPE, EPUB_MIME_TYPE})

__all__ = [
    "EPUB_MIME_TYPE",
    "PDF_MIME_TYPE",
    "SUPPORTED_MIME_TYPES",
    "iter_content_fragments",
    "normalize_fragments",
    "read_content_fragments",
    "readable_text",
    "render_epub",
    "strip_container_tags",
]


def render_epub(source: Path | str | BinaryIO) -> RenderableDocument:
    """Always returns a document: the merged chapters or a placeholder."""
    try:
        fragments = read_content_fragments(source)
    except ArchiveError as e:
        logger.error("Error loading EPUB %s: %s", source, e)
        return error_placeholder(str(e))

    if not fragments:
        logger.warning("No content documents in %s", source)
        return empty_placeholder()

    logger.info("Rendering %d content documents from %s", len(fragments), source)
    return RenderableDocument(html=normalize_fragments(fragments), fragment_count=len(fragments))
