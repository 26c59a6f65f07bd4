"""parsers/html_normalizer.py — Merge chapter fragments into one scrollable document."""

import re
from collections.abc import Iterable

from models import ContentFragment

# Only the exact tag names: <header>, <bodyguard> and <metadata> must survive.
_CONTAINER_TAG_RE = re.compile(r"</?(?:html|head|body)(?=[\s/>])[^>]*>", re.IGNORECASE)
_META_TAG_RE = re.compile(r"<meta(?=[\s/>])[^>]*>", re.IGNORECASE)

CHAPTER_SPACER = "<div style='height: 20px;'></div>"

DOCUMENT_HEAD = (
    "<!DOCTYPE html><html><head>"
    "<meta name='viewport' content='width=device-width, initial-scale=1.0, "
    "maximum-scale=3.0, user-scalable=yes'>"
    "<style>"
    "* { margin: 0; padding: 0; box-sizing: border-box; }"
    "body { "
    "  font-family: Georgia, 'Times New Roman', serif; "
    "  line-height: 1.8; "
    "  padding: 20px; "
    "  font-size: 18px; "
    "  background: #faf8f5; "
    "  color: #333; "
    "  max-width: 800px; "
    "  margin: 0 auto; "
    "}"
    "p { margin-bottom: 1em; text-align: justify; }"
    "h1, h2, h3, h4, h5, h6 { margin-top: 1.5em; margin-bottom: 0.5em; font-weight: bold; }"
    "h1 { font-size: 2em; }"
    "h2 { font-size: 1.5em; }"
    "h3 { font-size: 1.3em; }"
    "img { max-width: 100%; height: auto; display: block; margin: 1em auto; }"
    "blockquote { margin: 1em 0; padding-left: 1em; border-left: 3px solid #ccc; font-style: italic; }"
    "a { color: #007AFF; text-decoration: none; }"
    "</style>"
    "</head><body>"
)
DOCUMENT_TAIL = "</body></html>"


def strip_container_tags(markup: str) -> str:
    """Remove html/head/body/meta tags, leaving everything between them as is."""
    markup = _CONTAINER_TAG_RE.sub("", markup)
    return _META_TAG_RE.sub("", markup)


def wrap_document(body: str) -> str:
    return DOCUMENT_HEAD + body + DOCUMENT_TAIL


def normalize_fragments(fragments: Iterable[ContentFragment | str]) -> str:
    """Concatenate fragments in order, each followed by a spacer, inside the template."""
    parts = []
    for fragment in fragments:
        text = fragment.text if isinstance(fragment, ContentFragment) else fragment
        parts.append(strip_container_tags(text))
        parts.append(CHAPTER_SPACER)
    return wrap_document("".join(parts))
