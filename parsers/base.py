"""parsers/base.py — Placeholder documents and text helpers shared by the pipeline."""

import html

from bs4 import BeautifulSoup

from models import RenderableDocument

EMPTY_PLACEHOLDER_HTML = (
    "<h1>No content found</h1>"
    "<p>This EPUB file appears to be empty or corrupted.</p>"
)

# Same elements the viewport script collects in the reader.
READABLE_TAGS = ["p", "h1", "h2", "h3", "h4", "h5", "h6"]


def empty_placeholder() -> RenderableDocument:
    return RenderableDocument(html=EMPTY_PLACEHOLDER_HTML, placeholder=True)


def error_placeholder(message: str) -> RenderableDocument:
    return RenderableDocument(
        html=f"<h1>Error loading EPUB</h1><p>{html.escape(message)}</p>",
        placeholder=True,
        error=message,
    )


def readable_text(document_html: str) -> str:
    """
    Text of every paragraph and heading, each followed by one space.

    Mirrors what the in-page script returns for a reader scrolled to the top,
    for callers that have no live rendering surface.
    """
    soup = BeautifulSoup(document_html, features="lxml")
    body = soup.body or soup
    text = ""
    for tag in body.find_all(READABLE_TAGS):
        text += tag.get_text() + " "
    return text.replace("\n", " ")
