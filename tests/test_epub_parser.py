from __future__ import annotations

import io
import zipfile
from pathlib import Path

import pytest

from conftest import build_epub
from errors import ArchiveCorrupt, ArchiveUnreadable
from parsers.epub_parser import is_content_entry, iter_content_fragments, read_content_fragments


def test_fragments_follow_archive_entry_order(write_epub) -> None:
    path = write_epub(
        [
            ("mimetype", "application/epub+zip"),
            ("OEBPS/z_last_name.xhtml", "<p>first</p>"),
            ("OEBPS/content.opf", "<package/>"),
            ("OEBPS/a_first_name.html", "<p>second</p>"),
            ("OEBPS/m.htm", "<p>third</p>"),
        ]
    )

    fragments = read_content_fragments(path)

    assert [f.name for f in fragments] == [
        "OEBPS/z_last_name.xhtml",
        "OEBPS/a_first_name.html",
        "OEBPS/m.htm",
    ]
    assert [f.text for f in fragments] == ["<p>first</p>", "<p>second</p>", "<p>third</p>"]


def test_duplicate_names_are_kept() -> None:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("ch.html", "<p>one</p>")
        with pytest.warns(UserWarning):
            archive.writestr("ch.html", "<p>two</p>")
    buffer.seek(0)

    fragments = read_content_fragments(buffer)

    assert [f.text for f in fragments] == ["<p>one</p>", "<p>two</p>"]


def test_suffix_match_is_case_sensitive() -> None:
    assert is_content_entry("ch1.xhtml")
    assert not is_content_entry("CH1.HTML")
    assert not is_content_entry("ch1.html.bak")
    assert not is_content_entry("style.css")


def test_uppercase_extensions_are_skipped(write_epub) -> None:
    path = write_epub([("CH1.HTML", "<p>skipped</p>"), ("ch2.html", "<p>kept</p>")])

    assert [f.name for f in read_content_fragments(path)] == ["ch2.html"]


def test_no_content_entries_yields_nothing(write_epub) -> None:
    path = write_epub([("mimetype", "application/epub+zip"), ("OEBPS/content.opf", "<package/>")])

    assert read_content_fragments(path) == []


def test_empty_archive_yields_nothing(write_epub) -> None:
    assert read_content_fragments(write_epub([])) == []


def test_decodes_utf8(write_epub) -> None:
    path = write_epub([("ch.xhtml", "<p>Café — naïve</p>".encode("utf-8"))])

    assert read_content_fragments(path)[0].text == "<p>Café — naïve</p>"


def test_extraction_is_lazy(write_epub) -> None:
    path = write_epub([("a.html", "A"), ("b.html", "B")])

    fragments = iter_content_fragments(path)

    assert next(fragments).text == "A"
    assert next(fragments).text == "B"
    with pytest.raises(StopIteration):
        next(fragments)


def test_missing_file_is_unreadable(tmp_path: Path) -> None:
    with pytest.raises(ArchiveUnreadable):
        read_content_fragments(tmp_path / "missing.epub")


def test_non_zip_is_corrupt(tmp_path: Path) -> None:
    path = tmp_path / "book.epub"
    path.write_bytes(b"this is not a zip archive")

    with pytest.raises(ArchiveCorrupt):
        read_content_fragments(path)


def test_damaged_entry_is_corrupt() -> None:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_STORED) as archive:
        archive.writestr("ch.html", b"<p>" + b"x" * 2000 + b"</p>")
    data = bytearray(buffer.getvalue())
    # Stored data starts after the 30-byte local header and the 7-byte name.
    data[100] ^= 0xFF

    with pytest.raises(ArchiveCorrupt):
        read_content_fragments(io.BytesIO(bytes(data)))
