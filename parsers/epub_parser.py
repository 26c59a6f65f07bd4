"""parsers/epub_parser.py — Read content documents out of a packed EPUB."""

import logging
import zipfile
import zlib
from collections.abc import Iterator
from pathlib import Path
from typing import BinaryIO

from errors import ArchiveCorrupt, ArchiveUnreadable
from models import ContentFragment

logger = logging.getLogger(__name__)

# Case-sensitive on purpose: "CH1.HTML" is not picked up.
CONTENT_SUFFIXES = (".html", ".xhtml", ".htm")


def is_content_entry(name: str) -> bool:
    return name.endswith(CONTENT_SUFFIXES)


def _open_archive(source: Path | str | BinaryIO) -> zipfile.ZipFile:
    if isinstance(source, (str, Path)):
        path = Path(source)
        if not path.exists():
            raise ArchiveUnreadable(f"EPUB not found: {path}")
        try:
            return zipfile.ZipFile(path)
        except zipfile.BadZipFile as e:
            raise ArchiveCorrupt(f"Not a ZIP archive: {path} ({e})") from e
        except OSError as e:
            raise ArchiveUnreadable(f"Cannot open {path}: {e}") from e
    try:
        return zipfile.ZipFile(source)
    except zipfile.BadZipFile as e:
        raise ArchiveCorrupt(f"Not a ZIP archive ({e})") from e
    except OSError as e:
        raise ArchiveUnreadable(f"Cannot read archive stream: {e}") from e


def iter_content_fragments(source: Path | str | BinaryIO) -> Iterator[ContentFragment]:
    """
    Yield the HTML/XHTML entries of a ZIP container in physical entry order.

    Opening happens on the first next(), so a missing file surfaces as
    ArchiveUnreadable from iteration rather than from this call.
    """
    with _open_archive(source) as archive:
        entries = sorted(archive.infolist(), key=lambda info: info.header_offset)
        for info in entries:
            if info.is_dir() or not is_content_entry(info.filename):
                continue
            try:
                data = archive.read(info)
            except (zipfile.BadZipFile, zlib.error, EOFError) as e:
                raise ArchiveCorrupt(f"Cannot read entry {info.filename}: {e}") from e
            except RuntimeError as e:
                # Encrypted entries and unsupported compression methods.
                raise ArchiveCorrupt(f"Cannot decode entry {info.filename}: {e}") from e
            logger.debug("Extracted %s (%d bytes)", info.filename, len(data))
            yield ContentFragment(name=info.filename, text=data.decode("utf-8", errors="replace"))


def read_content_fragments(source: Path | str | BinaryIO) -> list[ContentFragment]:
    return list(iter_content_fragments(source))
