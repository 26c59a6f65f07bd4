"""importer.py — Copy a picked document into the app's private storage."""

import logging
import mimetypes
import os
import shutil
import tempfile
from collections.abc import Iterable
from pathlib import Path

from errors import ImportCancelled, ImportIOError, ImportNoSelection
from models import PickedFile, PickerCancelled, PickerNoSelection, PickerOutcome, SourceDocument
from parsers import SUPPORTED_MIME_TYPES

logger = logging.getLogger(__name__)

DEFAULT_DISPLAY_NAME = "document"
UNKNOWN_MIME_TYPE = "unknown"

mimetypes.add_type("application/epub+zip", ".epub")


def guess_mime_type(name: str) -> str | None:
    mime_type, _ = mimetypes.guess_type(name)
    return mime_type


class LocalFilePicker:
    """Picker over the local filesystem: the 'selection' is a path, or None."""

    def pick(self, path: Path | str | None, mime_filters: Iterable[str] = SUPPORTED_MIME_TYPES) -> PickerOutcome:
        if path is None:
            return PickerCancelled()
        path = Path(path)
        if not path.is_file():
            logger.info("Nothing to pick at %s", path)
            return PickerNoSelection()

        mime_type = guess_mime_type(path.name)
        if mime_type not in set(mime_filters):
            logger.info("%s (%s) does not match the picker filters", path.name, mime_type)
            return PickerNoSelection()

        try:
            stream = path.open("rb")
        except OSError as e:
            raise ImportIOError(f"Failed to open {path}: {e}") from e
        return PickedFile(
            stream=stream,
            display_name=path.name,
            size_bytes=path.stat().st_size,
            mime_type=mime_type,
        )


class DocumentImporter:
    def __init__(self, storage_dir: Path):
        self.storage_dir = Path(storage_dir)

    def destination_for(self, display_name: str | None) -> Path:
        # Only the final component: a reported name must not escape storage.
        name = Path(display_name or "").name or DEFAULT_DISPLAY_NAME
        return self.storage_dir / name

    def import_outcome(self, outcome: PickerOutcome) -> SourceDocument:
        """Copy the picked file; an existing copy with the same name is replaced."""
        if isinstance(outcome, PickerCancelled):
            raise ImportCancelled()
        if not isinstance(outcome, PickedFile):
            raise ImportNoSelection()

        destination = self.destination_for(outcome.display_name)
        partial = None
        try:
            self.storage_dir.mkdir(parents=True, exist_ok=True)
            # The previous copy is only replaced once every byte has arrived.
            with outcome.stream as source, tempfile.NamedTemporaryFile(
                dir=self.storage_dir, prefix=f".{destination.name}.", suffix=".part", delete=False
            ) as target:
                partial = Path(target.name)
                shutil.copyfileobj(source, target)
                copied = target.tell()
            os.replace(partial, destination)
        except OSError as e:
            if partial is not None:
                partial.unlink(missing_ok=True)
            raise ImportIOError(f"Failed to copy file: {e}") from e

        size = outcome.size_bytes if outcome.size_bytes is not None else copied
        document = SourceDocument(
            local_path=destination.resolve(),
            mime_type=outcome.mime_type or guess_mime_type(destination.name) or UNKNOWN_MIME_TYPE,
            size_bytes=size,
            display_name=destination.name,
        )
        logger.info("Imported %s (%d bytes, %s)", document.display_name, size, document.mime_type)
        return document

    def list_documents(self) -> list[SourceDocument]:
        """Documents already in storage, sorted by name; partial copies are skipped."""
        if not self.storage_dir.is_dir():
            return []
        documents = []
        for path in sorted(self.storage_dir.iterdir()):
            if not path.is_file() or path.name.startswith("."):
                continue
            documents.append(
                SourceDocument(
                    local_path=path.resolve(),
                    mime_type=guess_mime_type(path.name) or UNKNOWN_MIME_TYPE,
                    size_bytes=path.stat().st_size,
                    display_name=path.name,
                )
            )
        return documents
