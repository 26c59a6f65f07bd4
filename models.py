"""models.py — Shared data types for readaloud."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import BinaryIO

UTTERANCE_PREFIX = "epub_tts_"


@dataclass(frozen=True)
class SourceDocument:
    local_path: Path
    mime_type: str      # e.g. "application/epub+zip", "unknown" when not reported
    size_bytes: int
    display_name: str


@dataclass(frozen=True)
class ContentFragment:
    name: str           # Archive entry name, e.g. "OEBPS/ch01.xhtml"
    text: str


@dataclass(frozen=True)
class RenderableDocument:
    html: str
    fragment_count: int = 0
    placeholder: bool = False
    error: str | None = None


@dataclass(frozen=True)
class ScrollCheckpoint:
    document_key: str
    offset_pixels: int = 0


@dataclass(frozen=True)
class SpeechChunk:
    index: int
    text: str

    @property
    def utterance_id(self) -> str:
        return f"{UTTERANCE_PREFIX}{self.index}"


class NarrationState(Enum):
    IDLE = "idle"
    SPEAKING = "speaking"


class QueueMode(Enum):
    FLUSH = "flush"
    APPEND = "append"


@dataclass
class PickedFile:
    stream: BinaryIO
    display_name: str | None
    size_bytes: int | None = None
    mime_type: str | None = None


class PickerCancelled:
    pass


class PickerNoSelection:
    pass


PickerOutcome = PickedFile | PickerCancelled | PickerNoSelection
