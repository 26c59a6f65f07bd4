from __future__ import annotations

import io
import zipfile
from pathlib import Path

import pytest

from models import QueueMode


def build_epub(entries: list[tuple[str, str | bytes]]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for name, content in entries:
            archive.writestr(name, content)
    return buffer.getvalue()


@pytest.fixture
def write_epub(tmp_path: Path):
    def _write(entries: list[tuple[str, str | bytes]], name: str = "book.epub") -> Path:
        path = tmp_path / name
        path.write_bytes(build_epub(entries))
        return path

    return _write


class RecordingEngine:
    """Speech engine double that records requests and lets tests fire callbacks."""

    def __init__(self):
        self.requests: list[tuple[str, QueueMode, str]] = []
        self.listener = None
        self.stopped = 0
        self.rate: float | None = None
        self.shut_down = False

    def set_listener(self, listener) -> None:
        self.listener = listener

    def set_rate(self, rate: float) -> None:
        self.rate = rate

    def speak(self, text: str, mode: QueueMode, utterance_id: str) -> None:
        self.requests.append((text, mode, utterance_id))

    def stop(self) -> None:
        self.stopped += 1

    def shutdown(self) -> None:
        self.shut_down = True


@pytest.fixture
def engine() -> RecordingEngine:
    return RecordingEngine()
