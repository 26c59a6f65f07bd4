"""checkpoints.py — Persist and restore the reading position of each document."""

import hashlib
import json
import logging
from pathlib import Path
from typing import Protocol

from models import ScrollCheckpoint

logger = logging.getLogger(__name__)

KEY_PREFIX = "scroll_"


def document_key(path: Path | str) -> str:
    """Stable key for a document: 64-bit BLAKE2b of the UTF-8 path, as hex."""
    digest = hashlib.blake2b(str(path).encode("utf-8"), digest_size=8).hexdigest()
    return f"{KEY_PREFIX}{digest}"


class KeyValueStore(Protocol):
    def get(self, key: str) -> int | None: ...

    def set(self, key: str, value: int) -> None: ...


class MemoryKeyValueStore:
    def __init__(self):
        self._values: dict[str, int] = {}

    def get(self, key: str) -> int | None:
        return self._values.get(key)

    def set(self, key: str, value: int) -> None:
        self._values[key] = value


class JsonKeyValueStore:
    """Integer values in a JSON object on disk, rewritten on every set()."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def _load(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text())
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable position file %s", self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str) -> int | None:
        value = self._load().get(key)
        return value if isinstance(value, int) else None

    def set(self, key: str, value: int) -> None:
        data = self._load()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2, sort_keys=True))


class ScrollCheckpointStore:
    def __init__(self, backend: KeyValueStore | None = None):
        self.backend = backend if backend is not None else MemoryKeyValueStore()

    def save(self, key: str, offset_pixels: int) -> None:
        if offset_pixels < 0:
            raise ValueError(f"Scroll offset must be >= 0, got {offset_pixels}")
        self.backend.set(key, int(offset_pixels))
        logger.debug("Saved %s = %d", key, offset_pixels)

    def load(self, key: str) -> int:
        value = self.backend.get(key)
        return value if value is not None else 0

    def checkpoint(self, key: str) -> ScrollCheckpoint:
        return ScrollCheckpoint(document_key=key, offset_pixels=self.load(key))
