from __future__ import annotations

import json
from pathlib import Path

import pytest

from checkpoints import JsonKeyValueStore, MemoryKeyValueStore, ScrollCheckpointStore, document_key


def test_document_key_is_stable_and_path_specific() -> None:
    key = document_key("/data/documents/book.epub")

    assert key == document_key(Path("/data/documents/book.epub"))
    assert key.startswith("scroll_")
    assert len(key) == len("scroll_") + 16
    assert key != document_key("/data/documents/book2.epub")


def test_unknown_key_loads_zero() -> None:
    store = ScrollCheckpointStore(MemoryKeyValueStore())

    assert store.load("scroll_missing") == 0


def test_last_write_wins() -> None:
    store = ScrollCheckpointStore()

    store.save("k", 120)
    store.save("k", 45)

    assert store.load("k") == 45
    assert store.checkpoint("k").offset_pixels == 45


def test_negative_offset_is_rejected() -> None:
    with pytest.raises(ValueError):
        ScrollCheckpointStore().save("k", -1)


def test_json_store_persists_across_instances(tmp_path: Path) -> None:
    path = tmp_path / "state" / "positions.json"
    key = document_key("/books/a.epub")

    ScrollCheckpointStore(JsonKeyValueStore(path)).save(key, 830)

    assert ScrollCheckpointStore(JsonKeyValueStore(path)).load(key) == 830
    assert json.loads(path.read_text()) == {key: 830}


def test_json_store_ignores_damaged_file(tmp_path: Path) -> None:
    path = tmp_path / "positions.json"
    path.write_text("{not json")
    store = ScrollCheckpointStore(JsonKeyValueStore(path))

    assert store.load("k") == 0
    store.save("k", 5)
    assert store.load("k") == 5
