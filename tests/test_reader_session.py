from __future__ import annotations

import asyncio
import json
from pathlib import Path

from checkpoints import ScrollCheckpointStore, document_key
from config import Settings
from models import NarrationState, QueueMode, SourceDocument
from reader_session import VIEWPORT_TEXT_SCRIPT, ReadingSession, decode_script_result


class FakeSurface:
    def __init__(self, visible_text: str | None = ""):
        self.loaded: list[str] = []
        self.scripts: list[str] = []
        self.scrolled_to: list[int] = []
        self.offset = 0
        self.visible_text = visible_text

    def load(self, html: str) -> None:
        self.loaded.append(html)

    async def evaluate_script(self, script: str) -> str | None:
        self.scripts.append(script)
        if self.visible_text is None:
            return "null"
        return json.dumps(self.visible_text)

    def scroll_to(self, offset: int) -> None:
        self.scrolled_to.append(offset)
        self.offset = offset

    def current_scroll_offset(self) -> int:
        return self.offset


def _session(path: Path, engine, surface: FakeSurface, store: ScrollCheckpointStore | None = None, **settings):
    document = SourceDocument(local_path=path, mime_type="application/epub+zip", size_bytes=0, display_name=path.name)
    return ReadingSession(document, surface, engine, store or ScrollCheckpointStore(), Settings(**settings))


def test_decode_script_result() -> None:
    assert decode_script_result(None) == ""
    assert decode_script_result("null") == ""
    assert decode_script_result('"He said \\"hi\\".\\nNext "') == 'He said "hi". Next '
    assert decode_script_result("plain") == "plain"


def test_open_loads_rendered_document(write_epub, engine) -> None:
    path = write_epub([("ch1.xhtml", "<html><body><p>Hello.</p></body></html>")])
    surface = FakeSurface()

    rendered = _session(path, engine, surface).open()

    assert surface.loaded == [rendered.html]
    assert "<p>Hello.</p>" in rendered.html


def test_open_loads_placeholder_for_empty_book(write_epub, engine) -> None:
    surface = FakeSurface()

    rendered = _session(write_epub([]), engine, surface).open()

    assert rendered.placeholder
    assert "No content found" in surface.loaded[0]


def test_position_round_trip(tmp_path: Path, engine) -> None:
    store = ScrollCheckpointStore()
    surface = FakeSurface()
    session = _session(tmp_path / "book.epub", engine, surface, store)

    assert session.on_load_complete() == 0
    assert surface.scrolled_to == []

    surface.offset = 640
    session.pause()
    assert store.load(document_key(tmp_path / "book.epub")) == 640

    reopened = FakeSurface()
    assert _session(tmp_path / "book.epub", engine, reopened, store).on_load_complete() == 640
    assert reopened.scrolled_to == [640]


def test_speak_from_viewport_dispatches_chunks(tmp_path: Path, engine) -> None:
    surface = FakeSurface("First sentence. Second sentence. Third one.")
    session = _session(tmp_path / "book.epub", engine, surface, max_chunk_length=20)

    chunks = asyncio.run(session.speak_from_viewport())

    assert surface.scripts == [VIEWPORT_TEXT_SCRIPT]
    assert [c.text for c in chunks] == ["First sentence. ", "Second sentence. ", "Third one."]
    assert [(mode, uid) for _, mode, uid in engine.requests] == [
        (QueueMode.FLUSH, "epub_tts_0_r1"),
        (QueueMode.APPEND, "epub_tts_1_r1"),
        (QueueMode.APPEND, "epub_tts_2_r1"),
    ]


def test_no_visible_text_dispatches_nothing(tmp_path: Path, engine) -> None:
    session = _session(tmp_path / "book.epub", engine, FakeSurface(None))

    assert asyncio.run(session.speak_from_viewport()) == []
    assert engine.requests == []


def test_toggle_speech_stops_when_speaking(tmp_path: Path, engine) -> None:
    session = _session(tmp_path / "book.epub", engine, FakeSurface("Read me."))

    asyncio.run(session.toggle_speech())
    session.controller.on_start("epub_tts_0_r1")
    assert session.is_speaking

    assert asyncio.run(session.toggle_speech()) == []
    assert engine.stopped == 1
    assert not session.is_speaking


def test_change_rate_clamps_and_restarts(tmp_path: Path, engine) -> None:
    states = []
    surface = FakeSurface("Read me.")
    document = SourceDocument(tmp_path / "book.epub", "application/epub+zip", 0, "book.epub")
    session = ReadingSession(
        document, surface, engine, ScrollCheckpointStore(), Settings(speech_rate=1.4), on_state_change=states.append
    )
    assert engine.rate == 1.4

    asyncio.run(session.speak_from_viewport())
    session.controller.on_start("epub_tts_0_r1")

    assert asyncio.run(session.change_rate(0.5)) == 1.5
    assert engine.rate == 1.5
    assert engine.stopped == 1
    assert len(engine.requests) == 2
    assert states == [NarrationState.SPEAKING, NarrationState.IDLE]

    assert asyncio.run(session.change_rate(-5)) == 0.3
    assert len(engine.requests) == 2


def test_teardown_saves_and_shuts_engine_down(tmp_path: Path, engine) -> None:
    store = ScrollCheckpointStore()
    surface = FakeSurface()
    surface.offset = 77
    session = _session(tmp_path / "book.epub", engine, surface, store)

    session.teardown()

    assert store.load(session.key) == 77
    assert engine.stopped == 1
    assert engine.shut_down
