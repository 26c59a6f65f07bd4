"""reader_session.py — One open document: rendering, position and narration."""

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

from checkpoints import ScrollCheckpointStore, document_key
from config import Settings, clamp_rate
from models import NarrationState, RenderableDocument, SourceDocument, SpeechChunk
from narration import NarrationController
from parsers import render_epub
from tts_engine import SpeechEngine, split_into_speech_chunks

logger = logging.getLogger(__name__)

# Text of every paragraph/heading from one viewport above the current one down
# to the end of the document.
VIEWPORT_TEXT_SCRIPT = (
    "(function() { "
    "  var scrollY = window.scrollY || window.pageYOffset; "
    "  var viewportHeight = window.innerHeight; "
    "  var elements = document.querySelectorAll('p, h1, h2, h3, h4, h5, h6'); "
    "  var text = ''; "
    "  for (var i = 0; i < elements.length; i++) { "
    "    var rect = elements[i].getBoundingClientRect(); "
    "    var elementTop = rect.top + scrollY; "
    "    if (elementTop >= scrollY - viewportHeight) { "
    "      text += elements[i].innerText + ' '; "
    "    } "
    "  } "
    "  return text; "
    "})();"
)


class RenderingSurface(Protocol):
    def load(self, html: str) -> None: ...

    def evaluate_script(self, script: str) -> Awaitable[str | None]: ...

    def scroll_to(self, offset: int) -> None: ...

    def current_scroll_offset(self) -> int: ...


def decode_script_result(raw: str | None) -> str:
    """Turn the JSON-encoded value of an evaluated script into plain text."""
    if raw is None or raw == "null":
        return ""
    text = raw
    if raw.startswith('"'):
        try:
            text = json.loads(raw)
        except json.JSONDecodeError:
            text = raw.strip('"')
    if not isinstance(text, str):
        return ""
    return text.replace("\n", " ")


class ReadingSession:
    def __init__(
        self,
        document: SourceDocument,
        surface: RenderingSurface,
        engine: SpeechEngine,
        checkpoints: ScrollCheckpointStore,
        settings: Settings | None = None,
        on_state_change: Callable[[NarrationState], None] | None = None,
    ):
        self.document = document
        self.surface = surface
        self.engine = engine
        self.checkpoints = checkpoints
        self.settings = settings or Settings()
        self.key = document_key(document.local_path)
        self.rate = self.settings.speech_rate
        self.controller = NarrationController(engine, on_state_change=on_state_change)
        self.rendered: RenderableDocument | None = None
        engine.set_rate(self.rate)

    @property
    def is_speaking(self) -> bool:
        return self.controller.is_speaking

    def open(self) -> RenderableDocument:
        self.rendered = render_epub(self.document.local_path)
        self.surface.load(self.rendered.html)
        return self.rendered

    def on_load_complete(self) -> int:
        """Restore the saved position; returns the offset scrolled to (0 if none)."""
        offset = self.checkpoints.load(self.key)
        if offset > 0:
            self.surface.scroll_to(offset)
        return offset

    async def speak_from_viewport(self) -> list[SpeechChunk]:
        raw = await self.surface.evaluate_script(VIEWPORT_TEXT_SCRIPT)
        text = decode_script_result(raw)
        chunks = split_into_speech_chunks(text, self.settings.max_chunk_length)
        if not chunks:
            logger.info("No visible text to read")
            return []
        logger.info("Narrating %d characters in %d chunks", len(text), len(chunks))
        self.controller.start(chunks)
        return chunks

    async def toggle_speech(self) -> list[SpeechChunk]:
        if self.is_speaking:
            self.controller.stop()
            return []
        return await self.speak_from_viewport()

    async def change_rate(self, delta: float) -> float:
        self.rate = clamp_rate(round(self.rate + delta, 2))
        self.engine.set_rate(self.rate)
        if self.is_speaking:
            self.controller.stop()
            await self.speak_from_viewport()
        return self.rate

    def save_position(self) -> None:
        self.checkpoints.save(self.key, max(0, self.surface.current_scroll_offset()))

    def pause(self) -> None:
        self.save_position()

    def teardown(self) -> None:
        self.save_position()
        self.controller.stop()
        self.engine.shutdown()
