"""narration.py — Drive a speech engine through a sequence of speech chunks."""

import logging
import threading
from collections.abc import Callable, Sequence

from models import NarrationState, QueueMode, SpeechChunk
from tts_engine import SpeechEngine

logger = logging.getLogger(__name__)


class NarrationController:
    """
    Dispatches chunks to the engine and follows its utterance callbacks.

    The first chunk of a run flushes the engine queue, the rest are appended.
    State only becomes SPEAKING when the engine reports that an utterance
    started. Callbacks may arrive from an engine thread; transitions are
    serialized by a lock.
    """

    def __init__(
        self,
        engine: SpeechEngine,
        on_state_change: Callable[[NarrationState], None] | None = None,
    ):
        self.engine = engine
        self.on_state_change = on_state_change
        self.state = NarrationState.IDLE
        self.active_utterance: str | None = None
        self.errors: list[str] = []
        self.run = 0
        self._pending: set[str] = set()
        self._lock = threading.RLock()
        engine.set_listener(self)

    @property
    def is_speaking(self) -> bool:
        return self.state is NarrationState.SPEAKING

    def start(self, chunks: Sequence[SpeechChunk]) -> None:
        with self._lock:
            if self.is_speaking:
                self.stop()
            self.run += 1
            ids = [self.utterance_id(chunk) for chunk in chunks]
            self._pending = set(ids)
            self.errors = []
            for position, (chunk, utterance_id) in enumerate(zip(chunks, ids)):
                mode = QueueMode.FLUSH if position == 0 else QueueMode.APPEND
                self.engine.speak(chunk.text, mode, utterance_id)
            logger.debug("Dispatched %d chunks", len(chunks))

    def utterance_id(self, chunk: SpeechChunk) -> str:
        """Id of a chunk in the current run; ids never repeat across runs."""
        return f"{chunk.utterance_id}_r{self.run}"

    def stop(self) -> None:
        with self._lock:
            self.engine.stop()
            self._pending = set()
            self.active_utterance = None
            self._set_state(NarrationState.IDLE)

    # Engine callbacks

    def on_start(self, utterance_id: str) -> None:
        with self._lock:
            if utterance_id not in self._pending:
                return
            self.active_utterance = utterance_id
            self._set_state(NarrationState.SPEAKING)

    def on_done(self, utterance_id: str) -> None:
        with self._lock:
            if utterance_id not in self._pending:
                return
            self._pending.discard(utterance_id)
            self._finish(utterance_id)

    def on_error(self, utterance_id: str) -> None:
        with self._lock:
            if utterance_id not in self._pending:
                return
            # Later chunks stay queued; only the idle flag reports the failure.
            logger.warning("Speech engine failed on %s", utterance_id)
            self._pending.discard(utterance_id)
            self.errors.append(utterance_id)
            self._finish(utterance_id)

    def _finish(self, utterance_id: str) -> None:
        if self.active_utterance in (None, utterance_id):
            self.active_utterance = None
            self._set_state(NarrationState.IDLE)

    def _set_state(self, state: NarrationState) -> None:
        if state is self.state:
            return
        self.state = state
        if self.on_state_change is not None:
            self.on_state_change(state)
