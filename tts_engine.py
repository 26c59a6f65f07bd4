"""tts_engine.py — Speech chunking and the ElevenLabs speech engine."""

import logging
import queue
import threading
import time
from pathlib import Path
from typing import Protocol

from config import DEFAULT_MAX_CHUNK_LENGTH, DEFAULT_SPEECH_RATE, clamp_rate
from models import QueueMode, SpeechChunk

logger = logging.getLogger(__name__)

SENTENCE_ENDS = (". ", "? ", "! ")
MAX_RETRIES = 3
RETRY_DELAY = 5

# Range accepted by ElevenLabs voice settings
API_SPEED_RANGE = (0.7, 1.2)


def split_into_speech_chunks(text: str, max_length: int = DEFAULT_MAX_CHUNK_LENGTH) -> list[SpeechChunk]:
    """
    Split text into chunks of at most max_length, preferring sentence ends.

    A chunk ends right after the last ". ", "? " or "! " in its window; when
    the window has none, it is cut at max_length even mid-sentence. Joining
    the chunk texts gives back the input unchanged.
    """
    if max_length < 2:
        raise ValueError(f"max_length must be at least 2, got {max_length}")
    if not text:
        return []
    if len(text) <= max_length:
        return [SpeechChunk(index=0, text=text)]

    chunks = []
    start = 0
    while start < len(text):
        end = min(start + max_length, len(text))
        if end < len(text):
            break_point = max(text.rfind(mark, start, end) for mark in SENTENCE_ENDS)
            if break_point > start:
                end = break_point + 2
        chunks.append(SpeechChunk(index=len(chunks), text=text[start:end]))
        start = end
    return chunks


class UtteranceListener(Protocol):
    def on_start(self, utterance_id: str) -> None: ...

    def on_done(self, utterance_id: str) -> None: ...

    def on_error(self, utterance_id: str) -> None: ...


class SpeechEngine(Protocol):
    def speak(self, text: str, mode: QueueMode, utterance_id: str) -> None: ...

    def stop(self) -> None: ...

    def set_listener(self, listener: UtteranceListener) -> None: ...

    def set_rate(self, rate: float) -> None: ...

    def shutdown(self) -> None: ...


def api_speed(rate: float) -> float:
    low, high = API_SPEED_RANGE
    return max(low, min(high, rate))


def _is_retryable(error: Exception) -> bool:
    error_str = str(error).lower()
    return "429" in error_str or "rate" in error_str or "5" in error_str[:3]


def synthesize_chunk(
    client,
    text: str,
    voice_id: str,
    model_id: str,
    output_path: Path,
    speed: float = 1.0,
) -> Path:
    """Call ElevenLabs TTS API for a single chunk, save as MP3."""
    from elevenlabs import VoiceSettings

    delay = RETRY_DELAY
    last_error = None

    for attempt in range(MAX_RETRIES):
        try:
            audio_generator = client.text_to_speech.convert(
                voice_id=voice_id,
                text=text,
                model_id=model_id,
                voice_settings=VoiceSettings(
                    stability=0.5,
                    similarity_boost=0.75,
                    style=0.0,
                    use_speaker_boost=True,
                    speed=speed,
                ),
                output_format="mp3_44100_128",
            )
            audio_bytes = b"".join(audio_generator)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_bytes(audio_bytes)
            return output_path

        except Exception as e:
            last_error = e
            if not _is_retryable(e):
                raise
            logger.warning("Rate limit / server error (attempt %d/%d): %s", attempt + 1, MAX_RETRIES, e)
            time.sleep(delay)
            delay *= 2

    raise RuntimeError(f"TTS failed after {MAX_RETRIES} attempts: {last_error}")


class ElevenLabsEngine:
    """
    Speech engine that renders each utterance to <output_dir>/<utterance_id>.mp3.

    Utterances are synthesized one at a time on a worker thread, in the order
    they were queued. A FLUSH request drops everything still waiting.
    """

    def __init__(
        self,
        client,
        voice_id: str,
        model_id: str,
        output_dir: Path,
        rate: float = DEFAULT_SPEECH_RATE,
    ):
        self.client = client
        self.voice_id = voice_id
        self.model_id = model_id
        self.output_dir = Path(output_dir)
        self.rate = clamp_rate(rate)
        self._listener: UtteranceListener | None = None
        self._queue: queue.Queue = queue.Queue()
        self._generation = 0
        self._lock = threading.Lock()
        self._worker = threading.Thread(target=self._run, name="elevenlabs-engine", daemon=True)
        self._worker.start()

    def set_listener(self, listener: UtteranceListener) -> None:
        self._listener = listener

    def set_rate(self, rate: float) -> None:
        self.rate = clamp_rate(rate)

    def speak(self, text: str, mode: QueueMode, utterance_id: str) -> None:
        with self._lock:
            if mode is QueueMode.FLUSH:
                self._drain()
            self._queue.put((self._generation, text, utterance_id))

    def stop(self) -> None:
        with self._lock:
            self._drain()

    def wait(self) -> None:
        """Block until every queued utterance has been handled."""
        self._queue.join()

    def shutdown(self) -> None:
        self.stop()
        self._queue.put(None)
        self._worker.join()

    def _drain(self) -> None:
        self._generation += 1
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                break
            self._queue.task_done()

    def _notify(self, event: str, utterance_id: str) -> None:
        if self._listener is not None:
            getattr(self._listener, event)(utterance_id)

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is None:
                    return
                generation, text, utterance_id = item
                if generation != self._generation:
                    continue
                self._notify("on_start", utterance_id)
                try:
                    synthesize_chunk(
                        self.client,
                        text,
                        self.voice_id,
                        self.model_id,
                        self.output_dir / f"{utterance_id}.mp3",
                        speed=api_speed(self.rate),
                    )
                except Exception:
                    logger.exception("Synthesis failed for %s", utterance_id)
                    self._notify("on_error", utterance_id)
                else:
                    self._notify("on_done", utterance_id)
            finally:
                self._queue.task_done()
