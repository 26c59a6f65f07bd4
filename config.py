"""config.py — Settings loaded from .env and the process environment."""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_DATA_DIR = Path("~/.readaloud")
DEFAULT_MAX_CHUNK_LENGTH = 3000   # Synthesizer hard limit is near 4000
DEFAULT_SPEECH_RATE = 0.8
DEFAULT_TTS_MODEL = "eleven_turbo_v2_5"

# ElevenLabs default fallback voice (Aria - neutral, natural)
DEFAULT_VOICE_ID = "9BWtsMINqrJLrRacOk9x"

MIN_SPEECH_RATE = 0.3
MAX_SPEECH_RATE = 1.5


@dataclass(frozen=True)
class Settings:
    data_dir: Path = DEFAULT_DATA_DIR
    max_chunk_length: int = DEFAULT_MAX_CHUNK_LENGTH
    speech_rate: float = DEFAULT_SPEECH_RATE
    api_key: str = ""
    voice_id: str = DEFAULT_VOICE_ID
    tts_model: str = DEFAULT_TTS_MODEL

    @property
    def documents_dir(self) -> Path:
        return self.data_dir / "documents"

    @property
    def checkpoints_path(self) -> Path:
        return self.data_dir / "positions.json"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got '{raw}'") from None


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got '{raw}'") from None


def clamp_rate(rate: float) -> float:
    return max(MIN_SPEECH_RATE, min(MAX_SPEECH_RATE, rate))


def load_settings(env_file: Path | None = None) -> Settings:
    """Read .env (if any) and build Settings from the environment."""
    load_dotenv(env_file)

    max_chunk_length = _env_int("READALOUD_MAX_CHUNK_LENGTH", DEFAULT_MAX_CHUNK_LENGTH)
    if max_chunk_length < 2:
        raise ValueError("READALOUD_MAX_CHUNK_LENGTH must be at least 2")

    data_dir = os.getenv("READALOUD_DATA_DIR", "").strip() or str(DEFAULT_DATA_DIR)

    return Settings(
        data_dir=Path(data_dir).expanduser(),
        max_chunk_length=max_chunk_length,
        speech_rate=clamp_rate(_env_float("READALOUD_SPEECH_RATE", DEFAULT_SPEECH_RATE)),
        api_key=os.getenv("ELEVENLABS_API_KEY", "").strip(),
        voice_id=os.getenv("VOICE_ID", "").strip() or DEFAULT_VOICE_ID,
        tts_model=os.getenv("READALOUD_TTS_MODEL", "").strip() or DEFAULT_TTS_MODEL,
    )
