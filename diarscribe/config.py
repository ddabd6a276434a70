"""Application configuration. Loads from env vars."""
from __future__ import annotations

import logging
import os
from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """App settings. Override via environment variables."""

    # Canonical audio: PCM 16-bit mono, 16kHz
    SAMPLE_RATE: int = 16000

    # Capture devices. Empty device name = system default input.
    DEVICE_BUFFER_MS: int = 100
    MIC_DEVICE: str = ""
    # Empty = first input whose name contains "loopback", "monitor" or "stereo mix"
    LOOPBACK_DEVICE: str = ""
    # Both mode: an unpaired buffer from either source is sent solo once it has waited this long
    MIX_PENDING_WAIT_MS: int = 150

    # File mode: samples per read block (at the file's native rate)
    FILE_BLOCK_SAMPLES: int = 4096

    # Recognition models (paths to ready model directories)
    MODEL_PATH: str = ""
    SPEAKER_MODEL_PATH: str = ""
    RECOGNIZER_LOG_LEVEL: int = -1  # engine verbosity: -1 quiet, 0 info

    # Speaker identification (cosine distance; lower threshold = stricter)
    SPEAKER_SIMILARITY_THRESHOLD: float = 0.5
    SPEAKER_EMA_ALPHA: float = 0.3
    DEFAULT_SPEAKER_LABEL: str = "Speaker 1"  # segments without an embedding
    UNKNOWN_SPEAKER_LABEL: str = "Unknown"

    # Segments without word timings span [elapsed - N, elapsed]
    ESTIMATED_SEGMENT_SECONDS: float = 2.0

    # Export
    TRANSCRIPT_TITLE: str = "Meeting Transcript"
    TRANSCRIPT_DIR: str = "./transcripts"

    # Optional per-session recording of the canonical stream. Disabled by default.
    ENABLE_SESSION_RECORDING: bool = False
    RECORD_FORMAT: Literal["wav", "mp3"] = "wav"  # WAV preferred: no re-encode
    RECORD_DIR: str = "./recordings"
    RECORD_BITRATE: str = "128k"  # for MP3 only

    # Summarization: any OpenAI-compatible chat completions endpoint
    SUMMARY_ENABLED: bool = True
    SUMMARY_API_URL: str = "https://api.openai.com/v1/chat/completions"
    SUMMARY_API_KEY: str = ""
    SUMMARY_MODEL: str = "gpt-4o-mini"
    SUMMARY_TIMEOUT_SECONDS: float = 60.0
    SUMMARY_MAX_TOKENS: int = 1024

    # Logging: level (DEBUG, INFO, WARNING, ERROR); file path = also log to file (empty = console only).
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    class Config:
        env_file = ".env"
        extra = "ignore"


def get_settings() -> Settings:
    return Settings()


_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(settings: Settings | None = None) -> None:
    """Configure root logger from LOG_LEVEL / LOG_FILE. Safe to call more than once."""
    settings = settings or get_settings()
    level = getattr(logging, (settings.LOG_LEVEL or "INFO").upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)
    if getattr(root, "_diarscribe_configured", False):
        return

    formatter = logging.Formatter(_LOG_FORMAT)
    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)

    if settings.LOG_FILE:
        os.makedirs(os.path.dirname(settings.LOG_FILE) or ".", exist_ok=True)
        file_handler = logging.FileHandler(settings.LOG_FILE, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
    root._diarscribe_configured = True  # type: ignore[attr-defined]
