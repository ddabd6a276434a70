"""
SessionRecorder: optional per-session recording of the canonical stream to WAV/MP3.

- Disabled: no-op (append/finalize do nothing).
- Enabled: in-memory buffer only; written once when the session stops.
- WAV: one open -> write all frames -> close once. MP3: write WAV first, then convert with pydub.
- Sees exactly what the recognizer sees (post-normalization, post-mix).
"""
from __future__ import annotations

import logging
import os
import threading
import time
import wave
from abc import ABC, abstractmethod
from typing import Optional

from diarscribe.audio.formats import NCHANNELS, SAMPLE_RATE, SAMPLE_WIDTH, duration_seconds
from diarscribe.config import get_settings

logger = logging.getLogger(__name__)


class RecorderBase(ABC):
    @abstractmethod
    def append(self, frame: bytes) -> None:
        """Append one canonical frame. Called from capture threads."""
        ...

    @abstractmethod
    def finalize(self) -> Optional[str]:
        """Write the file once. Returns path or None."""
        ...


class NoOpRecorder(RecorderBase):
    def append(self, frame: bytes) -> None:
        pass

    def finalize(self) -> Optional[str]:
        return None


def _write_wav_sync(pcm_bytes: bytes, out_path: str, sample_rate: int = SAMPLE_RATE) -> None:
    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
    with wave.open(out_path, "wb") as wav:
        wav.setnchannels(NCHANNELS)
        wav.setsampwidth(SAMPLE_WIDTH)
        wav.setframerate(sample_rate)
        wav.writeframes(pcm_bytes)


def _wav_to_mp3_sync(wav_path: str, mp3_path: str, bitrate: str) -> None:
    from pydub import AudioSegment

    segment = AudioSegment.from_wav(wav_path)
    segment.export(mp3_path, format="mp3", bitrate=bitrate)


class SessionRecorder(RecorderBase):
    """One session = one in-memory buffer, flushed on finalize()."""

    def __init__(
        self,
        session_id: str,
        record_dir: str | None = None,
        record_format: str | None = None,
        bitrate: str | None = None,
    ) -> None:
        settings = get_settings()
        self._session_id = session_id
        self._record_dir = record_dir or settings.RECORD_DIR
        self._format = record_format or settings.RECORD_FORMAT
        self._bitrate = bitrate or settings.RECORD_BITRATE
        self._buffer = bytearray()
        self._lock = threading.Lock()
        self._finalized = False

    def append(self, frame: bytes) -> None:
        if len(frame) % SAMPLE_WIDTH != 0:
            logger.warning("Recording: dropped malformed frame (length %d not divisible by 2)", len(frame))
            return
        with self._lock:
            if self._finalized:
                return
            self._buffer.extend(frame)

    def finalize(self) -> Optional[str]:
        with self._lock:
            if self._finalized:
                return None
            self._finalized = True
            data = bytes(self._buffer)
            self._buffer.clear()
        if not data:
            return None

        logger.info("Finalizing session recording %s (%.1fs)", self._session_id, duration_seconds(data))
        base = f"session_{self._session_id}_{int(time.time())}"
        wav_path = os.path.join(self._record_dir, f"{base}.wav")
        try:
            _write_wav_sync(data, wav_path)
            if self._format == "mp3":
                mp3_path = os.path.join(self._record_dir, f"{base}.mp3")
                _wav_to_mp3_sync(wav_path, mp3_path, self._bitrate)
                os.remove(wav_path)
                logger.info("Session recording saved: %s", mp3_path)
                return mp3_path
        except Exception as e:
            logger.warning("Session recording failed for %s: %s", self._session_id, e)
            return None
        logger.info("Session recording saved: %s", wav_path)
        return wav_path


def create_session_recorder(session_id: str) -> RecorderBase:
    """SessionRecorder when ENABLE_SESSION_RECORDING is true; else no-op."""
    settings = get_settings()
    if settings.ENABLE_SESSION_RECORDING:
        return SessionRecorder(session_id)
    return NoOpRecorder()
