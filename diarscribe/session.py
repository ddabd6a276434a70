"""
Session state for one recording. A new Session is built on every start; nothing carries over.

session_id is generated here (uuid hex, 12 chars) and names recordings and default export files.
"""
from __future__ import annotations

import threading
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from diarscribe.audio.normalizer import AudioSourceMode
from diarscribe.audio.recorder import NoOpRecorder, RecorderBase
from diarscribe.transcript.timeline import Timeline


def generate_session_id() -> str:
    return uuid.uuid4().hex[:12]


class ElapsedClock:
    """Stopwatch over a monotonic clock: start / stop / reset, elapsed in seconds."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._accumulated = 0.0
        self._started_at: Optional[float] = None

    def start(self) -> None:
        with self._lock:
            if self._started_at is None:
                self._started_at = self._clock()

    def restart(self) -> None:
        with self._lock:
            self._accumulated = 0.0
            self._started_at = self._clock()

    def stop(self) -> None:
        with self._lock:
            if self._started_at is not None:
                self._accumulated += self._clock() - self._started_at
                self._started_at = None

    def reset(self) -> None:
        with self._lock:
            self._accumulated = 0.0
            self._started_at = None

    @property
    def is_running(self) -> bool:
        return self._started_at is not None

    @property
    def elapsed(self) -> float:
        with self._lock:
            if self._started_at is None:
                return self._accumulated
            return self._accumulated + (self._clock() - self._started_at)


@dataclass
class Session:
    mode: AudioSourceMode
    file_path: Optional[str] = None
    session_id: str = field(default_factory=generate_session_id)
    clock: ElapsedClock = field(default_factory=ElapsedClock)
    timeline: Timeline = field(default_factory=Timeline)
    recorder: RecorderBase = field(default_factory=NoOpRecorder)
    started_at: datetime = field(default_factory=datetime.now)
    running: bool = False

    @property
    def elapsed(self) -> float:
        return self.clock.elapsed
