"""
DualSourceMixer: pairs microphone and loopback buffers for "both" mode.

- One pending slot per source, both guarded by a single lock (the two device
  callbacks race into the same mix point).
- When both slots are filled: emit one mixed frame (integer mean, shorter length), clear both.
- A buffer left unpaired is emitted alone once it is stale: its source delivered
  again, or it has waited longer than pending_wait. It is never mixed retroactively.
- Pairing is by arrival, not by timestamp; no backlog is kept across callbacks.
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from diarscribe.audio.formats import mix_pcm16

logger = logging.getLogger(__name__)

MIC = "microphone"
LOOPBACK = "loopback"


class DualSourceMixer:
    def __init__(
        self,
        on_frame: Callable[[bytes], None],
        pending_wait: float = 0.05,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._on_frame = on_frame
        self._pending_wait = max(0.0, pending_wait)
        self._clock = clock
        self._lock = threading.Lock()
        # source -> (buffer, arrival time)
        self._pending: dict[str, tuple[bytes, float] | None] = {MIC: None, LOOPBACK: None}

    def push_microphone(self, data: bytes) -> None:
        self._push(MIC, data)

    def push_loopback(self, data: bytes) -> None:
        self._push(LOOPBACK, data)

    def _push(self, source: str, data: bytes) -> None:
        if not data:
            return
        other = LOOPBACK if source == MIC else MIC
        with self._lock:
            now = self._clock()
            previous = self._pending[source]
            if previous is not None:
                # Same source delivered again before its pair arrived
                self._pending[source] = None
                self._on_frame(previous[0])
            self._emit_stale_locked(now)

            self._pending[source] = (data, now)
            if self._pending[other] is not None:
                mic_data = self._pending[MIC][0]
                loop_data = self._pending[LOOPBACK][0]
                self._pending[MIC] = None
                self._pending[LOOPBACK] = None
                mixed = mix_pcm16(mic_data, loop_data)
                if mixed:
                    self._on_frame(mixed)

    def _emit_stale_locked(self, now: float) -> None:
        for source in (MIC, LOOPBACK):
            pending = self._pending[source]
            if pending is not None and now - pending[1] >= self._pending_wait:
                self._pending[source] = None
                self._on_frame(pending[0])

    def flush_stale(self) -> None:
        """Emit any buffer that has waited past pending_wait."""
        with self._lock:
            self._emit_stale_locked(self._clock())

    def flush(self) -> None:
        """Emit whatever is pending, alone (on stop)."""
        with self._lock:
            for source in (MIC, LOOPBACK):
                pending = self._pending[source]
                self._pending[source] = None
                if pending is not None:
                    self._on_frame(pending[0])

    def clear(self) -> None:
        with self._lock:
            self._pending[MIC] = None
            self._pending[LOOPBACK] = None

    @property
    def has_pending(self) -> bool:
        with self._lock:
            return any(v is not None for v in self._pending.values())
