"""
Timeline: append-only, ordered list of labeled segments for one session.

Append is the authoritative state transition; readers get tuple snapshots so an
export or UI query never sees a half-applied append.
"""
from __future__ import annotations

import threading
from typing import Iterator

from diarscribe.transcript.models import TranscriptSegment


class Timeline:
    def __init__(self) -> None:
        self._segments: list[TranscriptSegment] = []
        self._lock = threading.Lock()

    def append(self, segment: TranscriptSegment) -> int:
        """Append and return the new length."""
        with self._lock:
            self._segments.append(segment)
            return len(self._segments)

    def snapshot(self) -> tuple[TranscriptSegment, ...]:
        with self._lock:
            return tuple(self._segments)

    def clear(self) -> None:
        with self._lock:
            self._segments.clear()

    def speakers(self) -> list[str]:
        """Distinct labels in order of first appearance."""
        seen: dict[str, None] = {}
        for segment in self.snapshot():
            seen.setdefault(segment.speaker, None)
        return list(seen)

    def __len__(self) -> int:
        with self._lock:
            return len(self._segments)

    def __iter__(self) -> Iterator[TranscriptSegment]:
        return iter(self.snapshot())
