"""
Speaker-labeled transcript segment: what the timeline stores and the UI receives.

- start, end: seconds, session-relative (word timings when the engine gave them, else estimated, which can be negative near session start)
- speaker: label from the speaker tracker, or the default label when no embedding was present
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from diarscribe.asr.base import FinalizedSegment, WordTiming


@dataclass
class TranscriptSegment:
    text: str
    start: float
    end: float
    speaker: str
    words: list[WordTiming] = field(default_factory=list)
    embedding: list[float] | None = None

    @classmethod
    def from_finalized(cls, segment: FinalizedSegment, speaker: str) -> "TranscriptSegment":
        return cls(
            text=segment.text,
            start=segment.start,
            end=segment.end,
            speaker=speaker,
            words=list(segment.words),
            embedding=list(segment.embedding) if segment.embedding is not None else None,
        )

    @property
    def duration(self) -> float:
        return max(0.0, self.end - self.start)

    def to_dict(self, include_words: bool = True) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "text": self.text,
            "start": self.start,
            "end": self.end,
            "speaker": self.speaker,
        }
        if include_words and self.words:
            payload["words"] = [
                {"word": w.word, "start": w.start, "end": w.end, "confidence": w.confidence}
                for w in self.words
            ]
        return payload
