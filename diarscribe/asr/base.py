"""
Recognizer data types, the streaming engine interface, and engine-output parsing.

Engine output is JSON with optional fields:
- final:   {"text": str, "result": [{"word", "start", "end", "conf"?}, ...]?, "spk": [float, ...]?}
- partial: {"partial": str}
Each field is checked for presence explicitly; blank text means "no result".
"""
from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Mapping

logger = logging.getLogger(__name__)


@dataclass
class WordTiming:
    """Single word with start/end in seconds and confidence 0.0-1.0."""

    word: str
    start: float
    end: float
    confidence: float = 1.0


@dataclass
class FinalizedSegment:
    """
    One concluded utterance, before speaker labeling.
    With word timings, start/end span the words; without, the orchestrator estimates them.
    """

    text: str
    start: float = 0.0
    end: float = 0.0
    words: list[WordTiming] = field(default_factory=list)
    embedding: list[float] | None = None  # speaker x-vector, when a speaker model is loaded

    @property
    def has_word_timings(self) -> bool:
        return bool(self.words)


class RecognizerEngine(ABC):
    """
    Stateful streaming recognizer fed canonical PCM.
    accept_waveform() returns True when an utterance concluded (read result()),
    False while still accumulating (read partial_result()).
    """

    @abstractmethod
    def accept_waveform(self, data: bytes) -> bool:
        ...

    @abstractmethod
    def result(self) -> str:
        ...

    @abstractmethod
    def partial_result(self) -> str:
        ...

    @abstractmethod
    def final_result(self) -> str:
        """Flush the in-flight utterance (end of stream)."""
        ...

    @abstractmethod
    def reset(self) -> None:
        ...

    def close(self) -> None:
        """Release native resources."""


def _decode(raw: str | bytes | Mapping[str, Any]) -> Mapping[str, Any] | None:
    if isinstance(raw, Mapping):
        return raw
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.warning("Recognizer output is not JSON: %s", e)
        return None
    if not isinstance(data, Mapping):
        logger.warning("Recognizer output is not an object: %r", type(data).__name__)
        return None
    return data


def _parse_word(item: Mapping[str, Any]) -> WordTiming:
    conf = item["conf"] if "conf" in item else 1.0
    return WordTiming(
        word=str(item["word"]),
        start=float(item["start"]),
        end=float(item["end"]),
        confidence=min(1.0, max(0.0, float(conf))),
    )


def parse_final_result(raw: str | bytes | Mapping[str, Any]) -> FinalizedSegment | None:
    """Engine final output -> FinalizedSegment, or None for blank text / malformed payload."""
    data = _decode(raw)
    if data is None:
        return None
    try:
        text = data["text"] if "text" in data else ""
        text = (text or "").strip() if isinstance(text, str) else ""
        if not text:
            return None

        segment = FinalizedSegment(text=text)
        if "result" in data and data["result"]:
            segment.words = [_parse_word(w) for w in data["result"]]
            segment.start = min(w.start for w in segment.words)
            segment.end = max(w.end for w in segment.words)
        if "spk" in data and data["spk"]:
            segment.embedding = [float(v) for v in data["spk"]]
        return segment
    except (KeyError, TypeError, ValueError) as e:
        logger.warning("Error parsing recognizer result: %s", e)
        return None


def parse_partial_result(raw: str | bytes | Mapping[str, Any]) -> str:
    """Engine partial output -> stripped text ("" when absent or malformed)."""
    data = _decode(raw)
    if data is None or "partial" not in data:
        return ""
    partial = data["partial"]
    if not isinstance(partial, str):
        logger.warning("Partial result has non-string text: %r", type(partial).__name__)
        return ""
    return partial.strip()
