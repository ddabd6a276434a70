"""
Speaker tracking by voice-embedding (x-vector) nearest neighbor.

- identify(): cosine distance to every profile; closest one strictly under the
  threshold is a match (its reference drifts toward the new vector); otherwise a
  new "Speaker N" profile is registered.
- Lookup + update is one critical section; reset and read-only queries take the same lock.
- Labels are session-local; reset() at session start clears the registry.
"""
from __future__ import annotations

import logging
import threading
from typing import Sequence

import numpy as np

from diarscribe.config import get_settings
from diarscribe.diarization.models import SpeakerProfile

logger = logging.getLogger(__name__)

SPEAKER_PREFIX = "Speaker "


def _speaker_label(index: int) -> str:
    """Label for 0-based registry index: Speaker 1, Speaker 2, ..."""
    return f"{SPEAKER_PREFIX}{index + 1}"


def cosine_distance(a: Sequence[float] | np.ndarray, b: Sequence[float] | np.ndarray) -> float:
    """1 - cosine similarity (0 = same direction, 2 = opposite). 1.0 when either vector has zero norm."""
    x = np.asarray(a, dtype=np.float64)
    y = np.asarray(b, dtype=np.float64)
    if x.shape != y.shape:
        raise ValueError(f"Vectors must have the same length ({x.size} != {y.size})")
    norm_x = float(np.linalg.norm(x))
    norm_y = float(np.linalg.norm(y))
    if norm_x == 0.0 or norm_y == 0.0:
        return 1.0
    return 1.0 - float(np.dot(x, y)) / (norm_x * norm_y)


def get_speaker_tracker() -> "SpeakerTracker":
    return SpeakerTracker()


class SpeakerTracker:
    def __init__(
        self,
        threshold: float | None = None,
        alpha: float | None = None,
        unknown_label: str | None = None,
    ) -> None:
        """
        threshold: cosine distance under which an embedding matches a profile (lower = stricter).
        alpha: weight of the incoming vector in the reference update.
        """
        settings = get_settings()
        self._threshold = threshold if threshold is not None else settings.SPEAKER_SIMILARITY_THRESHOLD
        self._alpha = alpha if alpha is not None else settings.SPEAKER_EMA_ALPHA
        self._unknown_label = unknown_label or settings.UNKNOWN_SPEAKER_LABEL
        self._profiles: list[SpeakerProfile] = []
        self._lock = threading.Lock()

    @property
    def threshold(self) -> float:
        return self._threshold

    def identify(self, embedding: Sequence[float] | np.ndarray | None) -> str:
        """Map an embedding to a stable label. None / empty -> unknown label, registry untouched."""
        if embedding is None or len(embedding) == 0:
            return self._unknown_label
        vector = np.asarray(embedding, dtype=np.float64)

        with self._lock:
            best: SpeakerProfile | None = None
            best_distance = float("inf")
            for profile in self._profiles:
                if profile.reference.shape != vector.shape:
                    logger.warning(
                        "Embedding size %d does not match %s (%d); skipped",
                        vector.size, profile.label, profile.reference.size,
                    )
                    continue
                distance = cosine_distance(vector, profile.reference)
                if distance < best_distance:
                    best_distance = distance
                    best = profile

            if best is not None and best_distance < self._threshold:
                best.update(vector, self._alpha)
                logger.info("Matched %s (distance: %.3f)", best.label, best_distance)
                return best.label

            label = _speaker_label(len(self._profiles))
            self._profiles.append(SpeakerProfile(label=label, reference=vector.copy(), count=1))
            logger.info("Registered new speaker: %s", label)
            return label

    @property
    def speaker_count(self) -> int:
        with self._lock:
            return len(self._profiles)

    def list_labels(self) -> list[str]:
        with self._lock:
            return [p.label for p in self._profiles]

    def profiles(self) -> list[SpeakerProfile]:
        """Snapshot copies; mutating them does not touch the registry."""
        with self._lock:
            return [p.copy() for p in self._profiles]

    def restore(self, profiles: Sequence[SpeakerProfile]) -> None:
        """Replace the registry with copies of profiles (as returned by profiles())."""
        with self._lock:
            self._profiles = [p.copy() for p in profiles]

    def reset(self) -> None:
        with self._lock:
            self._profiles.clear()
        logger.info("SpeakerTracker reset")
