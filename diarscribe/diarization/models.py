"""
Speaker profile held by the tracker's registry.

- label: stable within a session ("Speaker 1", "Speaker 2", ...)
- reference: centroid direction, updated by exponential moving average on every match
- count: number of segments matched (1 on creation)

Limitations:
- Online, greedy clustering: profiles are never merged or split after creation.
- A noisy first embedding anchors its profile's direction for the whole session.
"""
from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass
class SpeakerProfile:
    label: str
    reference: np.ndarray
    count: int = 1

    def update(self, embedding: np.ndarray, alpha: float) -> None:
        """reference = (1 - alpha) * reference + alpha * embedding, per dimension."""
        self.reference = (1.0 - alpha) * self.reference + alpha * embedding
        self.count += 1

    def copy(self) -> "SpeakerProfile":
        return SpeakerProfile(label=self.label, reference=self.reference.copy(), count=self.count)
