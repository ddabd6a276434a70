"""
Speaker identification (diarization by voice embeddings).

- Assigns labels (Speaker 1, Speaker 2, ...) consistent within one session.
- No real identity inference; labels reset at every session start.

Limitations (see speaker_tracker.py and models.py):
- Greedy online clustering; sensitive to the threshold and to noisy early embeddings.
- Without a speaker model, every segment gets the default label.
"""
from __future__ import annotations

from diarscribe.diarization.models import SpeakerProfile
from diarscribe.diarization.speaker_tracker import SpeakerTracker, cosine_distance, get_speaker_tracker

__all__ = ["SpeakerProfile", "SpeakerTracker", "cosine_distance", "get_speaker_tracker"]
