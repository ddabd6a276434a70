"""
Schemas for the session API: model initialization, start/stop, snapshot, export.

Segments are returned as stored on the timeline (start/end in session seconds).
"""
from __future__ import annotations

from pydantic import BaseModel, Field

from diarscribe.audio.normalizer import AudioSourceMode
from diarscribe.transcript.export import TranscriptFormat


class InitializeRequest(BaseModel):
    """Request body for POST /api/initialize."""

    model_path: str = Field(..., description="Directory of a ready speech recognition model")
    speaker_model_path: str | None = Field(
        None,
        description="Optional speaker embedding model directory; without it every segment is 'Speaker 1'",
    )


class StartRequest(BaseModel):
    """Request body for POST /api/session/start."""

    mode: AudioSourceMode = Field(AudioSourceMode.MICROPHONE, description="microphone | loopback | both | file")
    file_path: str | None = Field(None, description="Audio file to transcribe (required for mode=file)")


class WordTimingOut(BaseModel):
    word: str
    start: float
    end: float
    confidence: float = Field(1.0, ge=0.0, le=1.0)


class SegmentOut(BaseModel):
    text: str
    start: float
    end: float
    speaker: str
    words: list[WordTimingOut] = Field(default_factory=list)


class SessionResponse(BaseModel):
    """Response body for GET /api/session and the start/stop commands."""

    session_id: str | None = Field(None, description="Current (or last) session; null before the first start")
    mode: AudioSourceMode | None = None
    initialized: bool
    running: bool
    elapsed_seconds: float = 0.0
    speaker_count: int = 0
    segments: list[SegmentOut] = Field(default_factory=list)


class ExportRequest(BaseModel):
    """Request body for POST /api/session/export. Relative paths resolve under TRANSCRIPT_DIR."""

    path: str | None = Field(None, description="Target file; default TRANSCRIPT_DIR/<session_id>.<ext>")
    format: TranscriptFormat | None = Field(None, description="txt | srt; default chosen by extension")


class ExportResponse(BaseModel):
    path: str
    format: TranscriptFormat
    segment_count: int
