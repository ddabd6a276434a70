"""Pydantic schemas for API request/response."""
from diarscribe.schemas.session import (
    ExportRequest,
    ExportResponse,
    InitializeRequest,
    SegmentOut,
    SessionResponse,
    StartRequest,
    WordTimingOut,
)
from diarscribe.schemas.summary import SummaryRequest, SummaryResponse, TemplateOut

__all__ = [
    "ExportRequest",
    "ExportResponse",
    "InitializeRequest",
    "SegmentOut",
    "SessionResponse",
    "StartRequest",
    "SummaryRequest",
    "SummaryResponse",
    "TemplateOut",
    "WordTimingOut",
]
