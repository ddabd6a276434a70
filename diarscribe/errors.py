"""Error types surfaced to callers. Per-buffer and per-result failures never use these; they are logged and dropped."""
from __future__ import annotations


class DiarscribeError(Exception):
    """Base for errors that prevent a session or command from completing."""


class ModelLoadError(DiarscribeError):
    """Recognition model missing or unreadable."""


class RecognizerNotInitializedError(DiarscribeError):
    """start() called before a successful initialize()."""


class AudioDeviceError(DiarscribeError):
    """Capture device (or input file) could not be acquired."""


class ExportError(DiarscribeError):
    """Transcript could not be written."""


class SummaryError(DiarscribeError, ValueError):
    """Summarization disabled or not configured."""
