"""Transcript: labeled segments, session timeline, text/SRT export."""
from .export import TranscriptFormat, parse_srt, render_plain_text, render_srt, write_transcript
from .models import TranscriptSegment
from .timeline import Timeline

__all__ = [
    "Timeline",
    "TranscriptFormat",
    "TranscriptSegment",
    "parse_srt",
    "render_plain_text",
    "render_srt",
    "write_transcript",
]
