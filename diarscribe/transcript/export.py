"""
Transcript export: plain text and SRT, written wholesale as UTF-8.

Plain text:
    <title>
    Date: YYYY-MM-DD HH:MM:SS
    Duration: HH:MM:SS
    Speakers: N
    --------------------------------------------------
    <blank>
    [HH:MM:SS] [Speaker 1]
    text
    <blank>

SRT: index, "HH:MM:SS,mmm --> HH:MM:SS,mmm", "[Speaker 1] text", blank line.
Segments are rendered in timeline (insertion) order.
"""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional

from diarscribe.transcript.models import TranscriptSegment

logger = logging.getLogger(__name__)

_HEADER_RULE = "-" * 50
_SRT_TIME_RE = re.compile(r"^(\d+):(\d{2}):(\d{2})[,.](\d{3})$")
_SRT_SPEAKER_RE = re.compile(r"^\[([^\]]+)\]\s?(.*)$", re.DOTALL)


class TranscriptFormat(str, Enum):
    PLAIN_TEXT = "txt"
    SRT = "srt"

    @classmethod
    def from_path(cls, path: str, default: "TranscriptFormat | None" = None) -> "TranscriptFormat":
        """Pick format by file extension (.srt -> SRT); anything else -> default or plain text."""
        ext = os.path.splitext(path)[1].lower().lstrip(".")
        if ext == cls.SRT.value:
            return cls.SRT
        return default or cls.PLAIN_TEXT


def _to_millis(seconds: float) -> int:
    return max(0, int(round(seconds * 1000)))


def format_clock(seconds: float) -> str:
    """HH:MM:SS (whole seconds, truncated; negative clamps to 0)."""
    total = _to_millis(seconds) // 1000
    hh, rem = divmod(total, 3600)
    mm, ss = divmod(rem, 60)
    return f"{hh:02d}:{mm:02d}:{ss:02d}"


def format_srt_time(seconds: float) -> str:
    """HH:MM:SS,mmm (millisecond rounding; negative clamps to 0)."""
    millis = _to_millis(seconds)
    total, ms = divmod(millis, 1000)
    hh, rem = divmod(total, 3600)
    mm, ss = divmod(rem, 60)
    return f"{hh:02d}:{mm:02d}:{ss:02d},{ms:03d}"


def parse_srt_time(value: str) -> float:
    match = _SRT_TIME_RE.match(value.strip())
    if not match:
        raise ValueError(f"Invalid SRT timestamp: {value!r}")
    hh, mm, ss, ms = (int(g) for g in match.groups())
    return hh * 3600 + mm * 60 + ss + ms / 1000.0


def render_plain_text(
    segments: Iterable[TranscriptSegment],
    title: str,
    generated_at: datetime,
    duration_seconds: float,
    speaker_count: int,
    unknown_label: str = "Unknown",
) -> str:
    lines = [
        title,
        f"Date: {generated_at:%Y-%m-%d %H:%M:%S}",
        f"Duration: {format_clock(duration_seconds)}",
        f"Speakers: {speaker_count}",
        _HEADER_RULE,
        "",
    ]
    for segment in segments:
        speaker = segment.speaker or unknown_label
        lines.append(f"[{format_clock(segment.start)}] [{speaker}]")
        lines.append(segment.text)
        lines.append("")
    return "\n".join(lines) + "\n"


def render_srt(segments: Iterable[TranscriptSegment], unknown_label: str = "Unknown") -> str:
    blocks: list[str] = []
    for index, segment in enumerate(segments, start=1):
        speaker = segment.speaker or unknown_label
        blocks.append(
            f"{index}\n"
            f"{format_srt_time(segment.start)} --> {format_srt_time(segment.end)}\n"
            f"[{speaker}] {segment.text}\n"
        )
    return "\n".join(blocks) + ("\n" if blocks else "")


@dataclass
class SrtEntry:
    index: int
    start: float
    end: float
    speaker: Optional[str]
    text: str


def parse_srt(content: str) -> list[SrtEntry]:
    """Parse SRT produced by render_srt (speaker prefix optional). Malformed blocks raise ValueError."""
    entries: list[SrtEntry] = []
    for block in re.split(r"\n\s*\n", content.replace("\r\n", "\n").strip()):
        lines = block.split("\n")
        if not block.strip():
            continue
        if len(lines) < 2 or "-->" not in lines[1]:
            raise ValueError(f"Malformed SRT block: {block[:60]!r}")
        start_text, end_text = (part.strip() for part in lines[1].split("-->", 1))
        body = "\n".join(lines[2:])
        speaker: Optional[str] = None
        match = _SRT_SPEAKER_RE.match(body)
        if match:
            speaker, body = match.group(1), match.group(2)
        entries.append(
            SrtEntry(
                index=int(lines[0].strip()),
                start=parse_srt_time(start_text),
                end=parse_srt_time(end_text),
                speaker=speaker,
                text=body,
            )
        )
    return entries


def write_transcript(path: str, content: str) -> str:
    """Write content wholesale (UTF-8). Returns the path. OSError propagates."""
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)
    logger.info("Transcript exported to: %s", path)
    return path
