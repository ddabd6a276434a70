from __future__ import annotations

from datetime import datetime

import pytest

from diarscribe.transcript.export import (
    TranscriptFormat,
    format_clock,
    format_srt_time,
    parse_srt,
    parse_srt_time,
    render_plain_text,
    render_srt,
    write_transcript,
)
from diarscribe.transcript.models import TranscriptSegment
from diarscribe.transcript.timeline import Timeline


@pytest.fixture
def segments() -> list[TranscriptSegment]:
    return [
        TranscriptSegment(text="Good morning everyone.", start=1.25, end=3.5, speaker="Speaker 1"),
        TranscriptSegment(text="Morning! Shall we start?", start=3.9, end=6.004, speaker="Speaker 2"),
        TranscriptSegment(text="Yes.", start=3661.0, end=3662.5, speaker="Speaker 1"),
    ]


def test_time_formats() -> None:
    assert format_clock(0) == "00:00:00"
    assert format_clock(3661.9) == "01:01:01"
    assert format_srt_time(3.5) == "00:00:03,500"
    assert format_srt_time(3661.0006) == "01:01:01,001"
    assert format_srt_time(-2.0) == "00:00:00,000"
    assert parse_srt_time("01:01:01,001") == pytest.approx(3661.001)
    with pytest.raises(ValueError):
        parse_srt_time("1:2:3")


def test_plain_text_layout(segments: list[TranscriptSegment]) -> None:
    text = render_plain_text(
        segments[:2],
        title="Meeting Transcript",
        generated_at=datetime(2024, 5, 6, 7, 8, 9),
        duration_seconds=65.2,
        speaker_count=2,
    )
    assert text.split("\n") == [
        "Meeting Transcript",
        "Date: 2024-05-06 07:08:09",
        "Duration: 00:01:05",
        "Speakers: 2",
        "-" * 50,
        "",
        "[00:00:01] [Speaker 1]",
        "Good morning everyone.",
        "",
        "[00:00:03] [Speaker 2]",
        "Morning! Shall we start?",
        "",
        "",
    ]


def test_srt_layout(segments: list[TranscriptSegment]) -> None:
    srt = render_srt(segments[:1])
    assert srt == "1\n00:00:01,250 --> 00:00:03,500\n[Speaker 1] Good morning everyone.\n\n"
    assert render_srt([]) == ""


def test_srt_round_trip_to_the_millisecond(segments: list[TranscriptSegment]) -> None:
    entries = parse_srt(render_srt(segments))
    assert [e.index for e in entries] == [1, 2, 3]
    for entry, segment in zip(entries, segments):
        assert entry.speaker == segment.speaker
        assert entry.text == segment.text
        assert abs(entry.start - segment.start) <= 0.0005
        assert abs(entry.end - segment.end) <= 0.0005


def test_parse_srt_rejects_malformed_block() -> None:
    with pytest.raises(ValueError):
        parse_srt("1\nnot a timing line\ntext\n")


def test_format_from_path() -> None:
    assert TranscriptFormat.from_path("out/meeting.SRT") is TranscriptFormat.SRT
    assert TranscriptFormat.from_path("out/meeting.txt") is TranscriptFormat.PLAIN_TEXT
    assert TranscriptFormat.from_path("out/meeting") is TranscriptFormat.PLAIN_TEXT


def test_write_transcript_creates_parent_dirs(tmp_path) -> None:
    target = tmp_path / "nested" / "dir" / "t.txt"
    path = write_transcript(str(target), "héllo\n")
    assert path == str(target)
    assert target.read_text(encoding="utf-8") == "héllo\n"


def test_timeline_snapshot_and_speakers(segments: list[TranscriptSegment]) -> None:
    timeline = Timeline()
    for i, segment in enumerate(segments, start=1):
        assert timeline.append(segment) == i
    snapshot = timeline.snapshot()
    timeline.clear()
    assert len(snapshot) == 3 and len(timeline) == 0
    for segment in snapshot:
        timeline.append(segment)
    assert timeline.speakers() == ["Speaker 1", "Speaker 2"]
