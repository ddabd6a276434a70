"""
TranscriptionService: owns the session lifecycle and wires the pipeline.

    AudioNormalizer.frames -> SpeechRecognizer.process_audio
    SpeechRecognizer.partials -> partial_text
    SpeechRecognizer.finals -> label (SpeakerTracker) -> Timeline.append -> segment_completed

State machine: idle -> running (start) -> idle (stop, or natural end of file).
start() while running performs stop() then start(). stop() is idempotent and may be
called from any thread; once it returns, no partial/segment event for that session is
delivered (late device callbacks are discarded).
"""
from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable, Optional

from diarscribe.asr.base import FinalizedSegment
from diarscribe.asr.recognizer import SpeechRecognizer
from diarscribe.audio.normalizer import AudioNormalizer, AudioSourceMode
from diarscribe.audio.recorder import RecorderBase, create_session_recorder
from diarscribe.config import get_settings
from diarscribe.diarization.speaker_tracker import SpeakerTracker, get_speaker_tracker
from diarscribe.errors import ExportError, RecognizerNotInitializedError
from diarscribe.events import EventChannel
from diarscribe.session import ElapsedClock, Session
from diarscribe.transcript.export import (
    TranscriptFormat,
    render_plain_text,
    render_srt,
    write_transcript,
)
from diarscribe.transcript.models import TranscriptSegment

logger = logging.getLogger(__name__)

NOT_INITIALIZED_MESSAGE = "Transcriber not initialized. Please ensure models are available."


class TranscriptionService:
    def __init__(
        self,
        normalizer: AudioNormalizer | None = None,
        recognizer: SpeechRecognizer | None = None,
        tracker: SpeakerTracker | None = None,
        recorder_factory: Callable[[str], RecorderBase] | None = None,
        clock_factory: Callable[[], ElapsedClock] | None = None,
    ) -> None:
        settings = get_settings()
        self._normalizer = normalizer or AudioNormalizer()
        self._recognizer = recognizer or SpeechRecognizer()
        self._tracker = tracker or get_speaker_tracker()
        self._recorder_factory = recorder_factory or create_session_recorder
        self._clock_factory = clock_factory or ElapsedClock
        self._default_label = settings.DEFAULT_SPEAKER_LABEL
        self._estimate_seconds = settings.ESTIMATED_SEGMENT_SECONDS
        self._title = settings.TRANSCRIPT_TITLE

        self.partial_text: EventChannel[str] = EventChannel("partial_text")
        self.segment_completed: EventChannel[TranscriptSegment] = EventChannel("segment_completed")
        self.state_changed: EventChannel[bool] = EventChannel("state_changed")
        self.error: EventChannel[str] = EventChannel("error")

        # Serializes start/stop; re-entrant so start() can stop a running session
        self._state_lock = threading.RLock()
        self._session: Optional[Session] = None
        self._running = False

        self._normalizer.frames.subscribe(self._on_frame)
        self._normalizer.stopped.subscribe(self._on_audio_stopped)
        self._recognizer.partials.subscribe(self._on_partial)
        self._recognizer.finals.subscribe(self._on_final)

    # --- queries ---

    @property
    def is_initialized(self) -> bool:
        return self._recognizer.is_initialized

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def elapsed(self) -> float:
        session = self._session
        return session.clock.elapsed if session is not None else 0.0

    @property
    def segments(self) -> tuple[TranscriptSegment, ...]:
        session = self._session
        return session.timeline.snapshot() if session is not None else ()

    @property
    def speaker_count(self) -> int:
        return self._tracker.speaker_count

    @property
    def tracker(self) -> SpeakerTracker:
        return self._tracker

    # --- commands ---

    def initialize(self, model_path: str, speaker_model_path: str | None = None) -> None:
        """Load recognition models. Failure emits an error event and re-raises."""
        try:
            self._recognizer.initialize(model_path, speaker_model_path)
        except Exception as e:
            self.error.emit(f"Failed to initialize: {e}")
            raise

    def start(self, mode: AudioSourceMode | str, file_path: str | None = None) -> Session:
        """
        Begin a new session. Raises RecognizerNotInitializedError, ValueError (bad mode / missing
        file path) or AudioDeviceError; in every failure case the service stays idle and the
        previous session and speaker registry are left as they were.
        """
        with self._state_lock:
            if self._running:
                self.stop()

            if not self._recognizer.is_initialized:
                logger.error(NOT_INITIALIZED_MESSAGE)
                self.error.emit(NOT_INITIALIZED_MESSAGE)
                raise RecognizerNotInitializedError(NOT_INITIALIZED_MESSAGE)

            previous = self._session
            previous_speakers = self._tracker.profiles()
            try:
                mode = AudioSourceMode(mode)
                logger.info("TranscriptionService starting in %s mode", mode.value)
                session = Session(mode=mode, file_path=file_path, clock=self._clock_factory())
                session.recorder = self._recorder_factory(session.session_id)
                self._tracker.reset()
                self._recognizer.reset()
                session.clock.restart()
                # Frames may arrive as soon as the normalizer starts
                self._session = session
                self._running = True
                self._normalizer.start(mode, file_path)
            except Exception as e:
                self._running = False
                self._session = previous
                self._tracker.restore(previous_speakers)
                logger.error("Failed to start transcription: %s", e)
                self.error.emit(f"Failed to start: {e}")
                raise

            session.running = True
            self.state_changed.emit(True)
            return session

    def stop(self) -> None:
        """Stop capture, flush the recognizer, close the session. No-op when idle."""
        with self._state_lock:
            if not self._running:
                return
            logger.info("TranscriptionService stopping")
            # From here on, deliveries from capture threads are discarded
            self._running = False
            session = self._session

            self._normalizer.stop()
            if session is not None:
                session.clock.stop()

            final_segment = self._recognizer.finalize()
            if final_segment is not None and session is not None:
                self._process_segment(final_segment, session)

            if session is not None:
                session.recorder.finalize()
                session.running = False
            self.state_changed.emit(False)

    def render(self, fmt: TranscriptFormat | str = TranscriptFormat.PLAIN_TEXT) -> str:
        fmt = TranscriptFormat(fmt)
        session = self._session
        segments = session.timeline.snapshot() if session is not None else ()
        if fmt is TranscriptFormat.SRT:
            return render_srt(segments)
        speakers = session.timeline.speakers() if session is not None else []
        return render_plain_text(
            segments,
            title=self._title,
            generated_at=datetime.now(),
            duration_seconds=self.elapsed,
            speaker_count=len(speakers),
        )

    def export(self, path: str, fmt: TranscriptFormat | str | None = None) -> str:
        """Write the timeline to path. fmt None -> chosen by extension. Raises ExportError."""
        fmt = TranscriptFormat(fmt) if fmt is not None else TranscriptFormat.from_path(path)
        try:
            return write_transcript(path, self.render(fmt))
        except OSError as e:
            logger.error("Failed to export transcript to %s: %s", path, e)
            self.error.emit(f"Failed to export: {e}")
            raise ExportError(str(e)) from e

    def close(self) -> None:
        self.stop()
        self._recognizer.close()

    # --- pipeline callbacks (capture / recognizer threads) ---

    def _on_frame(self, frame: bytes) -> None:
        if not self._running:
            return
        session = self._session
        if session is not None:
            session.recorder.append(frame)
        self._recognizer.process_audio(frame)

    def _on_audio_stopped(self, _: None) -> None:
        # Natural end of file is handled exactly like a manual stop
        if self._running:
            self.stop()

    def _on_partial(self, text: str) -> None:
        if self._running:
            self.partial_text.emit(text)

    def _on_final(self, segment: FinalizedSegment) -> None:
        session = self._session
        if not self._running or session is None:
            return
        self._process_segment(segment, session)

    def _process_segment(self, raw: FinalizedSegment, session: Session) -> TranscriptSegment:
        if not raw.has_word_timings:
            elapsed = session.clock.elapsed
            # May be negative early in a session; exporters clamp at render time
            raw.start = elapsed - self._estimate_seconds
            raw.end = elapsed

        if raw.embedding:
            label = self._tracker.identify(raw.embedding)
        else:
            label = self._default_label

        segment = TranscriptSegment.from_finalized(raw, label)
        session.timeline.append(segment)
        self.segment_completed.emit(segment)
        logger.info("Segment: [%s] %s", label, segment.text[:50])
        return segment
