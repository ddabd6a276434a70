"""
SpeechRecognizer: adapter over a stateful streaming engine.

- partials: latest in-progress text, superseded in issue order.
- finals: FinalizedSegment once the engine concludes an utterance; always after
  that utterance's partials (both are emitted under the recognizer lock).
- Parse errors and engine hiccups are logged and count as "no result this call".
"""
from __future__ import annotations

import logging
import threading
from typing import Callable

from diarscribe.asr.base import (
    FinalizedSegment,
    RecognizerEngine,
    parse_final_result,
    parse_partial_result,
)
from diarscribe.errors import ModelLoadError
from diarscribe.events import EventChannel

logger = logging.getLogger(__name__)

EngineFactory = Callable[[str, "str | None"], RecognizerEngine]


def _vosk_engine_factory(model_path: str, speaker_model_path: str | None) -> RecognizerEngine:
    from diarscribe.asr.vosk_engine import VoskEngine

    return VoskEngine(model_path, speaker_model_path)


class SpeechRecognizer:
    def __init__(self, engine_factory: EngineFactory | None = None) -> None:
        self._engine_factory = engine_factory or _vosk_engine_factory
        self._engine: RecognizerEngine | None = None
        self._lock = threading.Lock()
        self.partials: EventChannel[str] = EventChannel("partials")
        self.finals: EventChannel[FinalizedSegment] = EventChannel("finals")

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    def initialize(self, model_path: str, speaker_model_path: str | None = None) -> None:
        """Load models. Raises ModelLoadError; a previous engine is released first."""
        with self._lock:
            if self._engine is not None:
                self._engine.close()
                self._engine = None
            logger.info("Recognizer initializing with model: %s", model_path)
            try:
                engine = self._engine_factory(model_path, speaker_model_path or None)
            except ModelLoadError:
                logger.error("Failed to initialize recognizer from %s", model_path)
                raise
            except Exception as e:
                logger.error("Failed to initialize recognizer from %s: %s", model_path, e)
                raise ModelLoadError(str(e)) from e
            self._engine = engine
            logger.info("Recognizer initialized")

    def process_audio(self, frame: bytes) -> None:
        """Feed one canonical frame; emits a partial or a final (or nothing for blank results)."""
        if self._engine is None:
            logger.error("Recognizer not initialized; frame dropped")
            return
        with self._lock:
            engine = self._engine
            if engine is None:
                return
            try:
                concluded = engine.accept_waveform(frame)
                if concluded:
                    segment = parse_final_result(engine.result())
                    if segment is not None:
                        self.finals.emit(segment)
                else:
                    partial = parse_partial_result(engine.partial_result())
                    if partial:
                        self.partials.emit(partial)
            except Exception as e:
                logger.warning("Error processing audio: %s", e)

    def finalize(self) -> FinalizedSegment | None:
        """Force out the in-flight utterance at end of session."""
        with self._lock:
            if self._engine is None:
                return None
            try:
                return parse_final_result(self._engine.final_result())
            except Exception as e:
                logger.warning("Error finalizing recognizer: %s", e)
                return None

    def reset(self) -> None:
        """Clear utterance state for a new session; models stay loaded."""
        with self._lock:
            if self._engine is not None:
                self._engine.reset()

    def close(self) -> None:
        with self._lock:
            if self._engine is not None:
                self._engine.close()
                self._engine = None
