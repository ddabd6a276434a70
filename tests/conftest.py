"""Pytest configuration helpers: scripted recognizer engine, fake capture sources, manual clock."""
from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Callable, Generator

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
root_str = str(PROJECT_ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)

from diarscribe.asr.base import RecognizerEngine
from diarscribe.asr.recognizer import SpeechRecognizer
from diarscribe.audio.normalizer import AudioNormalizer, AudioSourceMode
from diarscribe.audio.recorder import NoOpRecorder
from diarscribe.audio.sources import AudioSource
from diarscribe.diarization.speaker_tracker import SpeakerTracker
from diarscribe.errors import AudioDeviceError
from diarscribe.service import TranscriptionService
from diarscribe.session import ElapsedClock


def final_payload(text: str, words: list[tuple[str, float, float]] | None = None, spk: list[float] | None = None) -> str:
    data: dict[str, Any] = {"text": text}
    if words:
        data["result"] = [{"word": w, "start": s, "end": e, "conf": 1.0} for w, s, e in words]
    if spk is not None:
        data["spk"] = spk
    return json.dumps(data)


class FakeEngine(RecognizerEngine):
    """
    Scripted engine. Each accept_waveform() pops the next step:
    ("final", payload) concludes an utterance, ("partial", payload) does not.
    With the script exhausted every frame yields an empty partial.
    """

    def __init__(self, script: list[tuple[str, str]] | None = None, final: str = '{"text": ""}') -> None:
        self.script = list(script or [])
        self.final = final
        self.frames: list[bytes] = []
        self.resets = 0
        self.closed = False
        self._current = '{"partial": ""}'

    def accept_waveform(self, data: bytes) -> bool:
        self.frames.append(data)
        if not self.script:
            self._current = '{"partial": ""}'
            return False
        kind, payload = self.script.pop(0)
        self._current = payload
        return kind == "final"

    def result(self) -> str:
        return self._current

    def partial_result(self) -> str:
        return self._current

    def final_result(self) -> str:
        payload, self.final = self.final, '{"text": ""}'
        return payload

    def reset(self) -> None:
        self.resets += 1

    def close(self) -> None:
        self.closed = True


class FakeSource(AudioSource):
    """Capture source driven by the test: push() plays the role of the device callback."""

    def __init__(self, on_buffer: Callable[[bytes], None], name: str = "microphone", fail: bool = False) -> None:
        self.name = name
        self._on_buffer = on_buffer
        self._fail = fail
        self.started = False
        self.stopped = False

    def start(self) -> None:
        if self._fail:
            raise AudioDeviceError(f"Cannot open {self.name} device: no such device")
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    def push(self, data: bytes) -> None:
        self._on_buffer(data)


class FakeSourceFactory:
    """Builds FakeSources wired like the real factory; keeps the last batch for the test to drive."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.sources: list[FakeSource] = []

    def __call__(self, normalizer: AudioNormalizer, mode: AudioSourceMode, file_path: str | None) -> list[AudioSource]:
        if mode is AudioSourceMode.BOTH:
            self.sources = [
                FakeSource(normalizer.mixer.push_microphone, "microphone", self.fail),
                FakeSource(normalizer.mixer.push_loopback, "loopback", self.fail),
            ]
        else:
            self.sources = [FakeSource(normalizer.emit_frame, mode.value, self.fail)]
        return list(self.sources)


class ManualClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class Recorder:
    """Collects values emitted on an EventChannel."""

    def __init__(self) -> None:
        self.values: list[Any] = []

    def __call__(self, value: Any) -> None:
        self.values.append(value)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def source_factory() -> FakeSourceFactory:
    return FakeSourceFactory()


@pytest.fixture
def recognizer(engine: FakeEngine) -> SpeechRecognizer:
    rec = SpeechRecognizer(engine_factory=lambda model_path, speaker_model_path: engine)
    return rec


@pytest.fixture
def service(
    recognizer: SpeechRecognizer, source_factory: FakeSourceFactory, clock: ManualClock
) -> Generator[TranscriptionService, None, None]:
    svc = TranscriptionService(
        normalizer=AudioNormalizer(source_factory=source_factory),
        recognizer=recognizer,
        tracker=SpeakerTracker(threshold=0.5, alpha=0.3),
        recorder_factory=lambda session_id: NoOpRecorder(),
        clock_factory=lambda: ElapsedClock(clock=clock),
    )
    yield svc
    svc.stop()
