"""
AudioNormalizer: one capture session over microphone, loopback, both (mixed), or a file.

- frames: canonical PCM (16kHz, int16, mono) in arrival order per source.
- stopped: emitted exactly once per session, on manual stop() or natural end of file.
- Device acquisition failure is raised from start(); nothing is left running.
"""
from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Callable

from diarscribe.audio.mixer import DualSourceMixer
from diarscribe.audio.sources import AudioSource, DeviceSource, FileSource, find_loopback_device
from diarscribe.config import get_settings
from diarscribe.events import EventChannel

logger = logging.getLogger(__name__)


class AudioSourceMode(str, Enum):
    MICROPHONE = "microphone"
    SYSTEM_LOOPBACK = "loopback"
    BOTH = "both"
    FILE = "file"


# (normalizer, mode, file_path) -> sources wired to the normalizer's sinks
SourceFactory = Callable[["AudioNormalizer", AudioSourceMode, "str | None"], "list[AudioSource]"]


def default_source_factory(
    normalizer: "AudioNormalizer", mode: AudioSourceMode, file_path: str | None
) -> list[AudioSource]:
    """Build real sources for the mode. Loopback lookup may raise AudioDeviceError."""
    settings = get_settings()
    mic_device = settings.MIC_DEVICE or None
    buffer_ms = settings.DEVICE_BUFFER_MS

    if mode is AudioSourceMode.MICROPHONE:
        return [DeviceSource(normalizer.emit_frame, device=mic_device, name="microphone", blocksize_ms=buffer_ms)]
    if mode is AudioSourceMode.SYSTEM_LOOPBACK:
        device = find_loopback_device(settings.LOOPBACK_DEVICE)
        return [DeviceSource(normalizer.emit_frame, device=device, name="loopback", blocksize_ms=buffer_ms)]
    if mode is AudioSourceMode.BOTH:
        mixer = normalizer.mixer
        device = find_loopback_device(settings.LOOPBACK_DEVICE)
        return [
            DeviceSource(mixer.push_microphone, device=mic_device, name="microphone", blocksize_ms=buffer_ms),
            DeviceSource(mixer.push_loopback, device=device, name="loopback", blocksize_ms=buffer_ms),
        ]
    return [
        FileSource(
            file_path or "",
            normalizer.emit_frame,
            normalizer.on_source_exhausted,
            block_samples=settings.FILE_BLOCK_SAMPLES,
        )
    ]


class AudioNormalizer:
    """Start/stop capture; fan out canonical frames and a single stopped notification per session."""

    def __init__(self, source_factory: SourceFactory | None = None) -> None:
        settings = get_settings()
        self._source_factory = source_factory or default_source_factory
        self.frames: EventChannel[bytes] = EventChannel("frames")
        self.stopped: EventChannel[None] = EventChannel("stopped")
        self.mixer = DualSourceMixer(
            on_frame=self.emit_frame,
            pending_wait=settings.MIX_PENDING_WAIT_MS / 1000.0,
        )
        self._lock = threading.Lock()
        self._sources: list[AudioSource] = []
        self._running = False
        self._stopping = False
        self._mode: AudioSourceMode | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def mode(self) -> AudioSourceMode | None:
        return self._mode

    def start(self, mode: AudioSourceMode | str, file_path: str | None = None) -> None:
        """Acquire sources for mode. Raises ValueError (bad args) or AudioDeviceError; state stays stopped."""
        mode = AudioSourceMode(mode)
        if mode is AudioSourceMode.FILE and not file_path:
            raise ValueError("File path required for file mode")
        if self._running:
            self.stop()

        logger.info("AudioNormalizer starting in %s mode", mode.value)
        self.mixer.clear()
        sources = self._source_factory(self, mode, file_path)
        started: list[AudioSource] = []
        with self._lock:
            self._mode = mode
            self._sources = sources
            self._running = True
        try:
            for source in sources:
                source.start()
                started.append(source)
        except Exception:
            with self._lock:
                self._running = False
                self._sources = []
            for source in started:
                source.stop()
            raise

    def emit_frame(self, frame: bytes) -> None:
        """Sink for sources and the mixer. Frames arriving after stop are discarded."""
        if not self._running or not frame:
            return
        self.frames.emit(frame)

    def on_source_exhausted(self) -> None:
        """File reached its end: same path as a manual stop."""
        self.stop()

    def stop(self) -> None:
        """Release all sources and notify stopped once. No-op when not running."""
        with self._lock:
            if not self._running or self._stopping:
                return
            self._stopping = True
            sources, self._sources = self._sources, []
        logger.info("AudioNormalizer stopping")
        try:
            for source in sources:
                source.stop()
            # Lone pending buffers go out before the session closes
            self.mixer.flush()
        finally:
            with self._lock:
                self._running = False
                self._stopping = False
        self.stopped.emit(None)
