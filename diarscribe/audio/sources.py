"""
Audio sources feeding the normalizer. Each hands canonical PCM bytes to on_buffer.

- DeviceSource: sounddevice InputStream at the device's native rate/channels; the
  PortAudio callback converts each buffer to canonical before handing it on.
  A buffer that fails conversion is logged and dropped; the stream keeps running.
- FileSource: dedicated reader thread over soundfile blocks; no real-time pacing
  (on_buffer back-pressure is the only throttle). Calls on_exhausted once at natural end.
"""
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable

import numpy as np
import soundfile as sf

from diarscribe.audio.formats import to_canonical
from diarscribe.errors import AudioDeviceError

logger = logging.getLogger(__name__)

# Substrings that identify a capture device carrying system output (WASAPI / PulseAudio / macOS drivers)
LOOPBACK_NAME_HINTS = ("loopback", "monitor", "stereo mix", "what u hear", "blackhole")


class AudioSource(ABC):
    """One capture context. start() acquires the resource or raises AudioDeviceError."""

    name: str = "source"

    @abstractmethod
    def start(self) -> None:
        ...

    @abstractmethod
    def stop(self) -> None:
        """Release the resource. Idempotent."""
        ...


def _sounddevice() -> Any:
    """Import sounddevice on first device use; it needs the PortAudio shared library."""
    try:
        import sounddevice as sd
    except (ImportError, OSError) as err:
        raise AudioDeviceError(f"Audio capture unavailable (sounddevice / PortAudio): {err}") from err
    return sd


def _input_devices() -> list[tuple[int, dict[str, Any]]]:
    sd = _sounddevice()
    return [
        (index, dict(info))
        for index, info in enumerate(sd.query_devices())
        if int(info.get("max_input_channels", 0)) > 0
    ]


def find_loopback_device(name_hint: str = "") -> int:
    """
    Index of an input device that captures system output.
    name_hint (case-insensitive substring) wins when given; else first device matching LOOPBACK_NAME_HINTS.
    """
    try:
        devices = _input_devices()
    except AudioDeviceError:
        raise
    except Exception as e:
        raise AudioDeviceError(f"Cannot list audio devices: {e}") from e
    hints = (name_hint.lower(),) if name_hint else LOOPBACK_NAME_HINTS
    for index, info in devices:
        name = str(info.get("name", "")).lower()
        if any(h in name for h in hints):
            logger.info("Loopback device selected: %s (index %d)", info.get("name"), index)
            return index
    raise AudioDeviceError(
        f"No loopback capture device found (looked for {', '.join(hints)})"
    )


class DeviceSource(AudioSource):
    """Live capture from one input device. Callback runs on the PortAudio thread."""

    def __init__(
        self,
        on_buffer: Callable[[bytes], None],
        device: int | str | None = None,
        name: str = "microphone",
        blocksize_ms: int = 100,
    ) -> None:
        self.name = name
        self._on_buffer = on_buffer
        self._device = device
        self._blocksize_ms = blocksize_ms
        self._stream: Any = None
        self._rate = 0
        self._dropped = 0

    def start(self) -> None:
        if self._stream is not None:
            return
        sd = _sounddevice()
        try:
            info = sd.query_devices(self._device, kind="input")
            self._rate = int(info.get("default_samplerate") or 16000)
            channels = max(1, min(2, int(info.get("max_input_channels") or 1)))
            stream = sd.InputStream(
                device=self._device,
                samplerate=self._rate,
                channels=channels,
                dtype="float32",
                blocksize=max(1, int(self._rate * self._blocksize_ms / 1000)),
                callback=self._callback,
            )
            stream.start()
        except Exception as e:
            raise AudioDeviceError(f"Cannot open {self.name} device: {e}") from e
        self._stream = stream
        logger.info(
            "%s capture started: device=%s, %dHz/%dch", self.name, info.get("name"), self._rate, channels
        )

    def _callback(self, indata: np.ndarray, frames: int, time_info: Any, status: Any) -> None:
        if status:
            logger.debug("%s stream status: %s", self.name, status)
        try:
            data = to_canonical(indata.copy(), self._rate)
        except Exception as e:
            self._dropped += 1
            logger.warning("%s: dropped buffer (%d frames): %s", self.name, frames, e)
            return
        if data:
            self._on_buffer(data)

    def stop(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.stop()
            stream.close()
        except Exception as e:
            logger.warning("%s: error closing stream: %s", self.name, e)
        if self._dropped:
            logger.info("%s: %d buffers dropped during session", self.name, self._dropped)


class FileSource(AudioSource):
    """Reads an audio file on its own thread. Blocking file I/O never touches a device callback."""

    name = "file"

    def __init__(
        self,
        path: str,
        on_buffer: Callable[[bytes], None],
        on_exhausted: Callable[[], None],
        block_samples: int = 4096,
    ) -> None:
        self._path = path
        self._on_buffer = on_buffer
        self._on_exhausted = on_exhausted
        self._block_samples = max(1, block_samples)
        self._file: sf.SoundFile | None = None
        self._thread: threading.Thread | None = None
        self._stop_requested = threading.Event()

    def start(self) -> None:
        if self._thread is not None:
            return
        try:
            self._file = sf.SoundFile(self._path)
        except Exception as e:
            logger.error("Failed to open audio file %s: %s", self._path, e)
            raise AudioDeviceError(f"Cannot open audio file {self._path}: {e}") from e
        logger.info(
            "File source opened: %s (%dHz, %dch, %d frames)",
            self._path, self._file.samplerate, self._file.channels, self._file.frames,
        )
        self._stop_requested.clear()
        self._thread = threading.Thread(target=self._run, name="file-source", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        snd = self._file
        if snd is None:
            return
        try:
            rate = snd.samplerate
            for block in snd.blocks(blocksize=self._block_samples, dtype="float32", always_2d=True):
                if self._stop_requested.is_set():
                    break
                try:
                    data = to_canonical(block, rate)
                except Exception as e:
                    logger.warning("File source: dropped block: %s", e)
                    continue
                if data:
                    self._on_buffer(data)
        except Exception as e:
            logger.error("Error reading audio file %s: %s", self._path, e)
        finally:
            try:
                snd.close()
            except Exception as e:
                logger.warning("File source: close failed: %s", e)
            if not self._stop_requested.is_set():
                logger.info("File source exhausted: %s", self._path)
                self._on_exhausted()

    def stop(self) -> None:
        self._stop_requested.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=5.0)

    def join(self, timeout: float | None = None) -> None:
        """Wait for the reader thread (tests / callers that want the file fully drained)."""
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
