from __future__ import annotations

import numpy as np
import pytest

from diarscribe.audio.formats import float_to_pcm16, mix_pcm16, pcm16_to_float, to_canonical
from diarscribe.audio.mixer import DualSourceMixer
from diarscribe.audio.normalizer import AudioNormalizer, AudioSourceMode
from diarscribe.errors import AudioDeviceError

from conftest import FakeSourceFactory, ManualClock, Recorder


def pcm(*samples: int) -> bytes:
    return np.array(samples, dtype="<i2").tobytes()


def samples(data: bytes) -> list[int]:
    return np.frombuffer(data, dtype="<i2").tolist()


def test_float_to_pcm16_scales_and_clips() -> None:
    out = float_to_pcm16(np.array([0.0, 1.0, -1.0, 2.0, -3.0], dtype=np.float32))
    assert samples(out) == [0, 32767, -32767, 32767, -32767]


def test_pcm16_to_float_range() -> None:
    values = pcm16_to_float(pcm(0, 16384, -32768))
    assert values.dtype == np.float32
    assert values.tolist() == [0.0, 0.5, -1.0]


def test_to_canonical_downmixes_and_resamples() -> None:
    # 100 ms of stereo at 48 kHz -> 100 ms mono at 16 kHz
    stereo = np.zeros((4800, 2), dtype=np.float32)
    stereo[:, 0] = 0.5
    stereo[:, 1] = -0.5
    out = to_canonical(stereo, 48000)
    assert len(out) == 1600 * 2
    assert max(abs(v) for v in samples(out)) <= 1


def test_to_canonical_passthrough_at_canonical_rate() -> None:
    mono = np.full(160, 0.25, dtype=np.float32)
    assert samples(to_canonical(mono, 16000)) == [int(0.25 * 32767)] * 160


def test_mix_pcm16_integer_mean() -> None:
    assert samples(mix_pcm16(pcm(100, 200), pcm(50, 50))) == [75, 125]


def test_mix_pcm16_truncates_toward_zero_and_to_shorter() -> None:
    assert samples(mix_pcm16(pcm(1, -3, 7, 9), pcm(0, 0))) == [0, -1]
    assert mix_pcm16(pcm(1), b"") == b""


def test_mix_pcm16_no_overflow_at_extremes() -> None:
    assert samples(mix_pcm16(pcm(32767, -32768), pcm(32767, -32768))) == [32767, -32768]


@pytest.mark.parametrize("first", ["mic", "loopback"])
def test_mixer_pairs_in_either_order(first: str) -> None:
    out = Recorder()
    mixer = DualSourceMixer(out, pending_wait=0.15, clock=ManualClock())
    if first == "mic":
        mixer.push_microphone(pcm(100, 200))
        assert out.values == []
        mixer.push_loopback(pcm(50, 50))
    else:
        mixer.push_loopback(pcm(50, 50))
        assert out.values == []
        mixer.push_microphone(pcm(100, 200))
    assert [samples(v) for v in out.values] == [[75, 125]]
    assert not mixer.has_pending


def test_mixer_same_source_twice_emits_first_alone() -> None:
    out = Recorder()
    mixer = DualSourceMixer(out, pending_wait=0.15, clock=ManualClock())
    mixer.push_microphone(pcm(10, 10))
    mixer.push_microphone(pcm(20, 20))
    assert [samples(v) for v in out.values] == [[10, 10]]

    mixer.push_loopback(pcm(0, 40))
    assert [samples(v) for v in out.values] == [[10, 10], [10, 30]]


def test_mixer_stale_buffer_is_never_mixed() -> None:
    clock = ManualClock()
    out = Recorder()
    mixer = DualSourceMixer(out, pending_wait=0.15, clock=clock)
    mixer.push_microphone(pcm(100, 100))
    clock.advance(0.2)
    mixer.push_loopback(pcm(50, 50))
    # Mic went out alone; loopback now waits for its own pair
    assert [samples(v) for v in out.values] == [[100, 100]]
    assert mixer.has_pending


def test_mixer_flush_stale_and_flush() -> None:
    clock = ManualClock()
    out = Recorder()
    mixer = DualSourceMixer(out, pending_wait=0.15, clock=clock)
    mixer.push_loopback(pcm(5))
    mixer.flush_stale()
    assert out.values == []
    clock.advance(0.15)
    mixer.flush_stale()
    assert [samples(v) for v in out.values] == [[5]]

    mixer.push_microphone(pcm(7))
    mixer.flush()
    assert [samples(v) for v in out.values] == [[5], [7]]
    assert not mixer.has_pending


def test_normalizer_both_mode_mixes_device_buffers() -> None:
    factory = FakeSourceFactory()
    normalizer = AudioNormalizer(source_factory=factory)
    frames = Recorder()
    normalizer.frames.subscribe(frames)

    normalizer.start(AudioSourceMode.BOTH)
    mic, loopback = factory.sources
    assert mic.started and loopback.started

    mic.push(pcm(100, 200))
    loopback.push(pcm(50, 50))
    assert [samples(f) for f in frames.values] == [[75, 125]]
    normalizer.stop()


def test_normalizer_stop_notifies_once_and_discards_late_frames() -> None:
    factory = FakeSourceFactory()
    normalizer = AudioNormalizer(source_factory=factory)
    frames = Recorder()
    stopped = Recorder()
    normalizer.frames.subscribe(frames)
    normalizer.stopped.subscribe(stopped)

    normalizer.start("microphone")
    (mic,) = factory.sources
    mic.push(pcm(1, 2))
    normalizer.stop()
    normalizer.stop()
    mic.push(pcm(3, 4))

    assert mic.stopped
    assert len(stopped.values) == 1
    assert [samples(f) for f in frames.values] == [[1, 2]]
    assert not normalizer.is_running


def test_normalizer_file_mode_requires_path() -> None:
    normalizer = AudioNormalizer(source_factory=FakeSourceFactory())
    with pytest.raises(ValueError):
        normalizer.start(AudioSourceMode.FILE)
    assert not normalizer.is_running


def test_normalizer_device_failure_leaves_nothing_running() -> None:
    factory = FakeSourceFactory(fail=True)
    normalizer = AudioNormalizer(source_factory=factory)
    with pytest.raises(AudioDeviceError):
        normalizer.start(AudioSourceMode.MICROPHONE)
    assert not normalizer.is_running


def test_session_recorder_writes_canonical_wav(tmp_path) -> None:
    import soundfile as sf

    from diarscribe.audio.recorder import SessionRecorder

    recorder = SessionRecorder("abc123", record_dir=str(tmp_path), record_format="wav")
    recorder.append(pcm(1, 2, 3))
    recorder.append(b"\x01")  # odd length: dropped
    recorder.append(pcm(4))
    path = recorder.finalize()

    assert path is not None and path.endswith(".wav")
    data, rate = sf.read(path, dtype="int16")
    assert rate == 16000
    assert data.tolist() == [1, 2, 3, 4]
    assert recorder.finalize() is None


def test_recording_disabled_by_default(monkeypatch) -> None:
    from diarscribe.audio.recorder import NoOpRecorder, create_session_recorder

    monkeypatch.setenv("ENABLE_SESSION_RECORDING", "false")
    assert isinstance(create_session_recorder("abc123"), NoOpRecorder)
