"""
Canonical PCM helpers: every frame leaving the normalizer is 16kHz, int16 little-endian, mono.

Sources deliver float32 (sounddevice, soundfile) at arbitrary rates and channel counts;
to_canonical() is the single conversion path. Bounded in-memory work only (safe inside
a device callback).
"""
from __future__ import annotations

from math import gcd

import numpy as np
from scipy.signal import resample_poly

# PCM contract: signed int16, little-endian, mono, 16kHz
SAMPLE_RATE = 16000
SAMPLE_WIDTH = 2
NCHANNELS = 1

_INT16_MAX = 32767
_PCM_DTYPE = np.dtype("<i2")


def float_to_pcm16(samples: np.ndarray) -> bytes:
    """Float [-1, 1] to int16 bytes by linear scaling (x * 32767); out-of-range input is clipped."""
    scaled = np.clip(np.asarray(samples, dtype=np.float32), -1.0, 1.0) * _INT16_MAX
    return scaled.astype(_PCM_DTYPE).tobytes()


def pcm16_to_float(data: bytes) -> np.ndarray:
    """PCM 16-bit bytes to float32 [-1.0, 1.0]."""
    samples = np.frombuffer(data, dtype=_PCM_DTYPE, count=len(data) // SAMPLE_WIDTH)
    return samples.astype(np.float32) / 32768.0


def to_mono(samples: np.ndarray) -> np.ndarray:
    """(frames, channels) -> (frames,) by averaging channels. 1-D input is returned as is."""
    arr = np.asarray(samples, dtype=np.float32)
    if arr.ndim == 1:
        return arr
    if arr.shape[1] == 1:
        return arr[:, 0]
    return arr.mean(axis=1)


def resample(samples: np.ndarray, src_rate: int, dst_rate: int = SAMPLE_RATE) -> np.ndarray:
    """Polyphase resample (anti-aliased). Identity when rates match."""
    if src_rate == dst_rate or samples.size == 0:
        return samples
    g = gcd(int(src_rate), int(dst_rate))
    up, down = int(dst_rate) // g, int(src_rate) // g
    return resample_poly(samples, up, down).astype(np.float32)


def to_canonical(samples: np.ndarray, src_rate: int) -> bytes:
    """Any float block (mono or multi-channel) at src_rate -> canonical PCM bytes."""
    mono = to_mono(samples)
    return float_to_pcm16(resample(mono, src_rate, SAMPLE_RATE))


def mix_pcm16(a: bytes, b: bytes) -> bytes:
    """
    Mix two canonical buffers: per-sample integer mean, truncated toward zero.
    Output length = shorter buffer (whole samples); the excess of the longer one is dropped.
    """
    n = min(len(a), len(b)) // SAMPLE_WIDTH
    if n == 0:
        return b""
    left = np.frombuffer(a, dtype=_PCM_DTYPE, count=n).astype(np.int32)
    right = np.frombuffer(b, dtype=_PCM_DTYPE, count=n).astype(np.int32)
    total = left + right
    mixed = np.sign(total) * (np.abs(total) // 2)
    return mixed.astype(_PCM_DTYPE).tobytes()


def duration_seconds(data: bytes, sample_rate: int = SAMPLE_RATE) -> float:
    return len(data) / float(sample_rate * SAMPLE_WIDTH)
