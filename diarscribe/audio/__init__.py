"""Audio pipeline: capture sources, canonical conversion, dual-source mixing; optional recording."""
from .formats import SAMPLE_RATE, SAMPLE_WIDTH, float_to_pcm16, mix_pcm16, to_canonical
from .mixer import DualSourceMixer
from .normalizer import AudioNormalizer, AudioSourceMode
from .recorder import RecorderBase, create_session_recorder

__all__ = [
    "SAMPLE_RATE",
    "SAMPLE_WIDTH",
    "AudioNormalizer",
    "AudioSourceMode",
    "DualSourceMixer",
    "RecorderBase",
    "create_session_recorder",
    "float_to_pcm16",
    "mix_pcm16",
    "to_canonical",
]
