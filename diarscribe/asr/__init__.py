"""ASR: streaming recognizer adapter and engine-output parsing."""
from .base import (
    FinalizedSegment,
    RecognizerEngine,
    WordTiming,
    parse_final_result,
    parse_partial_result,
)
from .recognizer import SpeechRecognizer

__all__ = [
    "FinalizedSegment",
    "RecognizerEngine",
    "SpeechRecognizer",
    "WordTiming",
    "parse_final_result",
    "parse_partial_result",
]
