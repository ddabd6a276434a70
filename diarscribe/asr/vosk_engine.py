"""
VoskEngine: streaming Kaldi recognizer via vosk, with word timings and optional x-vectors.

- Speech model is required; a speaker model is optional and only adds "spk" to final results.
- Model loading is blocking and happens once per initialize().
"""
from __future__ import annotations

import logging
import os

from vosk import KaldiRecognizer, Model, SetLogLevel, SpkModel

from diarscribe.asr.base import RecognizerEngine
from diarscribe.config import get_settings
from diarscribe.errors import ModelLoadError

logger = logging.getLogger(__name__)


class VoskEngine(RecognizerEngine):
    def __init__(
        self,
        model_path: str,
        speaker_model_path: str | None = None,
        sample_rate: int | None = None,
    ) -> None:
        settings = get_settings()
        sample_rate = sample_rate or settings.SAMPLE_RATE
        SetLogLevel(settings.RECOGNIZER_LOG_LEVEL)

        if not model_path or not os.path.isdir(model_path):
            raise ModelLoadError(f"Speech model not found: {model_path!r}")
        try:
            self._model = Model(model_path)
        except Exception as e:
            raise ModelLoadError(f"Failed to load speech model {model_path}: {e}") from e
        logger.info("Speech model loaded: %s", model_path)

        self._spk_model: SpkModel | None = None
        if speaker_model_path:
            try:
                self._spk_model = SpkModel(speaker_model_path)
                logger.info("Speaker model loaded: %s", speaker_model_path)
            except Exception as e:
                # Recognition still works; segments just carry no embedding
                logger.error("Failed to load speaker model %s: %s", speaker_model_path, e)

        self._recognizer = KaldiRecognizer(self._model, float(sample_rate))
        self._recognizer.SetMaxAlternatives(0)
        self._recognizer.SetWords(True)
        if self._spk_model is not None:
            self._recognizer.SetSpkModel(self._spk_model)

    @property
    def has_speaker_model(self) -> bool:
        return self._spk_model is not None

    def accept_waveform(self, data: bytes) -> bool:
        return bool(self._recognizer.AcceptWaveform(data))

    def result(self) -> str:
        return self._recognizer.Result()

    def partial_result(self) -> str:
        return self._recognizer.PartialResult()

    def final_result(self) -> str:
        return self._recognizer.FinalResult()

    def reset(self) -> None:
        self._recognizer.Reset()

    def close(self) -> None:
        self._recognizer = None
        self._spk_model = None
        self._model = None
