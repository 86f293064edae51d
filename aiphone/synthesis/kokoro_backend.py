"""Kokoro ONNX speech synthesis backend."""

import logging
import os
import threading
from typing import Optional, Tuple

import numpy as np
from kokoro_onnx import Kokoro

from .base import AbstractSynthesisBackend
from ..errors import SynthesisError

logger = logging.getLogger(__name__)

# Quantization -> model file inside the model directory
MODEL_FILES = {
    "fp32": "onnx/model.onnx",
    "fp16": "onnx/model_fp16.onnx",
    "q8": "onnx/model_quantized.onnx",
    "q4": "onnx/model_q4.onnx",
    "q4f16": "onnx/model_q4f16.onnx",
}

# Language from voice prefix
VOICE_LANGUAGES = {
    'a': 'en-us', 'b': 'en-gb', 'f': 'fr-fr',
    'i': 'it', 'j': 'ja', 'z': 'cmn',
}


def language_for_voice(voice: str) -> str:
    return VOICE_LANGUAGES.get(voice[0], 'en-us') if voice else 'en-us'


def resolve_model_path(model_dir: str, model: str, quantization: str) -> str:
    """Locate the ONNX file for a model identifier and quantization.

    ``onnx-community/Kokoro-82M-v1.0-ONNX`` with ``q4`` resolves to
    ``<model_dir>/Kokoro-82M-v1.0-ONNX/onnx/model_q4.onnx``. A model that
    points at an existing ``.onnx`` file is used as is.
    """
    if model.endswith(".onnx") and os.path.exists(model):
        return model
    if quantization not in MODEL_FILES:
        raise SynthesisError(f"Unknown quantization '{quantization}'")
    return os.path.join(model_dir, os.path.basename(model.rstrip("/")), MODEL_FILES[quantization])


class KokoroSynthesisBackend(AbstractSynthesisBackend):
    """Kokoro-82M via kokoro-onnx; the model is loaded once on first use."""

    def __init__(self, model: str, quantization: str = "q4", model_dir: str = "models",
                 voices_file: str = "voices-v1.0.bin", kokoro_factory=None):
        """Initialize Kokoro backend.

        Args:
            model: Model identifier or path to an ONNX file
            quantization: One of fp32, fp16, q8, q4, q4f16
            model_dir: Directory holding downloaded models
            voices_file: Voices archive, relative to model_dir unless absolute
            kokoro_factory: Builds the engine from (model_path, voices_path)
        """
        self.model = model
        self.quantization = quantization
        self.model_dir = model_dir
        self.voices_file = voices_file
        self.kokoro_factory = kokoro_factory or Kokoro
        self.kokoro: Optional[Kokoro] = None
        self._lock = threading.Lock()

    @property
    def model_path(self) -> str:
        return resolve_model_path(self.model_dir, self.model, self.quantization)

    @property
    def voices_path(self) -> str:
        if os.path.isabs(self.voices_file):
            return self.voices_file
        return os.path.join(self.model_dir, self.voices_file)

    def initialize(self) -> bool:
        with self._lock:
            if self.kokoro is not None:
                return True
            model_path = self.model_path
            logger.info(f"Loading Kokoro model {self.model} ({self.quantization}) from {model_path}")
            try:
                self.kokoro = self.kokoro_factory(model_path, self.voices_path)
            except Exception as e:
                raise SynthesisError(f"Failed to load Kokoro model {model_path}: {e}") from e
        logger.info("Kokoro TTS model loaded")
        return True

    def synthesize(self, text: str, voice: str, speed: float = 1.0) -> Tuple[np.ndarray, int]:
        if self.kokoro is None:
            self.initialize()
        lang = language_for_voice(voice)
        logger.debug(f"Kokoro TTS ({voice}/{lang}): '{text}'")
        try:
            samples, sample_rate = self.kokoro.create(text, voice=voice, speed=speed, lang=lang)
        except Exception as e:
            raise SynthesisError(f"Kokoro synthesis failed: {e}") from e
        if samples is None or len(samples) == 0:
            raise SynthesisError("Kokoro returned no audio")
        return np.asarray(samples, dtype=np.float32), sample_rate

    def cleanup(self) -> None:
        with self._lock:
            self.kokoro = None
