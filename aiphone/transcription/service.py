"""Transcribes recorded utterances with the configured backend."""

import logging

from .base import AbstractTranscriptionBackend
from ..audio.wav import load_float_samples
from ..errors import TranscriptionError

logger = logging.getLogger(__name__)


class TranscriptionService:
    """Loads a recording and hands its samples to a transcription backend."""

    def __init__(self, backend: AbstractTranscriptionBackend, language: str = "en-US",
                 sample_rate: int = 16000):
        self.backend = backend
        self.language = language
        self.sample_rate = sample_rate

    def transcribe_file(self, path: str) -> str:
        """Transcribe a WAV recording.

        Args:
            path: Path to the recording

        Returns:
            Trimmed transcript, possibly empty

        Raises:
            TranscriptionError: If the file cannot be read or the backend fails
        """
        try:
            samples, sample_rate = load_float_samples(path, self.sample_rate)
        except (OSError, ValueError) as e:
            raise TranscriptionError(f"Could not read recording {path}: {e}") from e

        logger.info(f"Transcribing {len(samples) / sample_rate:.1f}s of audio from {path}")
        text = self.backend.transcribe(samples, sample_rate, self.language)
        return (text or "").strip()

    def initialize(self) -> bool:
        return self.backend.initialize()

    def cleanup(self) -> None:
        self.backend.cleanup()
