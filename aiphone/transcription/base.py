"""Interface for whole-utterance speech recognizers."""

from abc import ABC, abstractmethod
import logging

import numpy as np

logger = logging.getLogger(__name__)


class AbstractTranscriptionBackend(ABC):
    """A speech recognizer that turns one recorded utterance into text."""

    def __init__(self, language: str = "en-US"):
        self.language = language

    @abstractmethod
    def transcribe(self, samples: np.ndarray, sample_rate: int = 16000,
                   language: str = None) -> str:
        """Transcribe a complete utterance.

        Args:
            samples: Mono float32 samples in [-1, 1]
            sample_rate: Sample rate of the samples in Hz
            language: Language code, defaults to the backend's language

        Returns:
            Transcript text, empty when nothing was recognized

        Raises:
            TranscriptionError: If the backend call fails
        """

    @abstractmethod
    def initialize(self) -> bool:
        """Create clients or load models; called once before the first call.

        Raises:
            TranscriptionError: If the backend cannot be set up
        """

    @abstractmethod
    def cleanup(self) -> None:
        """Release clients and models."""
