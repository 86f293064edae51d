"""Abstract base class for speech synthesis backends."""

from abc import ABC, abstractmethod
from typing import Tuple

import numpy as np


class AbstractSynthesisBackend(ABC):
    """Turns text into float audio samples."""

    @abstractmethod
    def synthesize(self, text: str, voice: str, speed: float = 1.0) -> Tuple[np.ndarray, int]:
        """Synthesize speech.

        Args:
            text: Text to speak
            voice: Voice identifier
            speed: Speaking rate multiplier

        Returns:
            Tuple of (float32 samples in [-1, 1], sample_rate)

        Raises:
            SynthesisError: If the model fails
        """
        pass

    @abstractmethod
    def initialize(self) -> bool:
        """Load model resources.

        Returns:
            True if initialization successful, False otherwise
        """
        pass

    def cleanup(self) -> None:
        """Release model resources."""
