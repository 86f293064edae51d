"""Speech-to-text backends and the file transcription service."""

from .base import AbstractTranscriptionBackend
from .service import TranscriptionService

__all__ = [
    'AbstractTranscriptionBackend',
    'TranscriptionService',
]
