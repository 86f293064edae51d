"""Text-to-speech backends and the cached synthesizer."""

from .base import AbstractSynthesisBackend
from .service import SpeechSynthesizer, COMMON_PHRASES, cache_key

__all__ = [
    'AbstractSynthesisBackend',
    'SpeechSynthesizer',
    'COMMON_PHRASES',
    'cache_key',
]
