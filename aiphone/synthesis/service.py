"""Cached text-to-speech: one WAV file per (text, voice) pair."""

import hashlib
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, Iterable, List

from .base import AbstractSynthesisBackend
from ..audio.wav import write_float_samples
from ..errors import SynthesisError

logger = logging.getLogger(__name__)

COMMON_PHRASES = [
    "Hello! How can I help you today?",
    "I'm sorry, I didn't understand that.",
    "Could you please repeat that?",
    "Thank you for your question.",
    "Is there anything else you'd like to know?",
    "I'll help you with that.",
    "Let me think about that.",
    "I'm processing your request.",
    "I'm sorry, I can't help with that.",
    "Goodbye, have a nice day!",
]


def cache_key(text: str, voice: str) -> str:
    return hashlib.md5(f"{text}_{voice}".encode("utf-8")).hexdigest()


class SpeechSynthesizer:
    """Synthesizes text to WAV files in a cache directory.

    Files are written to a temporary name and renamed into place, so a cached
    path always points at a complete file. Concurrent requests for the same
    text and voice are serialized and the second one is a cache hit.
    """

    def __init__(self, backend: AbstractSynthesisBackend, cache_dir: str = ".tts_cache",
                 voice: str = "bf_emma", speed: float = 1.0):
        self.backend = backend
        self.cache_dir = cache_dir
        self.voice = voice
        self.speed = speed
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self.cache_hits = 0
        self.cache_misses = 0

    def cache_path(self, text: str, voice: str) -> str:
        return os.path.join(self.cache_dir, f"{cache_key(text, voice)}.wav")

    def _lock_for(self, key: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    def synthesize(self, text: str, voice: str = None) -> str:
        """Return the path of a WAV file speaking ``text``.

        Args:
            text: Text to speak
            voice: Voice identifier, defaults to the configured voice

        Returns:
            Path to the cached WAV file

        Raises:
            SynthesisError: If the text is empty or the backend fails
        """
        voice = voice or self.voice
        if not text or not text.strip():
            raise SynthesisError("Nothing to synthesize")

        path = self.cache_path(text, voice)
        with self._lock_for(cache_key(text, voice)):
            if os.path.exists(path) and os.path.getsize(path) > 0:
                self.cache_hits += 1
                logger.debug(f"TTS cache hit for '{text[:40]}' ({voice})")
                return path

            self.cache_misses += 1
            samples, sample_rate = self.backend.synthesize(text, voice, self.speed)
            tmp_path = None
            try:
                Path(self.cache_dir).mkdir(parents=True, exist_ok=True)
                fd, tmp_path = tempfile.mkstemp(suffix=".wav.tmp", dir=self.cache_dir)
                os.close(fd)
                write_float_samples(tmp_path, samples, sample_rate)
                os.replace(tmp_path, path)
            except OSError as e:
                raise SynthesisError(f"Could not write synthesized audio to {path}: {e}") from e
            finally:
                if tmp_path is not None and os.path.exists(tmp_path):
                    os.remove(tmp_path)

        logger.info(f"Synthesized {len(samples) / sample_rate:.1f}s of speech to {path}")
        return path

    def preload(self, phrases: Iterable[str] = COMMON_PHRASES, voice: str = None) -> List[str]:
        """Synthesize phrases ahead of time; failures are logged and skipped."""
        loaded = []
        for phrase in phrases:
            try:
                loaded.append(self.synthesize(phrase, voice))
            except SynthesisError as e:
                logger.warning(f"Could not preload phrase '{phrase}': {e}")
        logger.info(f"Preloaded {len(loaded)} common phrases")
        return loaded

    def initialize(self) -> bool:
        return self.backend.initialize()

    def cleanup(self) -> None:
        self.backend.cleanup()
