"""Google Speech-to-Text transcription backend."""

import logging
import threading
import time
from typing import Optional

import numpy as np
from google.cloud import speech
from google.api_core import exceptions as gax_exceptions
from google.auth import exceptions as auth_exceptions
from google.oauth2 import service_account

from .base import AbstractTranscriptionBackend
from ..audio.wav import float_to_pcm16
from ..errors import TranscriptionError

logger = logging.getLogger(__name__)


class GoogleSpeechBackend(AbstractTranscriptionBackend):
    """Google Speech-to-Text API backend for whole-utterance transcription."""

    def __init__(self,
                 credentials_path: Optional[str] = None,
                 language: str = "en-US",
                 use_enhanced: bool = True,
                 enable_automatic_punctuation: bool = True,
                 request_timeout: float = 10.0,
                 client_factory=None):
        """Initialize Google Speech backend.

        Args:
            credentials_path: Service account JSON file; application default
                credentials are used when omitted
            language: Language code (e.g., 'en-US', 'es-ES')
            use_enhanced: Whether to use enhanced model (costs more but better quality)
            enable_automatic_punctuation: Enable automatic punctuation
            request_timeout: Per-request timeout in seconds
            client_factory: Builds the SpeechClient from credentials (None for defaults)
        """
        super().__init__(language)
        self.credentials_path = credentials_path
        self.use_enhanced = use_enhanced
        self.enable_automatic_punctuation = enable_automatic_punctuation
        self.request_timeout = request_timeout
        self.client_factory = client_factory or speech.SpeechClient
        self.client = None
        self.project_id = None
        self.service_name = "Google Speech-to-Text"
        self._lock = threading.Lock()

    def initialize(self) -> bool:
        """Create the Speech client once; later calls reuse it.

        Raises:
            TranscriptionError: If credentials cannot be loaded
        """
        with self._lock:
            if self.client is not None:
                return True
            try:
                self._create_client()
            except (auth_exceptions.GoogleAuthError, OSError, ValueError) as e:
                raise TranscriptionError(f"Could not initialize Google Speech client: {e}") from e
        logger.info("Google Speech-to-Text backend initialized successfully")
        return True

    def _create_client(self) -> None:
        if self.credentials_path:
            logger.info(f"Loading Google credentials from: {self.credentials_path}")
            credentials = service_account.Credentials.from_service_account_file(self.credentials_path)
            self.project_id = credentials.project_id
            self.client = self.client_factory(credentials=credentials)
            logger.info(f"Using Google Cloud project: {self.project_id}")
        else:
            logger.info("No credentials file configured, using application default credentials")
            self.client = self.client_factory()

    def _recognition_config(self, sample_rate: int, language: str) -> speech.RecognitionConfig:
        return speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
            sample_rate_hertz=sample_rate,
            language_code=language,
            use_enhanced=self.use_enhanced,
            enable_automatic_punctuation=self.enable_automatic_punctuation,
            model="latest_short",
        )

    def transcribe(self, samples: np.ndarray, sample_rate: int = 16000,
                   language: Optional[str] = None) -> str:
        """Transcribe an utterance using Google Speech-to-Text."""
        language = language or self.language
        if self.client is None:
            self.initialize()

        start_time = time.time()
        content = float_to_pcm16(samples)
        logger.debug(f"Audio size: {len(content)} bytes; Language: {language}; "
                     f"Enhanced model: {self.use_enhanced}")

        audio = speech.RecognitionAudio(content=content)
        config = self._recognition_config(sample_rate, language)
        try:
            response = self.client.recognize(config=config, audio=audio, timeout=self.request_timeout)
        except gax_exceptions.DeadlineExceeded as e:
            logger.error("Google STT recognize deadline exceeded")
            raise TranscriptionError(f"Google Speech recognize timeout: {e}") from e
        except gax_exceptions.ServiceUnavailable as e:
            logger.error("Google STT service unavailable")
            raise TranscriptionError(f"Google Speech service unavailable: {e}") from e
        except gax_exceptions.GoogleAPICallError as e:
            logger.error("Google STT API call error: %s", e)
            raise TranscriptionError(f"Google Speech API error: {e}") from e
        except auth_exceptions.GoogleAuthError as e:
            logger.error("Google STT credentials rejected: %s", e)
            raise TranscriptionError(f"Google Speech authentication failed: {e}") from e
        processing_time = time.time() - start_time

        if not response.results:
            logger.debug("--- NO SPEECH DETECTED ---")
            return ""

        transcript = " ".join(
            result.alternatives[0].transcript.strip()
            for result in response.results
            if result.alternatives
        ).strip()
        logger.debug(f"Transcript='{transcript}' (processing_time: {processing_time:.3f}s)")
        return transcript

    def cleanup(self) -> None:
        """Release the Speech client."""
        with self._lock:
            transport = getattr(self.client, "transport", None)
            if transport is not None and hasattr(transport, "close"):
                transport.close()
            self.client = None
