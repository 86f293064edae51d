"""Builds the production service bundle from configuration."""

import logging

from .bundle import ServiceBundle
from ..audio.player import AudioPlayer
from ..audio.source import MicrophoneFrameSource
from ..config import AiPhoneConfig
from ..dialogue import DialogueClient, load_system_prompt
from ..synthesis import SpeechSynthesizer
from ..synthesis.kokoro_backend import KokoroSynthesisBackend
from ..tracking import CallTrackingClient
from ..transcription import TranscriptionService
from ..transcription.google_backend import GoogleSpeechBackend

logger = logging.getLogger(__name__)


def build_services(config: AiPhoneConfig) -> ServiceBundle:
    """Create every collaborator once; models load lazily or during warm-up."""
    sample_rate = config.get('audio.sample_rate')
    chunk_size = config.get('audio.chunk_size')
    channels = config.get('audio.channels')

    def source_factory() -> MicrophoneFrameSource:
        return MicrophoneFrameSource(sample_rate=sample_rate, chunk_size=chunk_size, channels=channels)

    transcription_backend = GoogleSpeechBackend(
        credentials_path=config.get('transcription.credentials_path'),
        language=config.get('transcription.language'),
        use_enhanced=config.get('transcription.use_enhanced_model'),
        enable_automatic_punctuation=config.get('transcription.enable_automatic_punctuation'),
    )
    synthesis_backend = KokoroSynthesisBackend(
        model=config.get('synthesis.model'),
        quantization=config.get('synthesis.quantization'),
        model_dir=config.get('synthesis.model_dir'),
        voices_file=config.get('synthesis.voices_file'),
    )
    logger.debug(f"Services: audio {sample_rate}Hz/{chunk_size}, "
                 f"TTS {config.get('synthesis.model')} ({config.get('synthesis.quantization')})")

    return ServiceBundle(
        source_factory=source_factory,
        transcriber=TranscriptionService(transcription_backend, config.get('transcription.language'), sample_rate),
        synthesizer=SpeechSynthesizer(synthesis_backend, cache_dir=config.get('synthesis.cache_dir'),
                                      voice=config.get('synthesis.voice'), speed=config.get('synthesis.speed')),
        player=AudioPlayer(chunk_size=chunk_size),
        dialogue=DialogueClient(
            api_key=config.get_dialogue_api_key(),
            api_url=config.get('dialogue.api_url'),
            model=config.get('dialogue.model'),
            max_tokens=config.get('dialogue.max_tokens'),
            timeout_seconds=config.get('dialogue.timeout_seconds'),
        ),
        tracker=CallTrackingClient(config.get_call_api_base_url(), config.get('call_api.timeout_seconds')),
        system_prompt=load_system_prompt(config.get('dialogue.prompt_path')),
    )
