"""Long-lived collaborators shared by every turn of a call."""

import logging
from dataclasses import dataclass
from typing import Callable

from ..audio.source import AudioFrameSource
from ..dialogue import DialogueClient
from ..synthesis import SpeechSynthesizer
from ..tracking import CallTrackingClient
from ..transcription import TranscriptionService

logger = logging.getLogger(__name__)


@dataclass
class ServiceBundle:
    """Owns the model handles and clients for the lifetime of the process.

    ``source_factory`` returns a fresh frame source for each recording.
    ``player`` is anything with a blocking ``play(path)``.
    """
    source_factory: Callable[[], AudioFrameSource]
    transcriber: TranscriptionService
    synthesizer: SpeechSynthesizer
    player: object
    dialogue: DialogueClient
    tracker: CallTrackingClient
    system_prompt: str

    def close(self) -> None:
        """Release devices and model handles."""
        logger.info("Releasing services...")
        close_player = getattr(self.player, "close", None)
        if close_player is not None:
            close_player()
        self.transcriber.cleanup()
        self.synthesizer.cleanup()
