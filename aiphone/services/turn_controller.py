"""One conversational turn: record, transcribe, reply, speak."""

import asyncio
import functools
import logging
import os
from typing import Awaitable, Callable, Optional

from .bundle import ServiceBundle
from .settings import CallSettings
from ..audio.recording import RecordingSession
from ..audio.silence import SilenceDetector
from ..dialogue import ConversationHistory
from ..errors import DialogueError, PlaybackError, SynthesisError, TranscriptionError
from ..models.call import CallStatus, Turn, TurnOutcome, TurnState
from ..models.recording import RecordingResult

logger = logging.getLogger(__name__)

StatusCallback = Callable[[CallStatus], Awaitable[None]]


async def _no_status(status: CallStatus) -> None:
    pass


async def run_blocking(func, *args):
    """Run a blocking collaborator call in the default executor."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(func, *args))


class TurnController:
    """Runs the per-turn state machine.

    States advance AWAITING_SPEECH -> RECORDING -> TRANSCRIBING -> DIALOGUE
    -> SYNTHESIZING -> PLAYING -> TURN_COMPLETE. Failures either end the turn
    early or take ERROR_FALLBACK and carry on with a degraded reply.
    """

    def __init__(self, services: ServiceBundle, history: ConversationHistory,
                 settings: CallSettings, report_status: Optional[StatusCallback] = None):
        """Initialize turn controller.

        Args:
            services: Shared collaborators
            history: Conversation history of the current call
            settings: Recording and dialogue settings
            report_status: Coroutine called with each call status change
        """
        self.services = services
        self.history = history
        self.settings = settings
        self.report_status = report_status or _no_status

    @property
    def dialogue_active(self) -> bool:
        return self.settings.use_dialogue and self.services.dialogue.is_configured

    async def run_turn(self) -> TurnOutcome:
        """Run one full turn and report whether the call should continue."""
        turn = Turn()

        await self.report_status(CallStatus.LISTENING)
        turn.states.append(TurnState.RECORDING)
        await self._play_cue(self.settings.start_cue)
        recording = await self.record()
        await self._play_cue(self.settings.stop_cue)
        turn.recording = recording

        if not recording.ok:
            if recording.error.ends_call:
                logger.info(f"No speech detected or recording was too short ({recording.error.value})")
                turn.states.append(TurnState.TURN_COMPLETE)
                return TurnOutcome(should_continue_loop=False, turn=turn)
            logger.error(f"Recording failed: {recording.detail}")
            await self._fallback(turn, "recording")
            turn.states.append(TurnState.TURN_COMPLETE)
            return TurnOutcome(should_continue_loop=True, device_error=True, turn=turn)

        turn.states.append(TurnState.TRANSCRIBING)
        await self.report_status(CallStatus.PROCESSING)
        try:
            transcript = await run_blocking(self.services.transcriber.transcribe_file, recording.path)
        except TranscriptionError as e:
            logger.error(f"Transcription failed: {e}")
            await self._fallback(turn, "transcription")
            turn.states.append(TurnState.TURN_COMPLETE)
            return TurnOutcome(should_continue_loop=True, turn=turn)

        if not transcript:
            logger.info("No transcription text returned")
            turn.states.append(TurnState.TURN_COMPLETE)
            return TurnOutcome(should_continue_loop=True, turn=turn)

        logger.info(f"Transcription: {transcript}")
        turn.transcript = transcript
        if not self.settings.use_context:
            self.history.reset_to_greeting(self.settings.greeting)
        prior = self.history.entries
        self.history.append_user(transcript)

        turn.states.append(TurnState.DIALOGUE)
        speak_text = await self._reply_text(turn, prior)

        await self._say(turn, speak_text)
        turn.states.append(TurnState.TURN_COMPLETE)
        return self._outcome(turn)

    async def speak(self, text: str) -> Turn:
        """Scripted turn: synthesize and play ``text`` without recording."""
        turn = Turn()
        await self._say(turn, text)
        turn.states.append(TurnState.TURN_COMPLETE)
        return turn

    async def record(self) -> RecordingResult:
        settings = self.settings
        detector = SilenceDetector(settings.threshold, settings.threshold_start, settings.window_size)
        session = RecordingSession(
            self.services.source_factory(),
            detector,
            settings.recording_path,
            sample_rate=settings.sample_rate,
            flush_delay_seconds=settings.flush_delay_seconds,
        )
        return await session.run(settings.max_duration_ms, settings.silence_ms)

    async def _reply_text(self, turn: Turn, prior) -> str:
        """Ask the dialogue endpoint for a reply; the transcript is the fallback."""
        if not self.dialogue_active:
            logger.info("Dialogue disabled, speaking the transcription back")
            return turn.transcript

        try:
            reply = await self.services.dialogue.send(turn.transcript, prior, self.services.system_prompt)
        except DialogueError as e:
            logger.error(f"Dialogue failed: {e}")
            await self._fallback(turn, "dialogue")
            logger.info("Falling back to direct TTS of transcription...")
            return turn.transcript

        turn.reply = reply
        self.history.append_assistant(reply.response_text, raw=reply.raw_text)
        await self.report_status(CallStatus.RESPONDING)
        return reply.response_text

    async def _say(self, turn: Turn, text: str) -> None:
        turn.states.append(TurnState.SYNTHESIZING)
        try:
            turn.audio_path = await run_blocking(self.services.synthesizer.synthesize, text, self.settings.voice)
        except SynthesisError as e:
            logger.error(f"Speech synthesis failed: {e}")
            turn.failed_stage = turn.failed_stage or "synthesis"
            return

        turn.states.append(TurnState.PLAYING)
        try:
            await run_blocking(self.services.player.play, turn.audio_path)
        except PlaybackError as e:
            logger.error(f"Playback failed: {e}")
            turn.failed_stage = turn.failed_stage or "playback"

    async def _play_cue(self, path: Optional[str]) -> None:
        if not path or not os.path.exists(path):
            return
        try:
            await run_blocking(self.services.player.play, path)
        except PlaybackError as e:
            logger.warning(f"Could not play cue {path}: {e}")

    async def _fallback(self, turn: Turn, stage: str) -> None:
        turn.failed_stage = stage
        turn.states.append(TurnState.ERROR_FALLBACK)
        await self.report_status(CallStatus.ERROR)

    def _outcome(self, turn: Turn) -> TurnOutcome:
        reply = turn.reply
        if reply is None or not reply.end_call:
            return TurnOutcome(should_continue_loop=True, turn=turn)

        logger.info("AI indicated to end the call (end_call: true)")
        triage_payload = None
        if reply.send_triage:
            triage_payload = reply.to_payload()
            triage_payload["conversation"] = self.history.simplified()
        return TurnOutcome(should_continue_loop=False, end_call_requested=True,
                           triage_payload=triage_payload, turn=turn)
