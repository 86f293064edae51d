"""Call and turn models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .dialogue import DialogueReply
from .recording import RecordingResult


class CallStatus(str, Enum):
    """Progress indicator stored on the call record."""
    INITIATED = "initiated"
    GREETING = "greeting"
    LISTENING = "listening"
    PROCESSING = "processing"
    RESPONDING = "responding"
    COMPLETED = "completed"
    ERROR = "error"


class TurnState(Enum):
    AWAITING_SPEECH = "awaiting_speech"
    RECORDING = "recording"
    TRANSCRIBING = "transcribing"
    DIALOGUE = "dialogue"
    SYNTHESIZING = "synthesizing"
    PLAYING = "playing"
    ERROR_FALLBACK = "error_fallback"
    TURN_COMPLETE = "turn_complete"


@dataclass
class Turn:
    """Working data for one record-transcribe-reply-speak cycle."""
    recording: Optional[RecordingResult] = None
    transcript: Optional[str] = None
    reply: Optional[DialogueReply] = None
    audio_path: Optional[str] = None
    states: List[TurnState] = field(default_factory=lambda: [TurnState.AWAITING_SPEECH])
    failed_stage: Optional[str] = None

    @property
    def state(self) -> TurnState:
        return self.states[-1]


@dataclass
class TurnOutcome:
    """What the call loop needs to know about a finished turn."""
    should_continue_loop: bool
    end_call_requested: bool = False
    triage_payload: Optional[Dict[str, Any]] = None
    device_error: bool = False
    turn: Optional[Turn] = None
