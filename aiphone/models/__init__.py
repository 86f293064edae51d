"""Data models for the ai-phone application."""

from .audio import AudioFrame, AudioStats
from .recording import SilenceState, StopReason, RecordingError, RecordingResult
from .dialogue import Role, HistoryEntry, DialogueReply
from .call import CallStatus, TurnState, Turn, TurnOutcome

__all__ = [
    "AudioFrame",
    "AudioStats",
    "SilenceState",
    "StopReason",
    "RecordingError",
    "RecordingResult",
    "Role",
    "HistoryEntry",
    "DialogueReply",
    "CallStatus",
    "TurnState",
    "Turn",
    "TurnOutcome",
]
