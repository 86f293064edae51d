"""Recording outcome models."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SilenceState(Enum):
    """Classification of the smoothed energy signal."""
    TALKING = "talking"
    SILENT = "silent"


class StopReason(Enum):
    """Why a recording session stopped capturing."""
    SILENCE = "silence"
    TIMEOUT = "timeout"
    STREAM_ENDED = "stream_ended"
    DEVICE_ERROR = "device_error"


class RecordingError(Enum):
    """Failure kinds for a recording session."""
    NO_SPEECH_DETECTED = "no_speech_detected"
    EMPTY_OR_MISSING_FILE = "empty_or_missing_file"
    DEVICE_ERROR = "device_error"

    @property
    def ends_call(self) -> bool:
        """Benign conditions that end the call loop rather than count as errors."""
        return self in (RecordingError.NO_SPEECH_DETECTED, RecordingError.EMPTY_OR_MISSING_FILE)


@dataclass(frozen=True)
class RecordingResult:
    """Terminal value of one recording session."""
    stop_reason: StopReason
    path: Optional[str] = None
    duration_ms: float = 0.0
    sample_count: int = 0
    error: Optional[RecordingError] = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, stop_reason: StopReason, path: str, duration_ms: float,
                sample_count: int) -> "RecordingResult":
        return cls(stop_reason=stop_reason, path=path, duration_ms=duration_ms,
                   sample_count=sample_count)

    @classmethod
    def failure(cls, stop_reason: StopReason, error: RecordingError,
                path: Optional[str] = None, detail: Optional[str] = None) -> "RecordingResult":
        return cls(stop_reason=stop_reason, path=path, error=error, detail=detail)
