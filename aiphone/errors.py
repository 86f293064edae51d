"""Exception types raised at collaborator boundaries."""


class AiPhoneError(Exception):
    """Base class for ai-phone errors."""


class DeviceError(AiPhoneError):
    """Audio capture device failed to open or stopped delivering data."""


class TranscriptionError(AiPhoneError):
    """Speech-to-text backend failed."""


class DialogueError(AiPhoneError):
    """Dialogue endpoint could not be reached or rejected the request."""


class SynthesisError(AiPhoneError):
    """Text-to-speech backend failed."""


class PlaybackError(AiPhoneError):
    """Audio output failed."""


class CallTrackingError(AiPhoneError):
    """Call record API request failed."""


class FatalCallError(AiPhoneError):
    """Unrecoverable local failure; the call cannot continue."""
