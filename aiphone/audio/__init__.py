"""Audio capture, silence detection, recording and playback.

``capture`` and ``player`` need PyAudio and are imported from their modules
directly.
"""

from .audio_pub import AudioPublisher
from .source import AudioFrameSource, QueueFrameSource, MicrophoneFrameSource
from .silence import SilenceDetector, RollingWindow, energy_level
from .recording import RecordingSession

__all__ = [
    'AudioPublisher',
    'AudioFrameSource',
    'QueueFrameSource',
    'MicrophoneFrameSource',
    'SilenceDetector',
    'RollingWindow',
    'energy_level',
    'RecordingSession',
]
