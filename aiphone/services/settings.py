"""Per-call settings derived from configuration."""

from dataclasses import dataclass
from typing import Optional

from ..config import AiPhoneConfig


@dataclass
class CallSettings:
    """Values the call loop reads on every turn."""
    threshold: float = 0.045
    threshold_start: Optional[float] = None
    window_size: int = 5
    silence_ms: float = 1000.0
    max_duration_ms: float = 15000.0  # 0 disables the deadline
    sample_rate: int = 16000
    recording_path: str = "recordings/recording.wav"
    flush_delay_seconds: float = 0.25
    use_dialogue: bool = True
    use_context: bool = True
    greeting: str = "Hello! How can I help you today?"
    start_cue: Optional[str] = None
    stop_cue: Optional[str] = None
    voice: str = "bf_emma"
    max_consecutive_device_errors: int = 3

    @classmethod
    def from_config(cls, config: AiPhoneConfig) -> "CallSettings":
        return cls(
            threshold=config.get('vad.threshold'),
            threshold_start=config.get_threshold_start(),
            window_size=config.get('vad.window_size'),
            silence_ms=config.get('vad.silence_duration_seconds') * 1000.0,
            max_duration_ms=config.get('vad.max_duration_seconds') * 1000.0,
            sample_rate=config.get('audio.sample_rate'),
            recording_path=config.get('recording.path'),
            flush_delay_seconds=config.get('recording.flush_delay_seconds'),
            use_dialogue=config.get('dialogue.enabled'),
            use_context=config.get('dialogue.use_context'),
            greeting=config.get('call.greeting'),
            start_cue=config.get('audio.cues.start'),
            stop_cue=config.get('audio.cues.stop'),
            voice=config.get('synthesis.voice'),
            max_consecutive_device_errors=config.get('call.max_consecutive_device_errors'),
        )
