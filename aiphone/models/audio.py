"""Audio-related data models."""

from dataclasses import dataclass


BYTES_PER_SAMPLE = 2  # 16-bit PCM


@dataclass(frozen=True)
class AudioFrame:
    """A fixed-size slice of mono 16-bit PCM audio."""
    data: bytes
    sequence_number: int
    sample_rate: int = 16000
    timestamp_ms: float = 0.0  # Stream time of the first sample

    @property
    def sample_count(self) -> int:
        return len(self.data) // BYTES_PER_SAMPLE

    @property
    def duration_ms(self) -> float:
        return self.sample_count * 1000.0 / self.sample_rate

    @property
    def end_ms(self) -> float:
        return self.timestamp_ms + self.duration_ms


@dataclass
class AudioStats:
    """Audio recording statistics."""
    is_recording: bool
    duration_seconds: float
    sample_rate: int
    chunk_size: int
    total_chunks: int
