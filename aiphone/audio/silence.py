"""Energy-based silence detection over a rolling window of audio levels."""

import logging
import math
from collections import deque
from typing import Optional

import numpy as np

from ..models.audio import AudioFrame
from ..models.recording import SilenceState

logger = logging.getLogger(__name__)

# Thresholds below this collapse to "everything is speech" on a real microphone
MIN_THRESHOLD = 0.01
MAX_THRESHOLD = 1.0
INT16_FULL_SCALE = 32768.0


def clamp_threshold(value: float) -> float:
    """Clamp a threshold into [MIN_THRESHOLD, MAX_THRESHOLD]."""
    if not math.isfinite(float(value)):
        logger.warning(f"Threshold {value} is not a number, using {MIN_THRESHOLD}")
        return MIN_THRESHOLD
    clamped = min(max(float(value), MIN_THRESHOLD), MAX_THRESHOLD)
    if clamped != value:
        logger.info(f"Threshold {value} adjusted to {clamped:.3f}")
    return clamped


def energy_level(data: bytes) -> float:
    """Mean absolute amplitude of 16-bit PCM, normalized to [0.0, 1.0]."""
    samples = np.frombuffer(data, dtype=np.int16)
    if samples.size == 0:
        return 0.0
    # Widen before abs() so -32768 does not overflow
    return float(np.abs(samples.astype(np.int32)).mean() / INT16_FULL_SCALE)


class RollingWindow:
    """Fixed-capacity history of the most recent energy levels."""

    def __init__(self, capacity: int = 5):
        if capacity < 1:
            raise ValueError("Rolling window capacity must be at least 1")
        self.capacity = capacity
        self.levels = deque(maxlen=capacity)

    def push(self, level: float) -> None:
        """Add a level, evicting the oldest beyond capacity.

        The first level seeds the whole window so one frame is enough to
        produce a meaningful average.
        """
        if not self.levels:
            self.levels.extend([level] * self.capacity)
        else:
            self.levels.append(level)

    def average(self) -> float:
        if not self.levels:
            return 0.0
        return sum(self.levels) / len(self.levels)

    def clear(self) -> None:
        self.levels.clear()

    def __len__(self) -> int:
        return len(self.levels)


class SilenceDetector:
    """Classifies a frame stream into talking/silent states.

    ``threshold_stop`` decides silence; ``threshold_start`` only decides
    whether speech has happened at all, so background noise alone never
    counts as a turn.
    """

    def __init__(self, threshold_stop: float, threshold_start: Optional[float] = None,
                 window_size: int = 5):
        self.threshold_stop = clamp_threshold(threshold_stop)
        self.threshold_start = clamp_threshold(
            threshold_stop if threshold_start is None else threshold_start)
        self.window = RollingWindow(window_size)
        self.state = SilenceState.TALKING
        self.silence_started_at: Optional[float] = None
        self.speech_started_at: Optional[float] = None
        self.last_level = 0.0
        self.frames_observed = 0

    @property
    def speech_detected(self) -> bool:
        return self.speech_started_at is not None

    def reset(self) -> None:
        """Forget all history; called at the start of every recording session."""
        self.window.clear()
        self.state = SilenceState.TALKING
        self.silence_started_at = None
        self.speech_started_at = None
        self.last_level = 0.0
        self.frames_observed = 0

    def observe(self, frame: AudioFrame) -> SilenceState:
        """Update the smoothed level with one frame and return the new state."""
        self.last_level = energy_level(frame.data)
        self.window.push(self.last_level)
        average = self.window.average()
        now = frame.timestamp_ms

        if self.frames_observed % 10 == 0:
            logger.debug(f"Audio level: {self.last_level:.4f} (avg {average:.4f})")
        self.frames_observed += 1

        if self.speech_started_at is None and average >= self.threshold_start:
            self.speech_started_at = now
            logger.debug(f"Speech detected at {now:.0f}ms (avg level: {average:.4f})")

        if average < self.threshold_stop:
            if self.state is SilenceState.TALKING:
                self.state = SilenceState.SILENT
                self.silence_started_at = now
                logger.debug(f"Silence detected (avg level: {average:.4f}, "
                             f"threshold: {self.threshold_stop})")
        else:
            if self.state is SilenceState.SILENT:
                logger.debug(f"Silence ended (avg level: {average:.4f}, "
                             f"threshold: {self.threshold_stop})")
            self.state = SilenceState.TALKING
            self.silence_started_at = None

        return self.state

    def silence_duration_ms(self, now_ms: float) -> float:
        """Silence accumulated since speech last stopped, 0 while talking.

        Silence that precedes the first detected speech does not count.
        """
        if self.state is not SilenceState.SILENT or self.silence_started_at is None:
            return 0.0
        started = self.silence_started_at
        if self.speech_started_at is not None:
            started = max(started, self.speech_started_at)
        return now_ms - started
