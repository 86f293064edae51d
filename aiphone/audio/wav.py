"""WAV file helpers: streaming sink, validation and float conversion."""

import logging
import os
import wave
from math import gcd
from pathlib import Path
from typing import Tuple

import numpy as np
from scipy.io import wavfile
from scipy.signal import resample_poly

from ..models.audio import AudioFrame, BYTES_PER_SAMPLE

logger = logging.getLogger(__name__)

INT16_MAX = 32767


class WavSink:
    """Writes frames to a 16-bit mono WAV file as they arrive."""

    def __init__(self, path: str, sample_rate: int = 16000, channels: int = 1):
        self.path = path
        self.sample_rate = sample_rate
        self.channels = channels
        self.sample_count = 0
        self._wf = None

    def open(self) -> "WavSink":
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        self._wf = wave.open(self.path, 'wb')
        self._wf.setnchannels(self.channels)
        self._wf.setsampwidth(BYTES_PER_SAMPLE)
        self._wf.setframerate(self.sample_rate)
        self.sample_count = 0
        return self

    def write(self, frame: AudioFrame) -> None:
        self._wf.writeframes(frame.data)
        self.sample_count += frame.sample_count

    def close(self) -> None:
        if self._wf is not None:
            self._wf.close()
            self._wf = None

    @property
    def duration_ms(self) -> float:
        return self.sample_count * 1000.0 / self.sample_rate

    def __enter__(self) -> "WavSink":
        return self.open()

    def __exit__(self, *args) -> None:
        self.close()


def validate_recording(path: str) -> bool:
    """Check that a recording exists, is non-empty and holds audio frames."""
    if not path or not os.path.exists(path):
        logger.error(f"Recording file does not exist: {path}")
        return False

    if os.path.getsize(path) == 0:
        logger.error(f"Recording file is empty: {path}")
        return False

    try:
        with wave.open(path, 'rb') as wf:
            if wf.getnframes() == 0:
                logger.error(f"Recording file has no audio frames: {path}")
                return False
    except (wave.Error, EOFError) as e:
        logger.error(f"Recording file is not a valid WAV file: {path} ({e})")
        return False

    return True


def load_float_samples(path: str, target_rate: int = 16000) -> Tuple[np.ndarray, int]:
    """Read a WAV file as mono float32 in [-1, 1] at ``target_rate``.

    Args:
        path: WAV file path
        target_rate: Sample rate expected by the speech model

    Returns:
        Tuple of (samples, sample_rate)
    """
    rate, data = wavfile.read(path)

    if data.dtype == np.int16:
        samples = data.astype(np.float32) / INT16_MAX
    else:
        samples = data.astype(np.float32)

    if samples.ndim > 1:
        samples = samples.mean(axis=1).astype(np.float32)

    if rate != target_rate:
        divisor = gcd(rate, target_rate)
        samples = resample_poly(samples, target_rate // divisor, rate // divisor).astype(np.float32)
        logger.debug(f"Resampled {path} from {rate}Hz to {target_rate}Hz")

    return samples, target_rate


def float_to_pcm16(samples: np.ndarray) -> bytes:
    """Convert float samples in [-1, 1] to little-endian 16-bit PCM bytes."""
    return np.clip(np.asarray(samples) * INT16_MAX, -INT16_MAX - 1, INT16_MAX).astype(np.int16).tobytes()


def write_float_samples(path: str, samples: np.ndarray, sample_rate: int) -> None:
    """Write float samples as a 16-bit mono WAV file."""
    with wave.open(path, 'wb') as wf:
        wf.setnchannels(1)
        wf.setsampwidth(BYTES_PER_SAMPLE)
        wf.setframerate(sample_rate)
        wf.writeframes(float_to_pcm16(samples))
