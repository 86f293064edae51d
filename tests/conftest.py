"""Pytest configuration and fixtures for ai-phone tests."""

import pytest
import tempfile
import os
import logging
import wave
from pathlib import Path
from unittest.mock import Mock, patch
import numpy as np

from aiphone.dialogue import ConversationHistory
from aiphone.services import CallSettings, ServiceBundle
from tests.helpers import (
    FakeDialogue, FakePlayer, FakeSynthesizer, FakeTracker, FakeTranscriber,
    ScriptedFrameSource, level_frames,
)


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without hardware or network")
    config.addinivalue_line("markers", "integration: several components working together")
    config.addinivalue_line("markers", "hardware: requires a real microphone and speakers")


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def sample_audio_chunk():
    """Generate a sample audio chunk for testing."""
    # Generate 1024 samples of 16-bit audio (sine wave)
    sample_rate = 16000
    duration = 1024 / sample_rate  # ~0.064 seconds
    freq = 440  # A4 note

    t = np.linspace(0, duration, 1024, False)
    wave_data = np.sin(2 * np.pi * freq * t)

    # Convert to 16-bit integers
    audio_data = (wave_data * 32767).astype(np.int16)
    return audio_data.tobytes()


@pytest.fixture
def sample_audio_file(temp_data_dir, sample_audio_chunk):
    """Create a sample WAV file for testing."""
    file_path = Path(temp_data_dir) / "test_audio.wav"

    with wave.open(str(file_path), 'wb') as wf:
        wf.setnchannels(1)  # Mono
        wf.setsampwidth(2)  # 16-bit
        wf.setframerate(16000)  # 16kHz

        for _ in range(20):
            wf.writeframes(sample_audio_chunk)

    return str(file_path)


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        # Configure mock stream
        mock_stream.read.return_value = b'\x00' * 2048  # Silent audio
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        # Configure mock PyAudio instance
        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None
        mock_pyaudio_instance.get_sample_size.return_value = 2

        # Configure mock PyAudio class
        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }


@pytest.fixture
def call_settings(temp_data_dir):
    """Fast settings: 100ms frames, no flush delay, no cue sounds."""
    return CallSettings(
        threshold=0.3,
        silence_ms=1000.0,
        max_duration_ms=10000.0,
        recording_path=os.path.join(temp_data_dir, "recording.wav"),
        flush_delay_seconds=0.0,
        start_cue=None,
        stop_cue=None,
    )


@pytest.fixture
def speech_then_silence():
    """3s of speech at level 0.9 followed by 3s at level 0.01 (100ms frames)."""
    return level_frames([0.9] * 30 + [0.01] * 30)


@pytest.fixture
def make_services(temp_data_dir):
    """Build a ServiceBundle of fakes; each call to the source factory pops the next script."""
    def _make(sources=None, transcriber=None, synthesizer=None, player=None,
              dialogue=None, tracker=None, system_prompt="Be brief."):
        scripts = list(sources or [])

        def source_factory():
            return scripts.pop(0) if scripts else ScriptedFrameSource([])

        return ServiceBundle(
            source_factory=source_factory,
            transcriber=transcriber or FakeTranscriber(),
            synthesizer=synthesizer or FakeSynthesizer(temp_data_dir),
            player=player or FakePlayer(),
            dialogue=dialogue or FakeDialogue(),
            tracker=tracker or FakeTracker(),
            system_prompt=system_prompt,
        )
    return _make


@pytest.fixture
def history():
    return ConversationHistory()
