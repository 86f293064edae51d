"""Real hardware tests for the microphone recording path.

These tests require an actual microphone and speakers. They check that a
recording session ends on its own and leaves a valid WAV file behind.

Run with: pytest tests/hardware/ -v -s -m hardware
"""

import pytest
import asyncio
import os
import wave

from aiphone.audio.player import AudioPlayer
from aiphone.audio.recording import RecordingSession
from aiphone.audio.silence import SilenceDetector
from aiphone.audio.source import MicrophoneFrameSource
from aiphone.audio.wav import write_float_samples
from aiphone.models.recording import RecordingError, StopReason
import numpy as np


@pytest.mark.hardware
class TestRealAudioHardware:
    """Tests that require real audio hardware to run."""

    def test_real_microphone_recording_with_deadline(self, temp_data_dir):
        """Record from the microphone until silence or the 5s deadline.

        Verifies that:
        1. Frames arrive from the capture thread
        2. The session stops by itself
        3. The WAV file matches the capture format
        """
        print("\n" + "=" * 60)
        print("HARDWARE TEST: microphone recording (speak, then stay quiet)")
        print("=" * 60)

        output_path = os.path.join(temp_data_dir, "recording.wav")
        source = MicrophoneFrameSource(sample_rate=16000, chunk_size=1024)
        session = RecordingSession(source, SilenceDetector(0.045), output_path)

        result = asyncio.run(session.run(max_duration_ms=5000.0, required_silence_ms=1000.0))

        print(f"Recording result:")
        print(f"  Stop reason: {result.stop_reason.value}")
        print(f"  Frames: {session.frames_processed}")
        print(f"  Error: {result.error.value if result.error else 'none'}")

        if result.error is RecordingError.DEVICE_ERROR:
            pytest.skip(f"No usable microphone: {result.detail}")

        assert result.stop_reason in (StopReason.SILENCE, StopReason.TIMEOUT)
        assert session.frames_processed > 0
        assert source.capture.is_recording is False

        with wave.open(output_path, 'rb') as wf:
            assert wf.getframerate() == 16000, f"Expected 16000 Hz, got {wf.getframerate()}"
            assert wf.getnchannels() == 1
            assert wf.getsampwidth() == 2
            duration = wf.getnframes() / wf.getframerate()
            # Stream time never runs past the deadline by more than one chunk
            assert duration <= 5.0 + 1024 / 16000
            print(f"WAV file verified: {wf.getnframes():,} frames, {duration:.2f}s duration")

        print("✅ Microphone recording test passed!")

    def test_real_playback(self, temp_data_dir):
        """Play a half-second tone through the default output device."""
        print("\n" + "=" * 60)
        print("HARDWARE TEST: playback (you should hear a short beep)")
        print("=" * 60)

        path = os.path.join(temp_data_dir, "beep.wav")
        t = np.linspace(0, 0.5, 12000, False)
        write_float_samples(path, 0.2 * np.sin(2 * np.pi * 440 * t), 24000)

        player = AudioPlayer()
        try:
            player.play(path)
        finally:
            player.close()

        print("✅ Playback test passed!")


if __name__ == "__main__":
    print("Hardware tests for ai-phone audio")
    print("Run with: pytest tests/hardware/ -v -s -m hardware")
