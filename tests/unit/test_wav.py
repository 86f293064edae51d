"""Unit tests for WAV helpers."""

import pytest
import os
import wave
import numpy as np
from scipy.io import wavfile

from aiphone.audio.wav import (
    WavSink, float_to_pcm16, load_float_samples, validate_recording, write_float_samples,
)
from tests.helpers import level_frames


@pytest.mark.unit
class TestWavSink:

    def test_writes_frames(self, temp_data_dir):
        path = os.path.join(temp_data_dir, "nested", "out.wav")

        with WavSink(path) as sink:
            for frame in level_frames([0.5] * 3):
                sink.write(frame)

        assert sink.sample_count == 4800
        assert sink.duration_ms == pytest.approx(300.0)
        with wave.open(path, 'rb') as wf:
            assert wf.getnframes() == 4800
            assert wf.getsampwidth() == 2

    def test_close_twice(self, temp_data_dir):
        sink = WavSink(os.path.join(temp_data_dir, "out.wav")).open()
        sink.close()
        sink.close()


@pytest.mark.unit
class TestValidateRecording:

    def test_valid_file(self, sample_audio_file):
        assert validate_recording(sample_audio_file) is True

    def test_missing_file(self, temp_data_dir):
        assert validate_recording(os.path.join(temp_data_dir, "missing.wav")) is False

    def test_zero_byte_file(self, temp_data_dir):
        path = os.path.join(temp_data_dir, "empty.wav")
        open(path, 'wb').close()

        assert validate_recording(path) is False

    def test_header_only(self, temp_data_dir):
        path = os.path.join(temp_data_dir, "header.wav")
        WavSink(path).open().close()

        assert os.path.getsize(path) > 0
        assert validate_recording(path) is False

    def test_not_a_wav(self, temp_data_dir):
        path = os.path.join(temp_data_dir, "text.wav")
        with open(path, 'w') as f:
            f.write("definitely not audio")

        assert validate_recording(path) is False


@pytest.mark.unit
class TestFloatSamples:

    def test_pcm_conversion_clips(self):
        pcm = np.frombuffer(float_to_pcm16(np.array([0.0, 1.0, -1.0, 2.0, -2.0])), dtype=np.int16)

        assert list(pcm) == [0, 32767, -32767, 32767, -32768]

    def test_load_int16(self, sample_audio_file):
        samples, rate = load_float_samples(sample_audio_file)

        assert rate == 16000
        assert samples.dtype == np.float32
        assert len(samples) == 20 * 1024
        assert np.max(np.abs(samples)) <= 1.0

    def test_load_resamples(self, temp_data_dir):
        path = os.path.join(temp_data_dir, "24k.wav")
        write_float_samples(path, np.zeros(24000, dtype=np.float32), 24000)

        samples, rate = load_float_samples(path, target_rate=16000)

        assert rate == 16000
        assert len(samples) == 16000

    def test_load_stereo_float(self, temp_data_dir):
        path = os.path.join(temp_data_dir, "stereo.wav")
        wavfile.write(path, 16000, np.full((1600, 2), 0.25, dtype=np.float32))

        samples, _ = load_float_samples(path)

        assert samples.shape == (1600,)
        assert samples[0] == pytest.approx(0.25)

    def test_load_stereo_int16_is_scaled(self, temp_data_dir):
        path = os.path.join(temp_data_dir, "stereo16.wav")
        data = np.zeros((1600, 2), dtype=np.int16)
        data[:, 0] = 16384
        data[:, 1] = -8192
        wavfile.write(path, 16000, data)

        samples, _ = load_float_samples(path)

        assert samples.shape == (1600,)
        assert samples.dtype == np.float32
        assert samples[0] == pytest.approx((16384 - 8192) / 2 / 32767)
