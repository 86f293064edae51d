"""WAV playback through the default output device."""

import logging
import threading
import wave
from typing import Optional

import pyaudio

from ..errors import PlaybackError

logger = logging.getLogger(__name__)


class AudioPlayer:
    """Plays WAV files with PyAudio; ``play`` blocks until playback completes."""

    def __init__(self, chunk_size: int = 1024):
        self.chunk_size = chunk_size
        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None
        self._lock = threading.Lock()

    def _get_pyaudio(self) -> pyaudio.PyAudio:
        if self.pyaudio_instance is None:
            self.pyaudio_instance = pyaudio.PyAudio()
        return self.pyaudio_instance

    def play(self, audio_path: str) -> None:
        """Play a WAV file.

        Args:
            audio_path: Path to the audio file to play

        Raises:
            PlaybackError: If the file cannot be read or the device fails
        """
        logger.info(f"Playing audio from {audio_path}...")
        with self._lock:
            try:
                with wave.open(audio_path, 'rb') as wf:
                    audio = self._get_pyaudio()
                    stream = audio.open(
                        format=audio.get_format_from_width(wf.getsampwidth()),
                        channels=wf.getnchannels(),
                        rate=wf.getframerate(),
                        output=True,
                    )
                    try:
                        data = wf.readframes(self.chunk_size)
                        while data:
                            stream.write(data)
                            data = wf.readframes(self.chunk_size)
                    finally:
                        stream.stop_stream()
                        stream.close()
            except (OSError, wave.Error, EOFError) as e:
                raise PlaybackError(f"Failed to play {audio_path}: {e}") from e
        logger.info("Audio playback completed")

    def close(self) -> None:
        if self.pyaudio_instance is not None:
            self.pyaudio_instance.terminate()
            self.pyaudio_instance = None
