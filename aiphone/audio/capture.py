"""Microphone capture thread publishing fixed-size PCM frames."""

import pyaudio
import time
import logging
from threading import Thread, Event
from typing import Callable, Iterator, Optional

from ..models.audio import AudioFrame, AudioStats


logger = logging.getLogger(__name__)


class AudioCapture:
    """Reads the default input device on a daemon thread.

    Every chunk is handed to ``callback`` as an :class:`AudioFrame` stamped
    with its stream time. A device failure goes to ``error_callback``, and
    ``end_callback`` fires exactly once when the thread exits, whatever the
    reason.
    """

    def __init__(
        self,
        callback: Callable[[AudioFrame], None],
        error_callback: Optional[Callable[[BaseException], None]] = None,
        end_callback: Optional[Callable[[], None]] = None,
        sample_rate: int = 16000,
        chunk_size: int = 1024,
        channels: int = 1,
        format: int = pyaudio.paInt16,
    ):
        """Initialize audio capture.

        Args:
            callback: Receives each frame, called on the capture thread
            error_callback: Receives the exception if the device fails
            end_callback: Called once when capture ends
            sample_rate: Input rate; 16kHz is what the recognizer expects
            chunk_size: Samples per frame
            channels: Input channels (1 for mono)
            format: PyAudio sample format
        """
        self.frame_callback = callback
        self.error_callback = error_callback
        self.end_callback = end_callback
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels
        self.format = format

        self.recording_thread: Optional[Thread] = None
        self.stop_event = Event()
        self.is_recording = False

        self.start_time: Optional[float] = None
        self.total_chunks = 0

        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None

    @property
    def chunk_duration_ms(self) -> float:
        return self.chunk_size * 1000.0 / self.sample_rate

    def start_recording(self) -> None:
        """Spawn the capture thread. Ignored while already capturing."""
        if self.is_recording:
            logger.warning("Capture already running")
            return

        logger.info(f"Starting microphone capture ({self.sample_rate}Hz, {self.chunk_size} samples/frame)")
        self.stop_event.clear()
        self.start_time = time.monotonic()
        self.total_chunks = 0

        self.recording_thread = Thread(target=self._record_continuously, name="AudioCaptureThread",
                                       daemon=True)
        self.recording_thread.start()
        self.is_recording = True

    def request_stop(self) -> None:
        """Signal the capture thread to exit; returns immediately."""
        self.stop_event.set()

    def stop_recording(self, timeout: float = 2.0) -> None:
        """Signal the thread and join it. Safe to call when already stopped."""
        if not self.is_recording:
            logger.debug("Capture not running")
            return

        self.stop_event.set()
        thread = self.recording_thread
        if thread is not None and thread.is_alive():
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning(f"Capture thread still alive after {timeout}s")

        self.is_recording = False
        logger.info(f"Microphone capture stopped after {self.total_chunks} frames")

    def _open_stream(self) -> pyaudio.Stream:
        self.pyaudio_instance = pyaudio.PyAudio()
        return self.pyaudio_instance.open(
            format=self.format,
            channels=self.channels,
            rate=self.sample_rate,
            input=True,
            frames_per_buffer=self.chunk_size,
        )

    def _frames(self, stream: pyaudio.Stream) -> Iterator[AudioFrame]:
        while not self.stop_event.is_set():
            data = stream.read(self.chunk_size, exception_on_overflow=False)
            frame = AudioFrame(
                data=data,
                sequence_number=self.total_chunks,
                sample_rate=self.sample_rate,
                timestamp_ms=self.total_chunks * self.chunk_duration_ms,
            )
            self.total_chunks += 1
            yield frame

    def _release(self, stream: Optional[pyaudio.Stream]) -> None:
        if stream is not None:
            stream.stop_stream()
            stream.close()
        if self.pyaudio_instance is not None:
            self.pyaudio_instance.terminate()
            self.pyaudio_instance = None

    def _record_continuously(self) -> None:
        """Capture thread body."""
        stream = None
        try:
            stream = self._open_stream()
            for frame in self._frames(stream):
                self.frame_callback(frame)
        except Exception as e:
            logger.error(f"Microphone capture failed: {e}")
            if self.error_callback is not None:
                self.error_callback(e)
        finally:
            self._release(stream)
            if self.end_callback is not None:
                self.end_callback()

    def get_recording_stats(self) -> AudioStats:
        elapsed = time.monotonic() - self.start_time if self.start_time is not None else 0.0
        return AudioStats(
            is_recording=self.is_recording,
            duration_seconds=elapsed,
            sample_rate=self.sample_rate,
            chunk_size=self.chunk_size,
            total_chunks=self.total_chunks,
        )

    def __del__(self):
        if self.is_recording:
            self.stop_recording()
