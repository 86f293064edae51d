"""One capture-to-file cycle ended by confirmed silence or a hard deadline."""

import asyncio
import logging
from typing import List, Optional

from ..errors import DeviceError
from ..models.recording import RecordingError, RecordingResult, StopReason
from .silence import SilenceDetector
from .source import AudioFrameSource
from .wav import WavSink, validate_recording

logger = logging.getLogger(__name__)

# Confirmed silence never needs to last longer than this to end a turn
MAX_END_SILENCE_MS = 1000.0


class StopLatch:
    """Single-assignment stop reason; later stop attempts are recorded and ignored."""

    def __init__(self):
        self.reason: Optional[StopReason] = None
        self.rejected: List[StopReason] = []

    def trip(self, reason: StopReason) -> bool:
        if self.reason is not None:
            self.rejected.append(reason)
            return False
        self.reason = reason
        return True


class RecordingSession:
    """Records from a frame source into a WAV file until the speaker goes quiet.

    The session stops on the first of:
      * confirmed silence after speech (natural end of the turn)
      * the max-duration deadline (wall-clock timer or stream time)
      * the frame source ending or failing
    """

    def __init__(self, source: AudioFrameSource, detector: SilenceDetector, output_path: str,
                 sample_rate: int = 16000, flush_delay_seconds: float = 0.25):
        """Initialize recording session.

        Args:
            source: Frame source; exclusively owned by this session while it runs
            detector: Silence detector; reset at the start of run()
            output_path: WAV file the frames are written to
            sample_rate: Sample rate of the frames
            flush_delay_seconds: Pause after stopping before the file is validated
        """
        self.source = source
        self.detector = detector
        self.output_path = output_path
        self.sample_rate = sample_rate
        self.flush_delay_seconds = flush_delay_seconds
        self.latch = StopLatch()
        self.frames_processed = 0
        self._deadline_task: Optional[asyncio.Task] = None

    async def run(self, max_duration_ms: float, required_silence_ms: float) -> RecordingResult:
        """Record one utterance.

        Args:
            max_duration_ms: Hard limit on recording length; 0 disables it
            required_silence_ms: Silence needed to end the turn (capped at 1s)

        Returns:
            RecordingResult describing the artifact or the failure
        """
        self.detector.reset()
        self.latch = StopLatch()
        self.frames_processed = 0
        end_silence_ms = min(MAX_END_SILENCE_MS, required_silence_ms)
        device_error: Optional[BaseException] = None

        logger.info(f"Recording to {self.output_path} (silence {end_silence_ms:.0f}ms, "
                    f"max {max_duration_ms / 1000.0 if max_duration_ms > 0 else 'unlimited'}s, "
                    f"threshold stop {self.detector.threshold_stop}, "
                    f"start {self.detector.threshold_start})")

        sink = WavSink(self.output_path, self.sample_rate)
        try:
            sink.open()
            self.source.open()
        except (DeviceError, OSError) as e:
            logger.error(f"Could not start recording: {e}")
            sink.close()
            return RecordingResult.failure(StopReason.DEVICE_ERROR, RecordingError.DEVICE_ERROR,
                                           path=self.output_path, detail=str(e))

        if max_duration_ms > 0:
            self._deadline_task = asyncio.create_task(self._deadline(max_duration_ms))

        try:
            async for frame in self.source:
                if self.latch.reason is not None:
                    break
                sink.write(frame)
                self.frames_processed += 1
                self.detector.observe(frame)

                silence_ms = self.detector.silence_duration_ms(frame.timestamp_ms)
                if self.detector.speech_detected and silence_ms >= end_silence_ms:
                    logger.info(f"Silence lasted for {silence_ms / 1000.0:.1f} seconds, stopping recording")
                    self._stop(StopReason.SILENCE)
                    break

                if max_duration_ms > 0 and frame.end_ms >= max_duration_ms:
                    logger.info(f"Recording stopped after reaching maximum duration "
                                f"({max_duration_ms / 1000.0:.1f} seconds)")
                    self._stop(StopReason.TIMEOUT)
                    break
            else:
                self.latch.trip(StopReason.STREAM_ENDED)
        except (DeviceError, OSError) as e:
            logger.error(f"Recording device error: {e}")
            self.latch.trip(StopReason.DEVICE_ERROR)
            device_error = e
        finally:
            self._cancel_deadline()
            self.source.close()
            await self.source.wait_closed()
            sink.close()

        if device_error is not None:
            return RecordingResult.failure(StopReason.DEVICE_ERROR, RecordingError.DEVICE_ERROR,
                                           path=self.output_path, detail=str(device_error))

        if self.flush_delay_seconds > 0:
            await asyncio.sleep(self.flush_delay_seconds)

        return self._finish(sink)

    def _finish(self, sink: WavSink) -> RecordingResult:
        stop_reason = self.latch.reason
        logger.info(f"Recording stopped ({stop_reason.value}): {self.frames_processed} frames, "
                    f"{sink.duration_ms / 1000.0:.1f}s")

        if not validate_recording(self.output_path):
            return RecordingResult.failure(stop_reason, RecordingError.EMPTY_OR_MISSING_FILE,
                                           path=self.output_path)

        if not self.detector.speech_detected:
            logger.info("No speech detected during recording")
            return RecordingResult.failure(stop_reason, RecordingError.NO_SPEECH_DETECTED,
                                           path=self.output_path)

        return RecordingResult.success(stop_reason, self.output_path,
                                       duration_ms=sink.duration_ms,
                                       sample_count=sink.sample_count)

    def _stop(self, reason: StopReason) -> bool:
        if not self.latch.trip(reason):
            return False
        if reason is not StopReason.TIMEOUT:
            self._cancel_deadline()
        self.source.close()
        return True

    async def _deadline(self, max_duration_ms: float) -> None:
        await asyncio.sleep(max_duration_ms / 1000.0)
        if self._stop(StopReason.TIMEOUT):
            logger.info(f"Recording stopped after reaching maximum duration "
                        f"({max_duration_ms / 1000.0:.1f} seconds)")

    def _cancel_deadline(self) -> None:
        task = self._deadline_task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    @property
    def deadline_task(self) -> Optional[asyncio.Task]:
        return self._deadline_task
