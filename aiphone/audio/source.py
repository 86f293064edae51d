"""Async frame sources consumed by recording sessions."""

import asyncio
import itertools
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable, Optional, Union

from pubsub import pub

from ..errors import DeviceError
from ..models.audio import AudioFrame
from .audio_pub import AudioPublisher

if TYPE_CHECKING:
    from .capture import AudioCapture

logger = logging.getLogger(__name__)

_END = object()
_topic_ids = itertools.count()


class AudioFrameSource(ABC):
    """Async iterator of :class:`AudioFrame` with an explicit open/close lifecycle.

    ``close()`` must be idempotent and must wake a consumer blocked waiting
    for the next frame.
    """

    def __aiter__(self) -> "AudioFrameSource":
        return self

    @abstractmethod
    async def __anext__(self) -> AudioFrame:
        """Return the next frame, raise StopAsyncIteration at end of stream
        or DeviceError on capture failure."""

    @abstractmethod
    def open(self) -> None:
        """Start delivering frames."""

    @abstractmethod
    def close(self) -> None:
        """Stop delivering frames."""

    async def wait_closed(self) -> None:
        """Wait until the underlying device has been released."""


class QueueFrameSource(AudioFrameSource):
    """Frame source fed through an asyncio queue.

    Producers on other threads use :meth:`push_frame`, :meth:`push_error` and
    :meth:`push_end`, which hop onto the consuming event loop.
    """

    def __init__(self):
        self._queue: Optional[asyncio.Queue] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self.closed = False

    def open(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self.closed = False

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._queue is not None:
            self._queue.put_nowait(_END)

    async def __anext__(self) -> AudioFrame:
        if self._queue is None:
            raise RuntimeError("Frame source used before open()")
        if self.closed and self._queue.empty():
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _END:
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise DeviceError(f"Audio capture failed: {item}") from item
        return item

    def _put_threadsafe(self, item: Union[AudioFrame, BaseException, object]) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self._put, item)

    def _put(self, item) -> None:
        # Frames arriving after close() are dropped
        if self.closed and item is not _END:
            return
        self._queue.put_nowait(item)

    def push_frame(self, frame: AudioFrame) -> None:
        self._put_threadsafe(frame)

    def push_error(self, error: BaseException) -> None:
        self._put_threadsafe(error)

    def push_end(self) -> None:
        self._put_threadsafe(_END)


class MicrophoneFrameSource(QueueFrameSource):
    """Live microphone frames: AudioCapture thread → pub/sub → asyncio queue."""

    def __init__(self, sample_rate: int = 16000, chunk_size: int = 1024, channels: int = 1,
                 capture_factory: Optional[Callable[..., "AudioCapture"]] = None,
                 topic: Optional[str] = None):
        super().__init__()
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels
        self.capture_factory = capture_factory
        # Unique root topic per source so stale subscriptions never cross sessions
        self.publisher = AudioPublisher(topic or f"audio.capture{next(_topic_ids)}")
        self.capture = None
        self._subscribed = False

    def open(self) -> None:
        super().open()
        pub.subscribe(self.push_frame, self.publisher.frame_topic)
        pub.subscribe(self.push_error, self.publisher.error_topic)
        pub.subscribe(self.push_end, self.publisher.end_topic)
        self._subscribed = True

        capture_factory = self.capture_factory
        if capture_factory is None:
            from .capture import AudioCapture
            capture_factory = AudioCapture
        self.capture = capture_factory(
            callback=self.publisher.publish_audio_frame,
            error_callback=self.publisher.publish_capture_error,
            end_callback=self.publisher.publish_capture_end,
            sample_rate=self.sample_rate,
            chunk_size=self.chunk_size,
            channels=self.channels,
        )
        self.capture.start_recording()

    def close(self) -> None:
        if self.capture is not None:
            self.capture.request_stop()
        super().close()

    async def wait_closed(self) -> None:
        if self.capture is not None:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self.capture.stop_recording)
        if self._subscribed:
            pub.unsubscribe(self.push_frame, self.publisher.frame_topic)
            pub.unsubscribe(self.push_error, self.publisher.error_topic)
            pub.unsubscribe(self.push_end, self.publisher.end_topic)
            self._subscribed = False
