"""Audio publisher module for pub/sub frame delivery."""

import logging
from pubsub import pub
from ..models.audio import AudioFrame

logger = logging.getLogger(__name__)


class AudioPublisher:
    """Publishes capture events using pubsub.pub.

    Three subtopics hang off ``topic``: ``<topic>.frame`` (kwarg ``frame``),
    ``<topic>.error`` (kwarg ``error``) and ``<topic>.end`` (no data).
    """

    def __init__(self, topic: str = "audio"):
        """Initialize audio publisher.

        Args:
            topic: Root pub/sub topic name for capture events
        """
        self.topic = topic
        self.frame_topic = f"{topic}.frame"
        self.error_topic = f"{topic}.error"
        self.end_topic = f"{topic}.end"
        logger.debug(f"AudioPublisher initialized with topic: {topic}")

    def publish_audio_frame(self, frame: AudioFrame) -> None:
        """Publish a captured frame."""
        pub.sendMessage(self.frame_topic, frame=frame)

    def publish_capture_error(self, error: BaseException) -> None:
        """Publish a device failure."""
        pub.sendMessage(self.error_topic, error=error)

    def publish_capture_end(self) -> None:
        """Publish the end of the capture stream."""
        pub.sendMessage(self.end_topic)
