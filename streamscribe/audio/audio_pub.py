"""Audio publisher module for signal-based event publishing."""

import logging
from blinker import signal
from ..models.events import AudioEvent

logger = logging.getLogger(__name__)


class AudioPublisher:
    """Publishes audio events on a named blinker signal."""

    def __init__(self, topic: str = "audio.frame"):
        """Initialize audio publisher.

        Args:
            topic: Signal name for audio events
        """
        self.topic = topic
        self.signal = signal(topic)
        logger.info(f"AudioPublisher initialized with topic: {topic}")

    def publish_audio_event(self, audio_event: AudioEvent) -> None:
        """Publish an audio event to the topic's receivers.

        Args:
            audio_event: AudioEvent to publish
        """
        self.signal.send(self, event=audio_event)
