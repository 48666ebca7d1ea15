"""Transcription publisher module for signal-based event publishing."""

import logging
from blinker import signal
from ..models.transcription import TranscriptionResult

logger = logging.getLogger(__name__)


class TranscriptionPublisher:
    """Re-publishes recognizer callbacks as named blinker signals.

    Signals (with the default prefix), each sent with the publisher as sender:
        transcription.sentence   result=TranscriptionResult
        transcription.completed  task_id=str
        transcription.error      message=str
    """

    def __init__(self, topic_prefix: str = "transcription"):
        """Initialize transcription publisher.

        Args:
            topic_prefix: Prefix for all transcription signal names
        """
        self.topic_prefix = topic_prefix
        self.sentence_topic = f"{topic_prefix}.sentence"
        self.completed_topic = f"{topic_prefix}.completed"
        self.error_topic = f"{topic_prefix}.error"
        logger.info(f"TranscriptionPublisher initialized with topic prefix: {topic_prefix}")

    def publish_sentence(self, result: TranscriptionResult) -> None:
        signal(self.sentence_topic).send(self, result=result)
        logger.debug(f"Published sentence for {result.task_id} (final={result.is_final})")

    def publish_completed(self, task_id: str) -> None:
        signal(self.completed_topic).send(self, task_id=task_id)
        logger.debug(f"Published completion for {task_id}")

    def publish_error(self, message: str) -> None:
        signal(self.error_topic).send(self, message=message)
