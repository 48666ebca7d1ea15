"""Abstract base classes for streaming recognizers."""

from abc import ABC, abstractmethod
from typing import Callable, Optional
import logging

from ..models.transcription import TranscriptionResult

logger = logging.getLogger(__name__)

ResultCallback = Callable[[str], None]
CompletedCallback = Callable[[], None]
ErrorCallback = Callable[[str], None]
SentenceCallback = Callable[[TranscriptionResult], None]


class AbstractStreamingRecognizer(ABC):
    """Abstract base class for duplex streaming recognizers."""

    @abstractmethod
    async def start(self,
                    on_result: ResultCallback,
                    on_completed: CompletedCallback,
                    on_error: ErrorCallback,
                    on_sentence: Optional[SentenceCallback] = None) -> None:
        """Open the transport and start a recognition task.

        Args:
            on_result: Called with the text of every interim or final result
            on_completed: Called once when the session is over
            on_error: Called with a message for every reported error
            on_sentence: Optional, called with the structured result
        """
        pass

    @abstractmethod
    def send_audio_data(self, chunk: bytes) -> None:
        """Forward a chunk of raw PCM audio while the task is active."""
        pass

    @abstractmethod
    def finish_task(self) -> None:
        """Tell the service no more audio will follow."""
        pass

    @abstractmethod
    async def dispose(self) -> None:
        """Release the transport and stop delivering callbacks."""
        pass
