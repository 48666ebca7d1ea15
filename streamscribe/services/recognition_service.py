"""Recognition service that streams an audio source through the recognizer."""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from blinker import signal

from ..audio.audio_pub import AudioPublisher
from ..audio.file_source import WavFileSource
from ..config import StreamScribeConfig
from ..models.events import AudioEvent
from ..models.session import SessionState
from ..transcription.aggregator import TranscriptionAggregator
from ..transcription.publisher import TranscriptionPublisher
from ..transcription.recognizer import Connector, SpeechRecognizer

logger = logging.getLogger(__name__)


class RecognitionService:
    """Service that owns a recognizer and feeds it audio published on a topic."""

    def __init__(self,
                 config: StreamScribeConfig,
                 audio_topic: str = "audio.frame",
                 topic_prefix: str = "transcription",
                 connector: Optional[Connector] = None):
        """Initialize recognition service.

        Args:
            config: Application configuration
            audio_topic: Topic the service listens on for AudioEvents
            topic_prefix: Parent topic for published transcription messages
            connector: Optional WebSocket connector passed to the recognizer

        Raises:
            ConfigurationError: If the recognizer settings are invalid
        """
        self.config = config
        self.settings = config.get_recognizer_settings()
        self.recognizer = SpeechRecognizer(self.settings, connector=connector)

        self.audio_topic = audio_topic
        self.audio_publisher = AudioPublisher(audio_topic)
        self.publisher = TranscriptionPublisher(topic_prefix)
        self.aggregator = TranscriptionAggregator(
            self.publisher.sentence_topic, "session",
            separator=config.get('recognition.separator', ""))

        self.start_timeout = float(config.get('connection.start_timeout_seconds', 10.0))
        self.finish_timeout = float(config.get('connection.finish_timeout_seconds', 30.0))

        self.errors: List[str] = []
        self.completed = False
        self.is_running = False

        signal(audio_topic).connect(self._on_audio_event)

    def _on_audio_event(self, sender, event: AudioEvent) -> None:
        self.recognizer.send_audio_data(event.audio_data)

    def _on_result(self, text: str) -> None:
        logger.debug(f"Interim result: {text}")

    def _on_completed(self) -> None:
        self.completed = True
        self.publisher.publish_completed(self.recognizer.task_id)

    def _on_error(self, message: str) -> None:
        self.errors.append(message)
        self.publisher.publish_error(message)

    async def transcribe_file(self, file_path: str, realtime: Optional[bool] = None) -> Dict[str, Any]:
        """Stream a WAV file through one recognition task.

        Args:
            file_path: Path to a 16-bit PCM WAV file
            realtime: Pace chunks at their real duration (defaults to audio.realtime)

        Returns:
            Result dictionary with success status, transcript and statistics
        """
        source = WavFileSource(file_path,
                               target_sample_rate=self.settings.sample_rate,
                               chunk_duration_ms=self.config.get_chunk_duration_ms())
        if realtime is None:
            realtime = bool(self.config.get('audio.realtime', True))
        interval = source.chunk_duration_ms / 1000 if realtime else 0

        self.aggregator.reset()
        self.errors = []
        self.completed = False
        self.is_running = True
        finished = False

        try:
            await self.recognizer.start(
                on_result=self._on_result,
                on_completed=self._on_completed,
                on_error=self._on_error,
                on_sentence=self.publisher.publish_sentence,
            )

            if await self.recognizer.wait_until_active(timeout=self.start_timeout):
                logger.info(f"Streaming {source.duration_seconds:.2f}s of audio "
                            f"({'realtime' if realtime else 'as fast as possible'})")
                for event in source.iter_chunks():
                    if self.recognizer.state != SessionState.ACTIVE:
                        logger.warning("Recognition stopped before the audio ended")
                        break
                    self.audio_publisher.publish_audio_event(event)
                    await asyncio.sleep(interval)

                self.recognizer.finish_task()
                finished = await self.recognizer.wait_until_done(timeout=self.finish_timeout)
                if not finished:
                    logger.warning(f"No task-finished within {self.finish_timeout}s")
            else:
                logger.error(f"Recognition task did not start (state: {self.recognizer.state.value})")
        finally:
            session = self.recognizer.session
            await self.recognizer.dispose()
            self.is_running = False

        return {
            "success": session.state == SessionState.COMPLETED and finished,
            "task_id": session.task_id,
            "state": session.state.value,
            "text": self.aggregator.get_full_transcription(),
            "sentences": len(self.aggregator.final_results),
            "errors": list(self.errors),
            "chunks_sent": session.chunks_sent,
            "bytes_sent": session.bytes_sent,
            "duration_seconds": source.duration_seconds,
        }

    async def shutdown(self) -> None:
        """Dispose the recognizer and disconnect signal receivers."""
        await self.recognizer.dispose()
        self.aggregator.shutdown()
        signal(self.audio_topic).disconnect(self._on_audio_event)
