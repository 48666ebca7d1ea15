"""Data models for the StreamScribe application."""

from .transcription import TranscriptionResult
from .session import SessionState, RecognitionSession
from .events import AudioEvent

__all__ = [
    "TranscriptionResult",
    "SessionState",
    "RecognitionSession",
    "AudioEvent",
]
