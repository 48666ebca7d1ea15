"""Transcription module for StreamScribe."""

from .base import AbstractStreamingRecognizer
from ..models.transcription import TranscriptionResult
from .recognizer import SpeechRecognizer
from .publisher import TranscriptionPublisher
from .aggregator import TranscriptionAggregator

__all__ = [
    "AbstractStreamingRecognizer",
    "TranscriptionResult",
    "SpeechRecognizer",
    "TranscriptionPublisher",
    "TranscriptionAggregator",
]
