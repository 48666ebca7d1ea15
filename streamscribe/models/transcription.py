"""Transcription-related data models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class TranscriptionResult:
    """One ``result-generated`` event decoded from the recognition service."""
    text: str
    task_id: str
    is_final: bool = False  # sentence_end flag from the service
    begin_time: Optional[int] = None  # Sentence start in milliseconds from stream start
    end_time: Optional[int] = None    # None while the sentence is still open
    timestamp: datetime = field(default_factory=datetime.now)
