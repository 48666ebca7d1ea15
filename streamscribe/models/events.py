"""Event models for pub/sub audio processing architecture."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class AudioEvent:
    """Audio chunk event with metadata."""
    chunk_id: str
    audio_data: bytes
    timestamp: float  # Unix timestamp when chunk was produced
    sequence_number: int
    sample_rate: int = 8000
    channels: int = 1
    chunk_duration_ms: Optional[int] = None  # Duration of this chunk in milliseconds
    final: bool = False  # True if this is the last chunk of the stream

    def __post_init__(self):
        """Calculate chunk duration if not provided."""
        if self.chunk_duration_ms is None and self.audio_data:
            # 16-bit linear PCM, 2 bytes per sample
            bytes_per_second = self.sample_rate * self.channels * 2
            duration_seconds = len(self.audio_data) / bytes_per_second
            self.chunk_duration_ms = int(duration_seconds * 1000)
