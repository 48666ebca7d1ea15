"""WAV file audio source that produces PCM chunks at the recognizer's sample rate."""

import time
import wave
import logging
from math import gcd
from pathlib import Path
from typing import Iterator

import numpy as np
from scipy.signal import resample_poly

from ..models.events import AudioEvent

logger = logging.getLogger(__name__)


class WavFileSource:
    """Reads a 16-bit PCM WAV file and yields mono chunks of fixed duration."""

    def __init__(self, file_path: str, target_sample_rate: int = 8000, chunk_duration_ms: int = 100):
        """Initialize the source.

        Args:
            file_path: Path to a 16-bit PCM WAV file
            target_sample_rate: Sample rate the recognizer negotiated
            chunk_duration_ms: Duration of each yielded chunk in milliseconds

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file is not a 16-bit PCM WAV or the chunk size is invalid
        """
        self.file_path = Path(file_path)
        if not self.file_path.exists():
            raise FileNotFoundError(f"Audio file not found: {self.file_path}")
        if chunk_duration_ms <= 0:
            raise ValueError("chunk_duration_ms must be positive")

        self.target_sample_rate = target_sample_rate
        self.chunk_duration_ms = chunk_duration_ms

        try:
            with wave.open(str(self.file_path), 'rb') as wf:
                self.source_sample_rate = wf.getframerate()
                self.channels = wf.getnchannels()
                sample_width = wf.getsampwidth()
                frames = wf.readframes(wf.getnframes())
        except (wave.Error, EOFError) as e:
            raise ValueError(f"Not a readable WAV file: {self.file_path} ({e})") from e

        if sample_width != 2:
            raise ValueError(f"Only 16-bit PCM WAV files are supported (got {sample_width * 8}-bit)")

        self.samples = self._convert(frames)
        logger.info(f"Loaded {self.file_path.name}: {self.source_sample_rate}Hz x{self.channels} -> "
                    f"{self.target_sample_rate}Hz mono, {self.duration_seconds:.2f}s")

    @property
    def duration_seconds(self) -> float:
        return len(self.samples) / self.target_sample_rate

    @property
    def samples_per_chunk(self) -> int:
        return max(1, int(self.target_sample_rate * self.chunk_duration_ms / 1000))

    def _convert(self, frames: bytes) -> np.ndarray:
        """Down-mix to mono and resample to the target rate as int16."""
        audio = np.frombuffer(frames, dtype=np.int16)
        if self.channels > 1:
            audio = audio.reshape(-1, self.channels).mean(axis=1)

        if self.source_sample_rate != self.target_sample_rate:
            divisor = gcd(self.source_sample_rate, self.target_sample_rate)
            up = self.target_sample_rate // divisor
            down = self.source_sample_rate // divisor
            audio = resample_poly(audio.astype(np.float64), up, down)

        return np.clip(np.round(audio), -32768, 32767).astype(np.int16)

    def iter_chunks(self) -> Iterator[AudioEvent]:
        """Yield AudioEvents in order; the last one is flagged final."""
        step = self.samples_per_chunk
        total = len(self.samples)
        sequence = 0

        for offset in range(0, total, step):
            chunk = self.samples[offset:offset + step]
            sequence += 1
            yield AudioEvent(
                chunk_id=f"chunk_{sequence}",
                audio_data=chunk.tobytes(),
                timestamp=time.time(),
                sequence_number=sequence,
                sample_rate=self.target_sample_rate,
                channels=1,
                final=offset + step >= total,
            )

        logger.debug(f"Produced {sequence} chunks from {self.file_path.name}")
