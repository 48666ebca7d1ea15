"""Audio sources and audio event publishing."""

from .file_source import WavFileSource
from .audio_pub import AudioPublisher

__all__ = [
    'WavFileSource',
    'AudioPublisher',
]
