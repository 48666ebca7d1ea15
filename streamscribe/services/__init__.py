"""Services layer for StreamScribe application logic."""

from .recognition_service import RecognitionService

__all__ = [
    "RecognitionService",
]
