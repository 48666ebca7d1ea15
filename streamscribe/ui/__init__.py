"""Console output for StreamScribe."""

from .console_view import ConsoleTranscriptView

__all__ = [
    "ConsoleTranscriptView",
]
