"""Error kinds raised or reported by StreamScribe."""

from typing import Optional


class StreamScribeError(Exception):
    """Base class for all StreamScribe errors."""


class ConfigurationError(StreamScribeError):
    """Missing credential or invalid recognizer settings."""


class TransportConnectionError(StreamScribeError):
    """The WebSocket transport could not be opened."""


class ProtocolError(StreamScribeError):
    """An inbound message could not be decoded or was not understood."""


class RemoteTaskError(StreamScribeError):
    """The service reported a ``task-failed`` event for the running task."""

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.error_code = error_code


class StreamInterruptedError(StreamScribeError):
    """The transport closed without a ``task-finished`` or ``task-failed`` event."""


class AudioSendError(StreamScribeError):
    """A single outbound frame could not be written. Not fatal to the session."""
