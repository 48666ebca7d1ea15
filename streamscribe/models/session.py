"""Session-related data models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class SessionState(Enum):
    """Lifecycle state of a recognition session."""
    IDLE = "idle"
    CONNECTING = "connecting"
    AWAITING_START = "awaiting_start"
    ACTIVE = "active"
    FINISHING = "finishing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.COMPLETED, SessionState.FAILED)

    @property
    def rank(self) -> int:
        return _STATE_RANKS[self]


_STATE_RANKS = {
    SessionState.IDLE: 0,
    SessionState.CONNECTING: 1,
    SessionState.AWAITING_START: 2,
    SessionState.ACTIVE: 3,
    SessionState.FINISHING: 4,
    SessionState.COMPLETED: 5,
    SessionState.FAILED: 5,
}


@dataclass
class RecognitionSession:
    """Bookkeeping for one recognition attempt."""
    task_id: str
    sample_rate: int
    state: SessionState = SessionState.IDLE
    finish_requested: bool = False
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    chunks_sent: int = 0
    bytes_sent: int = 0
    results_received: int = 0
    reconnect_count: int = 0
    error_message: Optional[str] = None

    def can_transition_to(self, new_state: SessionState) -> bool:
        """Transitions only move forward and never leave a terminal state."""
        if self.state.is_terminal:
            return False
        return new_state.rank > self.state.rank
