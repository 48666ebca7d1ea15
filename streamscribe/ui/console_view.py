"""Rich console view that prints transcription signals as they arrive."""

import logging
from typing import Optional

from blinker import signal
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..models.transcription import TranscriptionResult

logger = logging.getLogger(__name__)


class ConsoleTranscriptView:
    """Connects to transcription signals and renders them with rich."""

    def __init__(self, topic_prefix: str = "transcription", console: Optional[Console] = None):
        self.console = console or Console()
        self.topic_prefix = topic_prefix
        self._subscriptions = [
            (self._on_sentence, f"{topic_prefix}.sentence"),
            (self._on_error, f"{topic_prefix}.error"),
            (self._on_completed, f"{topic_prefix}.completed"),
        ]
        for listener, topic in self._subscriptions:
            signal(topic).connect(listener)

    def _on_sentence(self, sender, result: TranscriptionResult) -> None:
        # Partial hypotheses are too chatty for a scrolling console.
        if not result.is_final:
            return
        if result.begin_time is not None and result.end_time is not None:
            span = f"[{result.begin_time / 1000:6.2f}s - {result.end_time / 1000:6.2f}s]"
        else:
            span = "[   ?   ]"
        self.console.print(f"{span} {result.text}", style="green", markup=False, highlight=False)

    def _on_error(self, sender, message: str) -> None:
        self.console.print(f"❌ {message}", style="red", markup=False)

    def _on_completed(self, sender, task_id: str) -> None:
        self.console.print(f"✅ Recognition task {task_id} complete", style="blue")

    def show_summary(self, summary: dict) -> None:
        """Print the final transcript and session statistics."""
        table = Table(show_header=False, box=None)
        table.add_row("Task", summary.get("task_id", ""))
        table.add_row("State", summary.get("state", ""))
        table.add_row("Audio", f"{summary.get('duration_seconds', 0.0):.2f}s")
        table.add_row("Chunks sent", str(summary.get("chunks_sent", 0)))
        table.add_row("Sentences", str(summary.get("sentences", 0)))
        self.console.print(table)
        self.console.print(Panel(Text(summary.get("text") or "(no speech recognized)"),
                                 title="Transcript", border_style="cyan"))

    def close(self) -> None:
        logger.debug(f"Disconnecting console view from {self.topic_prefix} signals")
        for listener, topic in self._subscriptions:
            signal(topic).disconnect(listener)
