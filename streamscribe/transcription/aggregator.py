"""Transcript aggregator that assembles sentences published during a session.

The service emits several results per sentence: partial hypotheses while the
speaker is talking, then one result with ``sentence_end`` set. Final sentences
are kept in order; the latest partial is kept only until its sentence closes.
"""

import logging
import threading
from typing import Any, Dict, List, Optional
from blinker import signal
from ..models.transcription import TranscriptionResult

logger = logging.getLogger(__name__)


class TranscriptionAggregator:
    """Aggregates sentence results from a signal into a running transcript."""

    def __init__(self, topic: str, name: str, separator: str = ""):
        """Initialize transcription aggregator.

        Args:
            topic: Signal name carrying TranscriptionResult messages
            name: Name for this aggregator, used in logs
            separator: Joins sentences ("" suits Chinese, " " suits English)
        """
        self.topic = topic
        self.name = name
        self.separator = separator

        self.final_results: List[TranscriptionResult] = []
        self.partial_result: Optional[TranscriptionResult] = None
        self.result_count = 0

        self.lock = threading.RLock()

        signal(topic).connect(self._on_result)
        logger.info(f"TranscriptionAggregator '{name}' initialized - subscribed to {topic}")

    def _on_result(self, sender, result: TranscriptionResult) -> None:
        """Handle a sentence result."""
        with self.lock:
            self.result_count += 1
            if result.is_final:
                self.final_results.append(result)
                self.partial_result = None
            else:
                self.partial_result = result
        logger.debug(f"Aggregated {self.name} result: {result.text[:50]}")

    def get_full_transcription(self, include_partial: bool = True) -> str:
        """Join final sentences, plus the open partial sentence if requested."""
        with self.lock:
            texts = [r.text for r in self.final_results if r.text]
            if include_partial and self.partial_result is not None and self.partial_result.text:
                texts.append(self.partial_result.text)
            return self.separator.join(texts)

    def get_results_summary(self) -> Dict[str, Any]:
        """Get summary of aggregated results.

        Returns:
            Dictionary with result counts and the assembled transcript
        """
        with self.lock:
            return {
                "name": self.name,
                "count": self.result_count,
                "sentences": len(self.final_results),
                "has_partial": self.partial_result is not None,
                "text": self.get_full_transcription(),
            }

    def reset(self) -> None:
        with self.lock:
            self.final_results = []
            self.partial_result = None
            self.result_count = 0

    def shutdown(self) -> str:
        """Unsubscribe and return the final transcript."""
        logger.info(f"Shutting down TranscriptionAggregator '{self.name}'...")
        signal(self.topic).disconnect(self._on_result)
        return self.get_full_transcription()
