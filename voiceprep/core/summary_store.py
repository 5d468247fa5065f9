"""
In-memory session summary sink.
"""

import asyncio
import logging

from voiceprep.models.interview import SessionSummary

logger = logging.getLogger(__name__)


class SummaryStore:
    """Keeps finished session summaries, newest last."""

    def __init__(self, max_entries: int = 100):
        self.max_entries = max_entries
        self._summaries: list[SessionSummary] = []
        self._lock = asyncio.Lock()

    async def save(self, summary: SessionSummary) -> None:
        """Store a summary; used as the SessionRunner summary sink."""
        async with self._lock:
            self._summaries.append(summary)
            if len(self._summaries) > self.max_entries:
                self._summaries = self._summaries[-self.max_entries:]
        logger.info(
            f"Stored summary: {summary.role} ({summary.difficulty}), "
            f"{summary.answered_questions}/{summary.total_questions} answered"
        )

    def list_summaries(self) -> list[SessionSummary]:
        return list(self._summaries)
