"""
API Dependencies

Provides dependency injection for API endpoints.
Manages singleton instances of core components.
"""

import logging
from dataclasses import dataclass
from uuid import uuid4

from voiceprep.core.evaluator import AnswerEvaluator
from voiceprep.core.session_runner import SessionRunner
from voiceprep.core.summary_store import SummaryStore
from voiceprep.models.interview import InterviewSetup
from voiceprep.models.question import SessionPlan

logger = logging.getLogger(__name__)


@dataclass
class SessionEntry:
    """A set-up session, and its runner once a client has connected."""

    session_id: str
    setup: InterviewSetup
    plan: SessionPlan
    runner: SessionRunner | None = None


class SessionRegistry:
    """In-memory registry of interview sessions."""

    def __init__(self, max_finished: int = 100):
        self.max_finished = max_finished
        self._sessions: dict[str, SessionEntry] = {}
        self._finished: list[str] = []

    def release(self, session_id: str) -> None:
        """
        Detach a session from its closed connection.

        A runner that never started is dropped so the client can reconnect.
        Finished sessions stay for status queries, oldest evicted first.
        """
        entry = self._sessions.get(session_id)
        if entry is None or entry.runner is None:
            return

        if not entry.runner.status.is_terminal:
            entry.runner = None
            return

        self._finished.append(session_id)
        while len(self._finished) > self.max_finished:
            evicted = self._finished.pop(0)
            self._sessions.pop(evicted, None)
            logger.info(f"Evicted finished session: {evicted}")

    def create(self, setup: InterviewSetup, plan: SessionPlan) -> SessionEntry:
        entry = SessionEntry(session_id=str(uuid4()), setup=setup, plan=plan)
        self._sessions[entry.session_id] = entry
        logger.info(f"Created interview session: {entry.session_id}")
        return entry

    def get(self, session_id: str) -> SessionEntry | None:
        return self._sessions.get(session_id)

    def entries(self) -> list[SessionEntry]:
        return list(self._sessions.values())


# ============================================================================
# SINGLETON INSTANCES
# ============================================================================

_evaluator: AnswerEvaluator | None = None
_summary_store: SummaryStore | None = None
_registry: SessionRegistry | None = None


def get_evaluator() -> AnswerEvaluator:
    """Get the answer evaluator singleton."""
    global _evaluator

    if _evaluator is None:
        _evaluator = AnswerEvaluator()

    return _evaluator


def get_summary_store() -> SummaryStore:
    """Get the summary store singleton."""
    global _summary_store

    if _summary_store is None:
        _summary_store = SummaryStore()

    return _summary_store


def get_registry() -> SessionRegistry:
    """Get the session registry singleton."""
    global _registry

    if _registry is None:
        _registry = SessionRegistry()

    return _registry


async def cleanup():
    """Cleanup resources on shutdown."""
    global _evaluator, _summary_store, _registry

    if _registry:
        for entry in _registry.entries():
            if entry.runner:
                await entry.runner.aclose()
        _registry = None

    if _evaluator:
        await _evaluator.close()
        _evaluator = None

    _summary_store = None
