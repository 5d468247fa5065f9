"""
Data models and schemas for VoicePrep

Contains Pydantic models for:
- Questions and session plans
- Answer evaluations
- Session state and summaries
"""

from voiceprep.models.interview import (
    AnswerRecord,
    InterviewSetup,
    SessionPhase,
    SessionState,
    SessionStatus,
    SessionSummary,
)
from voiceprep.models.question import (
    Question,
    QuestionDifficulty,
    SessionPlan,
    Topic,
    TopicQuestion,
)
from voiceprep.models.evaluation import Evaluation

__all__ = [
    # Interview
    "AnswerRecord",
    "InterviewSetup",
    "SessionPhase",
    "SessionState",
    "SessionStatus",
    "SessionSummary",
    # Question
    "Question",
    "QuestionDifficulty",
    "SessionPlan",
    "Topic",
    "TopicQuestion",
    # Evaluation
    "Evaluation",
]
