"""
Interview session and state models for VoicePrep
"""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field

from voiceprep.models.evaluation import Evaluation
from voiceprep.models.question import Question, SessionPlan, Topic


def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def format_elapsed(seconds: int) -> str:
    """Render a duration as MM:SS."""
    mins, secs = divmod(max(0, int(seconds)), 60)
    return f"{mins:02d}:{secs:02d}"


class SessionStatus(str, Enum):
    """Top-level session lifecycle."""

    SETUP = "setup"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABORTED = "aborted"  # Ended early by the user

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.COMPLETED, SessionStatus.ABORTED)


class SessionPhase(str, Enum):
    """Substates while a session is in progress."""

    ASKING = "asking"  # Speaking the question
    LISTENING = "listening"  # Capturing the answer
    EVALUATING = "evaluating"  # Waiting for the scoring service
    ADVANCING = "advancing"  # Moving to the next question


class InterviewSetup(BaseModel):
    """User's interview configuration."""

    role: str = Field(..., min_length=1, description="Target role, e.g. 'DevOps Engineer'")
    difficulty: str = Field(
        default="Medium",
        description="Question difficulty, or 'All' for every level"
    )

    # Either explicit questions or a topic bank to select from
    questions: list[Question] = Field(default_factory=list)
    topics: list[Topic] = Field(default_factory=list)


class AnswerRecord(BaseModel):
    """A captured answer and its (possibly missing) evaluation."""

    question_index: int = Field(..., ge=0)
    raw_answer_text: str
    evaluation: Evaluation | None = None
    timestamp_completed: datetime = Field(default_factory=utc_now)


class SessionState(BaseModel):
    """Complete runner state. Owned by SessionRunner; others get copies."""

    status: SessionStatus = SessionStatus.SETUP
    phase: SessionPhase | None = None

    plan: SessionPlan = Field(default_factory=SessionPlan)
    current_index: int = 0
    generation: int = 0

    elapsed_seconds: int = 0

    # Listening span state
    is_listening: bool = False
    transcript: str = ""

    # Advisory error for the current question (speech failure, no speech)
    last_error: str | None = None

    answers: list[AnswerRecord] = Field(default_factory=list)

    @property
    def current_question(self) -> Question | None:
        """Question at the current index, if any."""
        if 0 <= self.current_index < len(self.plan):
            return self.plan[self.current_index]
        return None

    def answer_for(self, index: int) -> AnswerRecord | None:
        """Find the answer record for a question index."""
        for record in self.answers:
            if record.question_index == index:
                return record
        return None


class SessionSummary(BaseModel):
    """Immutable summary of a finished session."""

    model_config = ConfigDict(frozen=True)

    role: str
    difficulty: str
    total_questions: int
    answered_questions: int
    average_score: float
    answers: tuple[AnswerRecord, ...] = ()
    duration_seconds: int
    completed_at: datetime
    ended_early: bool = False

    @computed_field
    @property
    def formatted_duration(self) -> str:
        return format_elapsed(self.duration_seconds)

    @classmethod
    def from_state(
        cls,
        state: SessionState,
        role: str,
        difficulty: str,
        ended_early: bool = False,
    ) -> "SessionSummary":
        """
        Build a summary from the final session state.

        The average covers evaluated answers only and is 0 when none
        were evaluated.
        """
        answers = tuple(record.model_copy(deep=True) for record in state.answers)
        scores = [
            record.evaluation.score
            for record in answers
            if record.evaluation is not None
        ]
        average = sum(scores) / len(scores) if scores else 0.0

        return cls(
            role=role,
            difficulty=difficulty,
            total_questions=len(state.plan),
            answered_questions=len(answers),
            average_score=average,
            answers=answers,
            duration_seconds=state.elapsed_seconds,
            completed_at=utc_now(),
            ended_early=ended_early,
        )
