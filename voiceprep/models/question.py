"""
Question models for VoicePrep
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class QuestionDifficulty(str, Enum):
    """Question difficulty levels."""

    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class Question(BaseModel):
    """A single interview question selected for a session."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., description="Unique question ID")
    text: str = Field(..., min_length=1, description="The question text")
    difficulty: QuestionDifficulty = Field(..., description="Difficulty level")
    topic_name: str = Field(default="", alias="topicName")
    topic_category: str = Field(default="", alias="topicCategory")


class TopicQuestion(BaseModel):
    """A question as stored in the topic question bank."""

    id: str
    question: str = Field(..., min_length=1)
    difficulty: QuestionDifficulty


class Topic(BaseModel):
    """A roadmap topic with its question bank."""

    name: str
    category: str = ""
    questions: list[TopicQuestion] = Field(default_factory=list)


class SessionPlan(BaseModel):
    """Ordered, fixed list of questions for one session."""

    model_config = ConfigDict(frozen=True)

    questions: tuple[Question, ...] = ()

    def __len__(self) -> int:
        return len(self.questions)

    def __getitem__(self, index: int) -> Question:
        return self.questions[index]
