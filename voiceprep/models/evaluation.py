"""
Evaluation models for VoicePrep

Mirrors the JSON contract of the external scoring service, which uses
camelCase field names on the wire.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator


MIN_SCORE = 0.0
MAX_SCORE = 10.0


class Evaluation(BaseModel):
    """Structured evaluation of a single answer."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    ideal_answer: str = Field(..., alias="idealAnswer")
    score: float = Field(..., description="Score on a 0-10 scale")
    strengths: list[str] = Field(default_factory=list)
    missing_concepts: list[str] = Field(default_factory=list, alias="missingConcepts")
    suggestions: list[str] = Field(default_factory=list)

    @field_validator("score")
    @classmethod
    def clamp_score(cls, value: float) -> float:
        """Clamp the score into the 0-10 range."""
        return max(MIN_SCORE, min(MAX_SCORE, value))

    @field_validator("strengths", "missing_concepts", "suggestions", mode="before")
    @classmethod
    def default_empty(cls, value):
        """Treat a null array as empty."""
        return [] if value is None else value
