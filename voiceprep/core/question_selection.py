"""
Session plan selection from a topic question bank.
"""

import logging
import random

from voiceprep.config.settings import get_settings
from voiceprep.models.question import Question, SessionPlan, Topic

logger = logging.getLogger(__name__)

ALL_DIFFICULTIES = "All"


def collect_questions(topics: list[Topic], difficulty: str) -> list[Question]:
    """
    Flatten a topic bank into session questions of one difficulty.

    Args:
        topics: Topics with their question banks
        difficulty: "Easy", "Medium", "Hard" or "All"
    """
    questions = []
    for topic in topics:
        for item in topic.questions:
            if difficulty != ALL_DIFFICULTIES and item.difficulty.value != difficulty:
                continue
            questions.append(
                Question(
                    id=item.id,
                    text=item.question,
                    difficulty=item.difficulty,
                    topic_name=topic.name,
                    topic_category=topic.category,
                )
            )
    return questions


def build_session_plan(
    topics: list[Topic],
    difficulty: str,
    max_questions: int | None = None,
    rng: random.Random | None = None,
) -> SessionPlan:
    """
    Pick a shuffled plan of at most max_questions questions.

    The plan may be empty; SessionRunner.start() rejects empty plans.
    """
    settings = get_settings()
    if max_questions is None:
        max_questions = settings.max_questions

    questions = collect_questions(topics, difficulty)
    (rng or random).shuffle(questions)
    selected = questions[:max_questions]

    logger.info(
        f"Selected {len(selected)} of {len(questions)} questions "
        f"(difficulty={difficulty})"
    )
    if 0 < len(selected) < settings.min_questions:
        logger.warning(
            f"Only {len(selected)} questions available, "
            f"fewer than the usual {settings.min_questions}"
        )
    return SessionPlan(questions=tuple(selected))
