"""Shared fixtures and speech/evaluator fakes for VoicePrep tests."""
import asyncio

import pytest

from voiceprep.core.errors import SpeechCancelled, SpeechInputError
from voiceprep.core.session_clock import SessionClock
from voiceprep.core.session_runner import SessionRunner
from voiceprep.core.speech import SpeechHandlers, SpeechInput, SpeechOutput
from voiceprep.models.evaluation import Evaluation
from voiceprep.models.question import Question, QuestionDifficulty


async def settle(rounds: int = 20) -> None:
    """Let spawned runner tasks run until they block again."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class FakeSpeechOutput(SpeechOutput):
    """Speech output whose utterances finish only when the test says so."""

    def __init__(self, available: bool = True):
        self.available = available
        self.spoken: list[str] = []
        self.cancel_count = 0
        self.fail_with: Exception | None = None
        self._pending: asyncio.Future | None = None

    def is_available(self) -> bool:
        return self.available

    async def speak(self, text: str) -> None:
        self.spoken.append(text)
        if self.fail_with is not None:
            error, self.fail_with = self.fail_with, None
            raise error

        # One utterance at a time
        if self._pending is not None and not self._pending.done():
            self._pending.set_exception(SpeechCancelled("superseded"))

        future = asyncio.get_running_loop().create_future()
        self._pending = future
        try:
            await future
        finally:
            if self._pending is future:
                self._pending = None

    def cancel(self) -> None:
        self.cancel_count += 1
        if self._pending is not None and not self._pending.done():
            self._pending.set_exception(SpeechCancelled("cancelled"))

    @property
    def is_speaking(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def finish(self) -> None:
        """Complete the active utterance."""
        assert self.is_speaking, "no utterance in progress"
        self._pending.set_result(None)


class FakeSpeechInput(SpeechInput):
    """Speech input driven by the test through interim/final/error."""

    def __init__(self, available: bool = True):
        self.available = available
        self.handlers: SpeechHandlers | None = None
        self.accumulated = ""
        self.start_count = 0
        self.stop_count = 0
        self.abort_count = 0

    def is_available(self) -> bool:
        return self.available

    @property
    def is_active(self) -> bool:
        return self.handlers is not None

    def start(self, handlers: SpeechHandlers) -> None:
        if self.is_active:
            raise SpeechInputError("already capturing")
        self.handlers = handlers
        self.accumulated = ""
        self.start_count += 1

    def stop(self) -> None:
        if self.is_active:
            self.stop_count += 1
            self.final(self.accumulated)

    def abort(self) -> None:
        self.abort_count += 1
        self.handlers = None

    def interim(self, text: str) -> None:
        self.accumulated = text
        self.handlers.on_interim(text)

    def final(self, text: str) -> None:
        handlers, self.handlers = self.handlers, None
        handlers.on_final(text)

    def error(self, reason: str) -> None:
        handlers, self.handlers = self.handlers, None
        handlers.on_error(reason)


class FakeEvaluator:
    """Evaluator whose calls stay pending until resolved or failed."""

    def __init__(self):
        self.calls: list[dict] = []
        self.futures: list[asyncio.Future] = []

    async def evaluate(self, *, question, answer, role, difficulty) -> Evaluation:
        future = asyncio.get_running_loop().create_future()
        self.calls.append({
            "question": question,
            "answer": answer,
            "role": role,
            "difficulty": difficulty,
        })
        self.futures.append(future)
        return await future

    def resolve(self, call_index: int, score: float) -> None:
        self.futures[call_index].set_result(
            Evaluation(ideal_answer="A complete answer.", score=score)
        )

    def fail(self, call_index: int, error: Exception) -> None:
        self.futures[call_index].set_exception(error)


@pytest.fixture
def docker_question():
    return Question(
        id="q1",
        text="Explain Docker?",
        difficulty=QuestionDifficulty.MEDIUM,
        topic_name="Containers",
        topic_category="DevOps",
    )


@pytest.fixture
def vpc_question():
    return Question(
        id="q2",
        text="What is a VPC?",
        difficulty=QuestionDifficulty.MEDIUM,
        topic_name="Networking",
        topic_category="Cloud",
    )


@pytest.fixture
def speech_output():
    return FakeSpeechOutput()


@pytest.fixture
def speech_input():
    return FakeSpeechInput()


@pytest.fixture
def evaluator():
    return FakeEvaluator()


@pytest.fixture
def summaries():
    """Summaries received by the runner's summary sink."""
    return []


@pytest.fixture
async def make_runner(speech_output, speech_input, evaluator, summaries):
    """Factory for runners wired to the fakes, with a slow clock."""
    created = []

    async def sink(summary):
        summaries.append(summary)

    def _make(questions, clock=None, **kwargs):
        runner = SessionRunner(
            questions,
            role="DevOps Engineer",
            difficulty="Medium",
            speech_output=speech_output,
            speech_input=speech_input,
            evaluator=evaluator,
            clock=clock or SessionClock(interval_seconds=3600),
            summary_sink=sink,
            advance_delay_seconds=kwargs.pop("advance_delay_seconds", 0),
            **kwargs,
        )
        created.append(runner)
        return runner

    yield _make

    for runner in created:
        await runner.aclose()
