"""
Session Runner - State machine for one voice mock interview.

Sequences the questions of a fixed plan through speech output, speech
input and answer evaluation, and builds the session summary. All work
happens on one asyncio event loop: the runner spawns tasks for speaking
and evaluating and reacts to their settlement and to speech callbacks.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine, Sequence
from functools import partial
from typing import Any
from uuid import uuid4

from voiceprep.config.settings import get_settings
from voiceprep.core.errors import (
    CapabilityUnavailableError,
    EmptyPlanError,
    EvaluationError,
    SpeechCancelled,
    SpeechInputError,
    SpeechOutputError,
    StaleResultDiscarded,
    StateTransitionError,
)
from voiceprep.core.evaluator import AnswerEvaluator
from voiceprep.core.session_clock import SessionClock
from voiceprep.core.speech import SpeechHandlers, SpeechInput, SpeechOutput
from voiceprep.models.evaluation import Evaluation
from voiceprep.models.interview import (
    AnswerRecord,
    SessionPhase,
    SessionState,
    SessionStatus,
    SessionSummary,
)
from voiceprep.models.question import Question, SessionPlan

logger = logging.getLogger(__name__)

# (question index, generation) of the operation that produced a result
Tag = tuple[int, int]

NO_SPEECH_DETECTED = "no_speech_detected"


class SessionRunner:
    """
    Runs one interview session.

    States:
        SETUP → IN_PROGRESS{ASKING → LISTENING → EVALUATING → ADVANCING}
                      ↓                                           ↓
                   ABORTED                          (ASKING next | COMPLETED)

    Every async operation is tagged with the current question index and
    generation. The generation moves forward whenever a question is
    (re-)asked and when the session ends, so a result that settles after
    the user moved on no longer matches and is discarded.

    Manual actions while in progress:
    - replay_current_question(): speak the current question again
    - stop_listening(): submit whatever transcript has accumulated
    - end_interview(): abort and summarize
    """

    def __init__(
        self,
        plan: SessionPlan | Sequence[Question],
        *,
        role: str,
        difficulty: str,
        speech_output: SpeechOutput,
        speech_input: SpeechInput,
        evaluator: AnswerEvaluator,
        clock: SessionClock | None = None,
        summary_sink: Callable[[SessionSummary], Awaitable[None]] | None = None,
        advance_delay_seconds: float | None = None,
        session_id: str | None = None,
    ):
        """
        Initialize the runner with its collaborators.

        Args:
            plan: Questions for the session, in order
            role: Target role, passed to the evaluator
            difficulty: Session difficulty label for the summary
            speech_output: Text-to-speech capability
            speech_input: Speech-to-text capability
            evaluator: Answer scoring service
            clock: Session timer (defaults to a 1s clock from settings)
            summary_sink: Receives the summary once the session ends
            advance_delay_seconds: Pause after a scored answer
            session_id: Identifier used in logs
        """
        settings = get_settings()

        if not isinstance(plan, SessionPlan):
            plan = SessionPlan(questions=tuple(plan))

        self.session_id = session_id or str(uuid4())
        self.role = role
        self.difficulty = difficulty
        self.speech_output = speech_output
        self.speech_input = speech_input
        self.evaluator = evaluator
        self.clock = clock or SessionClock(settings.clock_interval_seconds)
        self.summary_sink = summary_sink
        self.advance_delay_seconds = (
            settings.advance_delay_seconds
            if advance_delay_seconds is None
            else advance_delay_seconds
        )

        self._state = SessionState(plan=plan)
        self._summary: SessionSummary | None = None
        self._accept_empty_final = False
        self._finished = asyncio.Event()
        self._tasks: set[asyncio.Task] = set()

        self._state_change_callbacks: list[Callable[[SessionState], None]] = []

    # =========================================================================
    # STATE ACCESS
    # =========================================================================

    @property
    def status(self) -> SessionStatus:
        return self._state.status

    @property
    def phase(self) -> SessionPhase | None:
        return self._state.phase

    @property
    def summary(self) -> SessionSummary | None:
        """The session summary, once the session has ended."""
        return self._summary

    def snapshot(self) -> SessionState:
        """Deep copy of the current state."""
        return self._state.model_copy(deep=True)

    @property
    def _live_tag(self) -> Tag:
        return (self._state.current_index, self._state.generation)

    def _is_live(self, tag: Tag) -> bool:
        return self._state.status == SessionStatus.IN_PROGRESS and tag == self._live_tag

    def _ensure_live(self, tag: Tag, operation: str) -> None:
        if not self._is_live(tag):
            raise StaleResultDiscarded(operation, tag, self._live_tag)

    def _require_in_progress(self, action: str) -> None:
        if self._state.status != SessionStatus.IN_PROGRESS:
            raise StateTransitionError(
                f"Cannot {action} while session is {self._state.status.value}"
            )

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def start(self) -> SessionState:
        """
        Start the interview and ask the first question.

        Raises:
            StateTransitionError: If the session was already started
            EmptyPlanError: If the plan has no questions
            CapabilityUnavailableError: If TTS or STT is unavailable
        """
        if self._state.status != SessionStatus.SETUP:
            raise StateTransitionError(
                f"Cannot start a session that is {self._state.status.value}"
            )

        if len(self._state.plan) == 0:
            raise EmptyPlanError(
                "No questions available for the selected difficulty."
            )

        tts_available = self.speech_output.is_available()
        stt_available = self.speech_input.is_available()
        if not (tts_available and stt_available):
            raise CapabilityUnavailableError(tts_available, stt_available)

        state = self._state
        state.status = SessionStatus.IN_PROGRESS
        state.current_index = 0
        state.elapsed_seconds = 0
        state.answers = []

        self.clock.start(self._on_tick)
        logger.info(
            f"Session {self.session_id}: started with {len(state.plan)} questions "
            f"(role={self.role}, difficulty={self.difficulty})"
        )

        self._begin_question()
        return self.snapshot()

    async def end_interview(self) -> SessionSummary:
        """
        End the interview early and summarize the answers so far.

        Returns the existing summary if the session has already ended.
        """
        if self._state.status.is_terminal:
            return self._summary

        if self._state.status == SessionStatus.SETUP:
            raise StateTransitionError("Cannot end a session that has not started")

        logger.info(
            f"Session {self.session_id}: ended by user at question "
            f"{self._state.current_index + 1}/{len(self._state.plan)}"
        )
        await self._finish(SessionStatus.ABORTED)
        return self._summary

    async def wait_until_finished(self) -> SessionSummary:
        """Wait for the session to complete or be aborted."""
        await self._finished.wait()
        return self._summary

    async def aclose(self) -> None:
        """Stop the clock and speech, and cancel all runner tasks."""
        self.clock.stop()
        self.speech_output.cancel()
        self.speech_input.abort()

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # =========================================================================
    # MANUAL ACTIONS
    # =========================================================================

    async def replay_current_question(self) -> SessionState:
        """
        Ask the current question again.

        Ignored once the answer has been captured (evaluating/advancing).
        """
        self._require_in_progress("replay the question")

        if self._state.phase in (SessionPhase.EVALUATING, SessionPhase.ADVANCING):
            logger.info(
                f"Session {self.session_id}: replay ignored, answer already captured"
            )
            return self.snapshot()

        self.speech_output.cancel()
        self.speech_input.abort()
        self._begin_question()
        return self.snapshot()

    async def stop_listening(self, accept_empty: bool = False) -> SessionState:
        """
        Submit the accumulated transcript as the answer.

        Args:
            accept_empty: Count an empty transcript as an answer

        Raises:
            StateTransitionError: If the session is not listening
        """
        self._require_in_progress("stop listening")
        if self._state.phase != SessionPhase.LISTENING:
            raise StateTransitionError(
                f"Cannot stop listening while {self._state.phase.value}"
            )

        if self.speech_input.is_active:
            # The final transcript arrives through on_final
            self._accept_empty_final = accept_empty
            self.speech_input.stop()
        else:
            text = self._state.transcript.strip()
            if text or accept_empty:
                self._submit_answer(self._live_tag, text)

        return self.snapshot()

    # =========================================================================
    # QUESTION FLOW
    # =========================================================================

    def _begin_question(self) -> None:
        """Enter ASKING for the current index under a new generation."""
        state = self._state
        state.generation += 1
        state.phase = SessionPhase.ASKING
        state.is_listening = False
        state.transcript = ""
        state.last_error = None
        self._accept_empty_final = False

        tag = self._live_tag
        self._spawn(self._ask(tag), name=f"ask-{tag[0]}-{tag[1]}")
        self._notify()

    async def _ask(self, tag: Tag) -> None:
        index = tag[0]
        question = self._state.plan[index]

        try:
            await self.speech_output.speak(f"Question {index + 1}. {question.text}")
        except SpeechCancelled:
            logger.debug(f"Session {self.session_id}: utterance {tag} cancelled")
            return
        except SpeechOutputError as e:
            self._ensure_live(tag, "speech")
            logger.warning(f"Session {self.session_id}: speaking question {index + 1} failed: {e}")
            self._state.last_error = f"speech_output: {e}"
            self._notify()
            return

        self._ensure_live(tag, "speech")
        self._start_listening(tag)

    def _start_listening(self, tag: Tag) -> None:
        state = self._state
        state.phase = SessionPhase.LISTENING
        state.transcript = ""

        handlers = SpeechHandlers(
            on_interim=partial(self._on_interim, tag),
            on_final=partial(self._on_final, tag),
            on_error=partial(self._on_listen_error, tag),
        )
        try:
            self.speech_input.start(handlers)
        except SpeechInputError as e:
            logger.warning(f"Session {self.session_id}: failed to start listening: {e}")
            state.is_listening = False
            state.last_error = f"speech_input: {e}"
        else:
            state.is_listening = True

        self._notify()

    def _on_interim(self, tag: Tag, text: str) -> None:
        if not self._is_live(tag):
            return
        self._state.transcript = text
        self._notify()

    def _on_final(self, tag: Tag, text: str) -> None:
        state = self._state
        if not self._is_live(tag) or state.phase != SessionPhase.LISTENING:
            logger.debug(f"Session {self.session_id}: dropped final transcript for {tag}")
            return

        accept_empty = self._accept_empty_final
        self._accept_empty_final = False
        state.is_listening = False

        answer = text.strip()
        if answer:
            state.transcript = answer

        if not answer and not accept_empty:
            # Stay on this question until the user replays or stops
            logger.info(f"Session {self.session_id}: empty answer for question {tag[0] + 1}")
            state.last_error = NO_SPEECH_DETECTED
            self._notify()
            return

        self._submit_answer(tag, answer)

    def _on_listen_error(self, tag: Tag, reason: str) -> None:
        if not self._is_live(tag):
            return
        logger.warning(f"Session {self.session_id}: recognition error: {reason}")
        self._state.is_listening = False
        self._state.last_error = f"speech_input: {reason}"
        self._notify()

    def _submit_answer(self, tag: Tag, text: str) -> None:
        """Record the answer and evaluate it in the background."""
        state = self._state
        index = tag[0]

        if state.answer_for(index) is not None:
            logger.warning(f"Session {self.session_id}: question {index + 1} already answered")
            return

        state.answers.append(AnswerRecord(question_index=index, raw_answer_text=text))
        state.phase = SessionPhase.EVALUATING
        state.is_listening = False
        state.last_error = None

        self._spawn(self._evaluate(tag, text), name=f"evaluate-{tag[0]}-{tag[1]}")
        self._notify()

    async def _evaluate(self, tag: Tag, answer: str) -> None:
        index = tag[0]
        question = self._state.plan[index]

        evaluation: Evaluation | None = None
        try:
            evaluation = await self.evaluator.evaluate(
                question=question.text,
                answer=answer,
                role=self.role,
                difficulty=question.difficulty.value,
            )
        except EvaluationError as e:
            logger.warning(f"Session {self.session_id}: evaluation of question {index + 1} failed: {e}")
        except Exception:
            logger.exception(f"Session {self.session_id}: unexpected evaluation failure")

        self._ensure_live(tag, "evaluation")

        record = self._state.answer_for(index)
        record.evaluation = evaluation
        self._state.phase = SessionPhase.ADVANCING
        self._notify()

        if evaluation is not None and self.advance_delay_seconds > 0:
            await asyncio.sleep(self.advance_delay_seconds)
            self._ensure_live(tag, "advance")

        await self._advance()

    async def _advance(self) -> None:
        state = self._state
        next_index = state.current_index + 1

        if next_index < len(state.plan):
            state.current_index = next_index
            self._begin_question()
        else:
            await self._finish(SessionStatus.COMPLETED)

    async def _finish(self, status: SessionStatus) -> None:
        """Leave IN_PROGRESS: release resources and emit the summary."""
        state = self._state

        # Orphan anything still in flight
        state.generation += 1
        self.speech_output.cancel()
        self.speech_input.abort()
        self.clock.stop()

        state.status = status
        state.phase = None
        state.is_listening = False

        self._summary = SessionSummary.from_state(
            state,
            role=self.role,
            difficulty=self.difficulty,
            ended_early=status == SessionStatus.ABORTED,
        )
        logger.info(
            f"Session {self.session_id}: {status.value} - "
            f"{self._summary.answered_questions}/{self._summary.total_questions} answered, "
            f"average score {self._summary.average_score:.1f}"
        )
        self._notify()

        try:
            if self.summary_sink:
                await self.summary_sink(self._summary)
        except Exception as e:
            logger.error(f"Summary sink error: {e}")
        finally:
            self._finished.set()

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _on_tick(self) -> None:
        if self._state.status != SessionStatus.IN_PROGRESS:
            return
        self._state.elapsed_seconds += 1
        self._notify()

    def _spawn(self, coro: Coroutine[Any, Any, None], name: str) -> None:
        task = asyncio.get_running_loop().create_task(self._guard(coro), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _guard(self, coro: Coroutine[Any, Any, None]) -> None:
        try:
            await coro
        except StaleResultDiscarded as e:
            logger.debug(f"Session {self.session_id}: {e}")
        except Exception as e:
            logger.exception(f"Session {self.session_id}: task failed")
            if self._state.status == SessionStatus.IN_PROGRESS:
                self._state.last_error = str(e)
                self._notify()

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for callback in self._state_change_callbacks:
            try:
                callback(snapshot)
            except Exception as e:
                logger.error(f"State change callback error: {e}")

    # =========================================================================
    # EVENT CALLBACKS
    # =========================================================================

    def on_state_change(self, callback: Callable[[SessionState], None]) -> None:
        """Register a callback receiving a state snapshot after each change."""
        self._state_change_callbacks.append(callback)
