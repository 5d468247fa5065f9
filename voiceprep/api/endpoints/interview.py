"""
Interview API endpoints

Handles interview session lifecycle:
- Creating sessions from a question list or topic bank
- Running a session over a WebSocket
- Reporting session status and stored summaries
"""

import asyncio
import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from voiceprep.api.dependencies import (
    SessionRegistry,
    get_evaluator,
    get_registry,
    get_summary_store,
)
from voiceprep.config.settings import get_settings
from voiceprep.core.audio_processor import AudioSynthesizer
from voiceprep.core.client_speech import ClientChannel, ClientSpeechInput, ClientSpeechOutput
from voiceprep.core.errors import VoicePrepError
from voiceprep.core.evaluator import AnswerEvaluator
from voiceprep.core.question_selection import build_session_plan
from voiceprep.core.session_runner import SessionRunner
from voiceprep.core.summary_store import SummaryStore
from voiceprep.models.interview import (
    InterviewSetup,
    SessionState,
    SessionStatus,
    SessionSummary,
)
from voiceprep.models.question import SessionPlan

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# REQUEST/RESPONSE MODELS
# ============================================================================

class SetupResponse(BaseModel):
    """Response model for interview setup."""
    session_id: str
    status: str
    total_questions: int
    message: str


class SessionStatusResponse(BaseModel):
    """Response for session status."""
    session_id: str
    status: str
    phase: str | None = None
    current_question: int
    total_questions: int
    answered_questions: int
    elapsed_seconds: int
    last_error: str | None = None


# ============================================================================
# REST ENDPOINTS
# ============================================================================

@router.post("/setup", response_model=SetupResponse)
async def setup_interview(
    setup: InterviewSetup,
    registry: SessionRegistry = Depends(get_registry),
) -> SetupResponse:
    """
    Create a new interview session.

    Uses the given questions in order, or selects a shuffled plan from
    the topic bank. Connect to /ws/{session_id} to run it.
    """
    settings = get_settings()

    if setup.questions:
        plan = SessionPlan(questions=tuple(setup.questions[:settings.max_questions]))
    else:
        plan = build_session_plan(setup.topics, setup.difficulty, settings.max_questions)

    entry = registry.create(setup, plan)

    return SetupResponse(
        session_id=entry.session_id,
        status="created",
        total_questions=len(plan),
        message="Interview session created. Connect to the WebSocket to begin.",
    )


@router.get("/summaries", response_model=list[SessionSummary])
async def list_summaries(
    store: SummaryStore = Depends(get_summary_store),
) -> list[SessionSummary]:
    """List stored summaries of finished sessions."""
    return store.list_summaries()


@router.get("/{session_id}/status", response_model=SessionStatusResponse)
async def get_session_status(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
) -> SessionStatusResponse:
    """Get current session status."""
    entry = registry.get(session_id)
    if not entry:
        raise HTTPException(status_code=404, detail="Session not found")

    state = entry.runner.snapshot() if entry.runner else SessionState(plan=entry.plan)

    return SessionStatusResponse(
        session_id=session_id,
        status=state.status.value,
        phase=state.phase.value if state.phase else None,
        current_question=state.current_index + 1,
        total_questions=len(state.plan),
        answered_questions=len(state.answers),
        elapsed_seconds=state.elapsed_seconds,
        last_error=state.last_error,
    )


# ============================================================================
# WEBSOCKET
# ============================================================================

@router.websocket("/ws/{session_id}")
async def websocket_interview(
    websocket: WebSocket,
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
    evaluator: AnswerEvaluator = Depends(get_evaluator),
    store: SummaryStore = Depends(get_summary_store),
):
    """
    WebSocket endpoint for running an interview.

    Client sends:
    - hello: {"capabilities": {"tts": bool, "stt": bool}}
    - start, replay, stop_listening {"accept_empty": bool}, end, ping
    - speech events: speech_end, speech_error, transcript_interim,
      transcript_final, listen_error

    Server sends:
    - state: Session state snapshot
    - summary: Final session summary
    - speech requests: speak, speech_cancel, listen_start, listen_stop,
      listen_abort
    - error: {"code", "message"}
    - pong
    """
    await websocket.accept()

    entry = registry.get(session_id)
    if not entry:
        await websocket.close(code=4004, reason="Session not found")
        return
    if entry.runner is not None:
        await websocket.close(code=4009, reason="Session already running")
        return

    settings = get_settings()
    channel = ClientChannel()
    synthesizer = AudioSynthesizer() if settings.server_side_tts else None

    async def emit_summary(summary: SessionSummary) -> None:
        await store.save(summary)
        channel.post({"type": "summary", "data": summary.model_dump(mode="json")})

    runner = SessionRunner(
        entry.plan,
        role=entry.setup.role,
        difficulty=entry.setup.difficulty,
        speech_output=ClientSpeechOutput(channel, synthesizer),
        speech_input=ClientSpeechInput(channel),
        evaluator=evaluator,
        summary_sink=emit_summary,
        session_id=session_id,
    )
    runner.on_state_change(
        lambda state: channel.post({"type": "state", "data": state.model_dump(mode="json")})
    )
    entry.runner = runner

    sender = asyncio.create_task(_send_outgoing(websocket, channel))

    try:
        while True:
            data = _parse_message(await websocket.receive_text())
            if data is None:
                channel.post({
                    "type": "error",
                    "code": "InvalidMessage",
                    "message": "Messages must be JSON objects",
                })
                continue
            if channel.dispatch(data):
                continue
            await _handle_control(data, runner, channel)

    except WebSocketDisconnect:
        logger.info(f"Session {session_id}: client disconnected")

    finally:
        sender.cancel()
        if runner.status == SessionStatus.IN_PROGRESS:
            await runner.end_interview()
        await runner.aclose()
        registry.release(session_id)


def _parse_message(text: str) -> dict[str, Any] | None:
    """Decode one client message; None unless it is a JSON object."""
    try:
        data = json.loads(text)
    except ValueError:
        logger.warning("Ignoring client message that is not valid JSON")
        return None
    if not isinstance(data, dict):
        logger.warning(f"Ignoring client message of type {type(data).__name__}")
        return None
    return data


async def _send_outgoing(websocket: WebSocket, channel: ClientChannel) -> None:
    """Forward queued channel messages to the client."""
    while True:
        message = await channel.next_outgoing()
        await websocket.send_json(message)


async def _handle_control(
    data: dict[str, Any],
    runner: SessionRunner,
    channel: ClientChannel,
) -> None:
    """Apply one client control message to the runner."""
    message_type = data.get("type")

    try:
        if message_type == "hello":
            capabilities = data.get("capabilities") or {}
            channel.set_capabilities(
                tts=capabilities.get("tts", False),
                stt=capabilities.get("stt", False),
            )

        elif message_type == "start":
            await runner.start()

        elif message_type == "replay":
            await runner.replay_current_question()

        elif message_type == "stop_listening":
            await runner.stop_listening(accept_empty=bool(data.get("accept_empty", False)))

        elif message_type == "end":
            await runner.end_interview()

        elif message_type == "ping":
            channel.post({"type": "pong"})

        else:
            channel.post({
                "type": "error",
                "code": "UnknownMessage",
                "message": f"Unknown message type: {message_type}",
            })

    except VoicePrepError as e:
        logger.warning(f"Session {runner.session_id}: {message_type} rejected: {e}")
        channel.post({
            "type": "error",
            "code": type(e).__name__,
            "message": str(e),
        })
