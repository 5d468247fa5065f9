"""
Core business logic modules for VoicePrep

Contains:
- Session Runner: State machine for one voice interview
- Speech: TTS/STT capability interfaces and client-driven implementations
- Answer Evaluator: External scoring service client
- Session Clock: Per-second session timer
- Question Selection: Session plan building
"""

from voiceprep.core.session_runner import SessionRunner
from voiceprep.core.evaluator import AnswerEvaluator
from voiceprep.core.session_clock import SessionClock
from voiceprep.core.speech import SpeechHandlers, SpeechInput, SpeechOutput
from voiceprep.core.client_speech import ClientChannel, ClientSpeechInput, ClientSpeechOutput
from voiceprep.core.question_selection import build_session_plan
from voiceprep.core.summary_store import SummaryStore

__all__ = [
    "SessionRunner",
    "AnswerEvaluator",
    "SessionClock",
    "SpeechHandlers",
    "SpeechInput",
    "SpeechOutput",
    "ClientChannel",
    "ClientSpeechInput",
    "ClientSpeechOutput",
    "build_session_plan",
    "SummaryStore",
]
