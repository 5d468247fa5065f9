"""
Error taxonomy for VoicePrep.

Only the session start errors escape SessionRunner.start(). Everything
raised during a running session is absorbed into the session state.
"""


class VoicePrepError(Exception):
    """Base class for all VoicePrep errors."""
    pass


class StateTransitionError(VoicePrepError):
    """Raised when an action is not valid in the current session state."""
    pass


# =============================================================================
# SESSION START
# =============================================================================

class SessionStartError(VoicePrepError):
    """A session could not be started."""
    pass


class EmptyPlanError(SessionStartError):
    """The session plan has no questions."""
    pass


class CapabilityUnavailableError(SessionStartError):
    """Text-to-speech or speech-to-text is not available on the client."""

    def __init__(self, tts_available: bool, stt_available: bool):
        self.tts_available = tts_available
        self.stt_available = stt_available
        missing = []
        if not tts_available:
            missing.append("text-to-speech")
        if not stt_available:
            missing.append("speech-to-text")
        super().__init__(f"Voice features unavailable: {', '.join(missing)}")


# =============================================================================
# SPEECH
# =============================================================================

class SpeechError(VoicePrepError):
    """Base class for speech capability failures."""
    pass


class SpeechOutputError(SpeechError):
    """Speech synthesis or playback failed."""
    pass


class SpeechCancelled(SpeechOutputError):
    """The utterance was cancelled before it finished."""
    pass


class SpeechInputError(SpeechError):
    """Speech recognition failed or was misused."""
    pass


# =============================================================================
# EVALUATION
# =============================================================================

class EvaluationError(VoicePrepError):
    """Base class for answer evaluation failures."""
    pass


class ConfigurationError(EvaluationError):
    """The evaluation service is not configured (missing credential)."""
    pass


class AnswerValidationError(EvaluationError):
    """The answer cannot be evaluated (empty answer)."""
    pass


class ServiceError(EvaluationError):
    """Network, HTTP, parse or response-shape failure from the service."""
    pass


# =============================================================================
# INTERNAL
# =============================================================================

class StaleResultDiscarded(VoicePrepError):
    """An async result arrived for a generation that is no longer live."""

    def __init__(self, operation: str, tag: tuple[int, int], live: tuple[int, int]):
        self.operation = operation
        self.tag = tag
        self.live = live
        super().__init__(
            f"Discarded stale {operation} result for {tag} (live: {live})"
        )
