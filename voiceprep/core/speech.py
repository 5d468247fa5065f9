"""
Speech capability interfaces.

SessionRunner talks to speech only through these two interfaces, so any
platform's speech SDK (a browser over WebSocket, a local engine, a test
fake) can sit behind them.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass


@dataclass(frozen=True)
class SpeechHandlers:
    """
    Callbacks for one capture span.

    on_interim may fire any number of times. Exactly one of on_final or
    on_error fires at the end of the span, unless the span is aborted.
    """

    on_interim: Callable[[str], None]
    on_final: Callable[[str], None]
    on_error: Callable[[str], None]


class SpeechOutput(ABC):
    """Text-to-speech: one utterance at a time."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether speech synthesis can be used."""
        ...

    @abstractmethod
    async def speak(self, text: str) -> None:
        """
        Speak text to completion.

        Raises:
            SpeechCancelled: If cancel() was called while speaking
            SpeechOutputError: If synthesis or playback failed
        """
        ...

    @abstractmethod
    def cancel(self) -> None:
        """Stop the active utterance; a pending speak() raises SpeechCancelled."""
        ...


class SpeechInput(ABC):
    """Continuous speech-to-text: one capture span at a time."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether speech recognition can be used."""
        ...

    @abstractmethod
    def start(self, handlers: SpeechHandlers) -> None:
        """
        Begin a capture span.

        Raises:
            SpeechInputError: If a span is already active
        """
        ...

    @abstractmethod
    def stop(self) -> None:
        """End gracefully; on_final fires with the accumulated text."""
        ...

    @abstractmethod
    def abort(self) -> None:
        """End immediately without a terminal callback."""
        ...

    @property
    @abstractmethod
    def is_active(self) -> bool:
        """Whether a capture span is running."""
        ...
