"""
Client-driven speech.

The browser owns the microphone and the speakers, so speech work is
relayed to it as messages. ClientChannel queues outgoing requests and
routes incoming client events to the speech leaf that is waiting for
them; the WebSocket endpoint only pumps messages in and out.

Outgoing: speak, speech_cancel, listen_start, listen_stop, listen_abort
Incoming: speech_end, speech_error, transcript_interim,
          transcript_final, listen_error
"""

import asyncio
import logging
from collections.abc import Callable, Iterable
from typing import Any
from uuid import uuid4

from voiceprep.core.audio_processor import AudioSynthesizer
from voiceprep.core.errors import SpeechCancelled, SpeechInputError, SpeechOutputError
from voiceprep.core.speech import SpeechHandlers, SpeechInput, SpeechOutput

logger = logging.getLogger(__name__)

Message = dict[str, Any]


class ClientChannel:
    """Message relay between speech leaves and one connected client."""

    def __init__(self) -> None:
        self._outbox: asyncio.Queue[Message] = asyncio.Queue()
        self._routes: dict[str, Callable[[Message], None]] = {}
        self.tts_available = False
        self.stt_available = False

    def set_capabilities(self, tts: bool, stt: bool) -> None:
        """Record what the client reported it supports."""
        self.tts_available = bool(tts)
        self.stt_available = bool(stt)
        logger.info(f"Client capabilities: tts={self.tts_available} stt={self.stt_available}")

    def post(self, message: Message) -> None:
        """Queue a message for the client."""
        self._outbox.put_nowait(message)

    async def next_outgoing(self) -> Message:
        """Wait for the next message to send to the client."""
        return await self._outbox.get()

    def route(self, event_types: Iterable[str], handler: Callable[[Message], None]) -> None:
        """Deliver incoming events of these types to handler."""
        for event_type in event_types:
            self._routes[event_type] = handler

    def dispatch(self, message: Message) -> bool:
        """
        Route an incoming client event.

        Returns:
            True if a speech leaf handled the event
        """
        message_type = message.get("type")
        if not isinstance(message_type, str):
            return False
        handler = self._routes.get(message_type)
        if handler is None:
            return False
        handler(message)
        return True


class ClientSpeechOutput(SpeechOutput):
    """SpeechOutput played by the client, optionally with server audio."""

    def __init__(
        self,
        channel: ClientChannel,
        synthesizer: AudioSynthesizer | None = None,
    ):
        self.channel = channel
        self.synthesizer = synthesizer
        self._utterance_id: str | None = None
        self._pending: asyncio.Future[None] | None = None

        channel.route(["speech_end", "speech_error"], self._handle_event)

    def is_available(self) -> bool:
        return self.channel.tts_available

    async def speak(self, text: str) -> None:
        # Only one utterance may be active
        self.cancel()

        utterance_id = uuid4().hex
        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._utterance_id = utterance_id
        self._pending = future

        try:
            message: Message = {
                "type": "speak",
                "utterance_id": utterance_id,
                "text": text,
            }
            if self.synthesizer is not None:
                message["audio"] = await self.synthesizer.synthesize(text)
                if future.done():
                    # Cancelled while synthesizing
                    future.result()

            self.channel.post(message)
            await future
        finally:
            if self._pending is future:
                self._pending = None
                self._utterance_id = None

    def cancel(self) -> None:
        if self._pending is None or self._pending.done():
            return
        self._pending.set_exception(SpeechCancelled("Utterance cancelled"))
        self.channel.post({"type": "speech_cancel", "utterance_id": self._utterance_id})

    def _handle_event(self, message: Message) -> None:
        future = self._pending
        if (
            future is None
            or future.done()
            or message.get("utterance_id") != self._utterance_id
        ):
            logger.debug(f"Ignoring {message.get('type')} for inactive utterance")
            return

        if message["type"] == "speech_end":
            future.set_result(None)
        else:
            future.set_exception(
                SpeechOutputError(message.get("error") or "Speech playback failed")
            )


class ClientSpeechInput(SpeechInput):
    """SpeechInput recognized by the client."""

    def __init__(self, channel: ClientChannel):
        self.channel = channel
        self._capture_id: str | None = None
        self._handlers: SpeechHandlers | None = None

        channel.route(
            ["transcript_interim", "transcript_final", "listen_error"],
            self._handle_event,
        )

    def is_available(self) -> bool:
        return self.channel.stt_available

    @property
    def is_active(self) -> bool:
        return self._capture_id is not None

    def start(self, handlers: SpeechHandlers) -> None:
        if self.is_active:
            raise SpeechInputError("A capture span is already active")

        self._capture_id = uuid4().hex
        self._handlers = handlers
        self.channel.post({"type": "listen_start", "capture_id": self._capture_id})

    def stop(self) -> None:
        if self.is_active:
            self.channel.post({"type": "listen_stop", "capture_id": self._capture_id})

    def abort(self) -> None:
        if not self.is_active:
            return
        self.channel.post({"type": "listen_abort", "capture_id": self._capture_id})
        self._capture_id = None
        self._handlers = None

    def _handle_event(self, message: Message) -> None:
        if not self.is_active or message.get("capture_id") != self._capture_id:
            logger.debug(f"Ignoring {message.get('type')} for inactive capture")
            return

        handlers = self._handlers
        event_type = message["type"]

        if event_type == "transcript_interim":
            handlers.on_interim(message.get("text", ""))
            return

        # Terminal events close the span before the callback runs
        self._capture_id = None
        self._handlers = None

        if event_type == "transcript_final":
            handlers.on_final(message.get("text", ""))
        else:
            handlers.on_error(message.get("error") or "unknown")
