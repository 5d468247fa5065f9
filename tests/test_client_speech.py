"""Tests for the client-driven speech relay."""
import asyncio
from unittest.mock import AsyncMock

import pytest

from conftest import settle
from voiceprep.core.client_speech import ClientChannel, ClientSpeechInput, ClientSpeechOutput
from voiceprep.core.errors import SpeechCancelled, SpeechInputError, SpeechOutputError
from voiceprep.core.speech import SpeechHandlers


def drain(channel):
    """Collect every queued outgoing message."""
    messages = []
    while not channel._outbox.empty():
        messages.append(channel._outbox.get_nowait())
    return messages


class Recorder:
    """Collects speech input callbacks."""

    def __init__(self):
        self.events = []

    def handlers(self):
        return SpeechHandlers(
            on_interim=lambda text: self.events.append(("interim", text)),
            on_final=lambda text: self.events.append(("final", text)),
            on_error=lambda reason: self.events.append(("error", reason)),
        )


@pytest.fixture
def channel():
    return ClientChannel()


class TestClientChannel:
    """Tests for message routing."""

    def test_capabilities_default_off(self, channel):
        output = ClientSpeechOutput(channel)
        speech_input = ClientSpeechInput(channel)

        assert not output.is_available()
        assert not speech_input.is_available()

        channel.set_capabilities(tts=True, stt=False)

        assert output.is_available()
        assert not speech_input.is_available()

    def test_dispatch_unrouted_message(self, channel):
        assert channel.dispatch({"type": "start"}) is False
        assert channel.dispatch({}) is False

    def test_dispatch_non_string_type(self, channel):
        ClientSpeechOutput(channel)

        assert channel.dispatch({"type": ["speech_end"]}) is False
        assert channel.dispatch({"type": None}) is False

    async def test_next_outgoing(self, channel):
        channel.post({"type": "pong"})

        message = await asyncio.wait_for(channel.next_outgoing(), 1)

        assert message == {"type": "pong"}


class TestClientSpeechOutput:
    """Tests for client-played utterances."""

    async def test_speak_completes_on_speech_end(self, channel):
        output = ClientSpeechOutput(channel)
        task = asyncio.create_task(output.speak("Question 1. Explain Docker?"))
        await settle()

        [message] = drain(channel)
        assert message["type"] == "speak"
        assert message["text"] == "Question 1. Explain Docker?"
        assert "audio" not in message
        assert not task.done()

        assert channel.dispatch({"type": "speech_end", "utterance_id": message["utterance_id"]})
        await settle()

        assert task.done()
        assert task.exception() is None

    async def test_speech_error(self, channel):
        output = ClientSpeechOutput(channel)
        task = asyncio.create_task(output.speak("hello"))
        await settle()
        [message] = drain(channel)

        channel.dispatch({
            "type": "speech_error",
            "utterance_id": message["utterance_id"],
            "error": "audio-busy",
        })

        with pytest.raises(SpeechOutputError, match="audio-busy"):
            await task

    async def test_ignores_events_for_other_utterances(self, channel):
        output = ClientSpeechOutput(channel)
        task = asyncio.create_task(output.speak("hello"))
        await settle()
        drain(channel)

        channel.dispatch({"type": "speech_end", "utterance_id": "someone-else"})
        await settle()

        assert not task.done()
        output.cancel()
        with pytest.raises(SpeechCancelled):
            await task

    async def test_cancel_notifies_client(self, channel):
        output = ClientSpeechOutput(channel)
        task = asyncio.create_task(output.speak("hello"))
        await settle()
        [speak] = drain(channel)

        output.cancel()

        with pytest.raises(SpeechCancelled):
            await task
        assert drain(channel) == [
            {"type": "speech_cancel", "utterance_id": speak["utterance_id"]}
        ]

    async def test_cancel_when_idle(self, channel):
        output = ClientSpeechOutput(channel)

        output.cancel()

        assert drain(channel) == []

    async def test_new_utterance_supersedes_previous(self, channel):
        output = ClientSpeechOutput(channel)
        first = asyncio.create_task(output.speak("one"))
        await settle()
        second = asyncio.create_task(output.speak("two"))
        await settle()

        with pytest.raises(SpeechCancelled):
            await first
        types = [message["type"] for message in drain(channel)]
        assert types == ["speak", "speech_cancel", "speak"]
        assert not second.done()
        output.cancel()
        with pytest.raises(SpeechCancelled):
            await second

    async def test_attaches_synthesized_audio(self, channel):
        synthesizer = AsyncMock()
        synthesizer.synthesize.return_value = {"audio_data": "AAAA", "format": "mp3"}
        output = ClientSpeechOutput(channel, synthesizer)
        task = asyncio.create_task(output.speak("hello"))
        await settle()

        [message] = drain(channel)
        synthesizer.synthesize.assert_awaited_once_with("hello")
        assert message["audio"] == {"audio_data": "AAAA", "format": "mp3"}

        channel.dispatch({"type": "speech_end", "utterance_id": message["utterance_id"]})
        await task

    async def test_synthesis_failure(self, channel):
        synthesizer = AsyncMock()
        synthesizer.synthesize.side_effect = SpeechOutputError("Speech synthesis failed")
        output = ClientSpeechOutput(channel, synthesizer)

        with pytest.raises(SpeechOutputError, match="Speech synthesis failed"):
            await output.speak("hello")
        assert drain(channel) == []


class TestClientSpeechInput:
    """Tests for client-recognized capture spans."""

    def test_start_posts_listen_start(self, channel):
        speech_input = ClientSpeechInput(channel)

        speech_input.start(Recorder().handlers())

        [message] = drain(channel)
        assert message["type"] == "listen_start"
        assert message["capture_id"]
        assert speech_input.is_active

    def test_second_start_rejected(self, channel):
        speech_input = ClientSpeechInput(channel)
        speech_input.start(Recorder().handlers())

        with pytest.raises(SpeechInputError):
            speech_input.start(Recorder().handlers())

    def test_transcripts_routed_to_handlers(self, channel):
        recorder = Recorder()
        speech_input = ClientSpeechInput(channel)
        speech_input.start(recorder.handlers())
        capture_id = drain(channel)[0]["capture_id"]

        channel.dispatch({"type": "transcript_interim", "capture_id": capture_id, "text": "Dock"})
        channel.dispatch({"type": "transcript_final", "capture_id": capture_id, "text": "Docker"})

        assert recorder.events == [("interim", "Dock"), ("final", "Docker")]
        assert not speech_input.is_active

    def test_events_after_final_ignored(self, channel):
        recorder = Recorder()
        speech_input = ClientSpeechInput(channel)
        speech_input.start(recorder.handlers())
        capture_id = drain(channel)[0]["capture_id"]

        channel.dispatch({"type": "transcript_final", "capture_id": capture_id, "text": "one"})
        channel.dispatch({"type": "transcript_final", "capture_id": capture_id, "text": "two"})

        assert recorder.events == [("final", "one")]

    def test_mismatched_capture_ignored(self, channel):
        recorder = Recorder()
        speech_input = ClientSpeechInput(channel)
        speech_input.start(recorder.handlers())

        channel.dispatch({"type": "transcript_final", "capture_id": "stale", "text": "old"})

        assert recorder.events == []
        assert speech_input.is_active

    def test_listen_error(self, channel):
        recorder = Recorder()
        speech_input = ClientSpeechInput(channel)
        speech_input.start(recorder.handlers())
        capture_id = drain(channel)[0]["capture_id"]

        channel.dispatch({"type": "listen_error", "capture_id": capture_id, "error": "not-allowed"})

        assert recorder.events == [("error", "not-allowed")]
        assert not speech_input.is_active

    def test_stop_keeps_span_until_final(self, channel):
        speech_input = ClientSpeechInput(channel)
        speech_input.start(Recorder().handlers())
        capture_id = drain(channel)[0]["capture_id"]

        speech_input.stop()

        assert drain(channel) == [{"type": "listen_stop", "capture_id": capture_id}]
        assert speech_input.is_active

    def test_abort_drops_span(self, channel):
        recorder = Recorder()
        speech_input = ClientSpeechInput(channel)
        speech_input.start(recorder.handlers())
        capture_id = drain(channel)[0]["capture_id"]

        speech_input.abort()
        channel.dispatch({"type": "transcript_final", "capture_id": capture_id, "text": "late"})

        assert drain(channel) == [{"type": "listen_abort", "capture_id": capture_id}]
        assert recorder.events == []
        assert not speech_input.is_active

    def test_abort_when_idle(self, channel):
        speech_input = ClientSpeechInput(channel)

        speech_input.abort()
        speech_input.stop()

        assert drain(channel) == []
