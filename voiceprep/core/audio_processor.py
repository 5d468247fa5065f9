"""
Audio Processing Layer for VoicePrep

Server-side Text-to-Speech using Edge TTS. The synthesized audio is
shipped to the client together with the speak request, so playback stays
on the client's audio device.
"""

import base64
import logging
from typing import Any

import edge_tts

from voiceprep.config.settings import get_settings
from voiceprep.core.errors import SpeechOutputError

logger = logging.getLogger(__name__)


class AudioSynthesizer:
    """
    Edge TTS synthesis.

    Voices are addressed by a short alias ("male", "female",
    "professional", "default") or a full Edge voice name.
    """

    EDGE_VOICES = {
        "male": "en-US-GuyNeural",
        "female": "en-US-JennyNeural",
        "professional": "en-US-AriaNeural",
        "default": "en-US-GuyNeural",
    }

    def __init__(self, voice: str | None = None):
        self.settings = get_settings()
        self.voice = voice or self.settings.tts_voice

    def resolve_voice(self, voice: str) -> str:
        """Map a voice alias to an Edge voice name."""
        if voice in self.EDGE_VOICES:
            return self.EDGE_VOICES[voice]
        if voice.endswith("Neural"):
            return voice
        return self.EDGE_VOICES["default"]

    async def synthesize(self, text: str) -> dict[str, Any]:
        """
        Convert text to speech.

        Returns:
            Dict with audio_data (base64), format, sample_rate and an
            estimated duration_seconds

        Raises:
            SpeechOutputError: If synthesis failed
        """
        edge_voice = self.resolve_voice(self.voice)

        try:
            communicate = edge_tts.Communicate(text, edge_voice)

            audio_chunks = []
            async for chunk in communicate.stream():
                if chunk["type"] == "audio":
                    audio_chunks.append(chunk["data"])

        except Exception as e:
            logger.error(f"Edge TTS failed: {e}")
            raise SpeechOutputError(f"Speech synthesis failed: {e}") from e

        audio_data = b"".join(audio_chunks)
        if not audio_data:
            raise SpeechOutputError("Speech synthesis produced no audio")

        # Estimate duration (rough: 150 words per minute)
        word_count = len(text.split())
        duration = word_count / 150 * 60

        return {
            "audio_data": base64.b64encode(audio_data).decode("utf-8"),
            "format": "mp3",
            "sample_rate": 24000,
            "duration_seconds": duration,
        }
