"""
OpenAI Speech Synthesizer
MP3 narration through the OpenAI audio API.
"""
from typing import Any, Optional
import logging

from .base import BaseSpeechSynthesizer
from utils.exceptions import SpeechError


logger = logging.getLogger(__name__)

# "alloy" is the most neutral voice; "onyx" is deeper, "nova" brighter.
OPENAI_VOICES = ("alloy", "echo", "fable", "onyx", "nova", "shimmer")


class OpenAISpeechSynthesizer(BaseSpeechSynthesizer):
    """OpenAI text-to-speech"""

    def __init__(
        self,
        model: str = "tts-1",
        voice: str = "alloy",
        api_key: Optional[str] = None,
        timeout: float = 60.0,
        client: Optional[Any] = None,
    ):
        super().__init__(model, voice, timeout)
        self.api_key = api_key
        self._client = client

    @property
    def provider(self) -> str:
        return "openai"

    def _get_client(self):
        if self._client is None:
            from openai import OpenAI
            self._client = OpenAI(api_key=self.api_key, timeout=self.timeout)
        return self._client

    def synthesize(self, text: str, voice: Optional[str] = None) -> bytes:
        if not str(text or "").strip():
            raise SpeechError("nothing to synthesize", provider=self.provider)

        try:
            response = self._get_client().audio.speech.create(
                model=self.model,
                voice=voice or self.voice,
                input=text,
                response_format=self.audio_format,
            )
            audio = response.content
        except Exception as exc:
            raise SpeechError(f"openai speech failed: {exc}", provider=self.provider) from exc

        if not audio:
            raise SpeechError("openai speech returned no audio", provider=self.provider)
        logger.debug("openai_speech voice=%s chars=%s bytes=%s", voice or self.voice, len(text), len(audio))
        return bytes(audio)
