"""
Base Adapters
Abstract caption generator and speech synthesizer contracts.
"""
from abc import ABC, abstractmethod
from typing import Optional


class BaseCaptionGenerator(ABC):
    """
    Multimodal caption generator.

    Implementations return the service's raw text; shape normalization
    happens in ``generation.normalizer``.
    """

    def __init__(self, model: str, timeout: float = 60.0):
        self.model = model
        self.timeout = timeout

    @property
    @abstractmethod
    def provider(self) -> str:
        pass

    @abstractmethod
    def generate(self, image: bytes, mime_type: str, prompt: str) -> str:
        """
        Describe an image.

        Args:
            image: raw image bytes
            mime_type: image mime type, e.g. ``image/jpeg``
            prompt: natural-language instruction

        Returns:
            Raw generated text

        Raises:
            RateLimitError: the service signalled throttling
            GenerationError: any other failure
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(model={self.model}, provider={self.provider})"


class BaseSpeechSynthesizer(ABC):
    """Text-to-speech synthesizer producing a single audio encoding."""

    audio_format = "mp3"

    def __init__(self, model: str, voice: str, timeout: float = 60.0):
        self.model = model
        self.voice = voice
        self.timeout = timeout

    @property
    @abstractmethod
    def provider(self) -> str:
        pass

    @abstractmethod
    def synthesize(self, text: str, voice: Optional[str] = None) -> bytes:
        """Return audio bytes for ``text``; raise SpeechError on failure."""
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(model={self.model}, voice={self.voice}, provider={self.provider})"
