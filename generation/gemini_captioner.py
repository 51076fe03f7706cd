"""
Google Gemini Caption Generator
Multimodal image captioning through google-generativeai.
"""
from typing import Any, Optional
import logging

from google.api_core import exceptions as google_exceptions

from .base import BaseCaptionGenerator
from utils.exceptions import GenerationError, RateLimitError


logger = logging.getLogger(__name__)

_RATE_LIMIT_ERRORS = (google_exceptions.ResourceExhausted, google_exceptions.TooManyRequests)


def _is_rate_limit(exc: Exception) -> bool:
    if isinstance(exc, _RATE_LIMIT_ERRORS):
        return True
    return getattr(exc, "code", None) == 429 or "429" in str(exc)


class GeminiCaptionGenerator(BaseCaptionGenerator):
    """
    Gemini caption generator

    Supported models:
    - gemini-2.5-flash-lite (default, cheapest quota)
    - gemini-2.5-flash
    """

    def __init__(
        self,
        model: str = "gemini-2.5-flash-lite",
        api_key: Optional[str] = None,
        timeout: float = 60.0,
        client: Optional[Any] = None,
    ):
        super().__init__(model, timeout)
        self.api_key = api_key
        self._client = client

    @property
    def provider(self) -> str:
        return "gemini"

    def _get_client(self):
        """Lazily build the GenerativeModel"""
        if self._client is None:
            import google.generativeai as genai
            genai.configure(api_key=self.api_key)
            self._client = genai.GenerativeModel(model_name=self.model)
        return self._client

    def _call(self, contents: list) -> str:
        client = self._get_client()
        try:
            response = client.generate_content(contents, request_options={"timeout": self.timeout})
        except Exception as exc:
            if _is_rate_limit(exc):
                raise RateLimitError(f"gemini rate limited: {exc}", provider=self.provider) from exc
            raise GenerationError(f"gemini request failed: {exc}", provider=self.provider) from exc

        if not getattr(response, "candidates", None):
            raise GenerationError("gemini returned no candidates", provider=self.provider)
        try:
            text = response.text
        except ValueError as exc:
            # finish_reason blocked / no text parts
            raise GenerationError(f"gemini returned no text: {exc}", provider=self.provider) from exc
        if not str(text or "").strip():
            raise GenerationError("gemini returned empty text", provider=self.provider)
        return str(text)

    def generate(self, image: bytes, mime_type: str, prompt: str) -> str:
        logger.debug("gemini_generate model=%s image_bytes=%s", self.model, len(image))
        return self._call([{"mime_type": mime_type, "data": image}, prompt])

    def check_quota(self) -> str:
        """Text-only probe to confirm the key has remaining quota."""
        return self._call(["Hello"])
