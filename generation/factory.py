"""
Adapter Factory
Build generation adapters from settings.
"""
from typing import Optional
import logging

from .gemini_captioner import GeminiCaptionGenerator
from .openai_speech import OpenAISpeechSynthesizer


logger = logging.getLogger(__name__)


def get_caption_generator(settings=None, **kwargs) -> GeminiCaptionGenerator:
    """
    Build the caption generator.

    Args:
        settings: ``config.Settings`` (defaults to the process settings)
        **kwargs: overrides passed to the adapter (model, api_key, client, ...)
    """
    if settings is None:
        from config import get_settings
        settings = get_settings()

    gemini = settings.gemini
    params = {
        "model": gemini.model_name,
        "api_key": gemini.api_key,
    }
    params.update(kwargs)
    return GeminiCaptionGenerator(**params)


def get_speech_synthesizer(settings=None, voice: Optional[str] = None, **kwargs) -> OpenAISpeechSynthesizer:
    """Build the speech synthesizer."""
    if settings is None:
        from config import get_settings
        settings = get_settings()

    openai_settings = settings.openai
    params = {
        "model": openai_settings.tts_model,
        "voice": voice or openai_settings.tts_voice,
        "api_key": openai_settings.api_key,
        "timeout": openai_settings.timeout,
    }
    params.update(kwargs)
    return OpenAISpeechSynthesizer(**params)
