"""
Generation Module
Caption generation, speech synthesis and output normalization.
"""
from .base import BaseCaptionGenerator, BaseSpeechSynthesizer
from .gemini_captioner import GeminiCaptionGenerator
from .openai_speech import OPENAI_VOICES, OpenAISpeechSynthesizer
from .normalizer import parse_caption_text, strip_code_fence
from .prompts import build_caption_prompt, explorer_display_name
from .factory import get_caption_generator, get_speech_synthesizer

__all__ = [
    "BaseCaptionGenerator",
    "BaseSpeechSynthesizer",
    "GeminiCaptionGenerator",
    "OPENAI_VOICES",
    "OpenAISpeechSynthesizer",
    "parse_caption_text",
    "strip_code_fence",
    "build_caption_prompt",
    "explorer_display_name",
    "get_caption_generator",
    "get_speech_synthesizer",
]
