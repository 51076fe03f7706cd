"""Prompt text for caption generation."""

from __future__ import annotations


CAPTION_PROMPT_TEMPLATE = """Analyze this image for a 15-year-old with Angelman Syndrome ({explorer_name}). Return a SINGLE JSON object containing exactly these two keys:

"short_caption": A brief, high-impact greeting (max 10 words).

"deep_dive": A more detailed, 2-3 sentence story about the details in the photo to facilitate deeper engagement.

Return ONLY valid JSON. No markdown formatting.
Format: {{"short_caption": "string", "deep_dive": "string"}}"""


def explorer_display_name(explorer_id: str) -> str:
    """``cole`` -> ``Cole``; empty ids read as "the explorer"."""
    text = str(explorer_id or "").strip()
    return text.title() if text else "the explorer"


def build_caption_prompt(explorer_name: str) -> str:
    name = str(explorer_name or "").strip() or "the explorer"
    return CAPTION_PROMPT_TEMPLATE.format(explorer_name=name)
