"""Fence stripping and two-shape decoding of generated caption text."""

from __future__ import annotations

import json
import re
from typing import Callable, List, Tuple

from core import CaptionResult
from utils.exceptions import ParseError


_FENCE_OPEN_RE = re.compile(r"^```[A-Za-z0-9_+-]*[ \t]*\r?\n?")
_FENCE_CLOSE_RE = re.compile(r"\r?\n?[ \t]*```$")


def strip_code_fence(text: str) -> str:
    """Remove a surrounding markdown code fence (bare or language-tagged)."""
    stripped = str(text or "").strip()
    if stripped.startswith("```"):
        stripped = _FENCE_OPEN_RE.sub("", stripped, count=1)
        stripped = _FENCE_CLOSE_RE.sub("", stripped, count=1)
    return stripped.strip()


def _decode_object(text: str) -> CaptionResult:
    payload = json.loads(text)
    if not isinstance(payload, dict):
        raise TypeError(f"expected object, got {type(payload).__name__}")
    return CaptionResult.model_validate(payload)


def _decode_array(text: str) -> CaptionResult:
    payload = json.loads(text)
    if not isinstance(payload, list):
        raise TypeError(f"expected array, got {type(payload).__name__}")
    if not payload:
        raise ValueError("empty array")
    first = payload[0]
    if not isinstance(first, dict):
        raise TypeError(f"expected array of objects, got {type(first).__name__}")
    return CaptionResult.model_validate(first)


_DECODERS: Tuple[Tuple[str, Callable[[str], CaptionResult]], ...] = (
    ("object", _decode_object),
    ("array", _decode_array),
)


def parse_caption_text(raw_text: str) -> CaptionResult:
    """Normalize raw generator output into a ``CaptionResult``.

    Accepts a single object or an array whose first element is the object,
    optionally wrapped in a code fence. Raises ``ParseError`` carrying the
    raw text when neither shape decodes.
    """
    text = strip_code_fence(raw_text)
    failures: List[str] = []
    for shape, decode in _DECODERS:
        try:
            return decode(text)
        except (ValueError, TypeError) as exc:
            failures.append(f"{shape}: {exc}")
    raise ParseError(
        "generated text is neither a caption object nor an array of them",
        raw_text=str(raw_text or ""),
        attempts="; ".join(failures),
    )
