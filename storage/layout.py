"""Bundle key layout and recognized artifact filenames."""

from __future__ import annotations

from typing import Tuple

from core import BackfillConfig


IMAGE_NAME = "image.jpg"
IMAGE_MIME_TYPE = "image/jpeg"
METADATA_NAME = "metadata.json"
METADATA_CONTENT_TYPE = "application/json"
AUDIO_CONTENT_TYPE = "audio/mpeg"

# Recorded by the companion app.
HUMAN_CAPTION_AUDIO_NAMES: Tuple[str, ...] = ("audio.m4a", "audio.mp3")
# First name is the one this pipeline writes.
AI_CAPTION_AUDIO_NAMES: Tuple[str, ...] = ("audio_caption.mp3", "caption.mp3")
DEEP_DIVE_AUDIO_NAMES: Tuple[str, ...] = ("deep_dive_audio.mp3", "deep_dive.m4a")

CAPTION_AUDIO_NAME = AI_CAPTION_AUDIO_NAMES[0]
DEEP_DIVE_AUDIO_NAME = DEEP_DIVE_AUDIO_NAMES[0]


class BundleLayout:
    """Maps bundle ids and artifact names to object keys."""

    def __init__(self, config: BackfillConfig) -> None:
        self._prefix = config.bundle_prefix

    @property
    def prefix(self) -> str:
        return self._prefix

    def folder(self, bundle_id: str) -> str:
        return f"{self._prefix}{bundle_id}/"

    def key(self, bundle_id: str, artifact_name: str) -> str:
        return f"{self.folder(bundle_id)}{artifact_name}"

    @staticmethod
    def bundle_id_from_prefix(prefix: str) -> str:
        """``cole/to/evt-1/`` -> ``evt-1``"""
        parts = [part for part in str(prefix or "").strip("/").split("/") if part]
        return parts[-1] if parts else ""
