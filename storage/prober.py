"""Artifact existence checks relative to a bundle."""

from __future__ import annotations

from typing import Iterable

from core import ArtifactPresence

from .layout import (
    AI_CAPTION_AUDIO_NAMES,
    DEEP_DIVE_AUDIO_NAMES,
    HUMAN_CAPTION_AUDIO_NAMES,
    BundleLayout,
)
from .object_store import BaseObjectStore


class ArtifactProber:
    """Answers "does this bundle have artifact X" as a boolean."""

    def __init__(self, store: BaseObjectStore, layout: BundleLayout) -> None:
        self._store = store
        self._layout = layout

    def exists(self, bundle_id: str, artifact_name: str) -> bool:
        return self._store.exists(self._layout.key(bundle_id, artifact_name))

    def any_exists(self, bundle_id: str, artifact_names: Iterable[str]) -> bool:
        return any(self.exists(bundle_id, name) for name in artifact_names)

    def audio_presence(self, bundle_id: str) -> ArtifactPresence:
        return ArtifactPresence(
            human_caption_audio=self.any_exists(bundle_id, HUMAN_CAPTION_AUDIO_NAMES),
            ai_caption_audio=self.any_exists(bundle_id, AI_CAPTION_AUDIO_NAMES),
            deep_dive_audio=self.any_exists(bundle_id, DEEP_DIVE_AUDIO_NAMES),
        )
