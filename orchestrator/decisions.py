"""Pure enrichment decisions: what is missing, and how generated text merges in."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from core import ArtifactPresence, CaptionResult, EnrichmentNeeds, EventMetadata


def compute_needs(metadata: EventMetadata, presence: ArtifactPresence) -> EnrichmentNeeds:
    """Decide which derived artifacts a bundle is missing. No I/O."""
    has_description = metadata.description != ""
    has_deep_dive = metadata.deep_dive != ""
    return EnrichmentNeeds(
        need_text=not has_description or not has_deep_dive,
        need_caption_audio=(
            not presence.human_caption_audio
            and not presence.ai_caption_audio
            and has_description
        ),
        need_deep_dive_audio=not presence.deep_dive_audio and has_deep_dive,
    )


def merge_caption(
    metadata: EventMetadata,
    caption: CaptionResult,
    *,
    bundle_id: str,
    default_sender: str,
    now: datetime,
) -> Optional[EventMetadata]:
    """Fold generated text into existing metadata.

    An existing description is never replaced. Returns None when the
    generator produced nothing usable, so prior state is left untouched.
    """
    if caption.is_empty:
        return None

    merged = metadata.model_copy(deep=True)
    if merged.description == "" and caption.short_caption:
        merged.description = caption.short_caption
    if caption.deep_dive:
        merged.deep_dive = caption.deep_dive
    merged.event_id = bundle_id
    if not merged.timestamp:
        merged.timestamp = now.isoformat(timespec="seconds")
    if not merged.sender:
        merged.sender = default_sender
    return merged
