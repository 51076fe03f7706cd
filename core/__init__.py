"""Core contracts and shared types for the backfill pipeline."""

from .contracts import (
    ArtifactPresence,
    BackfillConfig,
    BundleReport,
    BundleState,
    CaptionResult,
    EnrichmentNeeds,
    EventMetadata,
    RunSummary,
)

__all__ = [
    "ArtifactPresence",
    "BackfillConfig",
    "BundleReport",
    "BundleState",
    "CaptionResult",
    "EnrichmentNeeds",
    "EventMetadata",
    "RunSummary",
]
