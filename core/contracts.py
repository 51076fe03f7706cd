"""Canonical data contracts for the accessibility backfill pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationInfo, field_validator


logger = logging.getLogger(__name__)


class BundleState(str, Enum):
    """Per-bundle processing states."""

    DISCOVERED = "discovered"
    METADATA_LOADED = "metadata_loaded"
    TEXT_SKIPPED = "text_skipped"
    TEXT_ENRICHED = "text_enriched"
    CAPTION_AUDIO_SKIPPED = "caption_audio_skipped"
    CAPTION_AUDIO_GENERATED = "caption_audio_generated"
    DEEP_DIVE_AUDIO_SKIPPED = "deep_dive_audio_skipped"
    DEEP_DIVE_AUDIO_GENERATED = "deep_dive_audio_generated"
    DONE = "done"
    SKIPPED = "skipped"
    ERRORED = "errored"
    CANCELLED = "cancelled"


class EventMetadata(BaseModel):
    """One bundle's ``metadata.json`` record.

    Reads are lenient about key spelling; unknown keys are kept so that a
    read-modify-write does not drop fields owned by upstream flows.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    description: str = ""
    deep_dive: str = Field(
        default="",
        validation_alias=AliasChoices("deepDive", "deep_dive"),
        serialization_alias="deepDive",
    )
    sender: str = ""
    timestamp: str = ""
    event_id: str = Field(
        default="",
        validation_alias=AliasChoices("event_id", "eventID"),
        serialization_alias="event_id",
    )

    @field_validator("description", "deep_dive", "sender", "timestamp", "event_id", mode="before")
    @classmethod
    def _text(cls, value: Any, info: ValidationInfo) -> str:
        if value is None:
            return ""
        if isinstance(value, str):
            return value
        # numbers show up in hand-edited timestamps and ids
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        logger.warning("metadata_malformed field=%s type=%s", info.field_name, type(value).__name__)
        return ""

    def to_record(self) -> Dict[str, Any]:
        """Serialize with canonical key names."""
        record = self.model_dump(by_alias=True)
        # alternate spellings picked up as extras on read
        record.pop("deep_dive", None)
        record.pop("eventID", None)
        return record


class CaptionResult(BaseModel):
    """Structured payload returned by the caption generator."""

    model_config = ConfigDict(extra="ignore")

    short_caption: str = ""
    deep_dive: str = ""

    @field_validator("short_caption", "deep_dive", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @property
    def is_empty(self) -> bool:
        return not self.short_caption and not self.deep_dive


@dataclass(frozen=True)
class ArtifactPresence:
    """Existence flags for a bundle's audio artifacts."""

    human_caption_audio: bool = False
    ai_caption_audio: bool = False
    deep_dive_audio: bool = False


@dataclass(frozen=True)
class EnrichmentNeeds:
    """Which derived artifacts are missing for one bundle."""

    need_text: bool
    need_caption_audio: bool
    need_deep_dive_audio: bool

    @property
    def any(self) -> bool:
        return self.need_text or self.need_caption_audio or self.need_deep_dive_audio


class BackfillConfig(BaseModel):
    """Immutable run configuration handed to the orchestrator."""

    model_config = ConfigDict(frozen=True)

    bucket: str
    explorer_id: str
    explorer_name: str = ""
    bundle_folder: str = "to"
    default_sender: str = "Granddad"
    speech_pacing_seconds: float = 1.0

    @field_validator("bucket", "explorer_id", mode="before")
    @classmethod
    def _non_empty_text(cls, value: Any) -> str:
        text = str(value or "").strip()
        if not text:
            raise ValueError("value is required")
        return text

    @property
    def bundle_prefix(self) -> str:
        return f"{self.explorer_id}/{self.bundle_folder.strip('/')}/"


class BundleReport(BaseModel):
    """Outcome of one bundle pass."""

    bundle_id: str
    state: BundleState = BundleState.DISCOVERED
    transitions: List[BundleState] = Field(default_factory=list)
    actions: List[str] = Field(default_factory=list)
    error: Optional[str] = None
    soft_failures: List[str] = Field(default_factory=list)

    def advance(self, state: BundleState) -> None:
        self.state = state
        self.transitions.append(state)


class RunSummary(BaseModel):
    """Observable outcome of one pipeline run."""

    bundles_seen: int = 0
    actions: int = 0
    errors: int = 0
    skipped: int = 0
    soft_failures: int = 0
    cancelled: bool = False
    bundles: List[BundleReport] = Field(default_factory=list)

    def record(self, report: BundleReport) -> None:
        self.bundles.append(report)
        self.actions += len(report.actions)
        self.soft_failures += len(report.soft_failures)
        if report.state == BundleState.ERRORED or (report.state == BundleState.CANCELLED and report.error):
            self.errors += 1
        elif report.state == BundleState.SKIPPED:
            self.skipped += 1

    def headline(self) -> Dict[str, Any]:
        return {
            "bundles_seen": self.bundles_seen,
            "actions": self.actions,
            "errors": self.errors,
            "skipped": self.skipped,
            "soft_failures": self.soft_failures,
            "cancelled": self.cancelled,
        }
