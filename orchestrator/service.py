"""Backfill orchestrator: enumerate bundles and fill missing accessibility artifacts."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Callable, Iterator, Optional

from core import BackfillConfig, BundleReport, BundleState, EventMetadata, RunSummary
from generation import BaseCaptionGenerator, BaseSpeechSynthesizer, build_caption_prompt, explorer_display_name, parse_caption_text
from storage import (
    AUDIO_CONTENT_TYPE,
    CAPTION_AUDIO_NAME,
    DEEP_DIVE_AUDIO_NAME,
    IMAGE_MIME_TYPE,
    IMAGE_NAME,
    METADATA_NAME,
    ArtifactProber,
    BaseObjectStore,
    BundleLayout,
    MetadataStore,
)
from utils.exceptions import (
    BackfillCancelled,
    BackfillError,
    EnumerationError,
    ObjectNotFoundError,
    ParseError,
    SpeechError,
    StorageError,
)

from .cancellation import CancellationToken
from .decisions import compute_needs, merge_caption
from .retry import RetryPolicy, Sleeper


logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BackfillOrchestrator:
    """Sequential, per-bundle-isolated backfill over one explorer's bundles.

    Bundles are processed one at a time and every external call shares one
    rate budget, so nothing here runs concurrently. Metadata writes are
    last-write-wins; two runs over the same bundle are not coordinated.
    """

    def __init__(
        self,
        *,
        config: BackfillConfig,
        store: BaseObjectStore,
        caption_generator: BaseCaptionGenerator,
        speech_synthesizer: BaseSpeechSynthesizer,
        retry_policy: Optional[RetryPolicy] = None,
        cancel_token: Optional[CancellationToken] = None,
        sleep: Optional[Sleeper] = None,
        now: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._config = config
        self._store = store
        self._captioner = caption_generator
        self._speech = speech_synthesizer
        self._token = cancel_token or CancellationToken()
        self._sleep: Sleeper = sleep or self._token.sleep
        self._retry = retry_policy or RetryPolicy(sleep=self._sleep)
        self._now = now or _utcnow

        self._layout = BundleLayout(config)
        self._metadata = MetadataStore(store, self._layout)
        self._prober = ArtifactProber(store, self._layout)
        self._prompt = build_caption_prompt(config.explorer_name or explorer_display_name(config.explorer_id))

    @property
    def layout(self) -> BundleLayout:
        return self._layout

    def iter_bundle_ids(self) -> Iterator[str]:
        """Yield each bundle id once, across every listing page."""
        seen = set()
        for prefix in self._store.list_prefixes(self._layout.prefix):
            bundle_id = BundleLayout.bundle_id_from_prefix(prefix)
            if not bundle_id or bundle_id in seen:
                continue
            seen.add(bundle_id)
            yield bundle_id

    def run(self) -> RunSummary:
        """Process every bundle; returns the run summary.

        Raises EnumerationError (carrying the partial summary) when listing
        fails. Cancellation ends the run early with ``cancelled=True``.
        """
        summary = RunSummary()
        logger.info(
            "backfill_start bucket=%s prefix=%s",
            self._config.bucket,
            self._layout.prefix,
        )
        bundles = self.iter_bundle_ids()

        while not self._token.cancelled:
            try:
                bundle_id = next(bundles, None)
            except StorageError as exc:
                logger.error("enumeration_failed prefix=%s error=%s", self._layout.prefix, exc)
                raise EnumerationError(
                    f"bundle enumeration failed: {exc}",
                    summary=summary,
                    key=self._layout.prefix,
                ) from exc
            if bundle_id is None:
                break

            summary.bundles_seen += 1
            report = self.process_bundle(bundle_id)
            summary.record(report)
            if report.state == BundleState.CANCELLED:
                break

        summary.cancelled = self._token.cancelled
        logger.info(
            "backfill_complete bundles=%s actions=%s errors=%s skipped=%s soft_failures=%s cancelled=%s",
            summary.bundles_seen,
            summary.actions,
            summary.errors,
            summary.skipped,
            summary.soft_failures,
            summary.cancelled,
        )
        return summary

    def process_bundle(self, bundle_id: str) -> BundleReport:
        """Run one bundle through decision, generation and persistence.

        Failures are captured on the report. A cancelled bundle ends in
        CANCELLED with whatever it already wrote still listed in ``actions``.
        """
        report = BundleReport(bundle_id=bundle_id)
        report.advance(BundleState.DISCOVERED)
        logger.info("bundle_start bundle_id=%s", bundle_id)

        try:
            self._process(bundle_id, report)
        except BackfillCancelled:
            report.advance(BundleState.CANCELLED)
            logger.info("bundle_cancelled bundle_id=%s actions=%s", bundle_id, ",".join(report.actions) or "-")
            return report
        except BackfillError as exc:
            self._fail(report, exc)
            return report
        except Exception as exc:
            logger.exception("bundle_unexpected_error bundle_id=%s", bundle_id)
            self._fail(report, exc)
            return report

        if report.state == BundleState.SKIPPED:
            return report
        if report.error:
            report.advance(BundleState.ERRORED)
            return report
        report.advance(BundleState.DONE)
        logger.info("bundle_done bundle_id=%s actions=%s", bundle_id, ",".join(report.actions) or "-")
        return report

    def _fail(self, report: BundleReport, exc: Exception) -> None:
        report.error = str(exc)
        report.advance(BundleState.ERRORED)
        logger.error("bundle_errored bundle_id=%s error=%s", report.bundle_id, exc)

    def _process(self, bundle_id: str, report: BundleReport) -> None:
        metadata = self._metadata.load(bundle_id)
        report.advance(BundleState.METADATA_LOADED)

        presence = self._prober.audio_presence(bundle_id)
        needs = compute_needs(metadata, presence)
        if not needs.any:
            logger.info("bundle_complete bundle_id=%s", bundle_id)
            report.advance(BundleState.TEXT_SKIPPED)
            report.advance(BundleState.CAPTION_AUDIO_SKIPPED)
            report.advance(BundleState.DEEP_DIVE_AUDIO_SKIPPED)
            return

        if needs.need_text:
            enriched = self._enrich_text(bundle_id, metadata, report)
            if enriched is None:
                report.advance(BundleState.SKIPPED)
                return
            metadata = enriched
            needs = compute_needs(metadata, presence)
        else:
            report.advance(BundleState.TEXT_SKIPPED)

        if needs.need_caption_audio and self._generate_audio(bundle_id, metadata.description, CAPTION_AUDIO_NAME, report):
            report.advance(BundleState.CAPTION_AUDIO_GENERATED)
        else:
            report.advance(BundleState.CAPTION_AUDIO_SKIPPED)

        if needs.need_deep_dive_audio and self._generate_audio(bundle_id, metadata.deep_dive, DEEP_DIVE_AUDIO_NAME, report):
            report.advance(BundleState.DEEP_DIVE_AUDIO_GENERATED)
        else:
            report.advance(BundleState.DEEP_DIVE_AUDIO_SKIPPED)

    def _enrich_text(self, bundle_id: str, metadata: EventMetadata, report: BundleReport) -> Optional[EventMetadata]:
        """Generate and persist missing text.

        Returns the metadata to continue with, or None when the bundle has no
        image to describe.
        """
        try:
            image = self._store.get(self._layout.key(bundle_id, IMAGE_NAME))
        except ObjectNotFoundError:
            logger.warning("image_missing bundle_id=%s", bundle_id)
            return None

        logger.info("caption_generate bundle_id=%s", bundle_id)
        raw_text = self._retry.call(self._captioner.generate, image, IMAGE_MIME_TYPE, self._prompt)

        try:
            caption = parse_caption_text(raw_text)
        except ParseError as exc:
            logger.error("caption_parse_failed bundle_id=%s raw=%r", bundle_id, exc.raw_text[:500])
            report.error = str(exc)
            report.advance(BundleState.TEXT_SKIPPED)
            return metadata

        merged = merge_caption(
            metadata,
            caption,
            bundle_id=bundle_id,
            default_sender=self._config.default_sender,
            now=self._now(),
        )
        if merged is None:
            logger.warning("caption_empty bundle_id=%s", bundle_id)
            report.advance(BundleState.TEXT_SKIPPED)
            return metadata

        self._metadata.save(bundle_id, merged)
        report.actions.append(METADATA_NAME)
        report.advance(BundleState.TEXT_ENRICHED)
        logger.info(
            "metadata_saved bundle_id=%s description_preserved=%s",
            bundle_id,
            metadata.description != "",
        )
        return merged

    def _generate_audio(self, bundle_id: str, text: str, artifact_name: str, report: BundleReport) -> bool:
        try:
            audio = self._speech.synthesize(text)
        except SpeechError as exc:
            logger.warning("speech_failed bundle_id=%s artifact=%s error=%s", bundle_id, artifact_name, exc)
            report.soft_failures.append(artifact_name)
            return False

        self._store.put(self._layout.key(bundle_id, artifact_name), audio, AUDIO_CONTENT_TYPE)
        report.actions.append(artifact_name)
        logger.info("audio_saved bundle_id=%s artifact=%s bytes=%s", bundle_id, artifact_name, len(audio))
        if self._config.speech_pacing_seconds > 0:
            self._sleep(self._config.speech_pacing_seconds)
        return True
