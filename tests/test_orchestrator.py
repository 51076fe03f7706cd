from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

import pytest

from core import BundleState
from orchestrator import BackfillOrchestrator, CancellationToken, RetryPolicy
from storage import InMemoryObjectStore
from utils.exceptions import EnumerationError, GenerationError, RateLimitError, StorageError

from fakes import (
    CONFIG,
    LAYOUT,
    FakeCaptionGenerator,
    FakeSleep,
    FakeSpeechSynthesizer,
    add_bundle,
    caption_json,
    read_metadata,
)


NOW = datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)


def _build(
    store: InMemoryObjectStore,
    generator: FakeCaptionGenerator,
    speech: Optional[FakeSpeechSynthesizer] = None,
    *,
    sleep: Optional[FakeSleep] = None,
    token: Optional[CancellationToken] = None,
) -> BackfillOrchestrator:
    sleep = sleep or FakeSleep()
    return BackfillOrchestrator(
        config=CONFIG,
        store=store,
        caption_generator=generator,
        speech_synthesizer=speech or FakeSpeechSynthesizer(),
        retry_policy=RetryPolicy(sleep=sleep),
        cancel_token=token,
        sleep=sleep,
        now=lambda: NOW,
    )


def test_fresh_bundle_gets_text_and_both_audio_files() -> None:
    store = InMemoryObjectStore()
    add_bundle(store, "evt-1")
    generator = FakeCaptionGenerator([caption_json("Big dog!", "A brown dog on grass.")])
    speech = FakeSpeechSynthesizer()

    summary = _build(store, generator, speech).run()

    metadata = read_metadata(store, "evt-1")
    assert metadata["description"] == "Big dog!"
    assert metadata["deepDive"] == "A brown dog on grass."
    assert metadata["event_id"] == "evt-1"
    assert metadata["sender"] == "Granddad"
    assert metadata["timestamp"] == "2026-03-01T08:00:00+00:00"
    assert store.content_type(LAYOUT.key("evt-1", "audio_caption.mp3")) == "audio/mpeg"
    assert store.get(LAYOUT.key("evt-1", "deep_dive_audio.mp3")) == b"ID3A brown dog on grass."
    assert [call["text"] for call in speech.calls] == ["Big dog!", "A brown dog on grass."]
    assert generator.calls[0]["mime_type"] == "image/jpeg"
    assert "Cole" in generator.calls[0]["prompt"]

    assert summary.headline() == {
        "bundles_seen": 1,
        "actions": 3,
        "errors": 0,
        "skipped": 0,
        "soft_failures": 0,
        "cancelled": False,
    }
    assert summary.bundles[0].state == BundleState.DONE
    assert summary.bundles[0].transitions == [
        BundleState.DISCOVERED,
        BundleState.METADATA_LOADED,
        BundleState.TEXT_ENRICHED,
        BundleState.CAPTION_AUDIO_GENERATED,
        BundleState.DEEP_DIVE_AUDIO_GENERATED,
        BundleState.DONE,
    ]


def test_human_description_and_recording_are_preserved() -> None:
    store = InMemoryObjectStore()
    add_bundle(
        store,
        "evt-2",
        metadata={"description": "Look, a dog!", "sender": "Mom", "timestamp": "2025-12-25T09:00:00Z"},
        audio=["audio.m4a"],
    )
    generator = FakeCaptionGenerator([caption_json("Big dog!", "A brown dog on grass.")])
    speech = FakeSpeechSynthesizer()

    summary = _build(store, generator, speech).run()

    metadata = read_metadata(store, "evt-2")
    assert metadata["description"] == "Look, a dog!"
    assert metadata["deepDive"] == "A brown dog on grass."
    assert metadata["sender"] == "Mom"
    assert not store.exists(LAYOUT.key("evt-2", "audio_caption.mp3"))
    assert store.exists(LAYOUT.key("evt-2", "deep_dive_audio.mp3"))
    assert [call["text"] for call in speech.calls] == ["A brown dog on grass."]
    assert summary.actions == 2


@pytest.mark.parametrize(
    "raw",
    [
        caption_json("Generated caption", "Generated story"),
        caption_json("", "Generated story"),
        "```json\n" + caption_json("Other", "Story") + "\n```",
    ],
)
def test_existing_description_bytes_never_change(raw: str) -> None:
    store = InMemoryObjectStore()
    add_bundle(store, "evt-3", metadata={"description": "Look, a dog!"}, audio=["audio.mp3"])

    _build(store, FakeCaptionGenerator([raw])).run()

    assert read_metadata(store, "evt-3")["description"] == "Look, a dog!"


def test_complete_bundle_is_a_no_op() -> None:
    store = InMemoryObjectStore()
    add_bundle(
        store,
        "evt-4",
        metadata={"description": "Hi", "deepDive": "Story"},
        audio=["audio.m4a", "deep_dive.m4a"],
    )
    before = store.get(LAYOUT.key("evt-4", "metadata.json"))
    generator = FakeCaptionGenerator()
    speech = FakeSpeechSynthesizer()
    sleep = FakeSleep()

    summary = _build(store, generator, speech, sleep=sleep).run()

    assert generator.calls == []
    assert speech.calls == []
    assert sleep.calls == []
    assert store.get(LAYOUT.key("evt-4", "metadata.json")) == before
    assert summary.actions == 0
    assert summary.bundles[0].transitions == [
        BundleState.DISCOVERED,
        BundleState.METADATA_LOADED,
        BundleState.TEXT_SKIPPED,
        BundleState.CAPTION_AUDIO_SKIPPED,
        BundleState.DEEP_DIVE_AUDIO_SKIPPED,
        BundleState.DONE,
    ]


def test_second_run_does_nothing() -> None:
    store = InMemoryObjectStore()
    add_bundle(store, "evt-5")
    _build(store, FakeCaptionGenerator([caption_json("Hi", "Story")])).run()
    before = {key: store.get(key) for key in store.keys()}

    generator = FakeCaptionGenerator()
    speech = FakeSpeechSynthesizer()
    summary = _build(store, generator, speech).run()

    assert summary.actions == 0
    assert generator.calls == []
    assert speech.calls == []
    assert {key: store.get(key) for key in store.keys()} == before


def test_all_bundles_across_pages_are_processed() -> None:
    store = InMemoryObjectStore(page_size=1)
    for idx in range(4):
        add_bundle(store, f"evt-{idx}", metadata={"description": "Hi", "deepDive": "Story"}, audio=["audio.m4a"])

    summary = _build(store, FakeCaptionGenerator()).run()

    assert summary.bundles_seen == 4
    assert store.pages_served == 4
    assert all(store.exists(LAYOUT.key(f"evt-{idx}", "deep_dive_audio.mp3")) for idx in range(4))


def test_failing_bundle_does_not_stop_the_run() -> None:
    store = InMemoryObjectStore()
    add_bundle(store, "evt-a", image=b"bad")
    add_bundle(store, "evt-b", image=b"good")

    class _PickyGenerator(FakeCaptionGenerator):
        def generate(self, image: bytes, mime_type: str, prompt: str) -> str:
            if image == b"bad":
                self.calls.append({"image": image})
                raise GenerationError("invalid argument", provider=self.provider)
            return super().generate(image, mime_type, prompt)

    summary = _build(store, _PickyGenerator([caption_json("Hi", "Story")])).run()

    states = {report.bundle_id: report.state for report in summary.bundles}
    assert states == {"evt-a": BundleState.ERRORED, "evt-b": BundleState.DONE}
    assert summary.errors == 1
    assert "invalid argument" in summary.bundles[0].error
    assert not store.exists(LAYOUT.key("evt-a", "metadata.json"))


def test_rate_limit_exhaustion_errors_bundle_after_three_attempts() -> None:
    store = InMemoryObjectStore()
    add_bundle(store, "evt-6")
    generator = FakeCaptionGenerator([RateLimitError("429 too many requests")])
    sleep = FakeSleep()

    summary = _build(store, generator, sleep=sleep).run()

    assert len(generator.calls) == 3
    assert sleep.calls == [5.0, 60.0, 5.0, 60.0, 5.0]
    assert summary.errors == 1
    assert summary.bundles[0].state == BundleState.ERRORED
    assert not store.exists(LAYOUT.key("evt-6", "metadata.json"))


def test_rate_limit_recovery_completes_bundle() -> None:
    store = InMemoryObjectStore()
    add_bundle(store, "evt-7")
    generator = FakeCaptionGenerator([RateLimitError("429"), caption_json("Hi", "Story")])

    summary = _build(store, generator).run()

    assert len(generator.calls) == 2
    assert summary.errors == 0
    assert read_metadata(store, "evt-7")["description"] == "Hi"


def test_unparseable_caption_errors_but_existing_text_is_narrated() -> None:
    store = InMemoryObjectStore()
    add_bundle(store, "evt-8", metadata={"description": "Hi"})
    before = store.get(LAYOUT.key("evt-8", "metadata.json"))
    speech = FakeSpeechSynthesizer()

    summary = _build(store, FakeCaptionGenerator(["Sorry, I cannot help with that."]), speech).run()

    report = summary.bundles[0]
    assert report.state == BundleState.ERRORED
    assert BundleState.TEXT_SKIPPED in report.transitions
    assert summary.errors == 1
    assert store.get(LAYOUT.key("evt-8", "metadata.json")) == before
    assert [call["text"] for call in speech.calls] == ["Hi"]
    assert not store.exists(LAYOUT.key("evt-8", "deep_dive_audio.mp3"))


def test_empty_caption_writes_nothing() -> None:
    store = InMemoryObjectStore()
    add_bundle(store, "evt-9")

    summary = _build(store, FakeCaptionGenerator([caption_json("", "")])).run()

    assert not store.exists(LAYOUT.key("evt-9", "metadata.json"))
    assert summary.errors == 0
    assert summary.actions == 0


def test_speech_failure_is_soft() -> None:
    store = InMemoryObjectStore()
    add_bundle(store, "evt-10")

    summary = _build(store, FakeCaptionGenerator([caption_json("Hi", "Story")]), FakeSpeechSynthesizer(fail=True)).run()

    report = summary.bundles[0]
    assert report.state == BundleState.DONE
    assert report.soft_failures == ["audio_caption.mp3", "deep_dive_audio.mp3"]
    assert summary.errors == 0
    assert summary.soft_failures == 2
    assert summary.actions == 1
    assert read_metadata(store, "evt-10")["deepDive"] == "Story"


def test_missing_image_skips_bundle() -> None:
    store = InMemoryObjectStore()
    add_bundle(store, "evt-11", image=None, metadata={"sender": "Mom"})
    generator = FakeCaptionGenerator()

    summary = _build(store, generator).run()

    assert generator.calls == []
    assert summary.skipped == 1
    assert summary.errors == 0
    assert summary.bundles[0].state == BundleState.SKIPPED


def test_malformed_metadata_is_treated_as_empty() -> None:
    store = InMemoryObjectStore()
    add_bundle(store, "evt-12")
    store.put(LAYOUT.key("evt-12", "metadata.json"), b"{oops", "application/json")

    _build(store, FakeCaptionGenerator([caption_json("Hi", "Story")])).run()

    assert read_metadata(store, "evt-12")["description"] == "Hi"


def test_audio_upload_failure_errors_bundle() -> None:
    class _ReadOnlyAudioStore(InMemoryObjectStore):
        def put(self, key: str, data: bytes, content_type: str) -> None:
            if content_type == "audio/mpeg":
                raise StorageError("access denied", key=key)
            super().put(key, data, content_type)

    store = _ReadOnlyAudioStore()
    add_bundle(store, "evt-13", metadata={"description": "Hi", "deepDive": "Story"})

    summary = _build(store, FakeCaptionGenerator()).run()

    assert summary.errors == 1
    assert "access denied" in summary.bundles[0].error


def test_speech_pacing_applies_after_each_upload() -> None:
    store = InMemoryObjectStore()
    add_bundle(store, "evt-14", metadata={"description": "Hi", "deepDive": "Story"})
    sleep = FakeSleep()
    config = CONFIG.model_copy(update={"speech_pacing_seconds": 1.0})

    BackfillOrchestrator(
        config=config,
        store=store,
        caption_generator=FakeCaptionGenerator(),
        speech_synthesizer=FakeSpeechSynthesizer(),
        sleep=sleep,
    ).run()

    assert sleep.calls == [1.0, 1.0]


def test_enumeration_failure_carries_partial_summary() -> None:
    class _FlakyListingStore(InMemoryObjectStore):
        def list_prefixes(self, prefix: str, delimiter: str = "/"):
            yield LAYOUT.folder("evt-1")
            raise StorageError("listing throttled", key=prefix)

    store = _FlakyListingStore()
    add_bundle(store, "evt-1", metadata={"description": "Hi", "deepDive": "Story"}, audio=["audio.m4a"])

    with pytest.raises(EnumerationError) as exc_info:
        _build(store, FakeCaptionGenerator()).run()

    partial = exc_info.value.summary
    assert partial.bundles_seen == 1
    assert partial.actions == 1


def test_cancellation_stops_between_bundles() -> None:
    store = InMemoryObjectStore()
    for bundle_id in ("evt-1", "evt-2", "evt-3"):
        add_bundle(store, bundle_id, metadata={"description": "Hi", "deepDive": "Story"}, audio=["audio.m4a"])
    token = CancellationToken()

    class _CancellingSpeech(FakeSpeechSynthesizer):
        def synthesize(self, text: str, voice: Optional[str] = None) -> bytes:
            token.cancel()
            return super().synthesize(text, voice)

    summary = _build(store, FakeCaptionGenerator(), _CancellingSpeech(), token=token).run()

    assert summary.cancelled is True
    assert summary.bundles_seen == 1
    assert not store.exists(LAYOUT.key("evt-2", "deep_dive_audio.mp3"))


def test_cancellation_during_pacing_abandons_bundle() -> None:
    token = CancellationToken()

    class _CancellingStore(InMemoryObjectStore):
        def exists(self, key: str) -> bool:
            token.cancel()
            return super().exists(key)

    store = _CancellingStore()
    add_bundle(store, "evt-1")
    orchestrator = BackfillOrchestrator(
        config=CONFIG,
        store=store,
        caption_generator=FakeCaptionGenerator([caption_json("Hi", "Story")]),
        speech_synthesizer=FakeSpeechSynthesizer(),
        cancel_token=token,
    )

    summary = orchestrator.run()

    assert summary.cancelled is True
    assert summary.bundles_seen == 1
    assert summary.bundles[0].state == BundleState.CANCELLED
    assert summary.actions == 0
    assert not store.exists(LAYOUT.key("evt-1", "metadata.json"))


def test_cancellation_after_upload_keeps_written_actions() -> None:
    token = CancellationToken()
    store = InMemoryObjectStore()
    add_bundle(store, "evt-1", metadata={"description": "Hi", "deepDive": "Story"})
    add_bundle(store, "evt-2", metadata={"description": "Hi", "deepDive": "Story"})

    class _CancellingSpeech(FakeSpeechSynthesizer):
        def synthesize(self, text: str, voice: Optional[str] = None) -> bytes:
            token.cancel()
            return super().synthesize(text, voice)

    speech = _CancellingSpeech()
    summary = BackfillOrchestrator(
        config=CONFIG.model_copy(update={"speech_pacing_seconds": 1.0}),
        store=store,
        caption_generator=FakeCaptionGenerator(),
        speech_synthesizer=speech,
        cancel_token=token,
    ).run()

    report = summary.bundles[0]
    assert store.exists(LAYOUT.key("evt-1", "audio_caption.mp3"))
    assert report.state == BundleState.CANCELLED
    assert report.actions == ["audio_caption.mp3"]
    assert summary.actions == 1
    assert summary.cancelled is True
    assert summary.errors == 0
    assert len(speech.calls) == 1
    assert not store.exists(LAYOUT.key("evt-2", "audio_caption.mp3"))


def test_cancelled_token_processes_nothing() -> None:
    store = InMemoryObjectStore()
    add_bundle(store, "evt-1")
    token = CancellationToken()
    token.cancel()
    orchestrator = BackfillOrchestrator(
        config=CONFIG,
        store=store,
        caption_generator=FakeCaptionGenerator([caption_json("Hi", "Story")]),
        speech_synthesizer=FakeSpeechSynthesizer(),
        cancel_token=token,
    )

    summary = orchestrator.run()

    assert summary.cancelled is True
    assert summary.bundles_seen == 0
    assert not store.exists(LAYOUT.key("evt-1", "metadata.json"))


def test_mistyped_description_is_regenerated_not_narrated() -> None:
    store = InMemoryObjectStore()
    add_bundle(store, "evt-15", metadata={"description": {"text": "Hi"}, "deepDive": "Story"}, audio=["deep_dive.m4a"])
    speech = FakeSpeechSynthesizer()

    _build(store, FakeCaptionGenerator([caption_json("A red truck", "A fire truck in the yard.")]), speech).run()

    assert read_metadata(store, "evt-15")["description"] == "A red truck"
    assert [call["text"] for call in speech.calls] == ["A red truck"]
