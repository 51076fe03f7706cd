"""Backfill orchestration: decisions, retry policy, cancellation and run loop."""

from .cancellation import CancellationToken
from .decisions import compute_needs, merge_caption
from .retry import RetryPolicy, is_rate_limited
from .service import BackfillOrchestrator
from .voice_samples import SAMPLE_PHRASE, VoiceSampleResult, generate_voice_samples, voice_sample_key

__all__ = [
    "BackfillOrchestrator",
    "CancellationToken",
    "RetryPolicy",
    "SAMPLE_PHRASE",
    "VoiceSampleResult",
    "compute_needs",
    "generate_voice_samples",
    "is_rate_limited",
    "merge_caption",
    "voice_sample_key",
]
