"""Generate and upload preview clips for each selectable narration voice."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import List, Optional, Sequence

from generation import BaseSpeechSynthesizer
from storage import AUDIO_CONTENT_TYPE, BaseObjectStore
from utils.exceptions import SpeechError, StorageError

from .cancellation import CancellationToken


logger = logging.getLogger(__name__)

SAMPLE_PHRASE = "Sending Reflections is fun!"
VOICE_SAMPLE_PREFIX = "assets/voice-samples/"


@dataclass
class VoiceSampleResult:
    voice: str
    key: str
    size: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def voice_sample_key(voice: str) -> str:
    return f"{VOICE_SAMPLE_PREFIX}{voice}.mp3"


def generate_voice_samples(
    store: BaseObjectStore,
    synthesizer: BaseSpeechSynthesizer,
    voices: Sequence[str],
    *,
    phrase: str = SAMPLE_PHRASE,
    cancel_token: Optional[CancellationToken] = None,
) -> List[VoiceSampleResult]:
    """Synthesize ``phrase`` once per voice; a failing voice does not stop the rest."""
    results: List[VoiceSampleResult] = []
    for voice in voices:
        if cancel_token is not None and cancel_token.cancelled:
            break
        key = voice_sample_key(voice)
        try:
            audio = synthesizer.synthesize(phrase, voice=voice)
            store.put(key, audio, AUDIO_CONTENT_TYPE)
        except (SpeechError, StorageError) as exc:
            logger.error("voice_sample_failed voice=%s error=%s", voice, exc)
            results.append(VoiceSampleResult(voice=voice, key=key, error=str(exc)))
            continue
        logger.info("voice_sample_saved voice=%s key=%s bytes=%s", voice, key, len(audio))
        results.append(VoiceSampleResult(voice=voice, key=key, size=len(audio)))
    return results
