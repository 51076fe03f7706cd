"""Paced, bounded retries for rate-limited generation calls."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional, TypeVar

from tenacity import RetryCallState, RetryError, Retrying, retry_if_exception, stop_after_attempt, wait_fixed

from utils.exceptions import RateLimitError, RetryExhaustedError


logger = logging.getLogger(__name__)

T = TypeVar("T")
Sleeper = Callable[[float], None]
Classifier = Callable[[BaseException], bool]


def is_rate_limited(exc: BaseException) -> bool:
    return isinstance(exc, RateLimitError)


class RetryPolicy:
    """Wraps one generation call.

    Sleeps ``pacing_seconds`` before every attempt, the first included. A
    failure the classifier accepts waits ``backoff_seconds`` and retries,
    up to ``max_attempts`` in total; any other failure propagates at once.
    All waiting goes through ``sleep`` so tests can pass a fake clock and
    runs can pass a cancellable one.
    """

    def __init__(
        self,
        *,
        max_attempts: int = 3,
        backoff_seconds: float = 60.0,
        pacing_seconds: float = 5.0,
        classifier: Classifier = is_rate_limited,
        sleep: Optional[Sleeper] = None,
    ) -> None:
        self.max_attempts = max(1, int(max_attempts))
        self.backoff_seconds = max(0.0, float(backoff_seconds))
        self.pacing_seconds = max(0.0, float(pacing_seconds))
        self.classifier = classifier
        self.sleep: Sleeper = sleep or time.sleep

    @classmethod
    def from_settings(cls, gemini_settings: Any, *, sleep: Optional[Sleeper] = None) -> "RetryPolicy":
        return cls(
            max_attempts=gemini_settings.max_attempts,
            backoff_seconds=gemini_settings.backoff_seconds,
            pacing_seconds=gemini_settings.pacing_seconds,
            sleep=sleep,
        )

    def _pace(self, retry_state: RetryCallState) -> None:
        if self.pacing_seconds > 0:
            self.sleep(self.pacing_seconds)

    def _log_backoff(self, retry_state: RetryCallState) -> None:
        logger.warning(
            "rate_limited attempt=%s/%s wait=%ss",
            retry_state.attempt_number,
            self.max_attempts,
            self.backoff_seconds,
        )

    def call(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_fixed(self.backoff_seconds),
            retry=retry_if_exception(self.classifier),
            before=self._pace,
            before_sleep=self._log_backoff,
            sleep=self.sleep,
            reraise=False,
        )
        try:
            return retrying(fn, *args, **kwargs)
        except RetryError as exc:
            last = exc.last_attempt
            cause = last.exception()
            raise RetryExhaustedError(
                f"still rate limited after {last.attempt_number} attempts",
                attempts=last.attempt_number,
                provider=getattr(cause, "provider", None),
            ) from cause
