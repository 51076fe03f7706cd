"""Cooperative cancellation for backfill runs."""

from __future__ import annotations

from threading import Event

from utils.exceptions import BackfillCancelled


class CancellationToken:
    """Thread-safe cancel flag with an interruptible sleep."""

    def __init__(self) -> None:
        self._event = Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise BackfillCancelled("cancellation requested")

    def sleep(self, seconds: float) -> None:
        """Block for ``seconds`` unless cancelled first."""
        if seconds <= 0:
            self.raise_if_cancelled()
            return
        if self._event.wait(float(seconds)):
            raise BackfillCancelled("cancellation requested")
