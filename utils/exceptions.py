"""
Custom Exceptions
Error taxonomy for the accessibility backfill pipeline.
"""
from typing import Optional


class BackfillError(Exception):
    """Base class for every backfill failure."""

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(BackfillError):
    """Missing or invalid required setting. Fatal before any bundle is touched."""

    def __init__(self, message: str, missing: Optional[list] = None, **kwargs):
        super().__init__(message, kwargs)
        self.missing = list(missing or [])


class StorageError(BackfillError):
    """Object store read/write/list failure."""

    def __init__(self, message: str, key: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.key = key


class ObjectNotFoundError(StorageError):
    """Requested object does not exist."""
    pass


class EnumerationError(StorageError):
    """Bundle listing failed; carries the summary accumulated so far."""

    def __init__(self, message: str, summary=None, **kwargs):
        super().__init__(message, **kwargs)
        self.summary = summary


class GenerationError(BackfillError):
    """Caption generation failure."""

    def __init__(self, message: str, provider: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.provider = provider


class RateLimitError(GenerationError):
    """Generation service signalled throttling (HTTP 429)."""
    pass


class RetryExhaustedError(GenerationError):
    """Every attempt allowed by the retry policy was rate limited."""

    def __init__(self, message: str, attempts: int = 0, **kwargs):
        super().__init__(message, **kwargs)
        self.attempts = attempts


class ParseError(BackfillError):
    """Generated text decoded under neither the object nor the array shape."""

    def __init__(self, message: str, raw_text: str = "", **kwargs):
        super().__init__(message, kwargs)
        self.raw_text = raw_text


class SpeechError(BackfillError):
    """Speech synthesis failure. Soft: the artifact is skipped."""

    def __init__(self, message: str, provider: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.provider = provider


class BackfillCancelled(BackfillError):
    """Cancellation was requested while the run was in progress."""
    pass
