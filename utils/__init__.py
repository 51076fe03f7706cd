"""
Utils Module
Logging and error types shared across the backfill packages.
"""
from .logger import setup_logger
from .exceptions import (
    BackfillCancelled,
    BackfillError,
    ConfigurationError,
    EnumerationError,
    GenerationError,
    ObjectNotFoundError,
    ParseError,
    RateLimitError,
    RetryExhaustedError,
    SpeechError,
    StorageError,
)

__all__ = [
    "setup_logger",
    "BackfillCancelled",
    "BackfillError",
    "ConfigurationError",
    "EnumerationError",
    "GenerationError",
    "ObjectNotFoundError",
    "ParseError",
    "RateLimitError",
    "RetryExhaustedError",
    "SpeechError",
    "StorageError",
]
