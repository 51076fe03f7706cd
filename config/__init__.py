"""
Configuration Management Module
Environment-driven settings for the backfill run.
"""
from .settings import (
    ExplorerSettings,
    GeminiSettings,
    LogSettings,
    OpenAISettings,
    Settings,
    StorageSettings,
    get_settings,
)

__all__ = [
    "ExplorerSettings",
    "GeminiSettings",
    "LogSettings",
    "OpenAISettings",
    "Settings",
    "StorageSettings",
    "get_settings",
]
