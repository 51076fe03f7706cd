"""
Storage Module
Object store adapters, bundle layout, metadata records and artifact probes.
"""
from .layout import (
    AI_CAPTION_AUDIO_NAMES,
    AUDIO_CONTENT_TYPE,
    CAPTION_AUDIO_NAME,
    DEEP_DIVE_AUDIO_NAME,
    DEEP_DIVE_AUDIO_NAMES,
    HUMAN_CAPTION_AUDIO_NAMES,
    IMAGE_MIME_TYPE,
    IMAGE_NAME,
    METADATA_NAME,
    BundleLayout,
)
from .metadata_store import MetadataStore
from .object_store import BaseObjectStore, InMemoryObjectStore, S3ObjectStore
from .prober import ArtifactProber

__all__ = [
    # Layout
    "AI_CAPTION_AUDIO_NAMES",
    "AUDIO_CONTENT_TYPE",
    "CAPTION_AUDIO_NAME",
    "DEEP_DIVE_AUDIO_NAME",
    "DEEP_DIVE_AUDIO_NAMES",
    "HUMAN_CAPTION_AUDIO_NAMES",
    "IMAGE_MIME_TYPE",
    "IMAGE_NAME",
    "METADATA_NAME",
    "BundleLayout",
    # Adapters
    "ArtifactProber",
    "BaseObjectStore",
    "InMemoryObjectStore",
    "MetadataStore",
    "S3ObjectStore",
]
