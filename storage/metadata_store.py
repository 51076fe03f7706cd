"""Load and save a bundle's ``metadata.json``."""

from __future__ import annotations

import json
import logging

from pydantic import ValidationError

from core import EventMetadata

from .layout import METADATA_CONTENT_TYPE, METADATA_NAME, BundleLayout
from .object_store import BaseObjectStore
from utils.exceptions import ObjectNotFoundError


logger = logging.getLogger(__name__)


class MetadataStore:
    """Lenient metadata adapter.

    A missing or malformed record loads as an all-empty ``EventMetadata``.
    Storage failures other than "not found" propagate as ``StorageError``.
    Writes are last-write-wins; there is no versioning.
    """

    def __init__(self, store: BaseObjectStore, layout: BundleLayout) -> None:
        self._store = store
        self._layout = layout

    def key(self, bundle_id: str) -> str:
        return self._layout.key(bundle_id, METADATA_NAME)

    def load(self, bundle_id: str) -> EventMetadata:
        key = self.key(bundle_id)
        try:
            raw = self._store.get(key)
        except ObjectNotFoundError:
            logger.debug("metadata_missing bundle_id=%s", bundle_id)
            return EventMetadata()

        try:
            payload = json.loads(raw.decode("utf-8-sig"))
        except (UnicodeDecodeError, ValueError) as exc:
            logger.warning("metadata_malformed bundle_id=%s error=%s", bundle_id, exc)
            return EventMetadata()

        if not isinstance(payload, dict):
            logger.warning("metadata_malformed bundle_id=%s error=not an object", bundle_id)
            return EventMetadata()

        try:
            return EventMetadata.model_validate(payload)
        except ValidationError as exc:
            logger.warning("metadata_malformed bundle_id=%s error=%s", bundle_id, exc)
            return EventMetadata()

    def save(self, bundle_id: str, metadata: EventMetadata) -> None:
        body = json.dumps(metadata.to_record(), indent=2, ensure_ascii=False).encode("utf-8")
        self._store.put(self.key(bundle_id), body, METADATA_CONTENT_TYPE)
