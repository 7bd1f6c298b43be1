"""Translator over string-keyed mappings of arbitrary Python values."""

from __future__ import annotations

import logging
from collections.abc import Mapping, MutableMapping
from typing import Any

from ..exceptions import UnsupportedOperationError
from .base import Translator

logger = logging.getLogger(__name__)


class MappingTranslator(Translator[MutableMapping]):
    """Translator for ``MutableMapping[str, Any]`` collections.

    Read-only mappings (e.g. ``types.MappingProxyType``) can be validated but
    not receive defaults.
    """

    def handles(self, collection: Any) -> bool:
        return isinstance(collection, Mapping)

    def collection_contains(self, collection: MutableMapping, key: str) -> bool:
        return isinstance(collection, Mapping) and key in collection

    def get_collection_keys(self, collection: MutableMapping) -> list[str]:
        if not isinstance(collection, Mapping):
            raise UnsupportedOperationError(
                "get_collection_keys",
                "Value is not a mapping",
                type(collection).__name__,
            )
        return [str(key) for key in collection]

    def get_raw_value(self, collection: MutableMapping, key: str) -> Any:
        if not self.collection_contains(collection, key):
            return None
        return collection[key]

    def insert_field_value(self, collection: MutableMapping, key: str, value: Any) -> MutableMapping:
        if not isinstance(collection, MutableMapping):
            raise UnsupportedOperationError(
                "insert_field_value",
                "Mapping is read-only",
                type(collection).__name__,
            )
        collection[key] = value
        logger.debug(f"Inserted mapping value for '{key}'")
        return collection
