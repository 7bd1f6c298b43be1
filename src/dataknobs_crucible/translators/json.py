"""Translator over parsed JSON object trees (the output of ``json.load``)."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any

from ..conversions import is_structured, render_json_value, to_structure
from ..exceptions import UnsupportedOperationError
from .base import Translator

logger = logging.getLogger(__name__)


def to_json_node(value: Any) -> Any:
    """Convert a Python value into a JSON-compatible node."""
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Enum):
        return to_json_node(value.value)
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, (list, tuple, set, frozenset)) and not hasattr(value, "_asdict"):
        return [to_json_node(item) for item in value]
    if is_structured(value):
        return {k: to_json_node(v) for k, v in to_structure(value).items()}
    return str(value)


class JsonTranslator(Translator[dict]):
    """Translator for JSON objects represented as ``dict`` trees.

    Non-string values render as JSON text (``true``, ``null``, ``[1, 2]``).
    """

    def handles(self, collection: Any) -> bool:
        return isinstance(collection, dict)

    def collection_contains(self, collection: dict, key: str) -> bool:
        return isinstance(collection, Mapping) and key in collection

    def get_collection_keys(self, collection: dict) -> list[str]:
        if not isinstance(collection, Mapping):
            raise UnsupportedOperationError(
                "get_collection_keys",
                "Only JSON objects have keys",
                type(collection).__name__,
            )
        return list(collection.keys())

    def get_raw_value(self, collection: dict, key: str) -> Any:
        if not self.collection_contains(collection, key):
            return None
        return collection[key]

    def render(self, value: Any) -> str:
        return render_json_value(value)

    def insert_field_value(self, collection: dict, key: str, value: Any) -> dict:
        if not isinstance(collection, dict):
            raise UnsupportedOperationError(
                "insert_field_value",
                "Cannot insert into a read-only or non-object JSON value",
                type(collection).__name__,
            )
        collection[key] = to_json_node(value)
        logger.debug(f"Inserted JSON value for '{key}'")
        return collection
