"""Translator over plain in-memory records accessed by introspection."""

from __future__ import annotations

import dataclasses
import logging
import typing
from collections.abc import Mapping
from typing import Any

from ..conversions import cast_value, is_structured, record_members, type_name
from ..exceptions import InvalidArgumentError, UnsupportedOperationError
from .base import Translator

logger = logging.getLogger(__name__)


def _declared_types(record: Any) -> dict[str, Any]:
    try:
        return typing.get_type_hints(type(record))
    except Exception as e:
        logger.debug(f"Could not resolve type hints for {type(record).__name__}: {e!s}")
        return dict(getattr(type(record), "__annotations__", {}))


class RecordTranslator(Translator[Any]):
    """Translator for dataclasses, named tuples and ordinary objects.

    Members are the dataclass fields, the named tuple ``_fields`` or the
    public instance attributes, in declaration order.
    """

    def handles(self, collection: Any) -> bool:
        return is_structured(collection) and not isinstance(collection, Mapping)

    def _members(self, collection: Any) -> dict[str, Any]:
        if not self.handles(collection):
            raise UnsupportedOperationError(
                "get_collection_keys",
                "Value has no named members",
                type(collection).__name__,
            )
        return record_members(collection)

    def collection_contains(self, collection: Any, key: str) -> bool:
        if not self.handles(collection):
            return False
        return key in record_members(collection)

    def get_collection_keys(self, collection: Any) -> list[str]:
        return list(self._members(collection))

    def get_raw_value(self, collection: Any, key: str) -> Any:
        if not self.collection_contains(collection, key):
            return None
        return getattr(collection, key)

    def insert_field_value(self, collection: Any, key: str, value: Any) -> Any:
        collection_type = type(collection).__name__
        if not self.handles(collection):
            raise UnsupportedOperationError("insert_field_value", "Value has no named members", collection_type)
        if isinstance(collection, tuple):
            raise UnsupportedOperationError("insert_field_value", "Named tuples are immutable", collection_type)

        if dataclasses.is_dataclass(collection):
            if collection.__dataclass_params__.frozen:
                raise UnsupportedOperationError("insert_field_value", "Dataclass is frozen", collection_type)
            if key not in record_members(collection):
                raise UnsupportedOperationError(
                    "insert_field_value", f"Dataclass has no field '{key}'", collection_type
                )

        declared = _declared_types(collection).get(key, Any)
        if declared not in (Any, object) and not isinstance(declared, str):
            success, converted = cast_value(value, declared, self.registry)
            if not success:
                raise InvalidArgumentError(
                    key,
                    f"Cannot convert {type(value).__name__} to declared type {type_name(declared)}",
                )
            value = converted

        try:
            setattr(collection, key, value)
        except AttributeError as e:
            raise UnsupportedOperationError("insert_field_value", str(e), collection_type) from e
        logger.debug(f"Inserted record member '{key}' on {collection_type}")
        return collection
