"""Translator capability interface.

A translator adapts one physical representation of "a collection of named
values" to the operations a schema needs. Translators hold no per-collection
state; every operation is a function of ``(collection, key)``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from ..conversions import (
    DateTimeFormatRegistry,
    cast_value,
    equivalent_json_type,
    get_default_registry,
    is_null_or_empty,
    render_value,
)

logger = logging.getLogger(__name__)

C = TypeVar("C")


class Translator(ABC, Generic[C]):
    """Abstract base class for collection translators."""

    def __init__(self, registry: DateTimeFormatRegistry | None = None):
        """Initialize the translator.

        Args:
            registry: Date/time formats used when casting; defaults to the
                process-wide registry
        """
        self._registry = registry

    @property
    def registry(self) -> DateTimeFormatRegistry:
        return self._registry or get_default_registry()

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    def handles(self, collection: Any) -> bool:
        """Check whether this translator can read ``collection``."""
        pass

    @abstractmethod
    def collection_contains(self, collection: C, key: str) -> bool:
        """Check whether ``key`` is present. Never raises."""
        pass

    @abstractmethod
    def get_collection_keys(self, collection: C) -> list[str]:
        """Get all keys in natural order.

        Raises:
            UnsupportedOperationError: If the value has no concept of keys
        """
        pass

    @abstractmethod
    def get_raw_value(self, collection: C, key: str) -> Any:
        """Get the stored value for ``key``, or None when absent."""
        pass

    @abstractmethod
    def insert_field_value(self, collection: C, key: str, value: Any) -> C:
        """Write ``value`` under ``key``, creating it if absent.

        Returns:
            The (mutated) collection

        Raises:
            UnsupportedOperationError: If the collection is read-only
        """
        pass

    def render(self, value: Any) -> str:
        """Render a raw value as a string."""
        return render_value(value)

    def collection_value_to_string(self, collection: C, key: str) -> str:
        """Best-effort string rendering of the value under ``key``."""
        if not self.collection_contains(collection, key):
            return ""
        return self.render(self.get_raw_value(collection, key))

    def field_value_is_null_or_empty(self, collection: C, key: str) -> bool:
        """Check whether the value under ``key`` is absent, null or empty."""
        if not self.collection_contains(collection, key):
            return True
        return is_null_or_empty(self.get_raw_value(collection, key))

    def try_cast_value(self, collection: C, key: str, target: Any) -> tuple[bool, Any]:
        """Attempt to cast the value under ``key`` to ``target``. Never raises.

        Returns:
            Tuple of (success, cast value)
        """
        if not self.collection_contains(collection, key):
            return False, None
        return cast_value(self.get_raw_value(collection, key), target, self.registry, self.render)

    def get_equivalent_type(self, type_name: str) -> str:
        """Map an internal type name to a label for configuration authors."""
        return equivalent_json_type(type_name)

    def __repr__(self) -> str:
        return f"{self.name}()"
