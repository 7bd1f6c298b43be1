"""Translators adapting concrete collection representations to schemas."""

from __future__ import annotations

import logging
from typing import Any

from ..conversions import DateTimeFormatRegistry
from ..exceptions import UnsupportedOperationError
from .base import Translator
from .json import JsonTranslator, to_json_node
from .mapping import MappingTranslator
from .record import RecordTranslator

logger = logging.getLogger(__name__)


def translator_for(collection: Any, registry: DateTimeFormatRegistry | None = None) -> Translator:
    """Pick a translator by the shape of ``collection``.

    ``dict`` values are treated as JSON trees, other mappings as Python
    mappings, and anything with named members as a record.

    Raises:
        UnsupportedOperationError: If no translator can read the value
    """
    for translator_type in (JsonTranslator, MappingTranslator, RecordTranslator):
        translator = translator_type(registry)
        if translator.handles(collection):
            logger.debug(f"Selected {translator.name} for {type(collection).__name__}")
            return translator
    raise UnsupportedOperationError(
        "translator_for",
        "No translator can read this value",
        type(collection).__name__,
    )


__all__ = [
    "Translator",
    "JsonTranslator",
    "MappingTranslator",
    "RecordTranslator",
    "to_json_node",
    "translator_for",
]
