"""Value conversion helpers shared by every translator.

The cast rules live here, once, so that a JSON tree, a mapping and a record
holding equivalent data always cast to the same results. ``cast_value`` never
raises; it reports failure through the first element of its return tuple.
"""

from __future__ import annotations

import collections.abc
import dataclasses
import json
import logging
import threading
import types
import typing
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Callable

from .exceptions import InvalidArgumentError

logger = logging.getLogger(__name__)

# Tried in order; first successful parse wins
DEFAULT_DATETIME_FORMATS: tuple[str, ...] = (
    '%Y-%m-%d %H:%M:%S',
    '%Y-%m-%dT%H:%M:%S',
    '%Y-%m-%dT%H:%M:%SZ',
    '%Y-%m-%dT%H:%M:%S.%f',
    '%Y-%m-%dT%H:%M:%S.%fZ',
    '%Y/%m/%d %H:%M:%S',
    '%Y/%m/%d',
    '%Y-%m-%d',
    '%m/%d/%Y',
    '%m-%d-%Y',
)

LEAF_TYPES = (str, bytes, int, float, bool, Decimal, datetime, date, time, Enum)

_UNION_TYPES = (typing.Union, types.UnionType)

_TYPE_LABELS: dict[str, str] = {
    "int": "Json Number",
    "int8": "Json Number",
    "int16": "Json Number",
    "int32": "Json Number",
    "int64": "Json Number",
    "float": "Json Number",
    "float32": "Json Number",
    "float64": "Json Number",
    "Decimal": "Json Number",
    "bool": "Json Boolean",
    "str": "Json String",
    "bytes": "Json String",
    "datetime": "Json Date",
    "date": "Json Date",
    "time": "Json Time",
    "dict": "Json Object",
    "Mapping": "Json Object",
    "MutableMapping": "Json Object",
    "list": "Json Array",
    "tuple": "Json Array",
    "set": "Json Array",
    "frozenset": "Json Array",
    "Sequence": "Json Array",
    "NoneType": "Json Null",
    "Any": "Any",
    "object": "Any",
}


@dataclass(frozen=True)
class NamedValue:
    """A value wrapped together with the name it was stored under.

    Translators treat any object exposing ``name`` and ``value`` attributes
    as a named-property wrapper when checking for null or empty values.
    """

    name: str
    value: Any

    def __str__(self) -> str:
        return f"{self.name}: {self.value}"


class DateTimeFormatRegistry:
    """Append-only, ordered list of ``strptime`` formats used for date parsing.

    Registration replaces an immutable tuple under a lock, so a concurrent
    reader always sees either the old or the new complete list.
    """

    def __init__(self, formats: typing.Iterable[str] | None = None, iso_fallback: bool = True):
        """Initialize the registry.

        Args:
            formats: Initial formats, in priority order. Defaults to
                DEFAULT_DATETIME_FORMATS.
            iso_fallback: If True, ``datetime.fromisoformat`` is tried after
                every registered format has failed
        """
        self._lock = threading.Lock()
        self._formats: tuple[str, ...] = ()
        self.iso_fallback = iso_fallback
        for fmt in DEFAULT_DATETIME_FORMATS if formats is None else formats:
            self.register_format(fmt)

    @property
    def formats(self) -> tuple[str, ...]:
        return self._formats

    def __contains__(self, fmt: object) -> bool:
        return fmt in self._formats

    def __len__(self) -> int:
        return len(self._formats)

    def register_format(self, fmt: str) -> None:
        """Append a format to the end of the list. Re-registering is a no-op."""
        if not isinstance(fmt, str) or not fmt.strip():
            raise InvalidArgumentError("fmt", "Date/time format cannot be empty")
        with self._lock:
            if fmt not in self._formats:
                self._formats = self._formats + (fmt,)
                logger.debug(f"Registered date/time format '{fmt}'")

    @staticmethod
    def matches(text: str, fmt: str) -> bool:
        """Check whether ``text`` parses under ``fmt`` exactly."""
        try:
            datetime.strptime(text, fmt)
            return True
        except (ValueError, TypeError):
            return False

    def parse(self, text: str) -> datetime | None:
        """Parse ``text`` with the first matching format.

        Returns:
            The parsed datetime, or None if no format matches
        """
        text = text.strip()
        for fmt in self._formats:
            try:
                return datetime.strptime(text, fmt)
            except ValueError:
                continue
        if self.iso_fallback:
            try:
                return datetime.fromisoformat(text.replace('Z', '+00:00'))
            except ValueError:
                pass
        return None


_default_registry = DateTimeFormatRegistry()


def get_default_registry() -> DateTimeFormatRegistry:
    """Get the process-wide date/time format registry."""
    return _default_registry


def register_datetime_format(pattern: str) -> None:
    """Register a format with the process-wide registry.

    Intended for startup/configuration time, before validations run.
    """
    _default_registry.register_format(pattern)


def type_name(target: Any) -> str:
    """Get a short name for a type or typing generic (``list[int]`` -> ``list``)."""
    if target is Any:
        return "Any"
    origin = typing.get_origin(target)
    if origin in _UNION_TYPES:
        return " | ".join(type_name(arg) for arg in typing.get_args(target) if arg is not type(None))
    if origin is not None:
        target = origin
    return getattr(target, "__name__", str(target))


def equivalent_json_type(name: str) -> str:
    """Map an internal type name to the label shown to configuration authors."""
    return _TYPE_LABELS.get(name, name)


def render_value(value: Any) -> str:
    """Best-effort string rendering of a Python value."""
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def render_json_value(value: Any) -> str:
    """Render a JSON node the way it would appear in a JSON document.

    Strings are returned unquoted so they read naturally in diagnostics.
    """
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value, default=render_value)
    except (TypeError, ValueError):
        return render_value(value)


def _is_named_wrapper(value: Any) -> bool:
    return (
        not isinstance(value, (str, bytes, collections.abc.Mapping))
        and hasattr(value, "name")
        and hasattr(value, "value")
    )


def is_null_or_empty(value: Any, depth: int = 1) -> bool:
    """Check for None, blank strings, empty collections and empty wrappers.

    Named-property wrappers are unwrapped ``depth`` levels (one by default);
    below that they are judged by their string rendering.
    """
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (collections.abc.Mapping, list, tuple, set, frozenset)):
        return len(value) == 0
    if isinstance(value, LEAF_TYPES):
        return False
    if _is_named_wrapper(value) and depth > 0:
        return not str(value.name).strip() or is_null_or_empty(value.value, depth - 1)
    return not render_value(value).strip()


def is_structured(value: Any) -> bool:
    """Check whether ``value`` has named members that can be walked."""
    if isinstance(value, LEAF_TYPES) or value is None or isinstance(value, type):
        return False
    if isinstance(value, collections.abc.Mapping):
        return True
    if dataclasses.is_dataclass(value) or hasattr(value, "_asdict"):
        return True
    return hasattr(value, "__dict__")


def record_members(value: Any) -> dict[str, Any]:
    """Get the named members of a record-like value in declaration order."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
    if isinstance(value, tuple) and hasattr(value, "_asdict"):
        return dict(value._asdict())
    return {k: v for k, v in vars(value).items() if not k.startswith("_")}


def to_structure(value: Any) -> Any:
    """Recursively convert a structured value into nested plain dicts.

    Leaves are copied as-is; lists and tuples are converted element-wise.
    """
    if isinstance(value, LEAF_TYPES) or value is None:
        return value
    if isinstance(value, collections.abc.Mapping):
        return {str(k): to_structure(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)) and not hasattr(value, "_asdict"):
        return [to_structure(item) for item in value]
    if is_structured(value):
        return {k: to_structure(v) for k, v in record_members(value).items()}
    return value


def _is_structured_target(target: Any, origin: Any) -> bool:
    candidates = (dict, collections.abc.Mapping, collections.abc.MutableMapping)
    return target in candidates or origin in candidates


def _is_sequence_target(target: Any, origin: Any) -> bool:
    candidates = (list, tuple, set, frozenset, collections.abc.Sequence)
    return target in candidates or origin in candidates


def _is_ordered_sequence(value: Any) -> bool:
    return isinstance(value, collections.abc.Sequence) and not isinstance(value, (str, bytes, bytearray))


def cast_value(
    value: Any,
    target: Any,
    registry: DateTimeFormatRegistry | None = None,
    render: Callable[[Any], str] = render_value,
) -> tuple[bool, Any]:
    """Attempt to cast ``value`` to ``target`` using the ordered rule chain.

    Args:
        value: Raw value taken from a collection
        target: Python type or typing generic to cast to
        registry: Date/time formats to use; defaults to the process-wide registry
        render: Rendering used for the ``str`` target

    Returns:
        Tuple of (success, cast value). The value is None on failure.
    """
    try:
        return True, _cast(value, target, registry or _default_registry, render)
    except Exception as e:
        logger.debug(f"Cast of {type(value).__name__} to {type_name(target)} failed: {e!s}")
        return False, None


def _cast(value: Any, target: Any, registry: DateTimeFormatRegistry, render: Callable[[Any], str]) -> Any:
    """Apply the cast rules in priority order; raise on failure."""
    if target is Any or target is object:
        return value

    if type(value) is target:
        return value

    if target is str:
        if value is None:
            raise ValueError("Cannot render None as a string value")
        return render(value)

    if target in (datetime, date, time):
        return _cast_temporal(value, target, registry)

    origin = typing.get_origin(target)
    args = typing.get_args(target)

    if origin in _UNION_TYPES:
        if value is None and type(None) in args:
            return None
        for option in args:
            if option is type(None):
                continue
            try:
                return _cast(value, option, registry, render)
            except Exception:
                continue
        raise TypeError(f"{type(value).__name__} matches no member of {target}")

    if _is_structured_target(target, origin):
        if not is_structured(value):
            raise TypeError(f"{type(value).__name__} has no named members")
        structure = to_structure(value)
        if len(args) == 2:
            return {
                _cast(k, args[0], registry, render): _cast(v, args[1], registry, render)
                for k, v in structure.items()
            }
        return structure

    if _is_sequence_target(target, origin):
        if not _is_ordered_sequence(value):
            raise TypeError(f"{type(value).__name__} is not an ordered sequence")
        container = origin or target
        if container is collections.abc.Sequence:
            container = list
        if container is tuple and args and args[-1] is not Ellipsis:
            if len(args) != len(value):
                raise ValueError(f"Expected {len(args)} elements, got {len(value)}")
            return tuple(_cast(v, t, registry, render) for v, t in zip(value, args))
        if args:
            items = [_cast(item, args[0], registry, render) for item in value]
        else:
            items = list(value)
        return container(items)

    return _convert_primitive(value, target)


def _cast_temporal(value: Any, target: Any, registry: DateTimeFormatRegistry) -> Any:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date) and target is date:
        return value
    elif isinstance(value, time) and target is time:
        return value
    elif isinstance(value, str):
        if target is time:
            try:
                return time.fromisoformat(value.strip())
            except ValueError:
                pass
        parsed = registry.parse(value)
        if parsed is None:
            raise ValueError(f"'{value}' does not match any registered date/time format")
    else:
        raise TypeError(f"Cannot interpret {type(value).__name__} as a date/time")

    if target is date:
        return parsed.date()
    if target is time:
        return parsed.time()
    return parsed


def _convert_primitive(value: Any, target: Any) -> Any:
    """Generic numeric/primitive conversion; raises on failure."""
    if value is None:
        raise TypeError(f"Cannot convert None to {type_name(target)}")

    if target is int:
        if isinstance(value, bool):
            raise TypeError("Booleans are not accepted as integers")
        if isinstance(value, str):
            text = value.strip()
            lowered = text.lower()
            if lowered.startswith(('0x', '-0x')):
                return int(text, 16)
            if lowered.startswith(('0o', '-0o')):
                return int(text, 8)
            if lowered.startswith(('0b', '-0b')):
                return int(text, 2)
            return int(text)
        if isinstance(value, (float, Decimal)):
            if value != int(value):
                raise ValueError(f"{value} cannot be losslessly converted to int")
            return int(value)
        return int(value)

    if target is float:
        if isinstance(value, bool):
            raise TypeError("Booleans are not accepted as floats")
        if isinstance(value, str):
            return float(value.strip())
        return float(value)

    if target is Decimal:
        if isinstance(value, bool):
            raise TypeError("Booleans are not accepted as decimals")
        try:
            return Decimal(value.strip() if isinstance(value, str) else str(value))
        except InvalidOperation as e:
            raise ValueError(f"'{value}' is not a valid decimal") from e

    if target is bool:
        if isinstance(value, str):
            text = value.strip().lower()
            if text in ('true', '1', 'yes', 'y', 'on'):
                return True
            if text in ('false', '0', 'no', 'n', 'off'):
                return False
            raise ValueError(f"String '{value}' is not a valid boolean")
        if isinstance(value, int) and value in (0, 1):
            return bool(value)
        raise TypeError(f"Cannot convert {type(value).__name__} to bool")

    if target is bytes:
        if isinstance(value, str):
            return value.encode('utf-8')
        if isinstance(value, (bytes, bytearray, memoryview)):
            return bytes(value)
        raise TypeError(f"Cannot convert {type(value).__name__} to bytes")

    if isinstance(target, type) and issubclass(target, Enum):
        try:
            return target(value)
        except ValueError:
            if isinstance(value, str) and value in target.__members__:
                return target[value]
            raise

    if not callable(target):
        raise TypeError(f"Unsupported cast target {target!r}")
    return target(value)
