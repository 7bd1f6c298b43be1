"""Constraint type and the constraint factory library.

A constraint is a named, pure function from a value to a list of errors.
Constraints hold no state, so one instance can be shared by any number of
fields and schemas. Factories validate their own arguments eagerly and raise
InvalidArgumentError; evaluating a constraint never raises.
"""

from __future__ import annotations

import collections.abc
import logging
import math
import re
from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation
from enum import Enum
from re import Pattern as RegexPattern
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from .conversions import (
    DateTimeFormatRegistry,
    cast_value,
    equivalent_json_type,
    get_default_registry,
    is_structured,
    record_members,
    render_value,
    type_name,
)
from .exceptions import InvalidArgumentError, UnsupportedOperationError
from .result import Error, Severity, any_fatal
from .translators import Translator, translator_for

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from .schema import Schema

logger = logging.getLogger(__name__)


class ConstraintKind(Enum):
    """What a constraint receives when a schema evaluates it."""

    STANDARD = "standard"  # the cast value
    FORMAT = "format"  # the raw value rendered as a string


@dataclass(frozen=True)
class ValidationContext:
    """Per-call inputs made available to constraint functions.

    Attributes:
        translator: Translator used by the enclosing schema, if any
        registry: Date/time formats for casts performed by constraints
        path: Qualified name of the enclosing collection ("" at top level)
        raw: Uncast value being checked, or None when unknown
        raw_text: Uncast value rendered as a string; FORMAT constraints
            receive this instead of the cast value
    """

    translator: Translator | None = None
    registry: DateTimeFormatRegistry | None = None
    path: str = ""
    raw: Any = None
    raw_text: str | None = None

    def for_value(self, raw: Any) -> ValidationContext:
        """Context for checking ``raw`` in place of the current value."""
        text = raw if isinstance(raw, str) else self.render(raw)
        return replace(self, raw=raw, raw_text=text)

    @property
    def formats(self) -> DateTimeFormatRegistry:
        if self.registry is not None:
            return self.registry
        if self.translator is not None:
            return self.translator.registry
        return get_default_registry()

    def type_label(self, target: Any) -> str:
        name = type_name(target)
        if self.translator is not None:
            return self.translator.get_equivalent_type(name)
        return equivalent_json_type(name)

    def render(self, value: Any) -> str:
        if self.translator is not None:
            return self.translator.render(value)
        return render_value(value)


@dataclass(frozen=True, eq=False)
class Constraint:
    """A named validation rule.

    Attributes:
        name: Identifier used in diagnostics (never empty)
        function: Callable ``(value, field_name, context) -> list[Error]``
        kind: Whether the function receives the cast value or the raw string
        parameters: Arguments the constraint was built with
    """

    name: str
    function: Callable[[Any, str, ValidationContext], list[Error]]
    kind: ConstraintKind = ConstraintKind.STANDARD
    parameters: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise InvalidArgumentError("name", "Constraint name cannot be None, empty or whitespace")
        if not callable(self.function):
            raise InvalidArgumentError("function", "Constraint function must be callable")
        object.__setattr__(self, "parameters", MappingProxyType(dict(self.parameters)))

    def evaluate(self, value: Any, field_name: str, context: ValidationContext | None = None) -> list[Error]:
        """Run the constraint against ``value``.

        Args:
            value: Value to check
            field_name: Qualified name of the field being checked
            context: Per-call validation context

        Returns:
            Errors in emission order, each tagged with a field name. An
            exception escaping the function is reported as one FATAL error.
        """
        context = context or ValidationContext()
        if self.kind is ConstraintKind.FORMAT and context.raw_text is not None:
            value = context.raw_text
        try:
            errors = self.function(value, field_name, context)
            return [error.with_field(field_name) for error in errors]
        except Exception as e:
            logger.debug(f"Constraint {self.name} raised {type(e).__name__} for {field_name}")
            return [Error(f"Constraint {self.name} failed for field {field_name}: {e!s}", field_name=field_name)]

    def __and__(self, other: Constraint) -> Constraint:
        """Combine with AND: every constraint runs."""
        return all_of(*_flatten("all_of", self), *_flatten("all_of", other))

    def __or__(self, other: Constraint) -> Constraint:
        """Combine with OR: at least one constraint must pass."""
        return match_any(*_flatten("match_any", self), *_flatten("match_any", other))

    def __repr__(self) -> str:
        args = ", ".join(f"{k}={v!r}" for k, v in self.parameters.items())
        return f"{self.name}({args})"


def _flatten(name: str, constraint: Constraint) -> tuple[Constraint, ...]:
    if constraint.name == name and "constraints" in constraint.parameters:
        return tuple(constraint.parameters["constraints"])
    return (constraint,)


def _compare_error(field_name: str, value: Any, bound: Any) -> Error:
    return Error(f"Field {field_name} with value {value} cannot be compared with {bound}")


def _is_nan(value: Any) -> bool:
    return isinstance(value, float) and math.isnan(value)


# Ordered values

def constrain_value_lower_bound(lower_bound: Any) -> Constraint:
    """Value must be greater than or equal to ``lower_bound``."""
    def check(value: Any, field_name: str, context: ValidationContext) -> list[Error]:
        try:
            if _is_nan(value) or value < lower_bound:
                return [Error(f"Field {field_name} with value {value} is less than enforced lower bound {lower_bound}")]
        except TypeError:
            return [_compare_error(field_name, value, lower_bound)]
        return []

    return Constraint("constrain_value_lower_bound", check, parameters={"lower_bound": lower_bound})


def constrain_value_upper_bound(upper_bound: Any) -> Constraint:
    """Value must be less than or equal to ``upper_bound``."""
    def check(value: Any, field_name: str, context: ValidationContext) -> list[Error]:
        try:
            if _is_nan(value) or value > upper_bound:
                return [Error(f"Field {field_name} with value {value} is greater than enforced upper bound {upper_bound}")]
        except TypeError:
            return [_compare_error(field_name, value, upper_bound)]
        return []

    return Constraint("constrain_value_upper_bound", check, parameters={"upper_bound": upper_bound})


def _check_bounds(lower_bound: Any, upper_bound: Any, argument: str = "upper_bound") -> None:
    try:
        if lower_bound > upper_bound:
            raise InvalidArgumentError(
                argument,
                f"Lower bound must be less than or equal to upper bound. "
                f"Passed lower bound: {lower_bound} Passed upper bound: {upper_bound}",
            )
    except TypeError as e:
        raise InvalidArgumentError(argument, f"Bounds {lower_bound} and {upper_bound} are not comparable") from e


def constrain_value(lower_bound: Any, upper_bound: Any) -> Constraint:
    """Value must fall within the closed range ``[lower_bound, upper_bound]``.

    Raises:
        InvalidArgumentError: If lower_bound > upper_bound
    """
    _check_bounds(lower_bound, upper_bound)

    def check(value: Any, field_name: str, context: ValidationContext) -> list[Error]:
        try:
            if _is_nan(value) or not lower_bound <= value <= upper_bound:
                return [Error(
                    f"Field {field_name} with value {value} is invalid. Value must be greater than or equal to "
                    f"{lower_bound} and less than or equal to {upper_bound}"
                )]
        except TypeError:
            return [_compare_error(field_name, value, (lower_bound, upper_bound))]
        return []

    return Constraint(
        "constrain_value", check, parameters={"lower_bound": lower_bound, "upper_bound": upper_bound}
    )


def constrain_value_domains(*domains: tuple[Any, Any]) -> Constraint:
    """Value must fall within at least one inclusive ``(low, high)`` domain.

    Raises:
        InvalidArgumentError: If no domain is given or a domain has low > high
    """
    if not domains:
        raise InvalidArgumentError("domains", "At least one domain is required")
    checked = []
    for domain in domains:
        try:
            low, high = domain
        except (TypeError, ValueError) as e:
            raise InvalidArgumentError("domains", f"Domain {domain!r} must be a (low, high) pair") from e
        _check_bounds(low, high, "domains")
        checked.append((low, high))
    pairs = tuple(checked)

    def check(value: Any, field_name: str, context: ValidationContext) -> list[Error]:
        try:
            if not _is_nan(value) and any(low <= value <= high for low, high in pairs):
                return []
        except TypeError:
            return [_compare_error(field_name, value, pairs)]
        listing = " ".join(f"({low}, {high})" for low, high in pairs)
        return [Error(
            f"Field {field_name} with value {value} is invalid. "
            f"Value must fall within one of the following domains, inclusive: {listing}"
        )]

    return Constraint("constrain_value_domains", check, parameters={"domains": pairs})


# Strings

def allow_values(*values: Any) -> Constraint:
    """Value must equal one of ``values`` (case-sensitive)."""
    if not values:
        raise InvalidArgumentError("values", "At least one allowed value is required")

    def check(value: Any, field_name: str, context: ValidationContext) -> list[Error]:
        if value in values:
            return []
        allowed = ", ".join(str(v) for v in values)
        return [Error(f"Field {field_name} with value {value} is not valid. Valid values: {allowed}")]

    return Constraint("allow_values", check, parameters={"values": values})


def forbid_substrings(*substrings: str) -> Constraint:
    """Value must not contain any of ``substrings``; one error per substring found."""
    if not substrings:
        raise InvalidArgumentError("substrings", "At least one forbidden substring is required")
    if any(not isinstance(s, str) or not s for s in substrings):
        raise InvalidArgumentError("substrings", "Forbidden substrings must be non-empty strings")

    def check(value: Any, field_name: str, context: ValidationContext) -> list[Error]:
        text = value if isinstance(value, str) else context.render(value)
        return [
            Error(f"Field {field_name} with value {text} contains forbidden substring '{substring}'")
            for substring in substrings
            if substring in text
        ]

    return Constraint("forbid_substrings", check, parameters={"substrings": substrings})


def constrain_string_length(lower_bound: int | None = None, upper_bound: int | None = None) -> Constraint:
    """String length must be at least ``lower_bound`` and at most ``upper_bound``.

    Raises:
        InvalidArgumentError: If neither bound is given, a bound is negative,
            or lower_bound > upper_bound
    """
    if lower_bound is None and upper_bound is None:
        raise InvalidArgumentError("lower_bound", "At least one length bound is required")
    for argument, bound in (("lower_bound", lower_bound), ("upper_bound", upper_bound)):
        if bound is not None and (not isinstance(bound, int) or bound < 0):
            raise InvalidArgumentError(argument, f"Length bound must be a non-negative integer, got {bound!r}")
    if lower_bound is not None and upper_bound is not None:
        _check_bounds(lower_bound, upper_bound)

    def check(value: Any, field_name: str, context: ValidationContext) -> list[Error]:
        text = value if isinstance(value, str) else context.render(value)
        length = len(text)
        if lower_bound is not None and upper_bound is not None:
            if not lower_bound <= length <= upper_bound:
                return [Error(
                    f"Field {field_name} with value {text} must have a length of at least {lower_bound} "
                    f"and at most {upper_bound}. Actual length: {length}"
                )]
        elif lower_bound is not None and length < lower_bound:
            return [Error(
                f"Field {field_name} with value {text} must have a length of at least {lower_bound}. "
                f"Actual length: {length}"
            )]
        elif upper_bound is not None and length > upper_bound:
            return [Error(
                f"Field {field_name} with value {text} must have a length of at most {upper_bound}. "
                f"Actual length: {length}"
            )]
        return []

    return Constraint(
        "constrain_string_length", check, parameters={"lower_bound": lower_bound, "upper_bound": upper_bound}
    )


def constrain_string_with_regex_exact(*patterns: str | RegexPattern) -> Constraint:
    """Value must fully match at least one of ``patterns``."""
    if not patterns:
        raise InvalidArgumentError("patterns", "At least one pattern is required")
    try:
        compiled = tuple(p if isinstance(p, RegexPattern) else re.compile(p) for p in patterns)
    except (re.error, TypeError) as e:
        raise InvalidArgumentError("patterns", f"Invalid regex pattern: {e}") from e

    def check(value: Any, field_name: str, context: ValidationContext) -> list[Error]:
        text = value if isinstance(value, str) else context.render(value)
        if any(pattern.fullmatch(text) for pattern in compiled):
            return []
        if len(compiled) == 1:
            return [Error(f"Field {field_name} with value {text} is not an exact match to pattern {compiled[0].pattern}")]
        listing = " ".join(pattern.pattern for pattern in compiled)
        return [Error(f"Field {field_name} with value {text} is not an exact match to any pattern: {listing}")]

    return Constraint(
        "constrain_string_with_regex_exact", check,
        parameters={"patterns": tuple(p.pattern for p in compiled)},
    )


# Numeric precision

def _fractional_digits(value: Any) -> int:
    if isinstance(value, bool):
        raise TypeError("Booleans have no digits")
    if isinstance(value, int):
        return 0
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value))
        exponent = number.normalize().as_tuple().exponent
    except InvalidOperation as e:
        raise TypeError(f"{value!r} is not a number") from e
    if not isinstance(exponent, int):
        raise TypeError(f"{value!r} is not a finite number")
    return max(0, -exponent)


def constrain_digits(max_digits: int) -> Constraint:
    """Value may have at most ``max_digits`` significant digits after the decimal point."""
    if not isinstance(max_digits, int) or max_digits < 0:
        raise InvalidArgumentError("max_digits", f"Digit count must be a non-negative integer, got {max_digits!r}")

    def check(value: Any, field_name: str, context: ValidationContext) -> list[Error]:
        try:
            digits = _fractional_digits(value)
        except TypeError:
            return [Error(f"Field {field_name} with value {value} is not a finite number")]
        if digits > max_digits:
            return [Error(
                f"Field {field_name} with value {value} is invalid. "
                f"Value can have no more than {max_digits} digits after the decimal."
            )]
        return []

    return Constraint("constrain_digits", check, parameters={"max_digits": max_digits})


# Date/time

def constrain_datetime_format(*formats: str) -> Constraint:
    """Raw text must parse under at least one of the ``strptime`` ``formats``.

    Schemas evaluate this constraint against the original string, not the
    parsed datetime.
    """
    if not formats:
        raise InvalidArgumentError("formats", "At least one date/time format is required")
    if any(not isinstance(f, str) or not f.strip() for f in formats):
        raise InvalidArgumentError("formats", "Date/time formats must be non-empty strings")

    def check(value: Any, field_name: str, context: ValidationContext) -> list[Error]:
        text = value if isinstance(value, str) else render_value(value)
        if any(DateTimeFormatRegistry.matches(text, fmt) for fmt in formats):
            return []
        return [Error(
            f"Field {field_name} with value {text} is not in a valid date/time format. "
            f"Valid formats: {', '.join(formats)}"
        )]

    return Constraint(
        "constrain_datetime_format", check, kind=ConstraintKind.FORMAT, parameters={"formats": formats}
    )


# Collections

def _count(value: Any) -> int | None:
    if isinstance(value, (str, bytes)):
        return None
    if isinstance(value, collections.abc.Collection):
        return len(value)
    if is_structured(value):
        return len(record_members(value))
    return None


def constrain_collection_count(lower_bound: int | None = None, upper_bound: int | None = None) -> Constraint:
    """An array-like or object-like value must hold a bounded number of entries."""
    if lower_bound is None and upper_bound is None:
        raise InvalidArgumentError("lower_bound", "At least one count bound is required")
    for argument, bound in (("lower_bound", lower_bound), ("upper_bound", upper_bound)):
        if bound is not None and (not isinstance(bound, int) or bound < 0):
            raise InvalidArgumentError(argument, f"Count bound must be a non-negative integer, got {bound!r}")
    if lower_bound is not None and upper_bound is not None:
        _check_bounds(lower_bound, upper_bound)

    def check(value: Any, field_name: str, context: ValidationContext) -> list[Error]:
        count = _count(value)
        if count is None:
            return [Error(f"Field {field_name} is not a collection and cannot be counted")]
        if lower_bound is not None and upper_bound is not None:
            if not lower_bound <= count <= upper_bound:
                return [Error(
                    f"Collection {field_name} contains {count} values, "
                    f"but must contain between {lower_bound} and {upper_bound} values."
                )]
        elif lower_bound is not None and count < lower_bound:
            return [Error(
                f"Collection {field_name} contains {count} values, but must contain at least {lower_bound} values."
            )]
        elif upper_bound is not None and count > upper_bound:
            return [Error(
                f"Collection {field_name} contains {count} values, but must contain at most {upper_bound} values."
            )]
        return []

    return Constraint(
        "constrain_collection_count", check, parameters={"lower_bound": lower_bound, "upper_bound": upper_bound}
    )


# Structural

def _is_array(value: Any) -> bool:
    return isinstance(value, collections.abc.Iterable) and not isinstance(
        value, (str, bytes, collections.abc.Mapping)
    )


def _check_elements(branches: tuple[tuple[Any, tuple[Constraint, ...]], ...]):
    """Build a check that casts each element by the first branch type it fits.

    A branch type of None leaves the element uncast.
    """
    def check(value: Any, field_name: str, context: ValidationContext) -> list[Error]:
        if not _is_array(value):
            return [Error(f"Field {field_name} is not an array")]

        errors: list[Error] = []
        for index, element in enumerate(value):
            element_name = f"{field_name}[{index}]"
            for target, element_constraints in branches:
                if target is None:
                    cast = element
                    break
                success, cast = cast_value(element, target, context.formats, context.render)
                if success:
                    break
            else:
                expected = ", ".join(context.type_label(target) for target, _ in branches)
                errors.append(Error(
                    f"Value {context.render(element)} in array {field_name} is an incorrect type. "
                    f"Expected value type: {expected}",
                    field_name=element_name,
                ))
                continue
            element_context = context.for_value(element)
            for constraint in element_constraints:
                errors.extend(constraint.evaluate(cast, element_name, element_context))
        return errors

    return check


def apply_constraints(*constraints: Constraint, element_type: Any = None) -> Constraint:
    """Run ``constraints`` against every element of an array-like value.

    Args:
        constraints: Constraints applied to each element
        element_type: Optional type (or tuple of alternative types tried in
            order) each element is cast to before its constraints run

    Element errors are tagged ``field[index]``.
    """
    if element_type is None and not constraints:
        raise InvalidArgumentError("constraints", "At least one constraint or an element type is required")
    alternatives = element_type if isinstance(element_type, tuple) else (element_type,)

    return Constraint(
        "apply_constraints", _check_elements(tuple((target, constraints) for target in alternatives)),
        parameters={"constraints": constraints, "element_type": element_type},
    )


def apply_constraints_by_type(*branches: tuple[Any, Iterable[Constraint]]) -> Constraint:
    """Run a different constraint set per element type.

    Each element is cast to the first branch type it converts to, and only
    that branch's constraints run. An element matching no type is an error.

    Example:
        apply_constraints_by_type(
            (int, [constrain_value(1, 10)]),
            (str, [constrain_string_with_regex_exact(r"[a-z]+")]),
        )

    Raises:
        InvalidArgumentError: If no branch is given, or a branch is not a
            (type, constraints) pair
    """
    if not branches:
        raise InvalidArgumentError("branches", "At least one (type, constraints) branch is required")
    normalized = []
    for branch in branches:
        try:
            target, element_constraints = branch
            element_constraints = tuple(element_constraints)
        except (TypeError, ValueError) as e:
            raise InvalidArgumentError("branches", f"Branch {branch!r} must be a (type, constraints) pair") from e
        if target is None:
            raise InvalidArgumentError("branches", "Branch type cannot be None")
        if not all(isinstance(c, Constraint) for c in element_constraints):
            raise InvalidArgumentError("branches", f"Branch for {type_name(target)} holds a non-constraint")
        normalized.append((target, element_constraints))
    normalized = tuple(normalized)

    return Constraint(
        "apply_constraints_by_type", _check_elements(normalized),
        parameters={"branches": normalized},
    )


def apply_schema(schema: Schema, translator: Translator | None = None) -> Constraint:
    """Validate an object-like value with a nested ``schema``.

    Nested errors carry ``outer.inner`` field names. The nested schema runs
    on the uncast member when it has named members, so defaults land in the
    original collection. The translator is the explicit one when given, else
    the enclosing schema's translator when it can read the value, else one
    picked by shape.
    """
    if schema is None:
        raise InvalidArgumentError("schema", "A nested schema is required")

    def check(value: Any, field_name: str, context: ValidationContext) -> list[Error]:
        if context.raw is not None and is_structured(context.raw):
            value = context.raw
        active = translator
        if active is None and context.translator is not None and context.translator.handles(value):
            active = context.translator
        if active is None:
            try:
                active = translator_for(value, context.registry)
            except UnsupportedOperationError:
                return [Error(f"Field {field_name} is not an object and cannot be validated by a nested schema")]
        return list(schema.validate(value, active, name=field_name).errors)

    return Constraint(
        "apply_schema", check,
        parameters={"schema": schema.name or repr(schema), "translator": translator},
    )


# Combinators

def match_any(*constraints: Constraint) -> Constraint:
    """Pass when at least one alternative produces no FATAL error.

    The first passing alternative's non-fatal errors are forwarded; when none
    pass, a single FATAL error summarizes the failed alternatives.

    Raises:
        InvalidArgumentError: If fewer than two constraints are given
    """
    if len(constraints) < 2:
        raise InvalidArgumentError("constraints", "match_any requires at least 2 constraints")

    def check(value: Any, field_name: str, context: ValidationContext) -> list[Error]:
        for constraint in constraints:
            errors = constraint.evaluate(value, field_name, context)
            if not any_fatal(errors):
                return errors
        listing = ", ".join(repr(constraint) for constraint in constraints)
        return [Error(
            f"Field {field_name} with value {context.render(value)} did not satisfy any of "
            f"{len(constraints)} alternatives: {listing}"
        )]

    return Constraint("match_any", check, parameters={"constraints": constraints})


def all_of(*constraints: Constraint) -> Constraint:
    """Run every constraint and collect all of their errors."""
    if not constraints:
        raise InvalidArgumentError("constraints", "all_of requires at least 1 constraint")

    def check(value: Any, field_name: str, context: ValidationContext) -> list[Error]:
        errors: list[Error] = []
        for constraint in constraints:
            errors.extend(constraint.evaluate(value, field_name, context))
        return errors

    return Constraint("all_of", check, parameters={"constraints": constraints})


def custom(
    predicate: Callable[[Any], bool | Iterable[Error]],
    message: str = "Custom validation failed",
    name: str = "custom",
    severity: Severity = Severity.FATAL,
) -> Constraint:
    """Wrap a predicate as a constraint.

    Args:
        predicate: Returns True/False, or an iterable of errors
        message: Error message used when the predicate returns False
        name: Constraint name for diagnostics
        severity: Severity of the error produced on False
    """
    if not callable(predicate):
        raise InvalidArgumentError("predicate", "Predicate must be callable")

    def check(value: Any, field_name: str, context: ValidationContext) -> list[Error]:
        result = predicate(value)
        if isinstance(result, bool):
            return [] if result else [Error(f"Field {field_name} with value {value}: {message}", severity)]
        return list(result)

    return Constraint(name, check, parameters={"message": message})
