"""Diagnostic and result types produced by schema validation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import TYPE_CHECKING, Any

from .exceptions import InvalidArgumentError, SchemaValidationError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator


class Severity(IntEnum):
    """Severity of a single diagnostic.

    Only FATAL blocks acceptance of the validated data. The numeric ordering
    allows filtering with comparisons, e.g. ``error.severity >= Severity.WARNING``.
    """

    INFO = 10
    WARNING = 20
    FATAL = 30

    @property
    def label(self) -> str:
        return self.name.capitalize()


@dataclass(frozen=True)
class Error:
    """A single validation diagnostic: a message plus its severity.

    Attributes:
        message: Human-readable description of the problem (never empty)
        severity: How serious the problem is (defaults to FATAL)
        field_name: Name of the field the diagnostic belongs to, dotted for
            nested schemas (e.g. ``"database.port"``)
    """

    message: str
    severity: Severity = Severity.FATAL
    field_name: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.message, str) or not self.message.strip():
            raise InvalidArgumentError("message", "Error message cannot be None, empty or whitespace")
        if not isinstance(self.severity, Severity):
            raise InvalidArgumentError("severity", f"Expected a Severity, got {self.severity!r}")

    @property
    def is_fatal(self) -> bool:
        return self.severity is Severity.FATAL

    def with_field(self, field_name: str) -> Error:
        """Return a copy tagged with ``field_name`` unless already tagged."""
        if self.field_name:
            return self
        return Error(self.message, self.severity, field_name)

    def __str__(self) -> str:
        return f"[{self.severity.label}] {self.message}"


def any_fatal(errors: Iterable[Error]) -> bool:
    """Check whether any error in ``errors`` is FATAL."""
    return any(error.severity is Severity.FATAL for error in errors)


@dataclass
class ValidationResult:
    """Outcome of one ``Schema.validate`` call.

    Every call produces a fresh result, so results from separate calls are
    never merged implicitly.
    """

    value: Any
    errors: list[Error] = field(default_factory=list)
    schema_name: str | None = None

    @property
    def valid(self) -> bool:
        """True when no FATAL error was produced."""
        return not any_fatal(self.errors)

    def __bool__(self) -> bool:
        """Allow 'if result:' usage to check validity."""
        return self.valid

    def __iter__(self) -> Iterator[Error]:
        return iter(self.errors)

    def __len__(self) -> int:
        return len(self.errors)

    @property
    def fatal(self) -> list[Error]:
        return [e for e in self.errors if e.severity is Severity.FATAL]

    @property
    def warnings(self) -> list[Error]:
        return [e for e in self.errors if e.severity is Severity.WARNING]

    @property
    def infos(self) -> list[Error]:
        return [e for e in self.errors if e.severity is Severity.INFO]

    def messages(self, min_severity: Severity = Severity.INFO) -> list[str]:
        """Get error messages at or above ``min_severity``.

        Args:
            min_severity: Lowest severity to include

        Returns:
            List of message strings in emission order
        """
        return [e.message for e in self.errors if e.severity >= min_severity]

    def for_field(self, field_name: str) -> list[Error]:
        """Get all errors tagged with ``field_name`` or one of its nested fields."""
        prefix = f"{field_name}."
        return [
            e for e in self.errors
            if e.field_name == field_name
            or (e.field_name is not None and e.field_name.startswith((prefix, f"{field_name}[")))
        ]

    def merge(self, other: ValidationResult) -> ValidationResult:
        """Combine two results into a new one.

        Args:
            other: Another ValidationResult to merge with this one

        Returns:
            New ValidationResult holding the errors of both, in order
        """
        return ValidationResult(
            value=self.value,
            errors=self.errors + other.errors,
            schema_name=self.schema_name,
        )

    def raise_for_fatal(self) -> ValidationResult:
        """Raise SchemaValidationError if any FATAL error is present.

        Returns:
            Self, so a valid result can be chained

        Raises:
            SchemaValidationError: If the result holds fatal errors
        """
        fatal = self.fatal
        if fatal:
            raise SchemaValidationError(fatal, self.schema_name)
        return self
