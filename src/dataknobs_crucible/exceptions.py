"""Custom exceptions for the dataknobs_crucible package.

This module defines exception types for schema definition and translator
operations, built on the common exception framework from dataknobs_common.

Validation failures in the *data* are never raised; they are collected as
:class:`~dataknobs_crucible.result.Error` diagnostics. The exceptions here
signal mistakes in a schema's *definition* or structurally nonsensical
translator requests.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from dataknobs_common import (
    ConfigurationError,
    DataknobsError,
    OperationError,
    ValidationError,
)

if TYPE_CHECKING:
    from .result import Error

# Root of the package hierarchy, kept as an alias like DataknobsDataError
CrucibleError = DataknobsError


class SchemaConfigurationError(ConfigurationError):
    """Raised when a schema or field definition is invalid."""

    def __init__(self, message: str, field_name: str | None = None):
        self.field_name = field_name
        super().__init__(message, context={"field_name": field_name} if field_name else None)


class InvalidArgumentError(ValidationError):
    """Raised when a constructor or factory receives an invalid argument."""

    def __init__(self, argument: str, message: str):
        self.argument = argument
        super().__init__(f"Invalid argument '{argument}': {message}", context={"argument": argument})


class UnsupportedOperationError(OperationError):
    """Raised when a translator is asked to do something its representation cannot."""

    def __init__(self, operation: str, message: str, collection_type: str | None = None):
        self.operation = operation
        self.collection_type = collection_type
        context: dict[str, Any] = {"operation": operation}
        if collection_type:
            context["collection_type"] = collection_type
        super().__init__(f"Unsupported operation '{operation}': {message}", context=context)


class SchemaValidationError(ValidationError):
    """Raised on request when a validation result holds fatal errors."""

    def __init__(self, errors: list[Error], schema_name: str | None = None):
        self.errors = errors
        self.schema_name = schema_name
        target = f"'{schema_name}'" if schema_name else "collection"
        summary = "; ".join(error.message for error in errors[:3])
        if len(errors) > 3:
            summary += f" (and {len(errors) - 3} more)"
        super().__init__(
            f"Validation of {target} failed with {len(errors)} fatal error(s): {summary}",
            context={
                "schema_name": schema_name,
                "errors": [error.message for error in errors],
            },
        )
