"""Field and Schema definitions and the validation algorithm.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, replace
from dataclasses import field as dataclass_field
from typing import TYPE_CHECKING, Any

from .constraints import Constraint, ValidationContext
from .conversions import type_name
from .exceptions import InvalidArgumentError, SchemaConfigurationError, UnsupportedOperationError
from .result import Error, Severity, ValidationResult, any_fatal
from .translators import Translator, translator_for

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

logger = logging.getLogger(__name__)


class _NoDefault:
    def __repr__(self) -> str:
        return "NO_DEFAULT"


NO_DEFAULT: Any = _NoDefault()


@dataclass(frozen=True)
class Field:
    """A named, typed slot in a schema.

    Attributes:
        name: Key of the value in the collection
        help_text: Description shown to configuration authors
        value_type: Type the raw value is cast to before constraints run
        required: Whether the key must be present with a non-empty value
        default: Value inserted when an optional field is absent
        constraints: Constraints evaluated in order against the cast value
        allow_null: Report a null/empty required value as a WARNING
    """

    name: str
    help_text: str
    value_type: Any = Any
    required: bool = True
    default: Any = NO_DEFAULT
    constraints: tuple[Constraint, ...] = dataclass_field(default_factory=tuple)
    allow_null: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise SchemaConfigurationError("Field name cannot be None, empty or whitespace")
        if not isinstance(self.help_text, str) or not self.help_text.strip():
            raise SchemaConfigurationError(
                f"Help text for field '{self.name}' cannot be None, empty or whitespace", self.name
            )
        if self.required and self.has_default:
            raise SchemaConfigurationError(
                f"Field '{self.name}' is required and cannot also declare a default value", self.name
            )
        constraints = tuple(self.constraints)
        for constraint in constraints:
            if not isinstance(constraint, Constraint):
                raise SchemaConfigurationError(
                    f"Field '{self.name}' has a constraint of type {type(constraint).__name__}", self.name
                )
        object.__setattr__(self, "constraints", constraints)

    @property
    def has_default(self) -> bool:
        return self.default is not NO_DEFAULT

    def validate(
        self,
        collection: Any,
        translator: Translator,
        qualified_name: str | None = None,
        context: ValidationContext | None = None,
    ) -> tuple[Any, list[Error]]:
        """Validate this field's value within ``collection``.

        Args:
            collection: Collection holding the field
            translator: Translator for the collection
            qualified_name: Name used in diagnostics; defaults to the field name
            context: Context passed to constraints

        Returns:
            Tuple of (possibly updated collection, errors)
        """
        label = qualified_name or self.name
        context = context or ValidationContext(translator, translator.registry)
        errors: list[Error] = []

        if not translator.collection_contains(collection, self.name):
            if self.required:
                return collection, [Error(f"Missing required field {label}: {self.help_text}", field_name=label)]
            if not self.has_default:
                return collection, []
            try:
                collection = translator.insert_field_value(collection, self.name, copy.deepcopy(self.default))
            except (UnsupportedOperationError, InvalidArgumentError) as e:
                return collection, [Error(f"Could not insert default value for field {label}: {e}", field_name=label)]

        if translator.field_value_is_null_or_empty(collection, self.name):
            if not self.required:
                return collection, []
            severity = Severity.WARNING if self.allow_null else Severity.FATAL
            return collection, [Error(f"Required field {label} is null or empty", severity, label)]

        success, value = translator.try_cast_value(collection, self.name, self.value_type)
        if not success:
            expected = translator.get_equivalent_type(type_name(self.value_type))
            raw = translator.collection_value_to_string(collection, self.name)
            return collection, [Error(
                f"Field {label} with value {raw} could not be converted. Expected type: {expected}",
                field_name=label,
            )]

        # FORMAT constraints, at any depth, see raw_text instead of the cast value
        context = replace(
            context,
            raw=translator.get_raw_value(collection, self.name),
            raw_text=translator.collection_value_to_string(collection, self.name),
        )
        for constraint in self.constraints:
            errors.extend(constraint.evaluate(value, label, context))
        return collection, errors


class Schema:
    """An ordered set of uniquely named fields.

    Schemas are read-only during validation and every ``validate`` call
    returns a fresh result, so one schema may be shared across threads.
    """

    def __init__(self, fields: Iterable[Field] = (), *, name: str | None = None, strict: bool = False):
        """Initialize schema.

        Args:
            fields: Initial field definitions
            name: Label used in diagnostics
            strict: If True, keys not declared in the schema are FATAL errors
        """
        self.name = name
        self.strict = strict
        self._fields: dict[str, Field] = {}
        self.add_fields(fields)

    def add_field(self, field: Field) -> Schema:
        """Add a field definition.

        Returns:
            Self for chaining

        Raises:
            SchemaConfigurationError: If a field with the same name exists
        """
        return self.add_fields([field])

    def add_fields(self, fields: Iterable[Field]) -> Schema:
        """Add several field definitions; nothing is added if any name collides."""
        fields = list(fields)
        seen = set(self._fields)
        for field in fields:
            if not isinstance(field, Field):
                raise SchemaConfigurationError(f"Expected a Field, got {type(field).__name__}")
            if field.name in seen:
                raise SchemaConfigurationError(f"Field '{field.name}' is already defined", field.name)
            seen.add(field.name)
        for field in fields:
            self._fields[field.name] = field
            logger.debug(f"Added field '{field.name}' to schema {self.name or 'unnamed'}")
        return self

    def field(
        self,
        name: str,
        help_text: str,
        value_type: Any = Any,
        required: bool = True,
        default: Any = NO_DEFAULT,
        constraints: Iterable[Constraint] = (),
        allow_null: bool = False,
    ) -> Schema:
        """Define and add a field (fluent API).

        Returns:
            Self for chaining
        """
        return self.add_field(Field(
            name=name,
            help_text=help_text,
            value_type=value_type,
            required=required,
            default=default,
            constraints=tuple(constraints),
            allow_null=allow_null,
        ))

    def remove_field(self, name: str) -> Schema:
        """Remove a field by name.

        Raises:
            SchemaConfigurationError: If no such field exists
        """
        return self.remove_fields([name])

    def remove_fields(self, names: Iterable[str]) -> Schema:
        """Remove several fields; nothing is removed if any name is unknown."""
        names = list(names)
        missing = [name for name in names if name not in self._fields]
        if missing:
            raise SchemaConfigurationError(f"Unknown field(s): {', '.join(missing)}", missing[0])
        for name in names:
            del self._fields[name]
        return self

    def get_field(self, name: str) -> Field | None:
        return self._fields.get(name)

    @property
    def field_names(self) -> list[str]:
        return list(self._fields)

    @property
    def fields(self) -> list[Field]:
        return list(self._fields.values())

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def __iter__(self) -> Iterator[Field]:
        return iter(list(self._fields.values()))

    def __len__(self) -> int:
        return len(self._fields)

    def clone(self) -> Schema:
        """Create an independent copy; fields and constraints are shared."""
        return Schema(self._fields.values(), name=self.name, strict=self.strict)

    def generate_empty_config(self) -> dict[str, str]:
        """Build a starting configuration mapping each field to its help text.

        Optional fields are prefixed with ``"Optional - "``.
        """
        return {
            field.name: field.help_text if field.required else f"Optional - {field.help_text}"
            for field in self._fields.values()
        }

    def validate(
        self,
        collection: Any,
        translator: Translator | None = None,
        *,
        name: str | None = None,
    ) -> ValidationResult:
        """Validate a collection against this schema.

        Args:
            collection: Collection of named values
            translator: Translator for the collection; picked by shape if omitted
            name: Name of the collection when it is nested inside another;
                prefixes field names in diagnostics

        Returns:
            ValidationResult holding every error, in field order. Data problems
            are never raised.
        """
        if translator is None:
            try:
                translator = translator_for(collection)
            except UnsupportedOperationError as e:
                return ValidationResult(collection, [Error(str(e), field_name=name)], self.name)

        context = ValidationContext(translator, translator.registry, path=name or "")
        errors: list[Error] = []

        for field in self._fields.values():
            qualified = f"{name}.{field.name}" if name else field.name
            collection, field_errors = field.validate(collection, translator, qualified, context)
            errors.extend(field_errors)

        if self.strict:
            try:
                keys = translator.get_collection_keys(collection)
            except UnsupportedOperationError as e:
                errors.append(Error(str(e), field_name=name))
            else:
                for key in keys:
                    if key not in self._fields:
                        qualified = f"{name}.{key}" if name else key
                        errors.append(Error(f"Unrecognized field {qualified}", field_name=qualified))

        if name and any_fatal(errors):
            errors.append(Error(f"Validation for {name} failed.", Severity.INFO, name))

        logger.debug(
            f"Validated {name or self.name or 'collection'} with {translator.name}: {len(errors)} error(s)"
        )
        return ValidationResult(collection, errors, self.name)

    def validate_many(
        self,
        collections: Iterable[Any],
        translator: Translator | None = None,
        stop_on_error: bool = False,
    ) -> list[ValidationResult]:
        """Validate multiple collections.

        Args:
            collections: Collections to validate
            translator: Translator shared by all collections
            stop_on_error: If True, stop after the first invalid collection

        Returns:
            List of ValidationResults
        """
        results = []
        for collection in collections:
            result = self.validate(collection, translator)
            results.append(result)
            if not result.valid and stop_on_error:
                break
        return results

    def __repr__(self) -> str:
        label = f"'{self.name}'" if self.name else "unnamed"
        return f"Schema({label}, fields={self.field_names}, strict={self.strict})"
