"""Factory classes for building schemas and format registries from configuration."""

import logging
from datetime import date, datetime, time
from decimal import Decimal
from pathlib import Path
from typing import Any

from dataknobs_config import Config, FactoryBase

from .constraints import (
    Constraint,
    all_of,
    allow_values,
    apply_constraints,
    apply_constraints_by_type,
    apply_schema,
    constrain_collection_count,
    constrain_datetime_format,
    constrain_digits,
    constrain_string_length,
    constrain_string_with_regex_exact,
    constrain_value,
    constrain_value_domains,
    constrain_value_lower_bound,
    constrain_value_upper_bound,
    forbid_substrings,
    match_any,
)
from .conversions import DateTimeFormatRegistry
from .exceptions import InvalidArgumentError, SchemaConfigurationError
from .schema import NO_DEFAULT, Field, Schema

logger = logging.getLogger(__name__)

FIELD_TYPES: dict[str, Any] = {
    "string": str,
    "integer": int,
    "float": float,
    "decimal": Decimal,
    "boolean": bool,
    "datetime": datetime,
    "date": date,
    "time": time,
    "object": dict,
    "array": list,
    "any": Any,
}


def resolve_type(type_name: str | None, element_type: str | None = None, field_name: str | None = None) -> Any:
    """Map a configured type name to a Python type.

    Raises:
        SchemaConfigurationError: If the name is unknown
    """
    key = (type_name or "any").lower()
    if key not in FIELD_TYPES:
        raise SchemaConfigurationError(f"Unknown field type: {type_name}", field_name)
    resolved = FIELD_TYPES[key]
    if element_type is not None:
        if resolved is not list:
            raise SchemaConfigurationError(
                f"element_type is only valid for array fields, not {type_name}", field_name
            )
        return list[resolve_type(element_type, field_name=field_name)]
    return resolved


class SchemaFactory(FactoryBase):
    """Factory for creating validation schemas from configuration.

    Configuration Options:
        name (str): Schema name
        strict (bool): Whether unknown fields are fatal (default: False)
        fields (list): List of field definitions

    Field Definition Options:
        name (str): Field name
        help (str): Help text (``description`` is accepted as an alias)
        type (str): string, integer, float, decimal, boolean, datetime, date,
            time, object, array or any (default: any)
        element_type (str): Element type for array fields
        required (bool): Whether field is required (default: True unless a
            default is given)
        default (any): Value inserted when the field is missing
        allow_null (bool): Downgrade a null required value to a warning
        constraints (list): List of constraint definitions

    Example Configuration:
        schemas:
          - name: server
            factory: dataknobs_crucible.factory.SchemaFactory
            strict: true
            fields:
              - name: port
                type: integer
                help: TCP port to listen on
                constraints:
                  - type: domains
                    domains: [[1024, 49151]]
              - name: host
                type: string
                help: Interface to bind
                default: localhost
                constraints:
                  - type: forbid_substrings
                    values: [" "]
    """

    def create(self, **config) -> Schema:
        """Create a Schema instance from configuration.

        Args:
            **config: Schema configuration

        Returns:
            Schema instance

        Raises:
            SchemaConfigurationError: If a field or constraint is misconfigured
        """
        name = config.get("name")
        strict = config.get("strict", False)

        logger.info(f"Creating schema: {name or 'unnamed'}")

        schema = Schema(name=name, strict=strict)
        schema.add_fields(self._build_field(field_config) for field_config in config.get("fields", []))
        return schema

    def _build_field(self, field_config: dict[str, Any]) -> Field:
        """Build a field from configuration."""
        field_name = field_config.get("name")
        has_default = "default" in field_config
        return Field(
            name=field_name,
            help_text=field_config.get("help", field_config.get("description")),
            value_type=resolve_type(field_config.get("type"), field_config.get("element_type"), field_name),
            required=field_config.get("required", not has_default),
            default=field_config["default"] if has_default else NO_DEFAULT,
            constraints=tuple(self._build_constraints(field_config.get("constraints", []), field_name)),
            allow_null=field_config.get("allow_null", False),
        )

    def _build_constraints(self, constraint_configs: list[dict[str, Any]], field_name: str | None) -> list[Constraint]:
        """Build constraint objects from configuration.

        Args:
            constraint_configs: List of constraint configurations
            field_name: Field the constraints belong to, for diagnostics

        Returns:
            List of Constraint objects
        """
        constraints: list[Constraint] = []
        for config in constraint_configs:
            constraint_type = str(config.get("type", "")).lower()
            try:
                constraints.append(self._build_constraint(constraint_type, config, field_name))
            except InvalidArgumentError as e:
                raise SchemaConfigurationError(
                    f"Invalid '{constraint_type}' constraint for field {field_name}: {e}", field_name
                ) from e
        return constraints

    def _build_constraint(self, constraint_type: str, config: dict[str, Any], field_name: str | None) -> Constraint:
        if constraint_type == "range":
            return constrain_value(config.get("min"), config.get("max"))

        elif constraint_type == "lower_bound":
            return constrain_value_lower_bound(config.get("min", config.get("value")))

        elif constraint_type == "upper_bound":
            return constrain_value_upper_bound(config.get("max", config.get("value")))

        elif constraint_type == "domains":
            return constrain_value_domains(*(tuple(domain) for domain in config.get("domains", [])))

        elif constraint_type == "allow_values":
            return allow_values(*config.get("values", []))

        elif constraint_type == "forbid_substrings":
            return forbid_substrings(*config.get("values", config.get("substrings", [])))

        elif constraint_type == "length":
            return constrain_string_length(config.get("min"), config.get("max"))

        elif constraint_type == "regex":
            patterns = config.get("patterns") or [config.get("pattern")]
            return constrain_string_with_regex_exact(*[p for p in patterns if p])

        elif constraint_type == "digits":
            return constrain_digits(config.get("max"))

        elif constraint_type == "datetime_format":
            return constrain_datetime_format(*config.get("formats", []))

        elif constraint_type == "count":
            return constrain_collection_count(config.get("min"), config.get("max"))

        elif constraint_type == "each" and "types" in config:
            return apply_constraints_by_type(*(
                (
                    resolve_type(branch.get("type"), field_name=field_name),
                    self._build_constraints(branch.get("constraints", []), field_name),
                )
                for branch in config["types"]
            ))

        elif constraint_type == "each":
            element_type = config.get("element_type")
            return apply_constraints(
                *self._build_constraints(config.get("constraints", []), field_name),
                element_type=resolve_type(element_type, field_name=field_name) if element_type else None,
            )

        elif constraint_type == "any":
            return match_any(*self._build_constraints(config.get("constraints", []), field_name))

        elif constraint_type == "all":
            return all_of(*self._build_constraints(config.get("constraints", []), field_name))

        elif constraint_type == "schema":
            # Recursive build for nested schemas
            return apply_schema(self.create(**config))

        raise SchemaConfigurationError(f"Unknown constraint type: {constraint_type}", field_name)


class DateTimeRegistryFactory(FactoryBase):
    """Factory for creating date/time format registries.

    Configuration Options:
        formats (list): ``strptime`` formats in priority order
        include_defaults (bool): Start from the built-in formats (default: True)
        iso_fallback (bool): Fall back to ISO 8601 parsing (default: True)
    """

    def create(self, **config) -> DateTimeFormatRegistry:
        """Create a DateTimeFormatRegistry instance.

        Args:
            **config: Registry configuration

        Returns:
            DateTimeFormatRegistry instance
        """
        formats = config.get("formats", [])
        logger.info(f"Creating date/time registry with {len(formats)} configured format(s)")

        registry = DateTimeFormatRegistry(
            None if config.get("include_defaults", True) else [],
            iso_fallback=config.get("iso_fallback", True),
        )
        for fmt in formats:
            registry.register_format(fmt)
        return registry


# Create singleton instances for registration
schema_factory = SchemaFactory()
datetime_registry_factory = DateTimeRegistryFactory()


def load_schema(source: str | Path | dict, name: str | int = 0) -> Schema:
    """Build a schema declared under the ``schemas`` type of a configuration.

    Args:
        source: Path to a YAML or JSON configuration file, or its parsed content
        name: Name or index of the schema entry

    Returns:
        Schema instance. An entry without a ``name`` stays unnamed rather
        than taking the positional name ``Config`` assigns to it.
    """
    config = Config(source)
    schema_config = config.get("schemas", name)
    schema_config.pop("factory", None)
    index = name if isinstance(name, int) else config.get_names("schemas").index(name)
    if index < 0:
        index += config.get_count("schemas")
    if schema_config.get("name") == str(index):
        schema_config.pop("name")
    return schema_factory.create(**schema_config)
