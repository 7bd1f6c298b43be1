"""DataKnobs Crucible package.

Declarative validation of configuration data. A ``Schema`` of typed
``Field``s, each carrying composable ``Constraint``s, validates the same
logical data whether it is held as a parsed JSON tree, a Python mapping or
a plain record, and reports every problem as a severity-ranked ``Error``
instead of stopping at the first one.

Example:
    ```python
    from dataknobs_crucible import Field, Schema, constrain_value_domains

    schema = Schema([
        Field("port", "TCP port to listen on", int,
              constraints=(constrain_value_domains((1024, 49151)),)),
        Field("host", "Interface to bind", str, required=False, default="localhost"),
    ])
    result = schema.validate({"port": "8080"})
    assert result.valid
    ```
"""

from .constraints import (
    Constraint,
    ConstraintKind,
    ValidationContext,
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
    custom,
    forbid_substrings,
    match_any,
)
from .conversions import (
    DateTimeFormatRegistry,
    NamedValue,
    cast_value,
    equivalent_json_type,
    get_default_registry,
    register_datetime_format,
)
from .exceptions import (
    CrucibleError,
    InvalidArgumentError,
    SchemaConfigurationError,
    SchemaValidationError,
    UnsupportedOperationError,
)
from .factory import (
    DateTimeRegistryFactory,
    SchemaFactory,
    datetime_registry_factory,
    load_schema,
    schema_factory,
)
from .result import Error, Severity, ValidationResult, any_fatal
from .schema import NO_DEFAULT, Field, Schema
from .translators import JsonTranslator, MappingTranslator, RecordTranslator, Translator, translator_for

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Results
    "Error",
    "Severity",
    "ValidationResult",
    "any_fatal",
    # Exceptions
    "CrucibleError",
    "InvalidArgumentError",
    "SchemaConfigurationError",
    "SchemaValidationError",
    "UnsupportedOperationError",
    # Schema
    "Field",
    "Schema",
    "NO_DEFAULT",
    # Constraints
    "Constraint",
    "ConstraintKind",
    "ValidationContext",
    "all_of",
    "allow_values",
    "apply_constraints",
    "apply_constraints_by_type",
    "apply_schema",
    "constrain_collection_count",
    "constrain_datetime_format",
    "constrain_digits",
    "constrain_string_length",
    "constrain_string_with_regex_exact",
    "constrain_value",
    "constrain_value_domains",
    "constrain_value_lower_bound",
    "constrain_value_upper_bound",
    "custom",
    "forbid_substrings",
    "match_any",
    # Translators
    "Translator",
    "JsonTranslator",
    "MappingTranslator",
    "RecordTranslator",
    "translator_for",
    # Conversions
    "DateTimeFormatRegistry",
    "NamedValue",
    "cast_value",
    "equivalent_json_type",
    "get_default_registry",
    "register_datetime_format",
    # Factories
    "SchemaFactory",
    "DateTimeRegistryFactory",
    "schema_factory",
    "datetime_registry_factory",
    "load_schema",
]
