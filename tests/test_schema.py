"""Tests for fields, schemas and the validation algorithm."""

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType, SimpleNamespace

import pytest

from dataknobs_crucible import (
    Field,
    JsonTranslator,
    MappingTranslator,
    RecordTranslator,
    Schema,
    SchemaConfigurationError,
    SchemaValidationError,
    Severity,
    apply_schema,
    constrain_datetime_format,
    constrain_string_length,
    constrain_value,
    forbid_substrings,
)


@dataclass
class ServerConfig:
    name: str
    port: int
    tags: list[str] = field(default_factory=list)


@dataclass
class Database:
    host: str
    port: int = 5432


@dataclass
class Application:
    name: str
    database: Database


class TestField:
    """Test field construction invariants."""

    @pytest.mark.parametrize("name", ["", "   ", None])
    def test_name_required(self, name):
        with pytest.raises(SchemaConfigurationError):
            Field(name, "Help text")

    @pytest.mark.parametrize("help_text", ["", "  ", None])
    def test_help_text_required(self, help_text):
        with pytest.raises(SchemaConfigurationError):
            Field("port", help_text)

    def test_required_field_cannot_have_default(self):
        with pytest.raises(SchemaConfigurationError):
            Field("port", "TCP port", int, required=True, default=8080)

    def test_optional_field_with_default(self):
        port = Field("port", "TCP port", int, required=False, default=8080)
        assert port.has_default
        assert not Field("port", "TCP port", int, required=False).has_default

    def test_none_is_a_valid_default(self):
        assert Field("port", "TCP port", required=False, default=None).has_default

    def test_constraints_must_be_constraints(self):
        with pytest.raises(SchemaConfigurationError):
            Field("port", "TCP port", int, constraints=(lambda v: True,))

    def test_constraints_stored_as_tuple(self):
        port = Field("port", "TCP port", int, constraints=[constrain_value(1, 2)])
        assert isinstance(port.constraints, tuple)


class TestSchemaDefinition:
    """Test schema field management."""

    @pytest.fixture
    def schema(self):
        return Schema([
            Field("host", "Host name", str),
            Field("port", "TCP port", int, required=False, default=80),
        ], name="server")

    def test_fields_in_insertion_order(self, schema):
        assert schema.field_names == ["host", "port"]
        assert [f.name for f in schema] == ["host", "port"]
        assert len(schema) == 2
        assert "host" in schema
        assert "missing" not in schema
        assert schema.get_field("port").default == 80
        assert schema.get_field("missing") is None

    def test_duplicate_rejected(self, schema):
        with pytest.raises(SchemaConfigurationError):
            schema.add_field(Field("host", "Another host"))

    def test_add_fields_is_atomic(self, schema):
        """A batch containing a duplicate adds nothing."""
        with pytest.raises(SchemaConfigurationError):
            schema.add_fields([Field("timeout", "Timeout"), Field("port", "Port again")])
        assert "timeout" not in schema

    def test_duplicate_within_batch_rejected(self):
        with pytest.raises(SchemaConfigurationError):
            Schema([Field("a", "A"), Field("a", "A again")])

    def test_fluent_field(self):
        schema = Schema().field("host", "Host name", str).field("port", "TCP port", int)
        assert schema.field_names == ["host", "port"]

    def test_remove_fields(self, schema):
        schema.remove_field("port")
        assert schema.field_names == ["host"]
        with pytest.raises(SchemaConfigurationError):
            schema.remove_fields(["host", "missing"])
        assert "host" in schema

    def test_clone_is_independent(self, schema):
        copy = schema.clone()
        copy.remove_field("host")
        assert "host" in schema
        assert copy.name == "server"
        assert copy.strict == schema.strict

    def test_generate_empty_config(self, schema):
        assert schema.generate_empty_config() == {
            "host": "Host name",
            "port": "Optional - TCP port",
        }


class TestValidation:
    """Test the per-field validation algorithm."""

    def test_missing_required_field(self):
        """Omitting a required field gives exactly one FATAL error naming it."""
        schema = Schema([Field("port", "TCP port to listen on", int)])
        result = schema.validate({})
        assert len(result) == 1
        error = result.errors[0]
        assert error.severity is Severity.FATAL
        assert error.field_name == "port"
        assert "port" in error.message
        assert "TCP port to listen on" in error.message
        assert not result.valid

    def test_default_inserted(self):
        """An absent optional field with a default is written to the collection."""
        schema = Schema([
            Field("retries", "Retry count", int, required=False, default=3, constraints=(constrain_value(0, 10),)),
        ])
        config = {}
        result = schema.validate(config)
        assert result.valid
        assert len(result) == 0
        assert config == {"retries": 3}
        assert result.value is config

    def test_default_is_copied(self):
        schema = Schema([Field("tags", "Tags", list, required=False, default=["a"])])
        first, second = {}, {}
        schema.validate(first, MappingTranslator())
        schema.validate(second, MappingTranslator())
        first["tags"].append("b")
        assert second["tags"] == ["a"]

    def test_default_inserted_into_plain_object(self):
        schema = Schema([Field("retries", "Retry count", int, required=False, default=3)])
        config = SimpleNamespace(name="api")
        assert schema.validate(config).valid
        assert config.retries == 3

    def test_default_insert_failure_is_fatal(self):
        schema = Schema([Field("retries", "Retry count", int, required=False, default=3)])
        result = schema.validate(MappingProxyType({}), MappingTranslator())
        assert len(result.fatal) == 1
        assert "retries" in result.fatal[0].message

    def test_optional_without_default_skipped(self):
        schema = Schema([Field("retries", "Retry count", int, required=False)])
        config = {}
        assert len(schema.validate(config)) == 0
        assert config == {}

    def test_revalidation_is_idempotent(self):
        schema = Schema([
            Field("port", "TCP port", int, constraints=(constrain_value(1024, 65535),)),
            Field("retries", "Retry count", int, required=False, default=3),
        ])
        config = {"port": 80}
        first = schema.validate(config)
        second = schema.validate(config)
        assert [(e.message, e.severity) for e in first] == [(e.message, e.severity) for e in second]
        assert config == {"port": 80, "retries": 3}

    def test_required_null_is_fatal(self):
        schema = Schema([Field("host", "Host name", str)])
        for value in (None, "", "  "):
            result = schema.validate({"host": value})
            assert len(result) == 1
            assert result.errors[0].severity is Severity.FATAL

    def test_allow_null_downgrades_to_warning(self):
        schema = Schema([Field("host", "Host name", str, allow_null=True, constraints=(forbid_substrings(" "),))])
        result = schema.validate({"host": ""})
        assert result.valid
        assert [e.severity for e in result] == [Severity.WARNING]

    def test_optional_null_skipped(self):
        schema = Schema([Field("host", "Host name", str, required=False, constraints=(constrain_string_length(3),))])
        assert len(schema.validate({"host": None})) == 0

    def test_cast_failure(self):
        schema = Schema([Field("port", "TCP port", int, constraints=(constrain_value(1, 2),))])
        result = schema.validate({"port": "I'm still a string!"})
        assert len(result) == 1
        message = result.errors[0].message
        assert "port" in message
        assert "I'm still a string!" in message
        assert "Json Number" in message

    def test_cast_value_reaches_constraints(self):
        schema = Schema([Field("port", "TCP port", int, constraints=(constrain_value(50, 60),))])
        assert schema.validate({"port": "57"}).valid

    def test_constraints_do_not_short_circuit(self):
        schema = Schema([Field("path", "Path", str, constraints=(
            constrain_string_length(upper_bound=3),
            forbid_substrings(".."),
        ))])
        result = schema.validate({"path": "../etc"})
        assert len(result.fatal) == 2

    def test_format_constraint_sees_raw_text(self):
        schema = Schema([Field("started", "Start date", datetime, constraints=(constrain_datetime_format("%Y-%m-%d"),))])
        assert schema.validate({"started": "2024-01-15"}).valid
        result = schema.validate({"started": "01/15/2024"})
        assert len(result.fatal) == 1
        assert "01/15/2024" in result.fatal[0].message

    def test_every_field_processed(self):
        schema = Schema([Field("a", "A", int), Field("b", "B", int), Field("c", "C", int)])
        result = schema.validate({"b": "x"})
        assert [e.field_name for e in result] == ["a", "b", "c"]

    def test_unreadable_collection(self):
        result = Schema([Field("a", "A")]).validate(42)
        assert len(result.fatal) == 1

    def test_validation_result_raises_on_request(self):
        schema = Schema([Field("port", "TCP port", int)], name="server")
        with pytest.raises(SchemaValidationError) as exc_info:
            schema.validate({}).raise_for_fatal()
        assert exc_info.value.schema_name == "server"

    def test_validate_many(self):
        schema = Schema([Field("port", "TCP port", int)])
        results = schema.validate_many([{"port": 1}, {}, {"port": 2}])
        assert [r.valid for r in results] == [True, False, True]
        results = schema.validate_many([{"port": 1}, {}, {"port": 2}], stop_on_error=True)
        assert len(results) == 2


class TestStrictMode:
    """Test reporting of unrecognized fields."""

    def test_unrecognized_fields_ignored_by_default(self):
        schema = Schema([Field("port", "TCP port", int)])
        assert schema.validate({"port": 1, "prot": 2}).valid

    def test_unrecognized_fields_fatal_when_strict(self):
        schema = Schema([Field("port", "TCP port", int)], strict=True)
        result = schema.validate({"port": 1, "prot": 2})
        assert len(result) == 1
        assert result.errors[0].field_name == "prot"
        assert "Unrecognized field prot" in result.errors[0].message


class TestNamedAndNestedValidation:
    """Test name-qualified diagnostics and nested schemas."""

    @pytest.fixture
    def database(self):
        return Schema([
            Field("host", "Database host", str),
            Field("port", "Database port", int, required=False, default=5432),
        ], name="database")

    def test_named_validation_adds_info(self):
        schema = Schema([Field("port", "TCP port", int)])
        result = schema.validate({}, name="server")
        assert [e.field_name for e in result] == ["server.port", "server"]
        assert result.errors[-1].severity is Severity.INFO
        assert result.errors[-1].message == "Validation for server failed."

    def test_named_validation_without_fatal_adds_nothing(self):
        schema = Schema([Field("port", "TCP port", int)])
        assert len(schema.validate({"port": 1}, name="server")) == 0

    def test_nested_missing_field_names_both(self, database):
        """A nested schema failure identifies the outer and inner field."""
        schema = Schema([Field("database", "Database settings", dict, constraints=(apply_schema(database),))])
        result = schema.validate({"database": {"port": 5432}})
        assert not result.valid
        fatal = result.fatal
        assert len(fatal) == 1
        assert fatal[0].field_name == "database.host"
        assert "database.host" in fatal[0].message
        assert [e.message for e in result.for_field("database")][-1] == "Validation for database failed."

    def test_nested_defaults_written_into_json_tree(self, database):
        schema = Schema([Field("database", "Database settings", dict, constraints=(apply_schema(database),))])
        config = {"database": {"host": "db"}}
        assert schema.validate(config).valid
        assert config["database"]["port"] == 5432

    def test_nested_record(self, database):
        schema = Schema([
            Field("name", "Application name", str),
            Field("database", "Database settings", Database, constraints=(apply_schema(database),)),
        ])
        assert schema.validate(Application("api", Database("db"))).valid
        result = schema.validate(Application("api", Database("")))
        assert [e.field_name for e in result.fatal] == ["database.host"]

    def test_deeply_nested_names(self, database):
        middle = Schema([Field("database", "Database", dict, constraints=(apply_schema(database),))])
        outer = Schema([Field("app", "Application", dict, constraints=(apply_schema(middle),))])
        result = outer.validate({"app": {"database": {"port": 1}}})
        assert [e.field_name for e in result.fatal] == ["app.database.host"]


class TestTranslatorParity:
    """The same logical data yields the same errors in every representation."""

    GOOD = {"name": "api", "port": 8080, "tags": ["web"]}
    BAD = {"name": "", "port": 99999, "tags": []}

    @staticmethod
    def summarize(result):
        return [(e.field_name, e.severity, e.message) for e in result]

    def test_valid_data(self, server_schema):
        assert server_schema.validate(dict(self.GOOD), JsonTranslator()).valid
        assert server_schema.validate(dict(self.GOOD), MappingTranslator()).valid
        assert server_schema.validate(ServerConfig(**self.GOOD), RecordTranslator()).valid

    def test_invalid_data(self, server_schema):
        json_result = server_schema.validate(dict(self.BAD), JsonTranslator())
        mapping_result = server_schema.validate(dict(self.BAD), MappingTranslator())
        record_result = server_schema.validate(ServerConfig(**self.BAD), RecordTranslator())

        assert len(json_result.fatal) == 3
        assert self.summarize(json_result) == self.summarize(mapping_result) == self.summarize(record_result)

    def test_string_values_cast_alike(self, server_schema):
        data = {"name": "api", "port": "8080", "tags": ["web"]}
        assert server_schema.validate(dict(data), JsonTranslator()).valid
        assert server_schema.validate(dict(data), MappingTranslator()).valid
        assert server_schema.validate(SimpleNamespace(**data), RecordTranslator()).valid
