"""Tests for building schemas and registries from configuration."""

from datetime import datetime
from typing import Any

import pytest
import yaml
from dataknobs_config import Config

from dataknobs_crucible import (
    DateTimeFormatRegistry,
    DateTimeRegistryFactory,
    Schema,
    SchemaConfigurationError,
    SchemaFactory,
    Severity,
    load_schema,
    schema_factory,
)
from dataknobs_crucible.conversions import DEFAULT_DATETIME_FORMATS
from dataknobs_crucible.factory import resolve_type

SERVER_CONFIG = {
    "name": "server",
    "strict": True,
    "fields": [
        {
            "name": "port",
            "type": "integer",
            "help": "TCP port to listen on",
            "constraints": [
                {"type": "domains", "domains": [[1024, 49151]]},
            ],
        },
        {
            "name": "host",
            "type": "string",
            "description": "Interface to bind",
            "default": "localhost",
            "constraints": [
                {"type": "forbid_substrings", "values": [" "]},
                {"type": "length", "max": 64},
            ],
        },
        {
            "name": "level",
            "type": "string",
            "help": "Log level",
            "required": False,
            "constraints": [
                {"type": "allow_values", "values": ["debug", "info", "warning"]},
            ],
        },
    ],
}


class TestResolveType:
    """Test configured type names."""

    def test_known_types(self):
        assert resolve_type("integer") is int
        assert resolve_type("STRING") is str
        assert resolve_type("datetime") is datetime
        assert resolve_type(None) is Any

    def test_array_element_type(self):
        assert resolve_type("array", "integer") == list[int]

    def test_unknown_type(self):
        with pytest.raises(SchemaConfigurationError):
            resolve_type("complex")

    def test_element_type_needs_array(self):
        with pytest.raises(SchemaConfigurationError):
            resolve_type("string", "integer")


class TestSchemaFactory:
    """Test SchemaFactory.create."""

    def test_basic_schema(self):
        schema = SchemaFactory().create(**SERVER_CONFIG)

        assert isinstance(schema, Schema)
        assert schema.name == "server"
        assert schema.strict is True
        assert schema.field_names == ["port", "host", "level"]
        assert schema.get_field("port").required is True
        assert schema.get_field("host").required is False
        assert schema.get_field("host").default == "localhost"
        assert schema.get_field("host").help_text == "Interface to bind"
        assert schema.get_field("level").has_default is False

    def test_created_schema_validates(self):
        schema = schema_factory.create(**SERVER_CONFIG)

        config = {"port": "8080"}
        assert schema.validate(config).valid
        assert config["host"] == "localhost"

        result = schema.validate({"port": 80, "host": "my host", "level": "verbose", "extra": 1})
        assert len(result.fatal) == 4

    def test_composite_constraints(self):
        schema = schema_factory.create(fields=[
            {
                "name": "workers",
                "type": "integer",
                "help": "Worker count",
                "constraints": [{
                    "type": "any",
                    "constraints": [
                        {"type": "upper_bound", "max": 3},
                        {"type": "range", "min": 5, "max": 10},
                        {"type": "lower_bound", "min": 12},
                    ],
                }],
            },
        ])
        assert schema.validate({"workers": 5}).valid
        result = schema.validate({"workers": 4})
        assert len(result) == 1
        assert result.errors[0].severity is Severity.FATAL

    def test_array_constraints(self):
        schema = schema_factory.create(fields=[
            {
                "name": "ports",
                "type": "array",
                "help": "Ports",
                "constraints": [
                    {"type": "count", "min": 1, "max": 3},
                    {
                        "type": "each",
                        "element_type": "integer",
                        "constraints": [{"type": "lower_bound", "value": 1024}],
                    },
                ],
            },
        ])
        assert schema.validate({"ports": ["8080", 9090]}).valid
        result = schema.validate({"ports": [80, "x"]})
        assert [e.field_name for e in result] == ["ports[0]", "ports[1]"]

    def test_per_type_array_constraints(self):
        schema = schema_factory.create(fields=[
            {
                "name": "limits",
                "type": "array",
                "help": "Limits",
                "constraints": [{
                    "type": "each",
                    "types": [
                        {"type": "integer", "constraints": [{"type": "range", "min": 1, "max": 10}]},
                        {"type": "string", "constraints": [{"type": "allow_values", "values": ["unlimited"]}]},
                    ],
                }],
            },
        ])
        assert schema.validate({"limits": [5, "unlimited"]}).valid
        result = schema.validate({"limits": [50, "none"]})
        assert [e.field_name for e in result.fatal] == ["limits[0]", "limits[1]"]

    def test_nested_schema(self):
        schema = schema_factory.create(fields=[
            {
                "name": "database",
                "type": "object",
                "help": "Database settings",
                "constraints": [{
                    "type": "schema",
                    "name": "database",
                    "fields": [
                        {"name": "host", "type": "string", "help": "Database host"},
                        {"name": "port", "type": "integer", "help": "Database port", "default": 5432},
                    ],
                }],
            },
        ])
        config = {"database": {"host": "db"}}
        assert schema.validate(config).valid
        assert config["database"]["port"] == 5432
        result = schema.validate({"database": {"port": 1}})
        assert [e.field_name for e in result.fatal] == ["database.host"]

    def test_string_constraints(self):
        schema = schema_factory.create(fields=[
            {
                "name": "code",
                "type": "string",
                "help": "Code",
                "constraints": [{"type": "regex", "pattern": r"[A-Z]{3}\d{2}"}],
            },
            {
                "name": "price",
                "type": "decimal",
                "help": "Price",
                "constraints": [{"type": "digits", "max": 2}],
            },
            {
                "name": "started",
                "type": "datetime",
                "help": "Start date",
                "constraints": [{"type": "datetime_format", "formats": ["%Y-%m-%d"]}],
            },
        ])
        assert schema.validate({"code": "ABC12", "price": "9.99", "started": "2024-01-15"}).valid
        result = schema.validate({"code": "abc", "price": "9.999", "started": "01/15/2024"})
        assert [e.field_name for e in result.fatal] == ["code", "price", "started"]

    def test_all_constraint(self):
        schema = schema_factory.create(fields=[{
            "name": "n",
            "type": "integer",
            "help": "Number",
            "constraints": [{
                "type": "all",
                "constraints": [{"type": "lower_bound", "min": 10}, {"type": "upper_bound", "max": 5}],
            }],
        }])
        assert len(schema.validate({"n": 7}).fatal) == 2

    @pytest.mark.parametrize("constraint", [
        {"type": "bogus"},
        {"type": "range", "min": 10, "max": 1},
        {"type": "range", "max": 1},
        {"type": "domains", "domains": []},
        {"type": "any", "constraints": [{"type": "lower_bound", "min": 1}]},
        {"type": "regex", "pattern": "(unclosed"},
    ])
    def test_invalid_constraints(self, constraint):
        with pytest.raises(SchemaConfigurationError):
            schema_factory.create(fields=[{"name": "n", "help": "Number", "constraints": [constraint]}])

    @pytest.mark.parametrize("field_config", [
        {"help": "No name"},
        {"name": "n"},
        {"name": "n", "help": "Number", "type": "complex"},
        {"name": "n", "help": "Number", "required": True, "default": 1},
    ])
    def test_invalid_fields(self, field_config):
        with pytest.raises(SchemaConfigurationError):
            schema_factory.create(fields=[field_config])


class TestConfigIntegration:
    """Test building schemas through dataknobs_config."""

    def test_build_object(self):
        config = Config({
            "schemas": [dict(SERVER_CONFIG, factory="dataknobs_crucible.factory.SchemaFactory")],
        })
        schema = config.build_object("xref:schemas[server]")
        assert isinstance(schema, Schema)
        assert schema.field_names == ["port", "host", "level"]

    def test_load_schema_from_yaml(self, tmp_path):
        path = tmp_path / "schemas.yaml"
        path.write_text(yaml.safe_dump({"schemas": [SERVER_CONFIG]}))

        schema = load_schema(path, "server")
        assert schema.name == "server"
        assert schema.validate({"port": 8080}).valid

    def test_load_schema_from_dict(self):
        schema = load_schema({"schemas": [SERVER_CONFIG]})
        assert schema.strict is True

    def test_unnamed_entry_stays_unnamed(self):
        unnamed = {key: value for key, value in SERVER_CONFIG.items() if key != "name"}
        data = {"schemas": [unnamed, SERVER_CONFIG]}
        assert load_schema(data).name is None
        assert load_schema(data, 1).name == "server"
        assert load_schema(data, "server").name == "server"


class TestDateTimeRegistryFactory:
    """Test DateTimeRegistryFactory.create."""

    def test_extends_defaults(self):
        registry = DateTimeRegistryFactory().create(formats=["%d.%m.%Y"])
        assert isinstance(registry, DateTimeFormatRegistry)
        assert registry.formats == DEFAULT_DATETIME_FORMATS + ("%d.%m.%Y",)
        assert registry.parse("15.01.2024") == datetime(2024, 1, 15)

    def test_without_defaults(self):
        registry = DateTimeRegistryFactory().create(formats=["%d.%m.%Y"], include_defaults=False, iso_fallback=False)
        assert registry.formats == ("%d.%m.%Y",)
        assert registry.iso_fallback is False
        assert registry.parse("2024-01-15") is None
