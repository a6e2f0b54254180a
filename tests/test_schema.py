"""Tests for manifest models and parameter validation."""

import pytest
from pydantic import ValidationError

from shared.errors import ArgumentValidationError
from shared.models import (
    AdditionalPropertiesSchema,
    ManifestSchema,
    ParameterSchema,
    ParameterType,
    ToolSchema,
)
from shared.schema import ParameterValidator, create_tool_schema


def make_param(name: str, type: str = "string", **kwargs) -> ParameterSchema:
    return ParameterSchema.model_validate({"name": name, "type": type, **kwargs})


class TestManifestModels:
    """Tests for manifest parsing."""

    def test_parse_camel_case_manifest(self):
        """Test parsing a manifest in wire format."""
        manifest = ManifestSchema.model_validate({
            "serverVersion": "1.0.0",
            "tools": {
                "search": {
                    "description": "Search things",
                    "parameters": [
                        {"name": "query", "type": "string", "description": "Query"},
                        {"name": "user", "type": "string", "authSources": ["google"]},
                    ],
                    "authRequired": ["google"],
                }
            },
        })

        tool = manifest.tools["search"]
        assert manifest.server_version == "1.0.0"
        assert tool.auth_required == ["google"]
        assert tool.parameters[0].required is True
        assert not tool.parameters[0].is_auth_param
        assert tool.parameters[1].is_auth_param

    def test_auth_required_null_becomes_empty(self):
        """Test that a null authRequired is treated as no requirement."""
        tool = ToolSchema.model_validate({"description": "d", "parameters": [], "authRequired": None})
        assert tool.auth_required == []

    def test_array_requires_items(self):
        """Test that array parameters must declare items."""
        with pytest.raises(ValidationError, match="items"):
            make_param("tags", "array")

    def test_empty_parameter_name_rejected(self):
        """Test that parameter names must be non-empty."""
        with pytest.raises(ValidationError):
            make_param("")

    def test_empty_server_version_rejected(self):
        """Test that the server version is mandatory."""
        with pytest.raises(ValidationError):
            ManifestSchema.model_validate({"serverVersion": "", "tools": {}})

    def test_empty_tool_name_rejected(self):
        """Test that tool names must be non-empty."""
        with pytest.raises(ValidationError, match="non-empty"):
            ManifestSchema.model_validate({
                "serverVersion": "1",
                "tools": {"": {"description": "x", "parameters": []}},
            })

    def test_additional_properties_must_be_primitive(self):
        """Test that additionalProperties only accepts primitive types."""
        with pytest.raises(ValidationError, match="primitive"):
            AdditionalPropertiesSchema(type=ParameterType.ARRAY)

    def test_unknown_type_rejected(self):
        """Test that unknown parameter types are rejected."""
        with pytest.raises(ValidationError):
            make_param("x", "date")


class TestCreateToolSchema:
    """Tests for JSON Schema generation."""

    def test_basic_schema(self):
        """Test schema for primitive parameters."""
        schema = create_tool_schema([
            make_param("name", description="A name"),
            make_param("count", "integer"),
            make_param("ratio", "float", required=False),
        ])

        assert schema["required"] == ["name", "count"]
        assert schema["properties"]["name"] == {"type": "string", "description": "A name"}
        assert schema["properties"]["count"] == {"type": "integer"}
        assert schema["properties"]["ratio"] == {"type": ["number", "null"]}

    def test_auth_params_skipped(self):
        """Test that auth-only parameters never reach the schema."""
        schema = create_tool_schema([
            make_param("query"),
            make_param("email", authSources=["google"]),
        ])

        assert list(schema["properties"]) == ["query"]
        assert schema["required"] == ["query"]

    def test_nested_array_and_object(self):
        """Test schema for nested arrays and typed objects."""
        schema = create_tool_schema([
            make_param("matrix", "array", items={"type": "array", "items": {"type": "integer"}}),
            make_param("labels", "object", additionalProperties={"type": "string"}),
            make_param("closed", "object", additionalProperties=False),
            make_param("open", "object"),
        ])

        props = schema["properties"]
        assert props["matrix"]["items"] == {"type": "array", "items": {"type": "integer"}}
        assert props["labels"]["additionalProperties"] == {"type": "string"}
        assert props["closed"]["additionalProperties"] is False
        assert props["open"]["additionalProperties"] is True


class TestParameterValidator:
    """Tests for argument validation."""

    @pytest.fixture
    def validator(self):
        return ParameterValidator(
            [
                make_param("name"),
                make_param("age", "integer"),
                make_param("score", "float", required=False),
                make_param("tags", "array", items={"type": "string"}, required=False),
                make_param("meta", "object", additionalProperties={"type": "integer"}, required=False),
            ],
            tool_name="profile",
        )

    def test_valid_payload(self, validator):
        """Test that a valid payload passes unchanged."""
        payload = validator.validate({"name": "Ada", "age": 36, "tags": ["x"], "meta": {"a": 1}})
        assert payload == {"name": "Ada", "age": 36, "tags": ["x"], "meta": {"a": 1}}

    def test_optional_accepts_null(self, validator):
        """Test that optional parameters accept null."""
        assert validator.validate({"name": "Ada", "age": 1, "score": None})["score"] is None

    def test_float_accepts_integer(self, validator):
        """Test that float parameters accept whole numbers."""
        assert validator.validate({"name": "Ada", "age": 1, "score": 3})["score"] == 3

    def test_unknown_keys_stripped(self, validator):
        """Test that undeclared top-level keys are dropped."""
        payload = validator.validate({"name": "Ada", "age": 1, "extra": True})
        assert "extra" not in payload

    def test_missing_required(self, validator):
        """Test that missing required fields are reported."""
        with pytest.raises(ArgumentValidationError) as exc_info:
            validator.validate({"name": "Ada"})

        assert exc_info.value.errors == ["age: Required"]
        assert 'for tool "profile"' in str(exc_info.value)

    def test_wrong_type(self, validator):
        """Test the type mismatch message."""
        with pytest.raises(ArgumentValidationError) as exc_info:
            validator.validate({"name": 5, "age": "old"})

        assert exc_info.value.errors == [
            "age: Expected integer, received string",
            "name: Expected string, received number",
        ]

    def test_boolean_is_not_integer(self, validator):
        """Test that booleans are rejected for integer parameters."""
        with pytest.raises(ArgumentValidationError, match="age: Expected integer, received boolean"):
            validator.validate({"name": "Ada", "age": True})

    def test_nested_paths(self, validator):
        """Test that nested failures carry dotted paths."""
        with pytest.raises(ArgumentValidationError) as exc_info:
            validator.validate({"name": "Ada", "age": 1, "tags": ["ok", 2], "meta": {"a": "x"}})

        assert exc_info.value.errors == [
            "meta.a: Expected integer, received string",
            "tags.1: Expected string, received number",
        ]

    def test_array_indexes_ordered_numerically(self, validator):
        """Test that entries for array elements follow index order."""
        tags = ["ok"] * 12
        tags[2] = 2
        tags[10] = 10

        with pytest.raises(ArgumentValidationError) as exc_info:
            validator.validate({"name": "Ada", "age": 1, "tags": tags})

        assert exc_info.value.errors == [
            "tags.2: Expected string, received number",
            "tags.10: Expected string, received number",
        ]

    def test_one_entry_per_field(self, validator):
        """Test that every offending field yields exactly one entry."""
        with pytest.raises(ArgumentValidationError) as exc_info:
            validator.validate({})

        assert exc_info.value.errors == ["age: Required", "name: Required"]

    def test_closed_object_rejects_unknown_keys(self):
        """Test that additionalProperties false rejects undeclared keys."""
        validator = ParameterValidator([make_param("opts", "object", additionalProperties=False)])

        with pytest.raises(ArgumentValidationError) as exc_info:
            validator.validate({"opts": {"a": 1}})

        assert exc_info.value.errors == ["opts.a: Unrecognized key"]

    def test_auth_params_ignored(self):
        """Test that auth parameters are never required from the caller."""
        validator = ParameterValidator([make_param("email", authSources=["google"])])
        assert validator.validate({}) == {}
        assert validator.parameters == []
