"""Manifest data models for the Toolbox client.

These models describe the tool manifest exchanged with a Toolbox server,
ensuring every manifest is validated before tools are built from it.
Field aliases follow the camelCase wire format.
"""

from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ParameterType(str, Enum):
    """Types a tool parameter can declare."""
    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"


PRIMITIVE_TYPES = frozenset({
    ParameterType.STRING,
    ParameterType.INTEGER,
    ParameterType.FLOAT,
    ParameterType.BOOLEAN,
})


class AdditionalPropertiesSchema(BaseModel):
    """Primitive type every additional value of an object must satisfy."""
    type: ParameterType

    @field_validator("type")
    @classmethod
    def _must_be_primitive(cls, value: ParameterType) -> ParameterType:
        if value not in PRIMITIVE_TYPES:
            raise ValueError(f"additionalProperties type must be primitive, got '{value.value}'")
        return value


class TypeSchema(BaseModel):
    """
    Type description shared by parameters and array items.

    Arrays must declare ``items``. Objects may restrict their values via
    ``additionalProperties``: ``False`` rejects unknown keys, ``True`` or
    ``None`` accepts anything, a primitive schema validates each value.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    type: ParameterType
    items: Optional["TypeSchema"] = None
    additional_properties: Union[bool, AdditionalPropertiesSchema, None] = Field(
        default=None, alias="additionalProperties"
    )

    @model_validator(mode="after")
    def _check_items(self) -> "TypeSchema":
        if self.type == ParameterType.ARRAY and self.items is None:
            raise ValueError("array parameters must declare 'items'")
        return self


class ParameterSchema(TypeSchema):
    """Definition of a single tool parameter."""
    name: str = Field(..., min_length=1)
    description: str = ""
    required: bool = True
    auth_sources: Optional[list[str]] = Field(default=None, alias="authSources")

    @property
    def is_auth_param(self) -> bool:
        """Whether the value is filled server side from auth claims."""
        return bool(self.auth_sources)


class ToolSchema(BaseModel):
    """Schema of one tool as published in a manifest."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    description: str
    parameters: list[ParameterSchema] = Field(default_factory=list)
    auth_required: list[str] = Field(default_factory=list, alias="authRequired")

    @field_validator("auth_required", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class ManifestSchema(BaseModel):
    """
    Manifest returned by tool and toolset discovery.

    A manifest is parsed fresh on every discovery call and never cached.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    server_version: str = Field(..., min_length=1, alias="serverVersion")
    tools: dict[str, ToolSchema] = Field(default_factory=dict)

    @field_validator("tools")
    @classmethod
    def _names_not_empty(cls, value: dict[str, ToolSchema]) -> dict[str, ToolSchema]:
        if any(not name for name in value):
            raise ValueError("tool names must be non-empty")
        return value
