"""JSON Schema validation utilities for tool parameters.

Tool parameters are translated into a JSON Schema and checked with
``jsonschema``. Failures are reported one entry per offending field as
``"<path>: <reason>"``, with nested paths joined by dots.
"""

from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from jsonschema import Draft7Validator, ValidationError

from shared.errors import ArgumentValidationError
from shared.models import AdditionalPropertiesSchema, ParameterSchema, ParameterType, TypeSchema

TYPE_MAPPING = {
    ParameterType.STRING: "string",
    ParameterType.INTEGER: "integer",
    ParameterType.FLOAT: "number",
    ParameterType.BOOLEAN: "boolean",
    ParameterType.ARRAY: "array",
    ParameterType.OBJECT: "object",
}


def _type_schema(schema: TypeSchema) -> dict[str, Any]:
    """Translate a single type description, recursing into arrays."""
    result: dict[str, Any] = {"type": TYPE_MAPPING[schema.type]}

    if schema.type == ParameterType.ARRAY and schema.items is not None:
        result["items"] = _type_schema(schema.items)
    elif schema.type == ParameterType.OBJECT:
        additional = schema.additional_properties
        if isinstance(additional, AdditionalPropertiesSchema):
            result["additionalProperties"] = {"type": TYPE_MAPPING[additional.type]}
        else:
            result["additionalProperties"] = additional is not False

    return result


def create_tool_schema(parameters: Iterable[ParameterSchema]) -> dict[str, Any]:
    """
    Create a JSON Schema from a list of parameter definitions.

    Auth-only parameters are skipped; their values come from auth claims
    on the server. Optional parameters also accept ``null``.

    Args:
        parameters: Parameter definitions in declaration order

    Returns:
        JSON Schema dictionary
    """
    properties: dict[str, Any] = {}
    required: list[str] = []

    for param in parameters:
        if param.is_auth_param:
            continue

        param_schema = _type_schema(param)
        if param.description:
            param_schema["description"] = param.description

        if param.required:
            required.append(param.name)
        else:
            param_schema["type"] = [param_schema["type"], "null"]

        properties[param.name] = param_schema

    return {
        "type": "object",
        "properties": properties,
        "required": required,
    }


def _received_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _expected_type(validator_value: Any) -> str:
    if isinstance(validator_value, list):
        return " or ".join(t for t in validator_value if t != "null")
    return str(validator_value)


def _format_path(path: Iterable[Any]) -> str:
    return ".".join(str(p) for p in path) or "payload"


def _error_entries(error: ValidationError) -> Iterator[tuple[str, str]]:
    """Yield ``(path, reason)`` pairs for one jsonschema error."""
    path = list(error.absolute_path)

    if error.validator == "required":
        instance = error.instance if isinstance(error.instance, dict) else {}
        for name in error.validator_value:
            if name not in instance:
                yield _format_path([*path, name]), "Required"
    elif error.validator == "additionalProperties":
        declared = error.schema.get("properties", {})
        for key in error.instance:
            if key not in declared:
                yield _format_path([*path, key]), "Unrecognized key"
    elif error.validator == "type":
        expected = _expected_type(error.validator_value)
        received = _received_type(error.instance)
        yield _format_path(path), f"Expected {expected}, received {received}"
    else:
        yield _format_path(path), error.message


def _path_sort_key(path: str) -> list[tuple[int, int, str]]:
    # Array indexes compare numerically: tags.2 before tags.10.
    return [(0, int(part), "") if part.isdigit() else (1, 0, part) for part in path.split(".")]


def _collect_messages(validator: Draft7Validator, data: Any) -> list[str]:
    # One entry per path; required errors repeat for every missing key.
    reasons: dict[str, str] = {}
    for error in validator.iter_errors(data):
        for path, reason in _error_entries(error):
            reasons.setdefault(path, reason)

    return [f"{path}: {reasons[path]}" for path in sorted(reasons, key=_path_sort_key)]


class ParameterValidator:
    """
    Structural validator for a tool's user-supplied arguments.

    Built once per tool; ``validate`` either returns the normalized payload
    (declared keys only) or raises ``ArgumentValidationError``.
    """

    def __init__(self, parameters: Iterable[ParameterSchema], tool_name: str = "") -> None:
        self.parameters = [p for p in parameters if not p.is_auth_param]
        self.tool_name = tool_name
        self.schema = create_tool_schema(self.parameters)
        self._validator = Draft7Validator(self.schema)

    def validate(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        """
        Validate a candidate argument object.

        Args:
            payload: Arguments keyed by parameter name

        Returns:
            Payload restricted to the declared parameters

        Raises:
            ArgumentValidationError: If any field is missing or mistyped
        """
        messages = _collect_messages(self._validator, dict(payload))
        if messages:
            target = f' for tool "{self.tool_name}"' if self.tool_name else ""
            raise ArgumentValidationError(
                f"Argument validation failed{target}:\n - " + "\n - ".join(messages),
                messages,
            )

        return {p.name: payload[p.name] for p in self.parameters if p.name in payload}
