"""Minimal JSON-schema validation for handoff payloads."""

from __future__ import annotations

import json
from typing import Any, Mapping


class SchemaValidationError(ValueError):
    pass


def validate_json(payload: str, schema: Mapping[str, Any] | None) -> dict[str, Any] | None:
    """
    Validate a raw JSON payload against a small subset of JSON schema.
    Only `required` and top-level `properties.*.type` are checked.
    Returns the parsed object, or None when there is no schema to check.
    """
    if not schema:
        return None

    try:
        data = json.loads(payload or "{}")
    except json.JSONDecodeError as exc:
        raise SchemaValidationError(f"failed to parse JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise SchemaValidationError("failed to parse JSON: expected an object")

    validate_data(data, schema)
    return data


def validate_data(data: Mapping[str, Any], schema: Mapping[str, Any]) -> None:
    required = schema.get("required")
    if isinstance(required, (list, tuple)):
        for field in required:
            if field not in data:
                raise SchemaValidationError(f"missing required field: {field}")

    properties = schema.get("properties")
    if not isinstance(properties, Mapping):
        return
    for field, value in data.items():
        field_schema = properties.get(field)
        if not isinstance(field_schema, Mapping):
            continue
        expected = field_schema.get("type")
        if not isinstance(expected, str):
            continue
        if not is_valid_type(value, expected):
            raise SchemaValidationError(f"invalid type for field {field}: expected {expected}")


def is_valid_type(value: Any, expected: str) -> bool:
    # bool is an int subclass; JSON keeps them apart.
    if expected == "string":
        return isinstance(value, str)
    if expected == "number":
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if expected == "integer":
        if isinstance(value, bool):
            return False
        return isinstance(value, int) or (isinstance(value, float) and value.is_integer())
    if expected == "boolean":
        return isinstance(value, bool)
    if expected == "array":
        return isinstance(value, list)
    if expected == "object":
        return isinstance(value, dict)
    if expected == "null":
        return value is None
    return True
