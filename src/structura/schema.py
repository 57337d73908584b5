"""Schema translation and validation.

Abstract schemas are Pydantic ``BaseModel`` subclasses. The wire form sent to
the provider is the model's JSON Schema with every object node closed.
"""

from __future__ import annotations

from copy import deepcopy
import json
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from structura.errors import ConfigurationError, StructuredOutputError

ModelT = TypeVar("ModelT", bound=BaseModel)

# Keys whose values are maps of name -> sub-schema rather than schemas.
_SCHEMA_MAP_KEYS = frozenset({"properties", "$defs", "definitions"})


def to_strict_schema(schema: dict[str, Any]) -> dict[str, Any]:
    """Normalize a JSON schema for strict structured-output requirements.

    Ensures that for all 'object' types:
    1. additionalProperties is False
    2. All defined properties are listed in 'required'

    Nested objects under ``properties``, ``$defs``, array ``items`` and
    ``anyOf``/``oneOf``/``allOf`` members are rewritten the same way. The input
    is not modified.
    """
    if not isinstance(schema, dict):
        raise ConfigurationError("Invalid response schema: expected object schema")

    def walk(node: Any) -> Any:
        if isinstance(node, list):
            return [walk(item) for item in node]
        if not isinstance(node, dict):
            return node

        updated: dict[str, Any] = {}
        for key, value in node.items():
            if key in _SCHEMA_MAP_KEYS and isinstance(value, dict):
                updated[key] = {name: walk(sub) for name, sub in value.items()}
            else:
                updated[key] = walk(value)

        if updated.get("type") == "object" or isinstance(
            updated.get("properties"), dict
        ):
            properties = updated.get("properties", {})
            updated["additionalProperties"] = False
            # Strict mode rejects optional keys; defaults still apply on validation.
            updated["required"] = list(properties.keys())

        return updated

    return walk(deepcopy(schema))


def to_wire_schema(schema: type[BaseModel]) -> dict[str, Any]:
    """Translate an abstract schema into the provider's wire JSON Schema."""
    if not (isinstance(schema, type) and issubclass(schema, BaseModel)):
        raise ConfigurationError(
            "response schema must be a Pydantic model class",
            hint="Subclass pydantic.BaseModel and pass the class itself.",
        )
    return to_strict_schema(schema.model_json_schema())


def describe_schema(schema: type[BaseModel]) -> str:
    """Return compact JSON text of the wire schema for in-band instructions."""
    return json.dumps(to_wire_schema(schema), separators=(",", ":"))


def validate_payload(schema: type[ModelT], text: str) -> ModelT:
    """Parse JSON *text* and validate it against *schema* without type coercion.

    Raises:
        StructuredOutputError: If the text is not JSON or the value does not
            conform.
    """
    try:
        return schema.model_validate_json(text, strict=True)
    except ValidationError as e:
        errors = e.errors(include_url=False)
        if errors and errors[0]["type"] == "json_invalid":
            raise StructuredOutputError(
                f"Response is not valid JSON: {errors[0]['msg']}", raw=text
            ) from e
        raise StructuredOutputError(
            f"Response failed {schema.__name__} validation: "
            f"{e.error_count()} error(s)",
            raw=text,
        ) from e
