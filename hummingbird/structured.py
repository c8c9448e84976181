"""JSON Schema validation, repair, and structured output helpers."""

import json
import math
from dataclasses import dataclass, field
from typing import Any

from hummingbird.exceptions import SchemaValidationError
from hummingbird.types import JSONSchema, StructuredOutputConfig

JSON_SCHEMA_DIALECT = "https://json-schema.org/draft/2020-12/schema"

_ZERO_VALUES: dict[str, Any] = {
    "string": "",
    "number": 0,
    "integer": 0,
    "boolean": False,
    "array": [],
    "object": {},
    "null": None,
}


def stringify(value: Any) -> str:
    """Coerce a value to its string form.

    Booleans and ``None`` use their JSON spelling, integral floats drop the
    fractional part, containers are rendered as compact JSON. Permission
    argument patterns are matched against this form too.
    """
    if isinstance(value, str):
        return value
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, separators=(",", ":"), default=str)
    return str(value)


@dataclass
class ValidationResult:
    """Outcome of validating data against a schema."""

    valid: bool
    errors: list[str] = field(default_factory=list)


def _schema_types(schema: JSONSchema) -> list[str]:
    declared = schema.get("type")
    if declared is None:
        return []
    if isinstance(declared, (list, tuple)):
        return [str(item) for item in declared]
    return [str(declared)]


def _type_of(value: Any) -> str:
    """Return the JSON type name of a Python value."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _matches_type(value: Any, expected: str) -> bool:
    actual = _type_of(value)
    if expected == actual:
        return True
    if expected == "number":
        return actual == "integer"
    if expected == "integer":
        return actual == "number" and math.isfinite(value) and float(value).is_integer()
    return False


def _json_kind(value: Any) -> str:
    kind = _type_of(value)
    return "number" if kind == "integer" else kind


def _json_equal(left: Any, right: Any) -> bool:
    """JSON equality: booleans never equal numbers, integers equal integral floats."""
    if _json_kind(left) != _json_kind(right):
        return False
    if isinstance(left, dict):
        return left.keys() == right.keys() and all(_json_equal(left[key], right[key]) for key in left)
    if isinstance(left, (list, tuple)):
        return len(left) == len(right) and all(_json_equal(a, b) for a, b in zip(left, right))
    return left == right


class CompiledSchema:
    """A schema ready for repeated validation."""

    def __init__(self, schema: JSONSchema):
        self.schema = schema

    def validate(self, data: Any) -> ValidationResult:
        errors: list[str] = []
        valid = self._validate(data, self.schema, errors, "root")
        return ValidationResult(valid=valid, errors=errors)

    def _validate(self, data: Any, schema: JSONSchema, errors: list[str], path: str) -> bool:
        types = _schema_types(schema)
        if types and not any(_matches_type(data, expected) for expected in types):
            errors.append(f"{path}: expected type {'|'.join(types)}, got {_type_of(data)}")
            return False

        if isinstance(data, dict) and (not types or "object" in types):
            for key in schema.get("required") or []:
                if key not in data:
                    errors.append(f"{path}: missing required property '{key}'")
                    return False
            properties = schema.get("properties") or {}
            for key, prop_schema in properties.items():
                if key in data and isinstance(prop_schema, dict):
                    if not self._validate(data[key], prop_schema, errors, f"{path}.{key}"):
                        return False
            additional = schema.get("additionalProperties")
            for key in data:
                if key in properties:
                    continue
                if additional is False:
                    errors.append(f"{path}: unexpected property '{key}'")
                    return False
                if isinstance(additional, dict):
                    if not self._validate(data[key], additional, errors, f"{path}.{key}"):
                        return False

        if isinstance(data, (list, tuple)) and (not types or "array" in types):
            items = schema.get("items")
            if isinstance(items, dict):
                for index, item in enumerate(data):
                    if not self._validate(item, items, errors, f"{path}[{index}]"):
                        return False

        if "enum" in schema and not any(_json_equal(data, option) for option in schema["enum"]):
            errors.append(f"{path}: value not in enum {json.dumps(schema['enum'], default=str)}")
            return False

        if "const" in schema and not _json_equal(data, schema["const"]):
            errors.append(f"{path}: value does not match const {json.dumps(schema['const'], default=str)}")
            return False

        return True

    def get_schema(self) -> JSONSchema:
        return self.schema


def compile_schema(schema: JSONSchema) -> CompiledSchema:
    """Compile a JSON Schema for validation."""
    return CompiledSchema(schema)


def validate_structured(data: Any, schema: JSONSchema) -> None:
    """Validate data against schema.

    Raises:
        SchemaValidationError: on the first violation found
    """
    result = compile_schema(schema).validate(data)
    if not result.valid:
        raise SchemaValidationError(
            f"Schema validation failed: {', '.join(result.errors)}",
            result.errors,
        )


def default_for(schema: JSONSchema | None) -> Any:
    """Placeholder value for a missing property."""
    schema = schema or {}
    if "default" in schema:
        return schema["default"]
    if "const" in schema:
        return schema["const"]
    if schema.get("enum"):
        return schema["enum"][0]
    types = _schema_types(schema)
    zero = _ZERO_VALUES.get(types[0]) if types else None
    # Fresh containers, never shared between repairs.
    if isinstance(zero, (list, dict)):
        return type(zero)()
    return zero


def _to_number(value: Any, integer: bool) -> Any:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        try:
            number = int(text)
        except ValueError:
            try:
                number = float(text)
            except ValueError:
                return value
        if isinstance(number, float) and math.isnan(number):
            return value
    else:
        return value
    if integer and isinstance(number, float) and math.isfinite(number) and number.is_integer():
        return int(number)
    return number


def _coerce_value(value: Any, schema: JSONSchema) -> Any:
    types = _schema_types(schema)
    if not types:
        return value
    # Scalars already of an allowed type stay as they are; containers recurse.
    if not isinstance(value, (dict, list, tuple)) and any(_matches_type(value, expected) for expected in types):
        return value

    target = next((item for item in types if item != "null"), types[0])
    if target in ("number", "integer"):
        return _to_number(value, integer=target == "integer")
    if target == "boolean":
        if isinstance(value, str):
            return value.strip().lower() in ("true", "1")
        return bool(value)
    if target == "string":
        return stringify(value)
    if target == "object" and isinstance(value, dict):
        return repair_structured(value, schema)
    if target == "array" and isinstance(value, (list, tuple)):
        items = schema.get("items")
        if isinstance(items, dict):
            return [_coerce_value(item, items) for item in value]
        return list(value)
    return value


def repair_structured(data: Any, schema: JSONSchema) -> Any:
    """Best-effort reconstruction of data so it fits schema.

    Known properties are coerced to their declared type, missing required
    properties are filled from ``default`` (or a type zero value), and
    undeclared properties are dropped when ``additionalProperties`` is false.
    Values that cannot be coerced are kept as they are; never raises.
    """
    types = _schema_types(schema)
    if isinstance(data, dict) and (not types or "object" in types):
        properties: dict[str, Any] = schema.get("properties") or {}
        repaired: dict[str, Any] = {}

        for key, prop_schema in properties.items():
            prop_schema = prop_schema if isinstance(prop_schema, dict) else {}
            if key in data:
                repaired[key] = _coerce_value(data[key], prop_schema)
            elif "default" in prop_schema:
                repaired[key] = prop_schema["default"]

        for key in schema.get("required") or []:
            if key not in repaired:
                repaired[key] = default_for(properties.get(key))

        if schema.get("additionalProperties") is False:
            return repaired

        for key, value in data.items():
            if key not in repaired:
                repaired[key] = value
        return repaired

    return _coerce_value(data, schema)


def parse_structured_text(text: str) -> Any:
    """Parse model text as JSON, tolerating a fenced ```json block.

    Raises:
        ValueError: when the text holds no JSON document
    """
    cleaned = (text or "").strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.split("\n", 1)[1] if "\n" in cleaned else ""
        if cleaned.rstrip().endswith("```"):
            cleaned = cleaned.rstrip()[:-3]
    return json.loads(cleaned)


def normalize_schema(schema: JSONSchema) -> JSONSchema:
    """Normalize schema to JSON Schema 2020-12."""
    normalized = dict(schema)
    normalized.setdefault("$schema", JSON_SCHEMA_DIALECT)
    return normalized


def to_openai_schema(config: StructuredOutputConfig) -> dict[str, Any]:
    """Convert to an OpenAI ``response_format`` payload."""
    return {
        "type": "json_schema",
        "json_schema": {
            "name": "response",
            "strict": config.strict,
            "schema": config.schema_,
        },
    }


def to_anthropic_schema(config: StructuredOutputConfig) -> JSONSchema:
    """Anthropic takes the schema as a tool input schema unchanged."""
    return config.schema_


def to_gemini_schema(config: StructuredOutputConfig) -> dict[str, Any]:
    """Convert to a Gemini function declaration."""
    return {
        "name": "generate_response",
        "description": "Generate a structured response",
        "parameters": config.schema_,
    }
