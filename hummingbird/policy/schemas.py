"""Policy configuration schemas, presets, and loaders."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from hummingbird.exceptions import PolicyError, SchemaValidationError
from hummingbird.logging import get_logger
from hummingbird.structured import validate_structured
from hummingbird.types import PermissionRule

log = get_logger(__name__)

PERMISSION_RULE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "tool": {
            "type": "string",
            "description": "Tool name or glob pattern",
        },
        "matches": {
            "type": "object",
            "description": "Argument patterns to match",
            "additionalProperties": {"type": "string"},
        },
        "action": {
            "type": "string",
            "enum": ["allow", "ask", "reject", "delegate"],
            "description": "Action to take when rule matches",
        },
        "to": {
            "type": "string",
            "description": 'Delegate target (required if action is "delegate")',
        },
    },
    "required": ["tool", "action"],
    "additionalProperties": False,
}

POLICY_CONFIG_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "version": {"type": "string", "description": "Policy version"},
        "rules": {
            "type": "array",
            "items": PERMISSION_RULE_SCHEMA,
            "description": "Permission rules",
        },
        "metadata": {
            "type": "object",
            "description": "Additional metadata",
            "properties": {
                "name": {"type": "string"},
                "description": {"type": "string"},
                "workspace": {"type": "string"},
                "createdAt": {"type": "string", "format": "date-time"},
                "updatedAt": {"type": "string", "format": "date-time"},
            },
        },
    },
    "required": ["version", "rules"],
    "additionalProperties": False,
}

# Rules are evaluated first-match-wins, so narrow rejects precede broad asks.
DEFAULT_POLICY: dict[str, Any] = {
    "version": "1.0",
    "rules": [
        {"tool": "File.read", "action": "allow"},
        {"tool": "File.list", "action": "allow"},
        {"tool": "File.write", "action": "ask"},
        {"tool": "File.delete", "action": "ask"},
        {"tool": "Bash", "matches": {"cmd": "*rm -rf*"}, "action": "reject"},
        {"tool": "Bash", "matches": {"cmd": "*git push --force*"}, "action": "reject"},
        {"tool": "Bash", "action": "ask"},
        {"tool": "*", "action": "ask"},
    ],
    "metadata": {
        "name": "Default Policy",
        "description": "Safe defaults for development",
    },
}

STRICT_POLICY: dict[str, Any] = {
    "version": "1.0",
    "rules": [
        {"tool": "File.read", "action": "allow"},
        {"tool": "File.list", "action": "allow"},
        {"tool": "*", "action": "reject"},
    ],
    "metadata": {
        "name": "Strict Policy",
        "description": "Minimal permissions for maximum security",
    },
}

PERMISSIVE_POLICY: dict[str, Any] = {
    "version": "1.0",
    "rules": [
        {"tool": "Bash", "matches": {"cmd": "*rm -rf /*"}, "action": "reject"},
        {"tool": "Bash", "matches": {"cmd": "*format*"}, "action": "reject"},
        {"tool": "*", "action": "allow"},
    ],
    "metadata": {
        "name": "Permissive Policy",
        "description": "Allow most operations with minimal friction",
    },
}


def load_policy(data: dict[str, Any]) -> list[PermissionRule]:
    """Validate a policy document and return its rules in order.

    Raises:
        PolicyError: if the document or any rule is malformed
    """
    try:
        validate_structured(data, POLICY_CONFIG_SCHEMA)
    except SchemaValidationError as e:
        raise PolicyError(f"Invalid policy: {e}") from e

    rules: list[PermissionRule] = []
    for index, raw in enumerate(data["rules"]):
        if raw.get("action") == "delegate" and not raw.get("to"):
            raise PolicyError(f"Invalid policy: rule {index} delegates without a 'to' target")
        try:
            rules.append(PermissionRule(**raw))
        except ValidationError as e:
            raise PolicyError(f"Invalid policy: rule {index}: {e}") from e
    return rules


def load_policy_file(path: Path | str) -> list[PermissionRule]:
    """Load a YAML (or JSON) policy file."""
    policy_path = Path(path).expanduser()
    if not policy_path.exists():
        raise PolicyError(f"Policy file not found: {policy_path}")

    with open(policy_path) as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise PolicyError(f"Invalid policy: {policy_path} does not contain a mapping")

    rules = load_policy(data)
    log.info("Loaded permission policy", path=str(policy_path), rules=len(rules))
    return rules
