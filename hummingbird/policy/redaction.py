"""Secret redaction for text, nested payloads, and environment maps."""

import re
from dataclasses import dataclass
from typing import Any

DEFAULT_REPLACEMENT = "***REDACTED***"

# Applied in order; earlier patterns consume text before later ones see it.
SECRET_PATTERNS: list[re.Pattern[str]] = [
    # Vendor API keys (sk-..., sk-proj-..., sk-test-...)
    re.compile(r"sk-[A-Za-z0-9_-]+"),
    # AWS access key id
    re.compile(r"AKIA[0-9A-Z]{16}"),
    # Long base64-like tokens (AWS secret keys and similar)
    re.compile(r"[A-Za-z0-9/+=]{40,}"),
    # GitHub tokens
    re.compile(r"ghp_[A-Za-z0-9]+"),
    re.compile(r"gho_[A-Za-z0-9]+"),
    re.compile(r"ghu_[A-Za-z0-9]+"),
    # JWTs
    re.compile(r"eyJ[A-Za-z0-9_-]+\.eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+"),
]

SENSITIVE_FIELD_NAMES: tuple[str, ...] = (
    "token",
    "secret",
    "password",
    "api_key",
    "apikey",
    "access_token",
    "private_key",
    "privatekey",
)


@dataclass(frozen=True)
class RedactionOptions:
    """Redaction behavior."""

    replacement: str = DEFAULT_REPLACEMENT
    enabled: bool = True


def _resolve(options: RedactionOptions | None) -> RedactionOptions:
    return options or RedactionOptions()


def is_sensitive_field(name: str) -> bool:
    """Return whether a field/env name looks like it holds a credential."""
    lowered = str(name or "").lower()
    return any(marker in lowered for marker in SENSITIVE_FIELD_NAMES)


def redact_secrets(text: str, options: RedactionOptions | None = None) -> str:
    """Replace credential-shaped substrings in text with the placeholder."""
    opts = _resolve(options)
    if not opts.enabled:
        return text

    redacted = text
    for pattern in SECRET_PATTERNS:
        redacted = pattern.sub(opts.replacement, redacted)
    return redacted


def redact_secrets_from_object(obj: Any, options: RedactionOptions | None = None) -> Any:
    """Recursively redact a mapping/sequence payload.

    Values under sensitive keys are replaced whole, string leaves go through
    :func:`redact_secrets`, other leaves are returned unchanged. The input is
    never mutated.
    """
    opts = _resolve(options)
    if not opts.enabled:
        return obj

    if isinstance(obj, str):
        return redact_secrets(obj, opts)
    if isinstance(obj, dict):
        redacted: dict[Any, Any] = {}
        for key, value in obj.items():
            if is_sensitive_field(str(key)):
                redacted[key] = opts.replacement
            else:
                redacted[key] = redact_secrets_from_object(value, opts)
        return redacted
    if isinstance(obj, (list, tuple)):
        items = [redact_secrets_from_object(item, opts) for item in obj]
        return type(obj)(items) if isinstance(obj, tuple) else items
    return obj


def contains_secrets(text: str) -> bool:
    """Return whether any secret pattern occurs in text."""
    return any(pattern.search(text) for pattern in SECRET_PATTERNS)


def redact_env(env: dict[str, str], options: RedactionOptions | None = None) -> dict[str, str]:
    """Redact an environment map by variable name and by value content."""
    opts = _resolve(options)
    if not opts.enabled:
        return dict(env)

    redacted: dict[str, str] = {}
    for key, value in env.items():
        if is_sensitive_field(key) or contains_secrets(str(value)):
            redacted[key] = opts.replacement
        else:
            redacted[key] = value
    return redacted
