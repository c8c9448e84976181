"""Tool permission policy: matching, decisions, presets, and redaction."""

from hummingbird.policy.engine import (
    InteractivePermissionEngine,
    PermissionDecision,
    PermissionEngine,
    ToolInvocation,
)
from hummingbird.policy.matcher import is_more_specific, match_args, match_glob
from hummingbird.policy.redaction import (
    RedactionOptions,
    contains_secrets,
    redact_env,
    redact_secrets,
    redact_secrets_from_object,
)
from hummingbird.policy.schemas import (
    DEFAULT_POLICY,
    PERMISSIVE_POLICY,
    STRICT_POLICY,
    load_policy,
    load_policy_file,
)

__all__ = [
    "InteractivePermissionEngine",
    "PermissionDecision",
    "PermissionEngine",
    "ToolInvocation",
    "is_more_specific",
    "match_args",
    "match_glob",
    "RedactionOptions",
    "contains_secrets",
    "redact_env",
    "redact_secrets",
    "redact_secrets_from_object",
    "DEFAULT_POLICY",
    "PERMISSIVE_POLICY",
    "STRICT_POLICY",
    "load_policy",
    "load_policy_file",
]
