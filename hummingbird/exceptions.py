"""Custom exceptions for Hummingbird."""

from typing import Any

PERMISSION_DENIED = "PERMISSION_DENIED"
AGENT_ERROR = "AGENT_ERROR"


class HummingbirdError(Exception):
    """Base exception for Hummingbird."""

    pass


class ConfigurationError(HummingbirdError):
    """Configuration-related errors."""

    pass


class AgentError(HummingbirdError):
    """Turn-level error surfaced to callers as an ``error`` event."""

    def __init__(
        self,
        code: str,
        message: str,
        provider: str | None = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.provider = provider
        self.details = details

    def to_event(self):
        """Build the ``error`` event carrying this error."""
        from hummingbird.events import ErrorEvent

        return ErrorEvent(error=self.message, code=self.code)


def provider_error_code(provider: str) -> str:
    """Return the adapter-specific error code, e.g. ``OPENAI_ERROR``."""
    return f"{str(provider or 'provider').strip().upper()}_ERROR"


class ProviderError(AgentError):
    """Adapter-level failure (network, provider rejection, ...)."""

    def __init__(self, provider: str, message: str, details: Any = None):
        super().__init__(provider_error_code(provider), message, provider=provider, details=details)


class ThreadError(HummingbirdError):
    """Thread-related errors."""

    pass


class ThreadNotFoundError(ThreadError):
    """Thread not found."""

    def __init__(self, thread_id: str):
        super().__init__(f"Thread {thread_id} not found")
        self.thread_id = thread_id


class ToolError(HummingbirdError):
    """Tool execution errors."""

    pass


class ToolNotFoundError(ToolError):
    """Tool not registered or registered without a handler."""

    def __init__(self, tool_name: str):
        super().__init__(f"Tool {tool_name} not found or has no handler")
        self.tool_name = tool_name


class SchemaValidationError(HummingbirdError):
    """Structured data does not conform to its schema."""

    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message)
        self.errors = list(errors or [])


class PolicyError(HummingbirdError):
    """Invalid permission policy content."""

    pass
