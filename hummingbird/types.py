"""Core value types shared by threads, events, policy, and the agent."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Awaitable, Callable, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Role = Literal["user", "assistant", "tool", "system"]
PermissionAction = Literal["allow", "ask", "reject", "delegate"]
ParallelTools = Literal["auto", "force", "disable"]
Visibility = Literal["private", "workspace", "unlisted"]

JSONSchema = dict[str, Any]
ToolHandler = Callable[[dict[str, Any]], Awaitable[Any]]


def utcnow() -> datetime:
    """Return the current UTC time."""
    return datetime.now(UTC)


class WireModel(BaseModel):
    """Immutable model with camelCase wire aliases."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump using wire field names, omitting unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ToolCall(WireModel):
    """A tool invocation requested by the model."""

    id: str
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class ToolResult(WireModel):
    """Outcome of one tool call."""

    id: str
    result: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Message(WireModel):
    """A message in a thread."""

    role: Role
    content: str | None = None
    tool_calls: list[ToolCall] | None = None
    tool_results: list[ToolResult] | None = None
    timestamp: datetime = Field(default_factory=utcnow)


class ArtifactRef(WireModel):
    """Reference to an artifact produced during a conversation."""

    id: str
    type: str
    uri: str


class Usage(WireModel):
    """Token usage totals."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    def __add__(self, other: "Usage") -> "Usage":
        return Usage(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )


class Attachment(WireModel):
    """File, image, or URL attached to a user message."""

    type: Literal["file", "image", "url"]
    data: str | bytes
    mime_type: str | None = None
    filename: str | None = None


class UserMessage(WireModel):
    """User input for one turn."""

    text: str
    attachments: list[Attachment] = Field(default_factory=list)


class ThreadRef(WireModel):
    """Reference to a stored thread."""

    id: str
    visibility: Visibility | None = None


class HandoffFilters(WireModel):
    """Context selection for a goal-driven handoff."""

    include_messages: int | None = None
    include_tools: list[str] | None = None
    exclude_context: bool = False


class PermissionRule(BaseModel):
    """One ordered permission rule.

    Configuration surface: ``{tool, matches?, action, to?}``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    tool: str
    matches: dict[str, str] | None = None
    action: PermissionAction
    to: str | None = None

    @property
    def delegate_target(self) -> str | None:
        return self.to


class StructuredOutputConfig(BaseModel):
    """Schema contract for the final turn output."""

    model_config = ConfigDict(populate_by_name=True)

    schema_: JSONSchema = Field(alias="schema")
    strict: bool = True


@dataclass
class ToolDefinition:
    """A tool the model may call."""

    name: str
    description: str
    input_schema: JSONSchema = field(default_factory=lambda: {"type": "object", "properties": {}})
    handler: ToolHandler | None = None
    runtime: Literal["mcp", "toolbox", "builtin", "http"] = "builtin"

    def get_definition(self) -> dict[str, Any]:
        """Get the tool definition for providers (function-style)."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.input_schema,
        }


class AgentOptions(BaseModel):
    """Per-agent turn configuration."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    provider: str
    model: str
    system: str | None = None
    temperature: float | None = None
    top_p: float | None = None
    max_tokens: int | None = None
    parallel_tools: ParallelTools = "auto"
    structured: StructuredOutputConfig | None = None
    tools: list[ToolDefinition] = Field(default_factory=list)
    permissions: list[PermissionRule] = Field(default_factory=list)
    cwd: str | None = None
    session: ThreadRef | Literal["new"] | None = None
    api_key: str | None = None
    zero_retention: bool = False

    @classmethod
    def from_config(cls, config: Any = None, **overrides: Any) -> "AgentOptions":
        """Build options from process configuration defaults.

        Args:
            config: Optional Config (defaults to the global one)
            **overrides: Explicit option values that win over config

        Returns:
            AgentOptions instance
        """
        from hummingbird.config import get_config

        cfg = config or get_config()
        values: dict[str, Any] = {
            "provider": cfg.agent.provider,
            "model": cfg.agent.model,
            "system": cfg.agent.system,
            "temperature": cfg.agent.temperature,
            "top_p": cfg.agent.top_p,
            "max_tokens": cfg.agent.max_tokens,
            "parallel_tools": cfg.agent.parallel_tools,
        }
        if "permissions" not in overrides:
            values["permissions"] = cfg.permission_rules()
        values.update(overrides)
        return cls(**values)
