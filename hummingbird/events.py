"""Agent event types and helpers for streaming agent responses."""

import json
from typing import Annotated, Any, Iterable, Literal, Union

from pydantic import Field, TypeAdapter

from hummingbird.types import ArtifactRef, ToolCall, ToolResult, Usage, WireModel


class SystemEvent(WireModel):
    """One-time session announcement on a thread's first message."""

    type: Literal["system"] = "system"
    session_id: str
    tools: list[str] = Field(default_factory=list)
    model: str | None = None


class AssistantEvent(WireModel):
    """Text fragment and/or tool calls from the model."""

    type: Literal["assistant"] = "assistant"
    text: str | None = None
    tool_calls: list[ToolCall] | None = None
    done: bool = False


class ToolResultEvent(WireModel):
    type: Literal["tool_result"] = "tool_result"
    results: list[ToolResult]


class FinalEvent(WireModel):
    """End of a successful turn."""

    type: Literal["final"] = "final"
    output: Any = None
    artifacts: list[ArtifactRef] = Field(default_factory=list)
    usage: Usage | None = None


class ErrorEvent(WireModel):
    type: Literal["error"] = "error"
    error: str
    code: str | None = None


AgentEvent = Annotated[
    Union[SystemEvent, AssistantEvent, ToolResultEvent, FinalEvent, ErrorEvent],
    Field(discriminator="type"),
]

_event_adapter: TypeAdapter[AgentEvent] = TypeAdapter(AgentEvent)


def parse_event(data: dict[str, Any]) -> AgentEvent:
    """Build the event variant matching ``data["type"]`` (wire or field names)."""
    return _event_adapter.validate_python(data)


def create_system_event(session_id: str, tools: list[str], model: str | None = None) -> SystemEvent:
    return SystemEvent(session_id=session_id, tools=list(tools), model=model)


def create_assistant_event(
    text: str | None = None,
    tool_calls: list[ToolCall] | None = None,
    done: bool = False,
) -> AssistantEvent:
    return AssistantEvent(text=text, tool_calls=tool_calls, done=done)


def create_tool_result_event(results: list[ToolResult]) -> ToolResultEvent:
    return ToolResultEvent(results=list(results))


def create_final_event(
    output: Any = None,
    usage: Usage | None = None,
    artifacts: list[ArtifactRef] | None = None,
) -> FinalEvent:
    return FinalEvent(output=output, usage=usage, artifacts=list(artifacts or []))


def create_error_event(error: str, code: str | None = None) -> ErrorEvent:
    return ErrorEvent(error=error, code=code)


def accumulate_events(events: Iterable[AgentEvent]) -> dict[str, Any]:
    """Fold an event sequence into a single result.

    Returns:
        Dict with ``text``, ``tool_calls``, ``tool_results``, ``artifacts``,
        ``usage``, ``output`` and ``errors`` (lists empty when absent).
    """
    text_parts: list[str] = []
    tool_calls: list[ToolCall] = []
    tool_results: list[ToolResult] = []
    artifacts: list[ArtifactRef] = []
    errors: list[ErrorEvent] = []
    usage: Usage | None = None
    output: Any = None

    for event in events:
        if isinstance(event, AssistantEvent):
            if event.text:
                text_parts.append(event.text)
            if event.tool_calls:
                tool_calls.extend(event.tool_calls)
        elif isinstance(event, ToolResultEvent):
            tool_results.extend(event.results)
        elif isinstance(event, FinalEvent):
            usage = event.usage
            output = event.output
            artifacts.extend(event.artifacts)
        elif isinstance(event, ErrorEvent):
            errors.append(event)

    return {
        "text": "".join(text_parts),
        "tool_calls": tool_calls,
        "tool_results": tool_results,
        "artifacts": artifacts,
        "usage": usage,
        "output": output,
        "errors": errors,
    }


class DeltaAccumulator:
    """Reassemble streamed text and tool-call fragments.

    For adapter authors whose provider streams tool-call arguments as JSON
    string fragments keyed by call id.
    """

    def __init__(self):
        self._text: list[str] = []
        self._tool_calls: dict[str, dict[str, str]] = {}

    def append_text(self, delta: str) -> None:
        self._text.append(delta)

    def append_tool_call(self, call_id: str, name: str | None = None, arguments_delta: str | None = None) -> None:
        entry = self._tool_calls.setdefault(call_id, {"name": "", "arguments": ""})
        if name:
            entry["name"] = name
        if arguments_delta:
            entry["arguments"] += arguments_delta

    def get_text(self) -> str:
        return "".join(self._text)

    def get_tool_calls(self) -> list[ToolCall]:
        """Return completed tool calls in first-seen order.

        Raises:
            ValueError: if a call's accumulated arguments are not valid JSON
        """
        return [
            ToolCall(
                id=call_id,
                name=entry["name"],
                arguments=json.loads(entry["arguments"]) if entry["arguments"] else {},
            )
            for call_id, entry in self._tool_calls.items()
        ]

    def clear(self) -> None:
        self._text = []
        self._tool_calls = {}
