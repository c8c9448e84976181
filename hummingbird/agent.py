"""Agent orchestration for Hummingbird."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable

from hummingbird.adapters import ProviderAdapter
from hummingbird.events import (
    AgentEvent,
    AssistantEvent,
    ErrorEvent,
    FinalEvent,
    create_final_event,
    create_system_event,
    create_tool_result_event,
)
from hummingbird.exceptions import (
    AGENT_ERROR,
    PERMISSION_DENIED,
    AgentError,
    SchemaValidationError,
    ToolNotFoundError,
)
from hummingbird.logging import get_logger
from hummingbird.policy.engine import (
    InteractivePermissionEngine,
    PermissionEngine,
    ToolInvocation,
)
from hummingbird.policy.redaction import redact_secrets_from_object
from hummingbird.structured import parse_structured_text, repair_structured, validate_structured
from hummingbird.threads.manager import ThreadManager
from hummingbird.threads.thread import Thread, fork as fork_thread, handoff as handoff_thread
from hummingbird.types import (
    AgentOptions,
    ArtifactRef,
    Message,
    Role,
    ThreadRef,
    ToolCall,
    ToolDefinition,
    ToolResult,
    Usage,
    UserMessage,
)

log = get_logger(__name__)

PermissionResolver = Callable[[ToolInvocation], Awaitable[bool]]
AgentInput = UserMessage | str | list[ToolResult]


class AgentState(str, Enum):
    """Where the agent is within the current (or last) turn."""

    IDLE = "idle"
    THREAD_READY = "thread_ready"
    STREAMING = "streaming"
    ACCUMULATING = "accumulating"
    EXECUTING_TOOLS = "executing_tools"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    ERRORED = "errored"


@dataclass
class ToolBatchOutcome:
    """Results of executing one turn's tool calls."""

    results: list[ToolResult] = field(default_factory=list)
    error: AgentError | None = None

    @property
    def aborted(self) -> bool:
        return self.error is not None


class Agent:
    """Drives conversation turns against a provider adapter."""

    def __init__(
        self,
        options: AgentOptions,
        adapter: ProviderAdapter,
        thread_manager: ThreadManager | None = None,
        permission_resolver: PermissionResolver | None = None,
    ):
        """Initialize the agent.

        Args:
            options: Turn configuration; ``options.tools`` is the live tool list
            adapter: Provider adapter used for every turn
            thread_manager: Optional manager mirroring the thread into a store
            permission_resolver: Optional async callback deciding ``ask`` and
                ``delegate`` verdicts; without it those calls are refused
        """
        self.options = options
        self.adapter = adapter
        self.thread_manager = thread_manager
        self.tools: list[ToolDefinition] = options.tools
        self.permissions = PermissionEngine(options.permissions)
        self._permission_resolver = permission_resolver
        self._interactive = (
            InteractivePermissionEngine(self.permissions, permission_resolver)
            if permission_resolver is not None
            else None
        )
        self.state = AgentState.IDLE
        self._thread: Thread | None = None
        self._persisted = False
        self._total_requests = 0

    async def send(self, input: AgentInput) -> AsyncIterator[AgentEvent]:
        """Run one turn and stream its events.

        Never raises; failures arrive as ``error`` events.

        Args:
            input: User text/message, or tool results answering earlier calls

        Yields:
            Agent events in emission order
        """
        self._total_requests += 1
        try:
            async for event in self._run_turn(input):
                yield event
        except Exception as e:
            self.state = AgentState.ERRORED
            error = self._wrap_error(e)
            log.error("Agent turn failed", code=error.code, error=error.message)
            yield error.to_event()

    async def _run_turn(self, input: AgentInput) -> AsyncIterator[AgentEvent]:
        thread = await self._ensure_thread()
        self.state = AgentState.THREAD_READY

        await self._append(self._create_message(input))
        if len(thread.get_messages()) == 1:
            yield create_system_event(thread.id, [tool.name for tool in self.tools], self.options.model)

        self.state = AgentState.STREAMING
        text_parts: list[str] = []
        pending: dict[str, ToolCall] = {}
        usage: Usage | None = None
        adapter_output: Any = None
        artifacts: list[ArtifactRef] = []
        adapter_error: ErrorEvent | None = None

        stream = self.adapter.send(thread.get_messages(), self.options)
        try:
            async for event in stream:
                if isinstance(event, AssistantEvent):
                    self.state = AgentState.ACCUMULATING
                    for call in event.tool_calls or []:
                        if call.id in pending:
                            log.warning(
                                "Duplicate tool call id, replacing earlier call",
                                call_id=call.id,
                                previous=pending[call.id].name,
                                tool=call.name,
                            )
                        pending[call.id] = call
                    if event.text:
                        text_parts.append(event.text)
                    yield event
                elif isinstance(event, FinalEvent):
                    if event.usage is not None:
                        usage = event.usage if usage is None else usage + event.usage
                    if event.output is not None:
                        adapter_output = event.output
                    artifacts.extend(event.artifacts)
                elif isinstance(event, ErrorEvent):
                    adapter_error = event
                    break
                else:
                    log.debug("Ignoring adapter event", type=getattr(event, "type", None))
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

        text = "".join(text_parts)
        tool_calls = list(pending.values())
        if text or tool_calls:
            await self._append(
                Message(role="assistant", content=text or None, tool_calls=tool_calls or None)
            )

        if adapter_error is not None:
            self.state = AgentState.ERRORED
            log.warning("Adapter reported error", code=adapter_error.code, error=adapter_error.error)
            yield adapter_error
            return

        if tool_calls:
            self.state = AgentState.EXECUTING_TOOLS
            outcome = ToolBatchOutcome()
            async for event in self._execute_tools(tool_calls, outcome):
                yield event

            answered = {result.id for result in outcome.results}
            skipped = [
                ToolResult(id=call.id, error=outcome.error.message)
                for call in tool_calls
                if outcome.aborted and call.id not in answered
            ]
            await self._append(Message(role="tool", tool_results=outcome.results + skipped))

            if outcome.aborted:
                self.state = AgentState.ERRORED
                log.warning("Tool batch aborted", code=outcome.error.code, error=outcome.error.message)
                yield outcome.error.to_event()
                for result in skipped:
                    yield create_tool_result_event([result])
                return

        self.state = AgentState.FINALIZING
        output = self._resolve_output(text, adapter_output)
        if usage is not None:
            await self._record_usage(usage)
        yield create_final_event(output=output, usage=usage, artifacts=artifacts)
        self.state = AgentState.COMPLETED

    async def _execute_tools(
        self,
        tool_calls: list[ToolCall],
        outcome: ToolBatchOutcome,
    ) -> AsyncIterator[AgentEvent]:
        """Execute calls in order, yielding each result as it is produced.

        Stops at the first rejected call, leaving the rest unexecuted.
        """
        for call in tool_calls:
            result, denied = await self._execute_tool_call(call)
            outcome.results.append(result)
            yield create_tool_result_event([result])
            if denied:
                outcome.error = AgentError(
                    PERMISSION_DENIED,
                    result.error or f"Permission denied for tool: {call.name}",
                    provider=self.options.provider,
                )
                return

    async def _execute_tool_call(self, call: ToolCall) -> tuple[ToolResult, bool]:
        """Gate and run one call; returns the result and whether it was rejected."""
        arguments = call.arguments or {}
        invocation = ToolInvocation(tool=call.name, arguments=arguments)
        decision = self.permissions.evaluate(invocation)

        if decision.action == "reject":
            log.warning("Tool call rejected by policy", tool=call.name, call_id=call.id)
            return ToolResult(id=call.id, error=f"Permission denied for tool: {call.name}"), True

        try:
            if decision.action != "allow":
                approved = False
                if self._interactive is not None:
                    approved = await self._interactive.resolve(invocation, decision)
                if not approved:
                    return (
                        ToolResult(
                            id=call.id,
                            error=f"Tool {call.name} requires permission ({decision.action})",
                        ),
                        False,
                    )

            tool = self._find_tool(call.name)
            self._validate_arguments(tool, arguments)
            log.info("Executing tool", tool=call.name, call_id=call.id, args=redact_secrets_from_object(arguments))
            value = await tool.handler(arguments)
            log.info("Tool executed", tool=call.name, call_id=call.id)
            return ToolResult(id=call.id, result=value), False
        except Exception as e:
            log.error("Tool execution failed", tool=call.name, call_id=call.id, error=str(e))
            return ToolResult(id=call.id, error=str(e) or "Tool execution failed"), False

    def _find_tool(self, name: str) -> ToolDefinition:
        for tool in self.tools:
            if tool.name == name and tool.handler is not None:
                return tool
        raise ToolNotFoundError(name)

    @staticmethod
    def _validate_arguments(tool: ToolDefinition, arguments: dict[str, Any]) -> None:
        if not tool.input_schema:
            return
        try:
            validate_structured(arguments, tool.input_schema)
        except SchemaValidationError as e:
            raise SchemaValidationError(f"Invalid arguments for tool {tool.name}: {e}", e.errors) from e

    def _resolve_output(self, text: str, adapter_output: Any) -> Any:
        """Pick the turn output, validating/repairing structured output."""
        candidate = text if text else adapter_output
        if self.options.structured is None:
            return candidate

        schema = self.options.structured.schema_
        data = candidate
        if isinstance(candidate, str):
            try:
                data = parse_structured_text(candidate)
            except ValueError:
                log.warning("Structured output is not valid JSON")

        try:
            validate_structured(data, schema)
            return data
        except SchemaValidationError as e:
            log.warning("Structured output failed validation, repairing", errors=e.errors)
            return repair_structured(data, schema)

    def _create_message(self, input: AgentInput) -> Message:
        if isinstance(input, str):
            return Message(role="user", content=input)
        if isinstance(input, UserMessage):
            return Message(role="user", content=input.text)
        if isinstance(input, list):
            results = [
                item if isinstance(item, ToolResult) else ToolResult.model_validate(item)
                for item in input
            ]
            return Message(role="tool", tool_results=results)
        raise TypeError(f"Unsupported agent input: {type(input).__name__}")

    def _wrap_error(self, error: Exception) -> AgentError:
        if isinstance(error, AgentError):
            return error
        return AgentError(
            AGENT_ERROR,
            str(error) or type(error).__name__,
            provider=self.options.provider,
            details=error,
        )

    def _new_thread(self) -> Thread:
        session = self.options.session
        return Thread(session.id if isinstance(session, ThreadRef) else None)

    async def _restore_thread(self) -> Thread | None:
        """Load the thread named by ``options.session`` from the manager."""
        session = self.options.session
        if self.thread_manager is None or not isinstance(session, ThreadRef):
            return None
        record = await self.thread_manager.get(session.id)
        if record is None:
            return None

        thread = Thread(record.id)
        for message in record.messages:
            thread.add_message(message)
        for key, value in record.metadata.items():
            thread.set_metadata(key, value)
        for artifact in record.artifacts:
            thread.add_artifact(artifact)
        thread.cost = record.cost
        self._persisted = True
        log.info("Resumed thread", thread_id=record.id, messages=len(record.messages))
        return thread

    async def _ensure_thread(self) -> Thread:
        if self._thread is None:
            self._thread = await self._restore_thread() or self._new_thread()

        if self.thread_manager is not None and not self._persisted:
            if await self.thread_manager.get(self._thread.id) is None:
                session = self.options.session
                visibility = session.visibility if isinstance(session, ThreadRef) else None
                await self.thread_manager.create(ThreadRef(id=self._thread.id, visibility=visibility))
                for message in self._thread.get_messages():
                    await self.thread_manager.add_message(self._thread.id, message)
            self._persisted = True
        return self._thread

    async def _append(self, message: Message) -> None:
        thread = self.get_thread()
        thread.add_message(message)
        if self.thread_manager is not None and self._persisted:
            await self.thread_manager.add_message(thread.id, message)

    async def _record_usage(self, usage: Usage) -> None:
        thread = self.get_thread()
        thread.add_usage(usage)
        if self.thread_manager is not None and self._persisted:
            await self.thread_manager.update_cost(thread.id, usage)

    def _derive(self, thread: Thread) -> "Agent":
        options = self.options.model_copy(update={"tools": list(self.tools)})
        agent = Agent(
            options,
            self.adapter,
            thread_manager=self.thread_manager,
            permission_resolver=self._permission_resolver,
        )
        agent._thread = thread
        return agent

    def handoff(self, last_n: int | None = None, role: Role | None = None) -> "Agent":
        """Return a new agent on a narrowed copy of this agent's thread."""
        return self._derive(handoff_thread(self.get_thread(), last_n=last_n, role=role))

    def fork(self) -> "Agent":
        """Return a new agent on a full independent copy of this agent's thread."""
        return self._derive(fork_thread(self.get_thread()))

    def add_tools(self, tools: list[ToolDefinition]) -> None:
        """Add tools for subsequent turns; a tool with an existing name replaces it."""
        for tool in tools:
            for index, existing in enumerate(self.tools):
                if existing.name == tool.name:
                    self.tools[index] = tool
                    break
            else:
                self.tools.append(tool)
        self.options.tools = self.tools

    def get_thread(self) -> Thread:
        """Return the current thread, creating an empty one if needed."""
        if self._thread is None:
            self._thread = self._new_thread()
        return self._thread

    def get_metrics(self) -> dict[str, int]:
        return {"total_requests": self._total_requests}
