import pytest
from structlog.testing import capture_logs

from hummingbird.adapters import ProviderAdapter
from hummingbird.agent import Agent, AgentState
from hummingbird.events import (
    AgentEvent,
    create_assistant_event,
    create_error_event,
    create_final_event,
    create_system_event,
)
from hummingbird.exceptions import ProviderError
from hummingbird.policy import ToolInvocation
from hummingbird.threads import ThreadManager
from hummingbird.types import (
    AgentOptions,
    Message,
    StructuredOutputConfig,
    ThreadRef,
    ToolCall,
    ToolDefinition,
    ToolResult,
    Usage,
    UserMessage,
)

USAGE = Usage(input_tokens=10, output_tokens=5, total_tokens=15)


class ScriptedAdapter(ProviderAdapter):
    """Replays one scripted event list per turn."""

    name = "scripted"

    def __init__(self, *turns: list[AgentEvent]):
        self.turns = list(turns)
        self.calls: list[list[Message]] = []

    async def send(self, messages, options):
        self.calls.append(list(messages))
        for event in self.turns.pop(0):
            yield event

    def supports_structured_output(self) -> bool:
        return True

    def supports_parallel_tools(self) -> bool:
        return False


class RaisingAdapter(ProviderAdapter):
    name = "raising"

    def __init__(self, error: Exception):
        self.error = error

    async def send(self, messages, options):
        yield create_assistant_event(text="partial")
        raise self.error

    def supports_structured_output(self) -> bool:
        return False

    def supports_parallel_tools(self) -> bool:
        return False


def _calc_tool(calls: list[dict] | None = None) -> ToolDefinition:
    async def handler(args: dict) -> dict:
        if calls is not None:
            calls.append(args)
        return {"value": 4}

    return ToolDefinition(name="calc", description="Adds numbers", handler=handler)


def _tool_call_turn(*calls: ToolCall) -> list[AgentEvent]:
    return [
        create_assistant_event(text="Let me calculate."),
        create_assistant_event(tool_calls=list(calls)),
        create_final_event(usage=USAGE),
    ]


def _options(**overrides) -> AgentOptions:
    values = {"provider": "scripted", "model": "test-model"}
    values.update(overrides)
    return AgentOptions(**values)


async def _collect(agent: Agent, input) -> list[AgentEvent]:
    return [event async for event in agent.send(input)]


@pytest.mark.asyncio
async def test_tool_call_turn_produces_ordered_events():
    calls: list[dict] = []
    adapter = ScriptedAdapter(_tool_call_turn(ToolCall(id="call_1", name="calc", arguments={})))
    agent = Agent(
        _options(tools=[_calc_tool(calls)], permissions=[{"tool": "calc", "action": "allow"}]),
        adapter,
    )

    events = await _collect(agent, "what is 2 + 2?")

    assert [event.type for event in events] == ["system", "assistant", "assistant", "tool_result", "final"]
    assert events[0].session_id == agent.get_thread().id
    assert events[0].tools == ["calc"]
    assert events[0].model == "test-model"
    assert events[2].tool_calls[0].id == "call_1"
    assert events[3].results == [ToolResult(id="call_1", result={"value": 4})]
    assert events[4].usage == USAGE
    assert events[4].output == "Let me calculate."
    assert calls == [{}]
    assert agent.state == AgentState.COMPLETED

    messages = agent.get_thread().get_messages()
    assert [message.role for message in messages] == ["user", "assistant", "tool"]
    assert messages[1].tool_calls[0].name == "calc"
    assert messages[2].tool_results[0].id == "call_1"
    assert agent.get_thread().cost == USAGE


@pytest.mark.asyncio
async def test_rejected_tool_call_ends_turn_without_final():
    calls: list[dict] = []
    adapter = ScriptedAdapter(_tool_call_turn(ToolCall(id="call_1", name="calc", arguments={})))
    agent = Agent(
        _options(tools=[_calc_tool(calls)], permissions=[{"tool": "calc", "action": "reject"}]),
        adapter,
    )

    events = await _collect(agent, "what is 2 + 2?")
    types = [event.type for event in events]

    assert "final" not in types
    assert types[-2:] == ["tool_result", "error"]
    assert events[-2].results[0].id == "call_1"
    assert events[-2].results[0].error == "Permission denied for tool: calc"
    assert events[-1].code == "PERMISSION_DENIED"
    assert calls == []
    assert agent.state == AgentState.ERRORED


@pytest.mark.asyncio
async def test_reject_aborts_remaining_calls():
    calls: list[dict] = []
    adapter = ScriptedAdapter(
        _tool_call_turn(
            ToolCall(id="call_1", name="calc", arguments={"n": 1}),
            ToolCall(id="call_2", name="Bash", arguments={"cmd": "rm -rf /"}),
            ToolCall(id="call_3", name="calc", arguments={"n": 3}),
        )
    )
    agent = Agent(
        _options(
            tools=[_calc_tool(calls)],
            permissions=[
                {"tool": "Bash", "matches": {"cmd": "*rm -rf*"}, "action": "reject"},
                {"tool": "*", "action": "allow"},
            ],
        ),
        adapter,
    )

    events = await _collect(agent, "clean up")
    tool_results = [event.results[0] for event in events if event.type == "tool_result"]

    assert calls == [{"n": 1}]
    assert [result.id for result in tool_results] == ["call_1", "call_2", "call_3"]
    assert tool_results[0].ok
    assert tool_results[1].error == "Permission denied for tool: Bash"
    assert tool_results[2].error == "Permission denied for tool: Bash"
    assert [event.type for event in events][-3:] == ["tool_result", "error", "tool_result"]

    last = agent.get_thread().get_messages()[-1]
    assert last.role == "tool"
    assert [result.id for result in last.tool_results] == ["call_1", "call_2", "call_3"]


@pytest.mark.asyncio
async def test_unresolved_permission_becomes_call_error():
    calls: list[dict] = []
    adapter = ScriptedAdapter(_tool_call_turn(ToolCall(id="call_1", name="calc", arguments={})))
    agent = Agent(_options(tools=[_calc_tool(calls)]), adapter)

    events = await _collect(agent, "add")

    assert events[-1].type == "final"
    assert events[-2].results[0].error == "Tool calc requires permission (ask)"
    assert calls == []


@pytest.mark.asyncio
async def test_permission_resolver_approves_ask():
    calls: list[dict] = []
    asked: list[ToolInvocation] = []

    async def resolver(invocation: ToolInvocation) -> bool:
        asked.append(invocation)
        return True

    adapter = ScriptedAdapter(_tool_call_turn(ToolCall(id="call_1", name="calc", arguments={"a": 1})))
    agent = Agent(
        _options(tools=[_calc_tool(calls)], permissions=[{"tool": "calc", "action": "ask"}]),
        adapter,
        permission_resolver=resolver,
    )

    events = await _collect(agent, "add")

    assert events[-1].type == "final"
    assert calls == [{"a": 1}]
    assert asked == [ToolInvocation("calc", {"a": 1})]


@pytest.mark.asyncio
async def test_tool_failures_are_per_call_errors():
    async def broken(args: dict) -> dict:
        raise RuntimeError("disk full")

    strict_tool = ToolDefinition(
        name="strict",
        description="Needs a path",
        input_schema={"type": "object", "required": ["path"], "properties": {"path": {"type": "string"}}},
        handler=_calc_tool().handler,
    )
    adapter = ScriptedAdapter(
        _tool_call_turn(
            ToolCall(id="c1", name="broken"),
            ToolCall(id="c2", name="missing"),
            ToolCall(id="c3", name="strict", arguments={}),
        )
    )
    agent = Agent(
        _options(
            tools=[ToolDefinition(name="broken", description="Fails", handler=broken), strict_tool],
            permissions=[{"tool": "*", "action": "allow"}],
        ),
        adapter,
    )

    events = await _collect(agent, "go")
    results = {event.results[0].id: event.results[0] for event in events if event.type == "tool_result"}

    assert events[-1].type == "final"
    assert results["c1"].error == "disk full"
    assert results["c2"].error == "Tool missing not found or has no handler"
    assert "missing required property 'path'" in results["c3"].error


@pytest.mark.asyncio
async def test_duplicate_tool_call_ids_keep_last_call_and_warn():
    calls: list[dict] = []
    adapter = ScriptedAdapter(
        _tool_call_turn(
            ToolCall(id="dup", name="calc", arguments={"a": 1}),
            ToolCall(id="dup", name="calc", arguments={"a": 2}),
        )
    )
    agent = Agent(
        _options(tools=[_calc_tool(calls)], permissions=[{"tool": "calc", "action": "allow"}]),
        adapter,
    )

    with capture_logs() as logs:
        events = await _collect(agent, "go")

    assert calls == [{"a": 2}]
    assert [event.type for event in events].count("tool_result") == 1
    assert agent.get_thread().get_messages()[1].tool_calls == [ToolCall(id="dup", name="calc", arguments={"a": 2})]
    warnings = [entry for entry in logs if entry["event"] == "Duplicate tool call id, replacing earlier call"]
    assert warnings[0]["call_id"] == "dup"
    assert warnings[0]["log_level"] == "warning"


@pytest.mark.asyncio
async def test_adapter_error_event_ends_turn():
    adapter = ScriptedAdapter(
        [
            create_assistant_event(text="Hi"),
            create_error_event("quota exceeded", "OPENAI_ERROR"),
            create_final_event(usage=USAGE),
        ]
    )
    agent = Agent(_options(), adapter)

    events = await _collect(agent, "hello")

    assert [event.type for event in events] == ["system", "assistant", "error"]
    assert events[-1].code == "OPENAI_ERROR"
    assert agent.state == AgentState.ERRORED
    assert [message.role for message in agent.get_thread().get_messages()] == ["user", "assistant"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("error", "code"),
    [
        (ProviderError("openai", "connection reset"), "OPENAI_ERROR"),
        (RuntimeError("unexpected"), "AGENT_ERROR"),
    ],
)
async def test_adapter_exceptions_become_error_events(error, code):
    agent = Agent(_options(), RaisingAdapter(error))

    events = await _collect(agent, "hello")

    assert [event.type for event in events] == ["system", "assistant", "error"]
    assert events[-1].code == code
    assert events[-1].error == str(error)


@pytest.mark.asyncio
async def test_system_event_only_on_first_message_and_metrics():
    adapter = ScriptedAdapter(
        [create_assistant_event(text="one"), create_final_event()],
        [create_assistant_event(text="two"), create_final_event()],
    )
    agent = Agent(_options(), adapter)

    first = await _collect(agent, "hi")
    second = await _collect(agent, UserMessage(text="again"))

    assert [event.type for event in first] == ["system", "assistant", "final"]
    assert [event.type for event in second] == ["assistant", "final"]
    assert second[-1].output == "two"
    assert second[-1].usage is None
    assert [message.content for message in adapter.calls[1]] == ["hi", "one", "again"]
    assert agent.get_metrics() == {"total_requests": 2}


@pytest.mark.asyncio
async def test_tool_results_input_is_appended_as_tool_message():
    adapter = ScriptedAdapter([create_assistant_event(text="thanks"), create_final_event()])
    agent = Agent(_options(), adapter)

    await _collect(agent, [ToolResult(id="c9", result="ok")])

    first = agent.get_thread().get_messages()[0]
    assert first.role == "tool"
    assert first.tool_results == [ToolResult(id="c9", result="ok")]


@pytest.mark.asyncio
async def test_structured_output_is_validated_and_repaired():
    schema = {
        "type": "object",
        "required": ["name", "age"],
        "properties": {"name": {"type": "string"}, "age": {"type": "number"}},
    }
    adapter = ScriptedAdapter(
        [create_assistant_event(text='{"name": "Ada", '), create_assistant_event(text='"age": "36"}'), create_final_event()],
        [create_assistant_event(text='```json\n{"name": "Bob", "age": 41}\n```'), create_final_event()],
        [create_final_event(output={"name": "Cy"})],
    )
    agent = Agent(_options(structured=StructuredOutputConfig(schema=schema)), adapter)

    repaired = await _collect(agent, "who?")
    fenced = await _collect(agent, "and?")
    from_adapter = await _collect(agent, "last?")

    assert repaired[-1].output == {"name": "Ada", "age": 36}
    assert fenced[-1].output == {"name": "Bob", "age": 41}
    assert from_adapter[-1].output == {"name": "Cy", "age": 0}


@pytest.mark.asyncio
async def test_adapter_system_and_tool_result_events_are_ignored():
    adapter = ScriptedAdapter(
        [
            create_system_event("adapter-session", ["x"]),
            create_assistant_event(text="ok"),
            create_final_event(usage=USAGE),
        ]
    )
    agent = Agent(_options(), adapter)

    events = await _collect(agent, "hi")

    assert [event.type for event in events] == ["system", "assistant", "final"]
    assert events[0].session_id == agent.get_thread().id


@pytest.mark.asyncio
async def test_thread_manager_mirrors_turns_and_resumes():
    manager = ThreadManager(user_id="alice")
    adapter = ScriptedAdapter(
        _tool_call_turn(ToolCall(id="call_1", name="calc", arguments={})),
        [create_assistant_event(text="resumed"), create_final_event(usage=USAGE)],
    )
    options = _options(tools=[_calc_tool()], permissions=[{"tool": "calc", "action": "allow"}])
    agent = Agent(options, adapter, thread_manager=manager)

    await _collect(agent, "add")
    thread_id = agent.get_thread().id
    record = await manager.get(thread_id)

    assert record is not None
    assert record.created_by == "alice"
    assert [message.role for message in record.messages] == ["user", "assistant", "tool"]
    assert record.tools_used == ["calc"]
    assert record.cost == USAGE

    resumed = Agent(
        _options(session=ThreadRef(id=thread_id)),
        adapter,
        thread_manager=manager,
    )
    events = await _collect(resumed, "continue")

    assert [event.type for event in events] == ["assistant", "final"]
    assert resumed.get_thread().id == thread_id
    assert len(adapter.calls[1]) == 4
    record = await manager.get(thread_id)
    assert len(record.messages) == 5
    assert record.cost == USAGE + USAGE
