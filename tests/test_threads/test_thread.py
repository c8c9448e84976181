from hummingbird.threads import PARENT_THREAD_KEY, Thread, fork, handoff
from hummingbird.types import ArtifactRef, Message, ToolCall, Usage


def _thread_with(*contents: str) -> Thread:
    thread = Thread("t-1")
    for index, content in enumerate(contents):
        role = "user" if index % 2 == 0 else "assistant"
        thread.add_message(Message(role=role, content=content))
    return thread


def test_add_message_preserves_order():
    thread = Thread()
    messages = [Message(role="user", content=str(index)) for index in range(5)]

    for message in messages:
        thread.add_message(message)
        assert thread.get_messages()[-1] == message

    assert thread.get_messages() == messages


def test_get_messages_returns_copy():
    thread = _thread_with("a")

    thread.get_messages().append(Message(role="user", content="b"))

    assert len(thread.get_messages()) == 1


def test_generated_ids_are_unique():
    assert Thread().id != Thread().id


def test_role_and_recent_queries():
    thread = _thread_with("u1", "a1", "u2", "a2")

    assert [m.content for m in thread.get_messages_by_role("user")] == ["u1", "u2"]
    assert [m.content for m in thread.get_recent_messages(3)] == ["a1", "u2", "a2"]
    assert thread.get_recent_messages(0) == []
    assert len(thread.get_recent_messages(10)) == 4


def test_metadata_accessors():
    thread = Thread()
    thread.set_metadata("project", "demo")

    assert thread.get_metadata("project") == "demo"
    assert thread.get_metadata("missing", "fallback") == "fallback"
    thread.metadata["project"] = "changed"
    assert thread.get_metadata("project") == "demo"


def test_tools_used_tracks_distinct_names():
    thread = Thread()
    thread.add_message(
        Message(
            role="assistant",
            tool_calls=[ToolCall(id="1", name="Bash"), ToolCall(id="2", name="Fetch")],
        )
    )
    thread.add_message(Message(role="assistant", tool_calls=[ToolCall(id="3", name="Bash")]))

    assert thread.tools_used == ["Bash", "Fetch"]


def test_export_import_round_trip():
    thread = _thread_with("hello", "hi there")
    thread.set_metadata("project", {"name": "demo"})
    thread.add_usage(Usage(input_tokens=3, output_tokens=2, total_tokens=5))
    thread.add_artifact(ArtifactRef(id="a1", type="file", uri="file:///tmp/out.txt"))

    exported = thread.to_dict()
    restored = Thread.from_dict(exported)

    assert set(exported) >= {"id", "messages", "metadata"}
    assert restored.id == thread.id
    assert restored.get_messages() == thread.get_messages()
    assert restored.metadata == thread.metadata
    assert restored.cost == thread.cost
    assert restored.artifacts == thread.artifacts


def test_fork_is_independent():
    source = _thread_with("one", "two")
    source.set_metadata("project", "demo")

    forked = fork(source)
    forked.add_message(Message(role="user", content="three"))
    source.add_message(Message(role="user", content="source only"))

    assert forked.id != source.id
    assert len(source.get_messages()) == 3
    assert [m.content for m in forked.get_messages()] == ["one", "two", "three"]
    assert forked.get_metadata("project") == "demo"
    assert forked.get_metadata(PARENT_THREAD_KEY) == source.id


def test_handoff_keeps_last_n_messages_in_order():
    source = _thread_with("m1", "m2", "m3", "m4", "m5")

    derived = handoff(source, last_n=3)

    assert [m.content for m in derived.get_messages()] == ["m3", "m4", "m5"]
    assert derived.get_metadata(PARENT_THREAD_KEY) == source.id
    assert derived.id != source.id


def test_handoff_filters_by_role_then_count():
    source = _thread_with("u1", "a1", "u2", "a2", "u3")

    derived = handoff(source, last_n=2, role="user")

    assert [m.content for m in derived.get_messages()] == ["u2", "u3"]


def test_handoff_edge_counts():
    source = _thread_with("m1", "m2")

    assert handoff(source, last_n=0).get_messages() == []
    assert len(handoff(source, last_n=10).get_messages()) == 2
    assert len(handoff(source).get_messages()) == 2
