"""In-memory conversation thread with handoff and fork derivation."""

import copy
import uuid
from typing import Any

from hummingbird.types import ArtifactRef, Message, Role, Usage

PARENT_THREAD_KEY = "parentThreadId"


class Thread:
    """Append-only conversation record for one logical session."""

    def __init__(self, id: str | None = None):
        self._id = id or str(uuid.uuid4())
        self._messages: list[Message] = []
        self._metadata: dict[str, Any] = {}
        self._artifacts: list[ArtifactRef] = []
        self.cost: Usage | None = None

    @property
    def id(self) -> str:
        return self._id

    def add_message(self, message: Message) -> None:
        self._messages.append(message)

    def get_messages(self) -> list[Message]:
        return list(self._messages)

    def get_messages_by_role(self, role: Role) -> list[Message]:
        return [message for message in self._messages if message.role == role]

    def get_recent_messages(self, count: int) -> list[Message]:
        if count <= 0:
            return []
        return self._messages[-count:]

    def set_metadata(self, key: str, value: Any) -> None:
        self._metadata[key] = value

    def get_metadata(self, key: str, default: Any = None) -> Any:
        return self._metadata.get(key, default)

    @property
    def metadata(self) -> dict[str, Any]:
        return dict(self._metadata)

    @property
    def tools_used(self) -> list[str]:
        """Distinct tool names called in this thread, in first-seen order."""
        names: list[str] = []
        for message in self._messages:
            for call in message.tool_calls or []:
                if call.name not in names:
                    names.append(call.name)
        return names

    @property
    def artifacts(self) -> list[ArtifactRef]:
        return list(self._artifacts)

    def add_artifact(self, artifact: ArtifactRef) -> None:
        self._artifacts.append(artifact)

    def add_usage(self, usage: Usage) -> None:
        """Accumulate token usage into the thread's cost."""
        self.cost = usage if self.cost is None else self.cost + usage

    def to_dict(self) -> dict[str, Any]:
        """Export as ``{id, messages, metadata}`` (plus cost/artifacts if set)."""
        data: dict[str, Any] = {
            "id": self._id,
            "messages": [message.to_wire() for message in self._messages],
            "metadata": copy.deepcopy(self._metadata),
        }
        if self.cost is not None:
            data["cost"] = self.cost.to_wire()
        if self._artifacts:
            data["artifacts"] = [artifact.to_wire() for artifact in self._artifacts]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Thread":
        """Import a thread previously produced by :meth:`to_dict`."""
        thread = cls(data["id"])
        thread._messages = [
            item if isinstance(item, Message) else Message.model_validate(item)
            for item in data.get("messages") or []
        ]
        thread._metadata = copy.deepcopy(dict(data.get("metadata") or {}))
        if data.get("cost"):
            thread.cost = Usage.model_validate(data["cost"])
        thread._artifacts = [ArtifactRef.model_validate(item) for item in data.get("artifacts") or []]
        return thread

    def __repr__(self) -> str:
        return f"Thread(id={self._id!r}, messages={len(self._messages)})"


def handoff(source: Thread, last_n: int | None = None, role: Role | None = None) -> Thread:
    """Derive a focused thread from source.

    Metadata is copied and ``parentThreadId`` stamped; messages are filtered
    by role first, then narrowed to the last ``last_n``.
    """
    thread = Thread()
    for key, value in source.metadata.items():
        thread.set_metadata(key, copy.deepcopy(value))
    thread.set_metadata(PARENT_THREAD_KEY, source.id)

    messages = source.get_messages()
    if role is not None:
        messages = [message for message in messages if message.role == role]
    if last_n is not None:
        messages = messages[-last_n:] if last_n > 0 else []

    for message in messages:
        thread.add_message(message)
    return thread


def fork(source: Thread) -> Thread:
    """Derive an independent full copy of source under a new id."""
    thread = Thread()
    for message in source.get_messages():
        thread.add_message(message)
    for key, value in source.metadata.items():
        thread.set_metadata(key, copy.deepcopy(value))
    thread.set_metadata(PARENT_THREAD_KEY, source.id)
    for artifact in source.artifacts:
        thread.add_artifact(artifact)
    thread.cost = source.cost
    return thread
