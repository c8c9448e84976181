"""Persistence-backed thread lifecycle operations."""

import uuid

from hummingbird.exceptions import ThreadNotFoundError
from hummingbird.logging import get_logger
from hummingbird.threads.store import InMemoryThreadStore, ThreadRecord, ThreadStore
from hummingbird.threads.thread import PARENT_THREAD_KEY
from hummingbird.types import ArtifactRef, HandoffFilters, Message, ThreadRef, Usage, utcnow

log = get_logger(__name__)


class ThreadManager:
    """Create, extend, derive, and list threads for one owning user."""

    def __init__(self, store: ThreadStore | None = None, user_id: str = "default-user"):
        self.store = store or InMemoryThreadStore()
        self.user_id = user_id

    async def _require(self, thread_id: str) -> ThreadRecord:
        record = await self.store.get(thread_id)
        if record is None:
            raise ThreadNotFoundError(thread_id)
        return record

    async def create(self, ref: ThreadRef | None = None) -> ThreadRecord:
        """Create and persist an empty thread.

        Args:
            ref: Optional id/visibility to use instead of generated defaults

        Returns:
            The new ThreadRecord
        """
        record = ThreadRecord(
            id=(ref.id if ref else None) or str(uuid.uuid4()),
            created_by=self.user_id,
            visibility=(ref.visibility if ref else None) or "private",
        )
        await self.store.save(record)
        log.info("Created thread", thread_id=record.id, user_id=self.user_id)
        return record

    async def get(self, thread_id: str) -> ThreadRecord | None:
        return await self.store.get(thread_id)

    async def add_message(self, thread_id: str, message: Message) -> None:
        """Append a message and track any newly used tool names."""
        record = await self._require(thread_id)

        record.messages.append(message)
        record.updated_at = utcnow()
        for call in message.tool_calls or []:
            if call.name not in record.tools_used:
                record.tools_used.append(call.name)

        await self.store.save(record)

    async def update_cost(self, thread_id: str, usage: Usage) -> None:
        """Accumulate token usage onto the thread."""
        record = await self._require(thread_id)
        record.cost = usage if record.cost is None else record.cost + usage
        record.updated_at = utcnow()
        await self.store.save(record)

    async def add_artifact(self, thread_id: str, artifact: ArtifactRef) -> None:
        record = await self._require(thread_id)
        record.artifacts.append(artifact)
        record.updated_at = utcnow()
        await self.store.save(record)

    async def handoff(
        self,
        source_thread_id: str,
        goal: str,
        filters: HandoffFilters | None = None,
    ) -> ThreadRef:
        """Start a fresh thread for a new goal, carrying selected context.

        Context is the last ``include_messages`` messages of the source,
        optionally restricted to messages calling one of ``include_tools``
        (messages without tool calls are kept). ``exclude_context`` copies
        nothing. The goal is always appended as the final user message.
        Source metadata is not copied.
        """
        source = await self._require(source_thread_id)
        filters = filters or HandoffFilters()

        record = await self.create(ThreadRef(id=str(uuid.uuid4()), visibility=source.visibility))
        record.metadata[PARENT_THREAD_KEY] = source.id
        await self.store.save(record)

        context = list(source.messages)
        if filters.include_messages is not None:
            context = context[-filters.include_messages:] if filters.include_messages > 0 else []
        if filters.include_tools:
            wanted = set(filters.include_tools)
            context = [
                message
                for message in context
                if not message.tool_calls or any(call.name in wanted for call in message.tool_calls)
            ]

        if not filters.exclude_context:
            for message in context:
                await self.add_message(record.id, message)

        await self.add_message(record.id, Message(role="user", content=goal))

        log.info(
            "Handed off thread",
            source_thread_id=source.id,
            thread_id=record.id,
            context_messages=0 if filters.exclude_context else len(context),
        )
        return ThreadRef(id=record.id, visibility=record.visibility)

    async def fork(self, source_thread_id: str) -> ThreadRef:
        """Copy a thread under a new id; the copy evolves independently."""
        source = await self._require(source_thread_id)
        now = utcnow()
        record = ThreadRecord(
            id=str(uuid.uuid4()),
            created_by=source.created_by,
            visibility=source.visibility,
            messages=list(source.messages),
            tools_used=list(source.tools_used),
            artifacts=list(source.artifacts),
            cost=source.cost,
            metadata={**source.metadata, PARENT_THREAD_KEY: source.id},
            created_at=now,
            updated_at=now,
        )
        await self.store.save(record)
        log.info("Forked thread", source_thread_id=source.id, thread_id=record.id)
        return ThreadRef(id=record.id, visibility=record.visibility)

    async def list(self, visibility: str | None = None) -> list[ThreadRecord]:
        """List threads created by this manager's user."""
        return await self.store.list(created_by=self.user_id, visibility=visibility)

    async def delete(self, thread_id: str) -> None:
        """Delete one of this user's threads."""
        record = await self.store.get(thread_id)
        if record is None or record.created_by != self.user_id:
            raise ThreadNotFoundError(thread_id)
        await self.store.delete(thread_id)
        log.info("Deleted thread", thread_id=thread_id)

    async def close(self) -> None:
        await self.store.close()
