"""Thread records and pluggable storage backends."""

import copy
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite

from hummingbird.config import Config, get_config
from hummingbird.logging import get_logger
from hummingbird.types import ArtifactRef, Message, Usage, Visibility, utcnow

log = get_logger(__name__)


@dataclass
class ThreadRecord:
    """A persisted thread."""

    id: str
    created_by: str
    visibility: Visibility = "private"
    messages: list[Message] = field(default_factory=list)
    tools_used: list[str] = field(default_factory=list)
    artifacts: list[ArtifactRef] = field(default_factory=list)
    cost: Usage | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-compatible dictionary."""
        return {
            "id": self.id,
            "created_by": self.created_by,
            "visibility": self.visibility,
            "messages": [message.to_wire() for message in self.messages],
            "tools_used": list(self.tools_used),
            "artifacts": [artifact.to_wire() for artifact in self.artifacts],
            "cost": self.cost.to_wire() if self.cost else None,
            "metadata": self.metadata,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ThreadRecord":
        """Create from dictionary."""
        return cls(
            id=data["id"],
            created_by=data["created_by"],
            visibility=data.get("visibility") or "private",
            messages=[Message.model_validate(item) for item in data.get("messages") or []],
            tools_used=list(data.get("tools_used") or []),
            artifacts=[ArtifactRef.model_validate(item) for item in data.get("artifacts") or []],
            cost=Usage.model_validate(data["cost"]) if data.get("cost") else None,
            metadata=dict(data.get("metadata") or {}),
            created_at=datetime.fromisoformat(data["created_at"]) if data.get("created_at") else utcnow(),
            updated_at=datetime.fromisoformat(data["updated_at"]) if data.get("updated_at") else utcnow(),
        )


class ThreadStore(ABC):
    """Storage contract used by ThreadManager."""

    @abstractmethod
    async def get(self, thread_id: str) -> ThreadRecord | None:
        pass

    @abstractmethod
    async def save(self, record: ThreadRecord) -> None:
        pass

    @abstractmethod
    async def list(
        self,
        created_by: str | None = None,
        visibility: str | None = None,
    ) -> list[ThreadRecord]:
        pass

    @abstractmethod
    async def delete(self, thread_id: str) -> bool:
        """Delete a record, returning whether it existed."""
        pass

    async def close(self) -> None:
        """Release backend resources."""
        return None


class InMemoryThreadStore(ThreadStore):
    """Process-local store; records are copied on the way in and out."""

    def __init__(self):
        self._records: dict[str, ThreadRecord] = {}

    async def get(self, thread_id: str) -> ThreadRecord | None:
        record = self._records.get(thread_id)
        return copy.deepcopy(record) if record else None

    async def save(self, record: ThreadRecord) -> None:
        self._records[record.id] = copy.deepcopy(record)

    async def list(
        self,
        created_by: str | None = None,
        visibility: str | None = None,
    ) -> list[ThreadRecord]:
        records = list(self._records.values())
        if created_by:
            records = [record for record in records if record.created_by == created_by]
        if visibility:
            records = [record for record in records if record.visibility == visibility]
        return [copy.deepcopy(record) for record in records]

    async def delete(self, thread_id: str) -> bool:
        return self._records.pop(thread_id, None) is not None


class SqliteThreadStore(ThreadStore):
    """Thread store backed by a SQLite database."""

    def __init__(self, db_path: Path | str | None = None):
        """Initialize the store.

        Args:
            db_path: Optional database path override
        """
        if db_path is None:
            self.db_path = Path(get_config().threads.path).expanduser()
        else:
            self.db_path = Path(db_path).expanduser()

        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._db: aiosqlite.Connection | None = None

    async def _ensure_db(self) -> aiosqlite.Connection:
        """Ensure database is initialized."""
        if self._db is None:
            self._db = await aiosqlite.connect(str(self.db_path))
            await self._db.execute("""
                CREATE TABLE IF NOT EXISTS threads (
                    id TEXT PRIMARY KEY,
                    created_by TEXT NOT NULL,
                    visibility TEXT NOT NULL,
                    data TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            await self._db.execute(
                "CREATE INDEX IF NOT EXISTS idx_threads_owner ON threads(created_by, visibility)"
            )
            await self._db.commit()
        return self._db

    async def get(self, thread_id: str) -> ThreadRecord | None:
        db = await self._ensure_db()
        async with db.execute("SELECT data FROM threads WHERE id = ?", (thread_id,)) as cursor:
            row = await cursor.fetchone()
        if not row:
            return None
        return ThreadRecord.from_dict(json.loads(row[0]))

    async def save(self, record: ThreadRecord) -> None:
        db = await self._ensure_db()
        await db.execute(
            """
            INSERT OR REPLACE INTO threads (id, created_by, visibility, data, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                record.id,
                record.created_by,
                record.visibility,
                json.dumps(record.to_dict()),
                record.created_at.isoformat(),
                record.updated_at.isoformat(),
            ),
        )
        await db.commit()

    async def list(
        self,
        created_by: str | None = None,
        visibility: str | None = None,
    ) -> list[ThreadRecord]:
        db = await self._ensure_db()
        clauses: list[str] = []
        params: list[str] = []
        if created_by:
            clauses.append("created_by = ?")
            params.append(created_by)
        if visibility:
            clauses.append("visibility = ?")
            params.append(visibility)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        async with db.execute(
            f"SELECT data FROM threads {where} ORDER BY created_at, rowid",
            tuple(params),
        ) as cursor:
            rows = await cursor.fetchall()
        return [ThreadRecord.from_dict(json.loads(row[0])) for row in rows]

    async def delete(self, thread_id: str) -> bool:
        db = await self._ensure_db()
        cursor = await db.execute("DELETE FROM threads WHERE id = ?", (thread_id,))
        await db.commit()
        return cursor.rowcount > 0

    async def close(self) -> None:
        """Close the database connection."""
        if self._db:
            await self._db.close()
            self._db = None


def create_thread_store(config: Config | None = None) -> ThreadStore:
    """Create the thread store selected by ``threads.storage``."""
    cfg = config or get_config()
    if cfg.threads.storage == "sqlite":
        log.debug("Using SQLite thread store", path=cfg.threads.path)
        return SqliteThreadStore(cfg.threads.path)
    return InMemoryThreadStore()
