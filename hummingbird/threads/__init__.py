"""Conversation threads: in-memory records, storage, and lifecycle management."""

from hummingbird.threads.manager import ThreadManager
from hummingbird.threads.store import (
    InMemoryThreadStore,
    SqliteThreadStore,
    ThreadRecord,
    ThreadStore,
    create_thread_store,
)
from hummingbird.threads.thread import PARENT_THREAD_KEY, Thread, fork, handoff

__all__ = [
    "ThreadManager",
    "InMemoryThreadStore",
    "SqliteThreadStore",
    "ThreadRecord",
    "ThreadStore",
    "create_thread_store",
    "PARENT_THREAD_KEY",
    "Thread",
    "fork",
    "handoff",
]
