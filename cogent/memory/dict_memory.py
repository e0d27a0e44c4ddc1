"""Simple dictionary-based memory implementation."""

from __future__ import annotations

from collections.abc import MutableMapping
from typing import Any, TypedDict


class ConversationHistoryEntry(TypedDict, total=False):
    """Structure for conversation history entries stored in memory."""

    task: str
    result: str
    mode: str
    success: bool


ConversationHistory = list[ConversationHistoryEntry]
MemoryValue = Any
MemoryStore = MutableMapping[str, MemoryValue]


def DictMemory() -> MemoryStore:
    """
    Create a simple in-memory storage using a dictionary.

    The agent keeps run bookkeeping here (``task:<run_id>``,
    ``result:<run_id>``) plus a bounded ``conversation_history``. Nothing is
    persisted: data is lost when the process terminates.

    Any MutableMapping implementation can be used in place of this one.
    """

    memory: MemoryStore = {}
    return memory
