"""Conversation memory replayed into a reasoning loop's history."""
from __future__ import annotations

from collections import defaultdict
from typing import Dict, List, Protocol, Sequence

from swiftship.core.models import Message


class ConversationMemory(Protocol):
    async def load_history(self, session_id: str) -> List[Message]:
        ...

    async def append_history(self, session_id: str, messages: Sequence[Message]) -> None:
        ...


class InMemoryConversationMemory:
    def __init__(self) -> None:
        self._sessions: Dict[str, List[Message]] = defaultdict(list)

    async def load_history(self, session_id: str) -> List[Message]:
        return list(self._sessions.get(session_id, ()))

    async def append_history(self, session_id: str, messages: Sequence[Message]) -> None:
        self._sessions[session_id].extend(messages)
