"""Per-conversation publish/subscribe channel for task events."""
from __future__ import annotations

import asyncio
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Protocol


class EventChannel(Protocol):
    async def publish(self, topic: str, message: str) -> None:
        ...


class InMemoryEventChannel:
    """Fan-out of serialized events to subscribers of a topic."""

    def __init__(self) -> None:
        self._subscribers: Dict[str, List[asyncio.Queue[str]]] = defaultdict(list)

    async def publish(self, topic: str, message: str) -> None:
        for queue in list(self._subscribers.get(topic, ())):
            await queue.put(message)

    @asynccontextmanager
    async def subscribe(self, topic: str) -> AsyncIterator[asyncio.Queue[str]]:
        """Yield a queue receiving every message published on ``topic``."""
        queue: asyncio.Queue[str] = asyncio.Queue()
        self._subscribers[topic].append(queue)
        try:
            yield queue
        finally:
            self._subscribers[topic].remove(queue)
            if not self._subscribers[topic]:
                del self._subscribers[topic]
