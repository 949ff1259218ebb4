"""In-memory request/response channel between agents."""
from __future__ import annotations

import asyncio
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict

from .errors import TransportError
from .models import A2AMessage


class A2AMessageBus:
    """Async mailbox hub addressing agents by endpoint."""

    def __init__(self) -> None:
        self._mailboxes: Dict[str, asyncio.Queue[A2AMessage]] = {}
        self._lock = asyncio.Lock()

    async def register(self, endpoint: str) -> None:
        """Ensure a mailbox exists for the endpoint."""
        async with self._lock:
            self._mailboxes.setdefault(endpoint, asyncio.Queue())

    async def unregister(self, endpoint: str) -> None:
        """Remove the mailbox to stop further deliveries."""
        async with self._lock:
            self._mailboxes.pop(endpoint, None)

    def is_registered(self, endpoint: str) -> bool:
        return endpoint in self._mailboxes

    async def send(self, message: A2AMessage) -> None:
        """Deliver a message to its recipient's mailbox."""
        queue = self._mailboxes.get(message.recipient_id or "")
        if queue is None:
            raise TransportError(f"No agent listening at '{message.recipient_id}'")
        await queue.put(message)

    async def request(
        self,
        sender_id: str,
        recipient_id: str,
        payload: Dict[str, Any],
        *,
        timeout: float,
    ) -> A2AMessage:
        """Send a request and wait for the correlated reply within ``timeout`` seconds."""
        reply_to = f"{sender_id}-{uuid.uuid4()}"
        correlation_id = str(uuid.uuid4())
        async with self.deliver(reply_to) as inbox:
            await self.send(
                A2AMessage(
                    sender_id=reply_to,
                    recipient_id=recipient_id,
                    payload=payload,
                    correlation_id=correlation_id,
                )
            )
            try:
                while True:
                    reply = await asyncio.wait_for(inbox.get(), timeout=timeout)
                    if reply.correlation_id == correlation_id:
                        return reply
            except asyncio.TimeoutError as exc:
                raise TransportError(
                    f"Agent '{recipient_id}' did not answer within {timeout:.1f}s"
                ) from exc

    @asynccontextmanager
    async def deliver(self, endpoint: str) -> AsyncIterator[asyncio.Queue[A2AMessage]]:
        """Context manager yielding the endpoint's mailbox queue."""
        await self.register(endpoint)
        try:
            yield self._mailboxes[endpoint]
        finally:
            await self.unregister(endpoint)
