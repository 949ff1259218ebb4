"""Base agent: a mailbox loop on the A2A bus."""
from __future__ import annotations

import abc
import asyncio
from typing import Any, Dict, Optional, Set

from swiftship.core.errors import TransportError
from swiftship.core.logging import get_logger
from swiftship.core.message_bus import A2AMessageBus
from swiftship.core.models import A2AMessage, AgentCard, AgentState

logger = get_logger(name=__name__)


class Agent(abc.ABC):
    """Abstract agent encapsulating lifecycle hooks and request handling."""

    def __init__(self, card: AgentCard, bus: A2AMessageBus) -> None:
        self._card = card
        self._bus = bus
        self.state = AgentState.SPAWNING
        self.last_error: Optional[str] = None
        self.task_count = 0
        self._runner: Optional[asyncio.Task[None]] = None
        self._inflight: Set[asyncio.Task[None]] = set()
        self._stop_event = asyncio.Event()
        self._started_event = asyncio.Event()

    @property
    def endpoint(self) -> str:
        return self._card.endpoint

    def describe(self) -> AgentCard:
        return self._card

    async def start(self) -> None:
        """Start the agent's background loop."""
        if self._runner is not None:
            return
        self._stop_event.clear()
        self._started_event.clear()
        self._runner = asyncio.create_task(self._run_safe())
        await self._started_event.wait()

    async def stop(self) -> None:
        """Signal the agent to stop, let in-flight requests finish, and wait."""
        if self._runner is None:
            return
        self.state = AgentState.STOPPING
        self._stop_event.set()
        await self._runner
        self._runner = None

    async def _run_safe(self) -> None:
        """Wrap the main loop to handle exceptions gracefully."""
        try:
            async with self._bus.deliver(self.endpoint) as inbox:
                self.state = AgentState.RUNNING
                self._started_event.set()
                while not self._stop_event.is_set():
                    try:
                        message = await asyncio.wait_for(inbox.get(), timeout=0.5)
                    except asyncio.TimeoutError:
                        continue
                    request = asyncio.create_task(self._handle_safe(message))
                    self._inflight.add(request)
                    request.add_done_callback(self._inflight.discard)
                if self._inflight:
                    await asyncio.gather(*self._inflight, return_exceptions=True)
        except Exception as exc:  # noqa: BLE001
            self.state = AgentState.FAILED
            self.last_error = str(exc)
            logger.exception("agent_loop_failed", endpoint=self.endpoint)
            self._started_event.set()
        else:
            self.state = AgentState.STOPPED
            self._started_event.set()

    async def _handle_safe(self, message: A2AMessage) -> None:
        try:
            payload = await self.handle_request(message.payload)
        except Exception as exc:  # noqa: BLE001
            logger.exception("agent_request_failed", endpoint=self.endpoint)
            payload = {"error": {"code": "internal_error", "message": str(exc) or type(exc).__name__}}
        self.task_count += 1
        await self._reply(message, payload)

    async def _reply(self, message: A2AMessage, payload: Dict[str, Any]) -> None:
        try:
            await self._bus.send(
                A2AMessage(
                    sender_id=self.endpoint,
                    recipient_id=message.sender_id,
                    payload=payload,
                    correlation_id=message.correlation_id,
                )
            )
        except TransportError:
            # The requester gave up waiting.
            logger.info("agent_reply_dropped", endpoint=self.endpoint, recipient=message.sender_id)

    @abc.abstractmethod
    async def handle_request(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Process one request payload and return the reply payload."""
