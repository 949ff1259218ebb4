"""Republishes task transitions on the per-conversation event channel."""
from __future__ import annotations

import asyncio
import json

from swiftship.core.event_channel import EventChannel
from swiftship.core.logging import get_logger
from swiftship.core.models import ConversationEvent, Task

logger = get_logger(name=__name__)


class EventPublisher:
    """Fire-and-forget publisher; channel failures never reach the caller."""

    def __init__(self, channel: EventChannel, *, timeout: float = 2.0) -> None:
        self._channel = channel
        self._timeout = timeout

    async def emit(self, task: Task) -> None:
        event = ConversationEvent.from_task(task)
        try:
            await asyncio.wait_for(
                self._channel.publish(event.context_id, json.dumps(event.to_dict())),
                timeout=self._timeout,
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "event_publish_failed",
                task_id=event.task_id,
                context_id=event.context_id,
                status=event.status.value,
                error=str(exc) or type(exc).__name__,
            )
