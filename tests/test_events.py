"""Tests for the conversation event publisher."""
from __future__ import annotations

import asyncio
import json

import pytest

from swiftship.core.event_channel import InMemoryEventChannel
from swiftship.core.models import Message, TaskStatus
from swiftship.core.tasks import TaskManager
from swiftship.orchestration.events import EventPublisher


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class BrokenChannel:
    async def publish(self, topic: str, message: str) -> None:
        raise ConnectionError("redis unavailable")


class StuckChannel:
    async def publish(self, topic: str, message: str) -> None:
        await asyncio.sleep(60)


@pytest.mark.anyio
async def test_events_arrive_in_transition_order() -> None:
    channel = InMemoryEventChannel()
    manager = TaskManager("payment", EventPublisher(channel))

    async with channel.subscribe("ctx-1") as queue:
        task = await manager.create("ctx-1", Message.user("Refund ORD-1"))
        await manager.transition(task, TaskStatus.WORKING)
        await manager.transition(task, TaskStatus.COMPLETED, Message.assistant("Refunded"))
        events = [json.loads(queue.get_nowait()) for _ in range(3)]

    assert [event["status"] for event in events] == ["submitted", "working", "completed"]
    assert {event["taskId"] for event in events} == {task.id}
    assert events[-1]["statusMessage"] == "Refunded"
    assert events[0]["agentId"] == "payment"
    assert events[0]["kind"] == "task"


@pytest.mark.anyio
async def test_other_conversations_do_not_receive_events() -> None:
    channel = InMemoryEventChannel()
    manager = TaskManager("payment", EventPublisher(channel))

    async with channel.subscribe("ctx-other") as queue:
        await manager.create("ctx-1", Message.user("Refund ORD-1"))
        assert queue.empty()


@pytest.mark.anyio
async def test_publish_failure_does_not_fail_the_transition() -> None:
    manager = TaskManager("payment", EventPublisher(BrokenChannel()))

    task = await manager.create("ctx-1", Message.user("Refund ORD-1"))
    await manager.transition(task, TaskStatus.WORKING)

    assert task.status is TaskStatus.WORKING


@pytest.mark.anyio
async def test_slow_channel_is_bounded_by_timeout() -> None:
    manager = TaskManager("payment", EventPublisher(StuckChannel(), timeout=0.05))

    task = await asyncio.wait_for(manager.create("ctx-1", Message.user("Refund ORD-1")), timeout=1)

    assert task.status is TaskStatus.SUBMITTED
