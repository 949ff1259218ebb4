"""Tests for specialist agents served over the message bus."""
from __future__ import annotations

import asyncio

import pytest

from fakes import FailingModel, ScriptedModel, answer, tool_call, use_tools
from swiftship.agents.catalog import PAYMENT_AGENT, default_specialists
from swiftship.agents.reasoning import AgentRuntime
from swiftship.agents.specialist import SpecialistAgent
from swiftship.core.message_bus import A2AMessageBus
from swiftship.core.models import AgentState
from swiftship.core.schemas import TaskRequest
from swiftship.services.store import InMemoryStore
from swiftship.tools.payments import refund_key


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


def _payment_agent(bus: A2AMessageBus, model, store: InMemoryStore) -> SpecialistAgent:
    definition = default_specialists()[PAYMENT_AGENT]
    runtime = AgentRuntime(model, definition.tool_registry(store), definition.system_prompt, name=PAYMENT_AGENT)
    return SpecialistAgent(definition.card, bus, runtime)


def _send(text: str, **extra) -> dict:
    return {
        "method": "message/send",
        "params": TaskRequest.from_text("ctx-1", text).model_dump(by_alias=True, mode="json"),
        **extra,
    }


@pytest.mark.anyio
async def test_agent_completes_task_with_tools() -> None:
    bus = A2AMessageBus()
    store = InMemoryStore()
    model = ScriptedModel(
        [
            use_tools(tool_call("processRefund", {"orderId": "ORD-1", "refundAmount": 40, "reason": "lost_package"})),
            answer("Refunded $40.00 for ORD-1"),
        ]
    )
    agent = _payment_agent(bus, model, store)
    await agent.start()
    try:
        assert agent.state is AgentState.RUNNING
        reply = await bus.request("pytest-client", PAYMENT_AGENT, _send("Refund ORD-1", tenant_id="tenant-a"), timeout=2)
    finally:
        await agent.stop()

    result = reply.payload["result"]
    assert result["status"] == "completed"
    assert result["statusMessage"]["parts"][0]["text"] == "Refunded $40.00 for ORD-1"
    assert await store.get("tenant-a", refund_key("ORD-1")) is not None
    assert agent.state is AgentState.STOPPED


@pytest.mark.anyio
async def test_agent_answers_card_requests() -> None:
    bus = A2AMessageBus()
    agent = _payment_agent(bus, ScriptedModel([]), InMemoryStore())
    await agent.start()
    try:
        reply = await bus.request("pytest-client", PAYMENT_AGENT, {"method": "agent/card"}, timeout=2)
    finally:
        await agent.stop()
    assert reply.payload["result"]["endpoint"] == PAYMENT_AGENT


@pytest.mark.anyio
@pytest.mark.parametrize(
    "payload, code",
    [
        ({"method": "message/send", "params": {"contextId": "ctx"}, "tenant_id": "tenant-a"}, "malformed_request"),
        (_send("Refund ORD-1"), "unauthorized"),
        ({"method": "tasks/cancel", "params": {"taskId": "nope"}}, "task_not_found"),
        ({"method": "tasks/resubscribe"}, "method_not_found"),
    ],
)
async def test_agent_rejects_bad_requests(payload: dict, code: str) -> None:
    bus = A2AMessageBus()
    model = ScriptedModel([])
    agent = _payment_agent(bus, model, InMemoryStore())
    await agent.start()
    try:
        reply = await bus.request("pytest-client", PAYMENT_AGENT, payload, timeout=2)
    finally:
        await agent.stop()
    assert reply.payload["error"]["code"] == code
    assert model.calls == []


@pytest.mark.anyio
async def test_model_failure_marks_task_failed() -> None:
    bus = A2AMessageBus()
    agent = _payment_agent(bus, FailingModel(), InMemoryStore())
    await agent.start()
    try:
        reply = await bus.request("pytest-client", PAYMENT_AGENT, _send("Refund", tenant_id="tenant-a"), timeout=2)
    finally:
        await agent.stop()
    assert reply.payload["result"]["status"] == "failed"


@pytest.mark.anyio
async def test_concurrent_tasks_do_not_serialise() -> None:
    bus = A2AMessageBus()
    both_started = asyncio.Event()
    started = 0

    async def slow_answer(call):
        nonlocal started
        started += 1
        if started == 2:
            both_started.set()
        await asyncio.wait_for(both_started.wait(), timeout=1)
        return answer("done")

    agent = _payment_agent(bus, ScriptedModel([slow_answer, slow_answer]), InMemoryStore())
    await agent.start()
    try:
        replies = await asyncio.gather(
            bus.request("client-1", PAYMENT_AGENT, _send("one", tenant_id="tenant-a"), timeout=2),
            bus.request("client-2", PAYMENT_AGENT, _send("two", tenant_id="tenant-a"), timeout=2),
        )
    finally:
        await agent.stop()
    assert [reply.payload["result"]["status"] for reply in replies] == ["completed", "completed"]
    assert agent.task_count == 2


@pytest.mark.anyio
async def test_cancel_stops_a_running_task() -> None:
    bus = A2AMessageBus()
    store = InMemoryStore()
    release = asyncio.Event()
    task_id = "task-cancel-me"

    async def wait_for_cancel(call):
        await release.wait()
        return use_tools(tool_call("processRefund", {"orderId": "ORD-1", "refundAmount": 5, "reason": "lost_package"}))

    agent = _payment_agent(bus, ScriptedModel([wait_for_cancel]), store)
    await agent.start()
    try:
        params = TaskRequest.from_text("ctx-1", "Refund ORD-1", task_id=task_id).model_dump(by_alias=True, mode="json")
        pending = asyncio.create_task(
            bus.request("client-1", PAYMENT_AGENT, {"method": "message/send", "params": params, "tenant_id": "tenant-a"}, timeout=2)
        )
        while agent.tasks.get(task_id) is None:
            await asyncio.sleep(0.01)
        cancelled = await bus.request(
            "client-2", PAYMENT_AGENT, {"method": "tasks/cancel", "params": {"taskId": task_id}}, timeout=2
        )
        release.set()
        reply = await pending
    finally:
        await agent.stop()

    assert cancelled.payload["result"]["status"] == "cancelled"
    assert reply.payload["result"]["status"] == "cancelled"
