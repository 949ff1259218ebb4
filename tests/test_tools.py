"""Tests for the tool registry and the domain tools."""
from __future__ import annotations

import json

import pytest
from pydantic import Field

from swiftship.core.errors import ToolExecutionError, UnknownTool, ValidationError
from swiftship.services.notifications import OutboxNotifier
from swiftship.services.store import InMemoryStore
from swiftship.tools.inventory import allocation_key, inventory_key, inventory_tool
from swiftship.tools.notify import customer_email_tool
from swiftship.tools.orders import order_key, order_tools
from swiftship.tools.payments import refund_key, refund_tool
from swiftship.tools.registry import ToolInput, ToolRegistry, ToolSpec


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class LookupInput(ToolInput):
    order_id: str = Field(..., min_length=1)
    quantity: int = Field(default=1, gt=0)


async def _lookup(payload: LookupInput) -> str:
    return payload.order_id


def _registry() -> ToolRegistry:
    return ToolRegistry([ToolSpec(name="lookup", description="Look up an order", input_model=LookupInput, handler=_lookup)])


def test_resolve_unknown_tool_raises() -> None:
    with pytest.raises(UnknownTool) as excinfo:
        _registry().resolve("missing")
    assert excinfo.value.name == "missing"


def test_register_duplicate_name_rejected() -> None:
    registry = _registry()
    with pytest.raises(ValueError):
        registry.register(ToolSpec(name="lookup", description="again", input_model=LookupInput, handler=_lookup))


def test_model_format_exposes_camel_case_schema_only() -> None:
    (descriptor,) = _registry().to_model_format()
    assert set(descriptor) == {"name", "description", "input_schema"}
    assert set(descriptor["input_schema"]["properties"]) == {"orderId", "quantity"}
    assert descriptor["input_schema"]["required"] == ["orderId"]


def test_validate_reports_field_problems() -> None:
    spec = _registry().resolve("lookup")
    assert spec.validate({"orderId": "ORD-1"}).order_id == "ORD-1"
    with pytest.raises(ValidationError, match="quantity"):
        spec.validate({"orderId": "ORD-1", "quantity": 0})


@pytest.mark.anyio
async def test_refund_is_at_most_once_per_order() -> None:
    store = InMemoryStore()
    spec = refund_tool(store)
    payload = spec.validate({"orderId": "ORD-1", "refundAmount": 250, "reason": "damaged_package", "priority": True})

    message = await spec.handler("tenant-a", payload)
    assert "Expedited refund processed successfully: $250.00" in message

    with pytest.raises(ToolExecutionError, match="already been refunded"):
        await spec.handler("tenant-a", payload)

    record = await store.get("tenant-a", refund_key("ORD-1"))
    assert record["priority"] is True
    assert record["status"] == "expedited"


@pytest.mark.anyio
async def test_refund_rejects_unknown_reason_and_non_positive_amount() -> None:
    spec = refund_tool(InMemoryStore())
    with pytest.raises(ValidationError):
        spec.validate({"orderId": "ORD-1", "refundAmount": 10, "reason": "bored"})
    with pytest.raises(ValidationError):
        spec.validate({"orderId": "ORD-1", "refundAmount": 0, "reason": "lost_package"})


@pytest.mark.anyio
async def test_tenant_scoping_isolates_orders() -> None:
    store = InMemoryStore()
    await store.put("tenant-a", order_key("ORD-1"), {"orderId": "ORD-1", "status": "delivery_failed"})
    change_status, _ = order_tools(store)
    payload = change_status.validate({"orderId": "ORD-1", "newStatus": "pending_customer_response"})

    with pytest.raises(ToolExecutionError, match="not found"):
        await change_status.handler("tenant-b", payload)

    message = await change_status.handler("tenant-a", payload)
    assert message == "Order ORD-1 status changed from delivery_failed to pending_customer_response"
    assert await store.get("tenant-b", order_key("ORD-1")) is None


@pytest.mark.anyio
async def test_change_status_to_same_status_is_a_no_op() -> None:
    store = InMemoryStore()
    await store.put("tenant-a", order_key("ORD-1"), {"orderId": "ORD-1", "status": "shipped"})
    change_status, _ = order_tools(store)

    message = await change_status.handler("tenant-a", change_status.validate({"orderId": "ORD-1", "newStatus": "shipped"}))

    assert "already in shipped status" in message
    assert (await store.get("tenant-a", order_key("ORD-1")))["version"] == 1


@pytest.mark.anyio
async def test_conditional_write_conflict_is_reported_not_overwritten() -> None:
    store = InMemoryStore()
    await store.put("tenant-a", order_key("ORD-1"), {"orderId": "ORD-1", "status": "delivery_failed"})
    change_status, _ = order_tools(store)
    original_get = store.get

    async def stale_get(tenant_id: str, key: str):
        record = await original_get(tenant_id, key)
        # Another writer lands between our read and our write.
        await store.update(tenant_id, key, {"status": "cancelled"})
        return record

    store.get = stale_get  # type: ignore[method-assign]
    payload = change_status.validate({"orderId": "ORD-1", "newStatus": "pending_customer_response"})
    with pytest.raises(ToolExecutionError, match="has been modified"):
        await change_status.handler("tenant-a", payload)

    record = await original_get("tenant-a", order_key("ORD-1"))
    assert record["status"] == "cancelled"
    assert record["version"] == 2


@pytest.mark.anyio
async def test_duplicate_order_with_priority_ships_expedited() -> None:
    store = InMemoryStore()
    await store.put(
        "tenant-a",
        order_key("ORD-1"),
        {"orderId": "ORD-1", "status": "delivery_failed", "customerId": "C-1", "shippingMethod": "standard"},
    )
    _, duplicate = order_tools(store)

    message = await duplicate.handler("tenant-a", duplicate.validate({"originalOrderId": "ORD-1", "priority": True}))

    new_order_id = message.split()[1]
    record = await store.get("tenant-a", order_key(new_order_id))
    assert record["replacementFor"] == "ORD-1"
    assert record["shippingMethod"] == "expedited"
    assert record["customerId"] == "C-1"
    assert record["status"] == "pending"


@pytest.mark.anyio
async def test_allocation_decrements_stock_once_per_order() -> None:
    store = InMemoryStore()
    await store.put("tenant-a", inventory_key("PRD-1"), {"productId": "PRD-1", "availableQuantity": 3})
    spec = inventory_tool(store)
    payload = spec.validate({"orderId": "ORD-1", "productId": "PRD-1", "quantity": 2})

    assert "Successfully allocated 2 units" in await spec.handler("tenant-a", payload)
    with pytest.raises(ToolExecutionError, match="already allocated"):
        await spec.handler("tenant-a", payload)

    stock = await store.get("tenant-a", inventory_key("PRD-1"))
    assert stock["availableQuantity"] == 1
    assert stock["allocatedQuantity"] == 2


@pytest.mark.anyio
async def test_allocation_refuses_insufficient_stock() -> None:
    store = InMemoryStore()
    await store.put("tenant-a", inventory_key("PRD-1"), {"productId": "PRD-1", "availableQuantity": 1})
    spec = inventory_tool(store)

    with pytest.raises(ToolExecutionError, match="insufficient inventory"):
        await spec.handler("tenant-a", spec.validate({"orderId": "ORD-1", "productId": "PRD-1", "quantity": 5}))
    assert await store.get("tenant-a", allocation_key("ORD-1", "PRD-1")) is None


@pytest.mark.anyio
async def test_customer_email_lands_in_outbox() -> None:
    notifier = OutboxNotifier()
    spec = customer_email_tool(notifier)
    payload = spec.validate({"subject": "Update", "messageHtml": "<p>Hi</p>", "toEmail": "c@example.com"})

    assert await spec.handler(payload) == "Notification sent successfully"
    assert not spec.is_multi_tenant
    assert [n.recipient for n in notifier.outbox] == ["c@example.com"]
    assert json.dumps(spec.input_schema)
