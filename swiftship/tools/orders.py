"""Order management tools: status changes and replacement orders."""
from __future__ import annotations

import uuid
from typing import List, Literal, Optional

from pydantic import Field

from swiftship.core.errors import ConditionalCheckFailed, ToolExecutionError
from swiftship.core.models import utcnow
from swiftship.services.store import KeyValueStore
from swiftship.tools.registry import ToolInput, ToolSpec

OrderStatus = Literal[
    "pending",
    "processing",
    "shipped",
    "delivered",
    "cancelled",
    "delivery_failed",
    "pending_customer_response",
]


def order_key(order_id: str) -> str:
    return f"order#{order_id}"


def _require_tenant(tenant_id: str) -> None:
    if not tenant_id:
        raise ToolExecutionError("Unauthorized: Missing tenant context")


class ChangeOrderStatusInput(ToolInput):
    order_id: str = Field(..., min_length=1, description="The unique identifier of the order to update")
    new_status: OrderStatus = Field(..., description="The new status to set for the order")
    notes: Optional[str] = Field(default=None, description="Optional notes about the status change")


class Address(ToolInput):
    street: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    zip_code: str = Field(..., min_length=1)
    country: str = "US"


class DuplicateOrderInput(ToolInput):
    original_order_id: str = Field(..., min_length=1, description="The order to duplicate")
    customer_id: Optional[str] = Field(default=None, description="Override the original customer")
    shipping_address: Optional[Address] = Field(default=None, description="Override the original address")
    priority: bool = Field(default=False, description="Ship the replacement with expedited handling")


def order_tools(store: KeyValueStore) -> List[ToolSpec]:
    """Build the order tools bound to ``store``."""

    async def change_order_status(tenant_id: str, payload: ChangeOrderStatusInput) -> str:
        _require_tenant(tenant_id)
        key = order_key(payload.order_id)
        order = await store.get(tenant_id, key)
        if order is None:
            raise ToolExecutionError(f"Order {payload.order_id} not found")

        current_status = order.get("status")
        if current_status == payload.new_status:
            return f"Order {payload.order_id} is already in {payload.new_status} status"

        now = utcnow()
        entry = {"status": payload.new_status, "timestamp": now}
        if payload.notes:
            entry["notes"] = payload.notes
        try:
            await store.update(
                tenant_id,
                key,
                {
                    "status": payload.new_status,
                    "updatedAt": now,
                    "statusHistory": [*order.get("statusHistory", []), entry],
                },
                expected_version=order["version"],
            )
        except ConditionalCheckFailed as exc:
            raise ToolExecutionError(f"Order {payload.order_id} not found or has been modified") from exc

        message = f"Order {payload.order_id} status changed from {current_status} to {payload.new_status}"
        if payload.notes:
            message += f". Notes: {payload.notes}"
        return message

    async def duplicate_order(tenant_id: str, payload: DuplicateOrderInput) -> str:
        _require_tenant(tenant_id)
        original = await store.get(tenant_id, order_key(payload.original_order_id))
        if original is None:
            raise ToolExecutionError(f"Original order {payload.original_order_id} not found")

        new_order_id = str(uuid.uuid4())
        now = utcnow()
        duplicate = {key: value for key, value in original.items() if key != "version"}
        duplicate.update(
            orderId=new_order_id,
            status="pending",
            statusHistory=[
                {
                    "status": "pending",
                    "timestamp": now,
                    "notes": f"Duplicated from order {payload.original_order_id}",
                }
            ],
            replacementFor=payload.original_order_id,
            priority=payload.priority,
            shippingMethod="expedited" if payload.priority else original.get("shippingMethod", "standard"),
            createdAt=now,
            updatedAt=now,
        )
        if payload.customer_id:
            duplicate["customerId"] = payload.customer_id
        if payload.shipping_address:
            duplicate["shippingAddress"] = payload.shipping_address.model_dump(by_alias=True)

        try:
            await store.put(tenant_id, order_key(new_order_id), duplicate, if_absent=True)
        except ConditionalCheckFailed as exc:
            raise ToolExecutionError("Failed to create duplicate order - order ID conflict detected") from exc

        message = f"Order {new_order_id} created as duplicate of {payload.original_order_id}"
        if payload.customer_id:
            message += f" with customer ID {payload.customer_id}"
        if payload.shipping_address:
            message += " with updated shipping address"
        if payload.priority:
            message += " with expedited shipping"
        return message

    return [
        ToolSpec(
            name="changeOrderStatus",
            description="Updates the status of an existing order",
            input_model=ChangeOrderStatusInput,
            handler=change_order_status,
            is_multi_tenant=True,
        ),
        ToolSpec(
            name="duplicateOrder",
            description=(
                "Creates a replacement for an existing order, optionally overriding the customer, "
                "the shipping address or requesting expedited shipping"
            ),
            input_model=DuplicateOrderInput,
            handler=duplicate_order,
            is_multi_tenant=True,
        ),
    ]
