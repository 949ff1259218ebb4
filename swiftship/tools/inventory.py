"""Inventory allocation tool for replacement orders."""
from __future__ import annotations

import uuid

from pydantic import Field

from swiftship.core.errors import ConditionalCheckFailed, ToolExecutionError
from swiftship.core.models import utcnow
from swiftship.services.store import KeyValueStore
from swiftship.tools.registry import ToolInput, ToolSpec


def inventory_key(product_id: str) -> str:
    return f"inventory#{product_id}"


def allocation_key(order_id: str, product_id: str) -> str:
    return f"allocation#{order_id}#{product_id}"


class AllocateInventoryInput(ToolInput):
    order_id: str = Field(..., min_length=1, description="Order the allocation is reserved for")
    product_id: str = Field(..., min_length=1, description="Product identifier to allocate")
    quantity: int = Field(..., gt=0, description="Quantity to allocate (must be positive)")


def inventory_tool(store: KeyValueStore) -> ToolSpec:
    """Build the allocation tool; one allocation per (order, product)."""

    async def allocate_inventory(tenant_id: str, payload: AllocateInventoryInput) -> str:
        if not tenant_id:
            raise ToolExecutionError("Unauthorized: Missing tenant context")

        claim_key = allocation_key(payload.order_id, payload.product_id)
        if await store.get(tenant_id, claim_key) is not None:
            raise ToolExecutionError(
                f"Inventory for product {payload.product_id} is already allocated to order {payload.order_id}"
            )

        stock_key = inventory_key(payload.product_id)
        stock = await store.get(tenant_id, stock_key)
        if stock is None:
            raise ToolExecutionError(f"Allocation failed: Product {payload.product_id} not found in inventory")

        available = stock.get("availableQuantity", 0)
        if available < payload.quantity:
            raise ToolExecutionError(
                f"Allocation failed: Product {payload.product_id} has insufficient inventory "
                f"({available} available, {payload.quantity} requested)"
            )

        try:
            await store.put(
                tenant_id,
                claim_key,
                {
                    "allocationId": str(uuid.uuid4()),
                    "orderId": payload.order_id,
                    "productId": payload.product_id,
                    "quantityAllocated": payload.quantity,
                    "status": "allocated",
                    "createdAt": utcnow(),
                },
                if_absent=True,
            )
        except ConditionalCheckFailed as exc:
            raise ToolExecutionError(
                f"Inventory for product {payload.product_id} is already allocated to order {payload.order_id}"
            ) from exc

        try:
            await store.update(
                tenant_id,
                stock_key,
                {
                    "availableQuantity": available - payload.quantity,
                    "allocatedQuantity": stock.get("allocatedQuantity", 0) + payload.quantity,
                    "updatedAt": utcnow(),
                },
                expected_version=stock["version"],
            )
        except ConditionalCheckFailed as exc:
            await store.delete(tenant_id, claim_key)
            raise ToolExecutionError(
                f"Allocation failed: inventory for {payload.product_id} changed concurrently, retry the allocation"
            ) from exc

        return f"Successfully allocated {payload.quantity} units of {payload.product_id} for order {payload.order_id}"

    return ToolSpec(
        name="allocateInventory",
        description="Reserve inventory for a replacement order after checking availability",
        input_model=AllocateInventoryInput,
        handler=allocate_inventory,
        is_multi_tenant=True,
    )
