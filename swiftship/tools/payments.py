"""Refund processing tool."""
from __future__ import annotations

import uuid
from typing import Literal

from pydantic import Field

from swiftship.core.errors import ConditionalCheckFailed, ToolExecutionError
from swiftship.core.models import utcnow
from swiftship.services.store import KeyValueStore
from swiftship.tools.registry import ToolInput, ToolSpec

RefundReason = Literal[
    "delivery_failed",
    "damaged_package",
    "lost_package",
    "customer_request",
    "undeliverable",
]


def refund_key(order_id: str) -> str:
    return f"refund#{order_id}"


class ProcessRefundInput(ToolInput):
    order_id: str = Field(..., min_length=1, description="Order ID to process the refund for")
    refund_amount: float = Field(..., gt=0, description="Refund amount in USD (must be positive)")
    reason: RefundReason = Field(..., description="Reason for the refund")
    priority: bool = Field(default=False, description="Expedite the refund for high-value orders")


def refund_tool(store: KeyValueStore) -> ToolSpec:
    """Build the refund tool; each order is refunded at most once."""

    async def process_refund(tenant_id: str, payload: ProcessRefundInput) -> str:
        if not tenant_id:
            raise ToolExecutionError("Unauthorized: Missing tenant context")

        refund_id = f"ref_{uuid.uuid4().hex[:12]}"
        record = {
            "refundId": refund_id,
            "orderId": payload.order_id,
            "refundAmount": payload.refund_amount,
            "reason": payload.reason,
            "priority": payload.priority,
            "status": "expedited" if payload.priority else "completed",
            "currency": "USD",
            "processedAt": utcnow(),
        }
        try:
            await store.put(tenant_id, refund_key(payload.order_id), record, if_absent=True)
        except ConditionalCheckFailed as exc:
            raise ToolExecutionError(f"Order {payload.order_id} has already been refunded") from exc

        prefix = "Expedited refund" if payload.priority else "Refund"
        return (
            f"{prefix} processed successfully: ${payload.refund_amount:.2f} for order "
            f"{payload.order_id} (Reason: {payload.reason}, Refund ID: {refund_id})"
        )

    return ToolSpec(
        name="processRefund",
        description="Process a refund for an order affected by a delivery exception",
        input_model=ProcessRefundInput,
        handler=process_refund,
        is_multi_tenant=True,
    )
