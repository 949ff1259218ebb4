"""Cards, prompts and tool sets of the specialist agents."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List

from swiftship.core.models import AgentCard, Skill
from swiftship.services.store import KeyValueStore
from swiftship.tools.inventory import inventory_tool
from swiftship.tools.orders import order_tools
from swiftship.tools.payments import refund_tool
from swiftship.tools.registry import ToolRegistry, ToolSpec

ORDER_AGENT = "order"
PAYMENT_AGENT = "payment"
WAREHOUSE_AGENT = "warehouse"


@dataclass(frozen=True)
class SpecialistDefinition:
    card: AgentCard
    system_prompt: str
    build_tools: Callable[[KeyValueStore], List[ToolSpec]]

    @property
    def endpoint(self) -> str:
        return self.card.endpoint

    def tool_registry(self, store: KeyValueStore) -> ToolRegistry:
        return ToolRegistry(self.build_tools(store))


ORDER_PROMPT = """You are the Order Management Agent for SwiftShip Logistics.
You manage order statuses and create replacement orders for failed deliveries.

Tools:
- changeOrderStatus: move an order to a new status and record optional notes.
- duplicateOrder: create a replacement order, optionally with a new customer,
  a new shipping address, or expedited (priority) shipping.

Confirm every operation with the resulting order id and status. If a tool
reports an error, explain it plainly instead of retrying blindly."""

PAYMENT_PROMPT = """You are the Payment Management Agent for SwiftShip Logistics.
You process refunds for delivery exceptions.

Tool:
- processRefund: refund an order. Supported reasons are delivery_failed,
  damaged_package, lost_package, customer_request and undeliverable. Set
  priority to true when the request asks for an expedited or priority refund.

An order can only be refunded once. Confirm the amount, reason and refund id."""

WAREHOUSE_PROMPT = """You are the Warehouse Management Agent for SwiftShip Logistics.
You allocate inventory for replacement orders.

Steps:
1. Validate the allocation request (orderId, productId, quantity).
2. Allocate with allocateInventory; it checks availability for you.
3. Confirm the allocation, or explain why it could not be made.

Never allocate more than is available and only allocate positive quantities."""


def _order_card(endpoint: str) -> AgentCard:
    return AgentCard(
        name="Order Management Agent",
        description="Manage shipping orders, statuses, and order operations",
        endpoint=endpoint,
        skills=[
            Skill(
                id="change-order-status",
                name="Change Order Status",
                description="Update order status, including delivery failures",
                examples=["Change order ORD-12345 status to delivery_failed", "Mark order as delivered"],
                tags=["order-management", "status-update", "delivery"],
            ),
            Skill(
                id="duplicate-order",
                name="Duplicate Order",
                description="Create replacement orders for failed deliveries with optional overrides",
                examples=["Duplicate order ORD-12345 for redelivery with priority shipping"],
                tags=["order-management", "redelivery", "replacement"],
            ),
        ],
    )


def _payment_card(endpoint: str) -> AgentCard:
    return AgentCard(
        name="Payment Management Agent",
        description="Process refunds and verify payment integrity for delivery exceptions",
        endpoint=endpoint,
        skills=[
            Skill(
                id="process-refund",
                name="Process Refund",
                description="Refund orders affected by failed deliveries, damage or loss",
                examples=["Process a priority refund of $250 for order ORD-12345 due to damage"],
                tags=["payment", "refund", "delivery-failure"],
            )
        ],
    )


def _warehouse_card(endpoint: str) -> AgentCard:
    return AgentCard(
        name="Warehouse Management Agent",
        description="Manage inventory allocation and stock levels for replacement orders",
        endpoint=endpoint,
        skills=[
            Skill(
                id="allocate-inventory",
                name="Allocate Inventory",
                description="Reserve inventory for replacement orders with availability checks",
                examples=["Allocate 1 unit of product PRD-789 for order ORD-12345"],
                tags=["inventory", "warehouse", "allocation"],
            )
        ],
    )


def default_specialists() -> Dict[str, SpecialistDefinition]:
    """Order, payment and warehouse specialists keyed by endpoint."""
    definitions = [
        SpecialistDefinition(_order_card(ORDER_AGENT), ORDER_PROMPT, order_tools),
        SpecialistDefinition(_payment_card(PAYMENT_AGENT), PAYMENT_PROMPT, lambda store: [refund_tool(store)]),
        SpecialistDefinition(
            _warehouse_card(WAREHOUSE_AGENT), WAREHOUSE_PROMPT, lambda store: [inventory_tool(store)]
        ),
    ]
    return {definition.endpoint: definition for definition in definitions}
