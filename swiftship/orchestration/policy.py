"""Declarative exception-handling policy rendered into the supervisor prompt.

The policy is data the model consults; adding an exception class means adding
a rule here, not a branch in the supervisor loop.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple

from swiftship.core.models import AgentCard
from swiftship.core.schemas import ExceptionEvent


@dataclass(frozen=True)
class PolicyRule:
    signal: str
    strategy: Tuple[str, ...]


DEFAULT_POLICY: Tuple[PolicyRule, ...] = (
    PolicyRule(
        signal='First-attempt "Customer Not Home" or an access issue (gate code needed)',
        strategy=(
            "Notify the customer via sendCustomerEmail (reschedule, or ask for access information)",
            "Invoke the order agent to update the order status (e.g. pending_customer_response)",
            "Do not refund",
        ),
    ),
    PolicyRule(
        signal="Damaged or lost package",
        strategy=(
            "Invoke the payment agent to refund the order",
            "Invoke the warehouse agent to allocate replacement inventory",
            "Invoke the order agent to recreate the order with the allocated inventory",
            "Notify the customer of the refund and replacement via sendCustomerEmail",
        ),
    ),
    PolicyRule(
        signal="Order value above $200 AND damaged or lost",
        strategy=(
            "Same steps as damaged or lost package",
            "Ask the payment agent for a priority (expedited) refund",
            "Ask the order agent for priority shipping on the replacement",
            "Send an apology with expedited tracking information",
        ),
    ),
    PolicyRule(
        signal="Three or more failed delivery attempts",
        strategy=(
            "Notify the customer to arrange an alternative delivery or pickup",
            "If the customer is unreachable after 24 hours: refund via the payment agent, "
            "have the order agent mark the order cancelled as undeliverable, send a final notice",
        ),
    ),
    PolicyRule(
        signal="Complete loss or theft",
        strategy=(
            "Invoke the payment agent for an immediate full refund",
            "Invoke the warehouse agent to allocate replacement inventory",
            "Invoke the order agent to recreate the order if inventory is available",
            "Notify the customer and provide options",
        ),
    ),
    PolicyRule(
        signal="Anything that does not match the rules above",
        strategy=("Notify the customer directly that there was an issue with their delivery",),
    ),
)

RESPONSE_FORMAT = """RESPONSE FORMAT:
Write a short summary for the operations team, then end your reply with a
JSON object in a ```json fenced block with these keys:
- "classification": the exception classification you applied
- "status": one of "resolved", "pending", "requires_follow_up"
- "customerImpact": what the customer should expect next
- "actionsCompleted": list of the actions that actually succeeded"""


def render_policy(rules: Iterable[PolicyRule]) -> str:
    lines = ["HANDLING STRATEGIES:"]
    for rule in rules:
        lines.append(f"- {rule.signal}:")
        lines.extend(f"  {index}. {step}" for index, step in enumerate(rule.strategy, start=1))
    return "\n".join(lines)


def render_agents(cards: Sequence[AgentCard]) -> str:
    if not cards:
        return "AVAILABLE AGENTS: none are reachable; notify the customer directly."
    lines = ["AVAILABLE AGENTS (use the id with invokeAgent):"]
    for card in cards:
        skills = ", ".join(skill.name for skill in card.skills) or "general"
        lines.append(f"- id={card.endpoint}: {card.name}. {card.description} Skills: {skills}.")
    return "\n".join(lines)


def build_system_prompt(rules: Sequence[PolicyRule], cards: Sequence[AgentCard]) -> str:
    return "\n\n".join(
        [
            "You are analyzing a delivery exception to determine the appropriate handling strategy.\n"
            "Orchestrate the available agents with invokeAgent to resolve it. Give each agent the "
            "concrete identifiers, amounts and flags it needs. Call agents one at a time when a step "
            "depends on the previous result; call them in the same turn when the steps are independent.",
            render_policy(rules),
            render_agents(cards),
            RESPONSE_FORMAT,
        ]
    )


def build_exception_message(event: ExceptionEvent) -> str:
    lines = [
        "DELIVERY EXCEPTION DETAILS:",
        f"- Delivery ID: {event.delivery_id}",
        f"- Exception Type: {event.status.status}",
        f'- Driver Notes: "{event.status.reason}"',
    ]
    if event.order_id:
        lines.append(f"- Order ID: {event.order_id}")
    if event.order_value is not None:
        lines.append(f"- Order Value: ${event.order_value:.2f}")
    if event.customer_email:
        lines.append(f"- Customer Email: {event.customer_email}")
    return "\n".join(lines)
