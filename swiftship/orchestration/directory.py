"""Agent card directory and inbound envelope validation."""
from __future__ import annotations

from typing import Any, Dict, List

from pydantic import ValidationError as PydanticValidationError

from swiftship.core.errors import MalformedRequest
from swiftship.core.models import AgentCard
from swiftship.core.schemas import TaskRequest


def validate_request(payload: Any) -> TaskRequest:
    """Parse a task-message envelope or raise :class:`MalformedRequest`."""
    if not isinstance(payload, dict):
        raise MalformedRequest("Task request must be a JSON object")
    try:
        return TaskRequest.model_validate(payload)
    except PydanticValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise MalformedRequest(f"Malformed task request: {problems}") from exc


class AgentDirectory:
    """Cards published by reachable agents, keyed by endpoint."""

    def __init__(self) -> None:
        self._cards: Dict[str, AgentCard] = {}

    def publish(self, card: AgentCard) -> None:
        """Publish a card; republishing replaces the previous one."""
        self._cards[card.endpoint] = card

    def describe(self, endpoint: str) -> AgentCard:
        if endpoint not in self._cards:
            raise KeyError(f"No agent card published for endpoint '{endpoint}'")
        return self._cards[endpoint]

    def cards(self) -> List[AgentCard]:
        return list(self._cards.values())

    def __contains__(self, endpoint: object) -> bool:
        return endpoint in self._cards
