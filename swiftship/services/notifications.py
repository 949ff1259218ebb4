"""Customer notification delivery boundary."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Protocol

from swiftship.core.models import utcnow


@dataclass(frozen=True, slots=True)
class CustomerNotification:
    recipient: str
    subject: str
    body_html: str
    sent_at: str = field(default_factory=utcnow)


class Notifier(Protocol):
    async def send(self, notification: CustomerNotification) -> None:
        ...


class OutboxNotifier:
    """Collects notifications in memory instead of delivering them."""

    def __init__(self) -> None:
        self.outbox: List[CustomerNotification] = []

    async def send(self, notification: CustomerNotification) -> None:
        self.outbox.append(notification)
