"""Pydantic wire schemas for task envelopes, exception events and summaries."""
from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .models import Message, Part, Role


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class WirePart(WireModel):
    kind: Literal["text"] = "text"
    text: str = Field(..., min_length=1)


class WireMessage(WireModel):
    role: Role
    parts: List[WirePart] = Field(..., min_length=1)

    def to_message(self) -> Message:
        return Message(role=self.role, parts=[Part.of_text(part.text) for part in self.parts])


class TaskRequest(WireModel):
    """Envelope sent to an agent on the task request/response channel."""

    context_id: str = Field(..., min_length=1)
    message: WireMessage
    task_id: Optional[str] = Field(default=None, min_length=1, description="Caller-assigned task id")

    @classmethod
    def from_text(cls, context_id: str, text: str, *, task_id: Optional[str] = None) -> TaskRequest:
        return cls(
            context_id=context_id,
            message=WireMessage(role=Role.USER, parts=[WirePart(text=text)]),
            task_id=task_id,
        )


class ExceptionStatus(WireModel):
    status: str = Field(..., description="Exception type reported by the driver")
    reason: str = Field(default="", description="Driver notes")


class ExceptionEvent(WireModel):
    """Inbound delivery exception consumed by the supervisor."""

    delivery_id: str = Field(..., min_length=1)
    context_id: Optional[str] = None
    status: ExceptionStatus
    order_value: Optional[float] = Field(default=None, ge=0)
    order_id: Optional[str] = None
    customer_email: Optional[str] = None


ResolutionStatus = Literal["resolved", "pending", "requires_follow_up"]


class ResolutionSummary(WireModel):
    """Terminal output of one supervised exception resolution."""

    classification: str
    agents_invoked: List[str] = Field(default_factory=list)
    actions_completed: List[str] = Field(default_factory=list)
    status: ResolutionStatus
    customer_impact: str = ""
