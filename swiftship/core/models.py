"""Core data models shared across orchestration components."""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, auto
from typing import Any, Dict, List, Optional

from .errors import ValidationError


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


class AgentState(Enum):
    """Lifecycle states for an agent mailbox loop."""

    SPAWNING = auto()
    RUNNING = auto()
    STOPPING = auto()
    STOPPED = auto()
    FAILED = auto()


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class PartKind(str, Enum):
    TEXT = "text"
    TOOL_USE = "toolUse"
    TOOL_RESULT = "toolResult"


class TaskStatus(str, Enum):
    """Lifecycle of one delegated unit of work."""

    SUBMITTED = "submitted"
    WORKING = "working"
    INPUT_REQUIRED = "input-required"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED})


@dataclass(frozen=True, slots=True)
class Part:
    """One fragment of a message: plain text, a tool request or a tool result."""

    kind: PartKind
    text: Optional[str] = None
    tool_use_id: Optional[str] = None
    name: Optional[str] = None
    input: Optional[Dict[str, Any]] = None
    content: Optional[str] = None

    @classmethod
    def of_text(cls, text: str) -> Part:
        return cls(kind=PartKind.TEXT, text=text)

    @classmethod
    def tool_use(cls, tool_use_id: str, name: str, tool_input: Dict[str, Any]) -> Part:
        return cls(kind=PartKind.TOOL_USE, tool_use_id=tool_use_id, name=name, input=tool_input)

    @classmethod
    def tool_result(cls, tool_use_id: str, content: str) -> Part:
        return cls(kind=PartKind.TOOL_RESULT, tool_use_id=tool_use_id, content=content)

    def to_dict(self) -> Dict[str, Any]:
        if self.kind is PartKind.TEXT:
            return {"kind": self.kind.value, "text": self.text}
        if self.kind is PartKind.TOOL_USE:
            return {
                "kind": self.kind.value,
                "toolUseId": self.tool_use_id,
                "name": self.name,
                "input": self.input or {},
            }
        return {"kind": self.kind.value, "toolUseId": self.tool_use_id, "content": self.content}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Part:
        kind = PartKind(data["kind"])
        if kind is PartKind.TEXT:
            return cls.of_text(data["text"])
        if kind is PartKind.TOOL_USE:
            return cls.tool_use(data["toolUseId"], data["name"], data.get("input") or {})
        return cls.tool_result(data["toolUseId"], data.get("content", ""))


@dataclass(frozen=True, slots=True)
class Message:
    """One conversation turn; never empty."""

    role: Role
    parts: List[Part]

    def __post_init__(self) -> None:
        if not self.parts:
            raise ValidationError("A message must contain at least one part")

    @classmethod
    def user(cls, text: str) -> Message:
        return cls(role=Role.USER, parts=[Part.of_text(text)])

    @classmethod
    def assistant(cls, text: str) -> Message:
        return cls(role=Role.ASSISTANT, parts=[Part.of_text(text)])

    @property
    def text(self) -> str:
        return "".join(part.text for part in self.parts if part.kind is PartKind.TEXT and part.text)

    @property
    def tool_uses(self) -> List[Part]:
        return [part for part in self.parts if part.kind is PartKind.TOOL_USE]

    @property
    def is_tool_result(self) -> bool:
        return all(part.kind is PartKind.TOOL_RESULT for part in self.parts)

    def to_dict(self) -> Dict[str, Any]:
        return {"role": self.role.value, "parts": [part.to_dict() for part in self.parts]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Message:
        return cls(role=Role(data["role"]), parts=[Part.from_dict(p) for p in data["parts"]])


@dataclass(frozen=True, slots=True)
class Skill:
    """Descriptive capability advertised on an agent card."""

    id: str
    name: str
    description: str
    examples: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "examples": list(self.examples),
            "tags": list(self.tags),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Skill:
        return cls(
            id=data["id"],
            name=data["name"],
            description=data.get("description", ""),
            examples=list(data.get("examples", [])),
            tags=list(data.get("tags", [])),
        )


@dataclass(frozen=True, slots=True)
class AgentCapabilities:
    streaming: bool = False
    push_notifications: bool = False


@dataclass(frozen=True, slots=True)
class AgentCard:
    """Capability descriptor an agent publishes at startup."""

    name: str
    description: str
    endpoint: str
    skills: List[Skill] = field(default_factory=list)
    capabilities: AgentCapabilities = field(default_factory=AgentCapabilities)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "endpoint": self.endpoint,
            "skills": [skill.to_dict() for skill in self.skills],
            "capabilities": {
                "streaming": self.capabilities.streaming,
                "pushNotifications": self.capabilities.push_notifications,
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> AgentCard:
        capabilities = data.get("capabilities") or {}
        return cls(
            name=data["name"],
            description=data.get("description", ""),
            endpoint=data["endpoint"],
            skills=[Skill.from_dict(s) for s in data.get("skills", [])],
            capabilities=AgentCapabilities(
                streaming=bool(capabilities.get("streaming", False)),
                push_notifications=bool(capabilities.get("pushNotifications", False)),
            ),
        )


@dataclass(slots=True)
class Task:
    """Unit of delegated work tracked between a caller and one agent."""

    context_id: str
    agent_id: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: TaskStatus = TaskStatus.SUBMITTED
    history: List[Message] = field(default_factory=list)
    status_message: Optional[Message] = None
    created_at: str = field(default_factory=utcnow)
    updated_at: str = field(default_factory=utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def append(self, message: Message) -> None:
        """Append to history; history only ever grows."""
        self.history.append(message)
        self.updated_at = utcnow()

    @property
    def result_text(self) -> str:
        if self.status_message is not None and self.status_message.text:
            return self.status_message.text
        for message in reversed(self.history):
            if message.role is Role.ASSISTANT and message.text:
                return message.text
        return ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "contextId": self.context_id,
            "agentId": self.agent_id,
            "status": self.status.value,
            "history": [message.to_dict() for message in self.history],
            "statusMessage": self.status_message.to_dict() if self.status_message else None,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Task:
        status_message = data.get("statusMessage")
        return cls(
            id=data["id"],
            context_id=data["contextId"],
            agent_id=data["agentId"],
            status=TaskStatus(data["status"]),
            history=[Message.from_dict(m) for m in data.get("history", [])],
            status_message=Message.from_dict(status_message) if status_message else None,
            created_at=data.get("createdAt", utcnow()),
            updated_at=data.get("updatedAt", utcnow()),
        )


@dataclass(frozen=True, slots=True)
class ConversationEvent:
    """Externally observable projection of one task transition."""

    task_id: str
    context_id: str
    agent_id: str
    status: TaskStatus
    status_message: Optional[str] = None
    timestamp: str = field(default_factory=utcnow)
    kind: str = "task"

    @classmethod
    def from_task(cls, task: Task) -> ConversationEvent:
        return cls(
            task_id=task.id,
            context_id=task.context_id,
            agent_id=task.agent_id,
            status=task.status,
            status_message=task.status_message.text if task.status_message else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "taskId": self.task_id,
            "contextId": self.context_id,
            "agentId": self.agent_id,
            "status": self.status.value,
            "statusMessage": self.status_message,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True, slots=True)
class ToolCall:
    """One tool invocation requested by the model."""

    id: str
    name: str
    input: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ModelResponse:
    text: Optional[str] = None
    tool_calls: List[ToolCall] = field(default_factory=list)


@dataclass(slots=True)
class A2AMessage:
    """Canonical message exchanged between agents over the A2A bus."""

    sender_id: str
    recipient_id: Optional[str]
    payload: Dict[str, Any]
    correlation_id: Optional[str] = None
