"""Error taxonomy shared by the orchestration core."""
from __future__ import annotations


class OrchestrationError(Exception):
    """Base class for every error raised by the orchestration core."""


class ValidationError(OrchestrationError):
    """Malformed input to a tool or an inbound task envelope."""


class MalformedRequest(ValidationError):
    """Inbound payload is not a structurally valid task-message envelope."""


class UnknownTool(OrchestrationError):
    """The model asked for a tool name that is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class ToolExecutionError(OrchestrationError):
    """A tool ran but could not complete its operation."""


class ConditionalCheckFailed(OrchestrationError):
    """A conditional write found a record in an unexpected state."""


class TransportError(OrchestrationError):
    """The model call or a delegated-agent dispatch itself failed."""


class AgentError(OrchestrationError):
    """A reasoning loop aborted because its model transport failed."""


class InvalidTransition(OrchestrationError):
    """A task status change that the state graph does not allow."""

    def __init__(self, current: str, requested: str) -> None:
        super().__init__(f"Cannot transition task from '{current}' to '{requested}'")
        self.current = current
        self.requested = requested
