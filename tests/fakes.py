"""Scripted stand-ins for the language model used across the test suite."""
from __future__ import annotations

import inspect
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Sequence, Union

from swiftship.core.errors import TransportError
from swiftship.core.models import Message, ModelResponse, ToolCall

Step = Union[ModelResponse, Callable[..., Any]]


@dataclass
class ModelCall:
    system_prompt: str
    history: List[Message]
    tools: List[Dict[str, Any]]

    @property
    def last(self) -> Message:
        return self.history[-1]


class ScriptedModel:
    """Replays a fixed list of responses and records every call.

    A step may be a callable taking the recorded :class:`ModelCall`; its
    (optionally awaitable) return value is used as the response.
    """

    def __init__(self, steps: Sequence[Step]) -> None:
        self._steps = list(steps)
        self.calls: List[ModelCall] = []

    async def complete(
        self,
        system_prompt: str,
        history: Sequence[Message],
        tools: Sequence[Dict[str, Any]],
    ) -> ModelResponse:
        call = ModelCall(system_prompt, list(history), list(tools))
        self.calls.append(call)
        if len(self.calls) > len(self._steps):
            raise AssertionError(f"Unscripted model call #{len(self.calls)}")
        step = self._steps[len(self.calls) - 1]
        if callable(step):
            step = step(call)
            if inspect.isawaitable(step):
                step = await step
        return step


@dataclass
class FailingModel:
    message: str = "connection reset"
    calls: int = field(default=0)

    async def complete(self, system_prompt: str, history: Sequence[Message], tools: Sequence[Dict[str, Any]]) -> ModelResponse:
        self.calls += 1
        raise TransportError(self.message)


def tool_call(name: str, tool_input: Dict[str, Any], *, call_id: str | None = None) -> ToolCall:
    return ToolCall(id=call_id or f"call_{uuid.uuid4().hex[:8]}", name=name, input=tool_input)


def use_tools(*calls: ToolCall, text: str | None = None) -> ModelResponse:
    return ModelResponse(text=text, tool_calls=list(calls))


def answer(text: str) -> ModelResponse:
    return ModelResponse(text=text)


def invoke(agent_id: str, message: str) -> ToolCall:
    return tool_call("invokeAgent", {"agentId": agent_id, "message": message})
