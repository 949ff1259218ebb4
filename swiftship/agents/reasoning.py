"""Bounded reasoning loop shared by specialist agents and the supervisor."""
from __future__ import annotations

import asyncio
import json
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, List, Optional, Sequence

from swiftship.core.errors import AgentError, OrchestrationError, TransportError, ValidationError
from swiftship.core.logging import get_logger
from swiftship.core.models import Message, Part, Role, Task, TaskStatus, ToolCall

if TYPE_CHECKING:
    from swiftship.services.llm_pool import ModelClient
    from swiftship.services.memory import ConversationMemory
    from swiftship.tools.registry import ToolRegistry

logger = get_logger(name=__name__)

MAX_ITERATIONS = 10
UNEXPECTED_RESPONSE = "Received unexpected response type from model"
NO_RESPONSE = "No response generated"

_THINKING = re.compile(r"<thinking>[\s\S]*?</thinking>\s*")


def sanitize_response(text: str, *, preserve_thinking_tags: bool = False) -> str:
    """Strip ``<thinking>`` blocks unless asked to keep them."""
    if preserve_thinking_tags:
        return text.strip()
    return _THINKING.sub("", text).strip()


@dataclass(frozen=True, slots=True)
class RunOutcome:
    text: str
    iterations: int
    exhausted: bool = False
    cancelled: bool = False


class AgentRuntime:
    """Runs one agent's model/tool loop over a task's history."""

    def __init__(
        self,
        model: ModelClient,
        tools: ToolRegistry,
        system_prompt: str,
        *,
        name: str = "agent",
        max_iterations: int = MAX_ITERATIONS,
        model_timeout: float = 60.0,
        parallel_tool_calls: bool = True,
        preserve_thinking_tags: bool = False,
        memory: Optional[ConversationMemory] = None,
    ) -> None:
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.model = model
        self.tools = tools
        self.system_prompt = system_prompt
        self.name = name
        self.max_iterations = max_iterations
        self.model_timeout = model_timeout
        self.parallel_tool_calls = parallel_tool_calls
        self.preserve_thinking_tags = preserve_thinking_tags
        self._memory = memory

    async def handle(self, task: Task, tenant_id: str, *, session_id: Optional[str] = None) -> RunOutcome:
        """Run the loop until the model answers, the bound is hit or the task is cancelled.

        ``tenant_id`` comes from the trusted caller and is the only tenant
        multi-tenant tools ever see. Raises :class:`AgentError` when the model
        transport fails; tool failures are fed back to the model instead.
        """
        if not task.history:
            raise ValidationError(f"Task {task.id} has no initiating message")

        log = logger.bind(agent=self.name, task_id=task.id, context_id=task.context_id)
        prior: List[Message] = []
        if self._memory is not None and session_id:
            prior = await self._load_history(session_id)
        seeded = len(task.history)

        final_text = ""
        iterations = 0
        exhausted = False
        cancelled = False

        while True:
            if task.status is TaskStatus.CANCELLED:
                cancelled = True
                log.info("agent_loop_cancelled", iterations=iterations)
                break
            if iterations >= self.max_iterations:
                exhausted = True
                log.warning("agent_loop_iteration_limit", iterations=iterations)
                break
            iterations += 1

            response = await self._complete([*prior, *task.history])

            if response.tool_calls:
                parts = [Part.of_text(response.text)] if response.text else []
                parts.extend(Part.tool_use(call.id, call.name, call.input) for call in response.tool_calls)
                task.append(Message(role=Role.ASSISTANT, parts=parts))

                log.info(
                    "agent_tool_calls",
                    iteration=iterations,
                    tools=[call.name for call in response.tool_calls],
                )
                results = await self._run_tools(response.tool_calls, tenant_id)
                if task.status is TaskStatus.CANCELLED:
                    continue
                task.append(
                    Message(
                        role=Role.USER,
                        parts=[Part.tool_result(call.id, result) for call, result in zip(response.tool_calls, results)],
                    )
                )
                continue

            if response.text and sanitize_response(response.text, preserve_thinking_tags=self.preserve_thinking_tags):
                task.append(Message.assistant(response.text))
                final_text = response.text
                break

            log.warning("agent_unexpected_response", iteration=iterations)
            final_text = UNEXPECTED_RESPONSE
            break

        if not final_text:
            final_text = self._last_assistant_text(task.history)

        if self._memory is not None and session_id:
            await self._remember(session_id, task.history[seeded - 1:])

        text = sanitize_response(final_text, preserve_thinking_tags=self.preserve_thinking_tags)
        return RunOutcome(
            text=text or NO_RESPONSE,
            iterations=iterations,
            exhausted=exhausted,
            cancelled=cancelled,
        )

    async def _complete(self, history: Sequence[Message]):
        try:
            return await asyncio.wait_for(
                self.model.complete(self.system_prompt, history, self.tools.to_model_format()),
                timeout=self.model_timeout,
            )
        except asyncio.TimeoutError as exc:
            raise AgentError(f"Model call timed out after {self.model_timeout:.1f}s") from exc
        except TransportError as exc:
            raise AgentError(f"Failed to process message: {exc}") from exc

    async def _run_tools(self, calls: Sequence[ToolCall], tenant_id: str) -> List[str]:
        """Execute calls and return their results in request order."""
        if self.parallel_tool_calls and len(calls) > 1:
            return list(await asyncio.gather(*(self._execute(call, tenant_id) for call in calls)))
        return [await self._execute(call, tenant_id) for call in calls]

    async def _execute(self, call: ToolCall, tenant_id: str) -> str:
        result: Any
        try:
            spec = self.tools.resolve(call.name)
            payload = spec.validate(call.input)
            if spec.is_multi_tenant:
                result = await spec.handler(tenant_id, payload)
            else:
                result = await spec.handler(payload)
        except OrchestrationError as exc:
            logger.info("tool_call_failed", agent=self.name, tool=call.name, error=str(exc))
            result = {"error": str(exc)}
        except Exception as exc:  # noqa: BLE001
            logger.exception("tool_call_crashed", agent=self.name, tool=call.name)
            result = {"error": str(exc) or type(exc).__name__}
        if isinstance(result, str):
            return result
        return json.dumps(result, default=str)

    @staticmethod
    def _last_assistant_text(history: Sequence[Message]) -> str:
        for message in reversed(history):
            if message.role is Role.ASSISTANT and message.text:
                return message.text
        return ""

    async def _load_history(self, session_id: str) -> List[Message]:
        try:
            return list(await self._memory.load_history(session_id))
        except Exception as exc:  # noqa: BLE001
            logger.warning("memory_load_failed", agent=self.name, session_id=session_id, error=str(exc))
            return []

    async def _remember(self, session_id: str, messages: Sequence[Message]) -> None:
        # Tool traffic is not replayed into later conversations.
        texts = [Message(role=m.role, parts=[Part.of_text(m.text)]) for m in messages if m.text]
        if not texts:
            return
        try:
            await self._memory.append_history(session_id, texts)
        except Exception as exc:  # noqa: BLE001
            logger.warning("memory_append_failed", agent=self.name, session_id=session_id, error=str(exc))
