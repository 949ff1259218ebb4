"""Specialist agent serving task requests with its own reasoning loop."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from swiftship.agents.base import Agent
from swiftship.core.errors import AgentError, InvalidTransition, MalformedRequest
from swiftship.core.logging import get_logger
from swiftship.core.message_bus import A2AMessageBus
from swiftship.core.models import AgentCard, Message, Task, TaskStatus
from swiftship.core.schemas import TaskRequest
from swiftship.core.tasks import TaskManager
from swiftship.orchestration.directory import validate_request

if TYPE_CHECKING:
    from swiftship.agents.reasoning import AgentRuntime
    from swiftship.orchestration.events import EventPublisher

logger = get_logger(name=__name__)


def _error(code: str, message: str) -> Dict[str, Any]:
    return {"error": {"code": code, "message": message}}


class SpecialistAgent(Agent):
    """Flat, domain-bound agent reachable over the request/response channel."""

    def __init__(
        self,
        card: AgentCard,
        bus: A2AMessageBus,
        runtime: AgentRuntime,
        *,
        publisher: Optional[EventPublisher] = None,
    ) -> None:
        super().__init__(card, bus)
        self.runtime = runtime
        self.tasks = TaskManager(card.endpoint, publisher)

    async def handle_request(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        method = payload.get("method")
        if method == "agent/card":
            return {"result": self.describe().to_dict()}

        if method == "tasks/cancel":
            task_id = (payload.get("params") or {}).get("taskId", "")
            try:
                task = await self.cancel(task_id)
            except KeyError:
                return _error("task_not_found", f"Unknown task '{task_id}'")
            except InvalidTransition as exc:
                return _error("invalid_transition", str(exc))
            return {"result": task.to_dict()}

        if method == "message/send":
            tenant_id = payload.get("tenant_id")
            if not tenant_id:
                return _error("unauthorized", "Missing tenant context")
            try:
                request = validate_request(payload.get("params"))
            except MalformedRequest as exc:
                return _error("malformed_request", str(exc))
            if request.task_id and self.tasks.get(request.task_id) is not None:
                return _error("duplicate_task", f"Task '{request.task_id}' already exists")
            task = await self.process(request, tenant_id, session_id=payload.get("session_id"))
            return {"result": task.to_dict()}

        return _error("method_not_found", f"Unsupported method '{method}'")

    async def process(self, request: TaskRequest, tenant_id: str, *, session_id: Optional[str] = None) -> Task:
        """Run one task to a terminal status and return it."""
        task = await self.tasks.create(
            request.context_id, request.message.to_message(), task_id=request.task_id
        )
        log = logger.bind(endpoint=self.endpoint, task_id=task.id, context_id=task.context_id)
        await self.tasks.transition(task, TaskStatus.WORKING)
        log.info("task_started")

        try:
            outcome = await self.runtime.handle(task, tenant_id, session_id=session_id)
        except AgentError as exc:
            log.error("task_failed", error=str(exc))
            return await self._finish(task, TaskStatus.FAILED, str(exc))
        except InvalidTransition as exc:
            log.error("task_invariant_violation", error=str(exc))
            return await self._finish(task, TaskStatus.FAILED, str(exc))
        except Exception:
            await self._finish(task, TaskStatus.FAILED, "Internal error while processing the task")
            raise

        log.info("task_finished", iterations=outcome.iterations, exhausted=outcome.exhausted)
        return await self._finish(task, TaskStatus.COMPLETED, outcome.text)

    async def cancel(self, task_id: str) -> Task:
        """Cancel a task; its loop stops before the next model call."""
        return await self.tasks.cancel(task_id)

    async def _finish(self, task: Task, status: TaskStatus, text: str) -> Task:
        if task.is_terminal:
            return task
        return await self.tasks.transition(task, status, Message.assistant(text))
