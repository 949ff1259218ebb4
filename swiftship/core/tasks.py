"""Task state machine and per-agent task bookkeeping."""
from __future__ import annotations

from collections import OrderedDict
from typing import TYPE_CHECKING, Dict, FrozenSet, Iterable, Optional

from .errors import InvalidTransition
from .models import Message, Task, TaskStatus, utcnow

if TYPE_CHECKING:
    from swiftship.orchestration.events import EventPublisher

TRANSITIONS: Dict[TaskStatus, FrozenSet[TaskStatus]] = {
    TaskStatus.SUBMITTED: frozenset({TaskStatus.WORKING, TaskStatus.CANCELLED}),
    TaskStatus.WORKING: frozenset(
        {
            TaskStatus.INPUT_REQUIRED,
            TaskStatus.COMPLETED,
            TaskStatus.FAILED,
            TaskStatus.CANCELLED,
        }
    ),
    TaskStatus.INPUT_REQUIRED: frozenset({TaskStatus.WORKING, TaskStatus.CANCELLED}),
    TaskStatus.COMPLETED: frozenset(),
    TaskStatus.FAILED: frozenset(),
    TaskStatus.CANCELLED: frozenset(),
}


def can_transition(current: TaskStatus, requested: TaskStatus) -> bool:
    return requested in TRANSITIONS[current]


def transition(task: Task, status: TaskStatus, status_message: Optional[Message] = None) -> Task:
    """Move ``task`` to ``status`` or raise :class:`InvalidTransition`."""
    if not can_transition(task.status, status):
        raise InvalidTransition(task.status.value, status.value)
    task.status = status
    if status_message is not None:
        task.status_message = status_message
    task.updated_at = utcnow()
    return task


class TaskManager:
    """Owns the tasks one agent is processing and emits every transition.

    Active tasks are kept until they reach a terminal status; after that only
    the ``max_finished`` most recently finished ones are retained for lookups,
    cancellation replies and duplicate-id checks.
    """

    def __init__(
        self,
        agent_id: str,
        publisher: Optional[EventPublisher] = None,
        *,
        max_finished: int = 1000,
    ) -> None:
        self.agent_id = agent_id
        self.max_finished = max_finished
        self._publisher = publisher
        self._active: Dict[str, Task] = {}
        self._finished: OrderedDict[str, Task] = OrderedDict()

    async def create(self, context_id: str, message: Message, *, task_id: Optional[str] = None) -> Task:
        task = Task(context_id=context_id, agent_id=self.agent_id)
        if task_id is not None:
            if self.get(task_id) is not None:
                raise ValueError(f"Task '{task_id}' already exists")
            task.id = task_id
        task.append(message)
        self._active[task.id] = task
        await self._emit(task)
        return task

    async def transition(
        self,
        task: Task,
        status: TaskStatus,
        status_message: Optional[Message] = None,
    ) -> Task:
        transition(task, status, status_message)
        if task.is_terminal:
            self._retire(task)
        await self._emit(task)
        return task

    async def cancel(self, task_id: str, reason: str = "Cancelled by caller") -> Task:
        task = self.get(task_id)
        if task is None:
            raise KeyError(f"Unknown task '{task_id}'")
        return await self.transition(task, TaskStatus.CANCELLED, Message.assistant(reason))

    def get(self, task_id: str) -> Optional[Task]:
        return self._active.get(task_id) or self._finished.get(task_id)

    def list_by_context(self, context_id: str) -> Iterable[Task]:
        tasks = [*self._active.values(), *self._finished.values()]
        return (task for task in tasks if task.context_id == context_id)

    def __len__(self) -> int:
        return len(self._active) + len(self._finished)

    def _retire(self, task: Task) -> None:
        self._active.pop(task.id, None)
        self._finished[task.id] = task
        while len(self._finished) > self.max_finished:
            self._finished.popitem(last=False)

    async def _emit(self, task: Task) -> None:
        if self._publisher is not None:
            await self._publisher.emit(task)
