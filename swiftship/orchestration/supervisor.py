"""Supervisor that classifies delivery exceptions and delegates to specialists."""
from __future__ import annotations

import dataclasses
import json
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from swiftship.agents.reasoning import AgentRuntime, RunOutcome
from swiftship.core.errors import AgentError, ToolExecutionError, TransportError
from swiftship.core.logging import get_logger
from swiftship.core.message_bus import A2AMessageBus
from swiftship.core.models import AgentCard, Message, Task, TaskStatus
from swiftship.core.schemas import ExceptionEvent, ResolutionSummary, TaskRequest
from swiftship.core.tasks import TaskManager
from swiftship.orchestration.directory import AgentDirectory
from swiftship.orchestration.policy import (
    DEFAULT_POLICY,
    PolicyRule,
    build_exception_message,
    build_system_prompt,
)
from swiftship.services.notifications import CustomerNotification, Notifier
from swiftship.tools.notify import customer_email_tool
from swiftship.tools.registry import ToolInput, ToolRegistry, ToolSpec

if TYPE_CHECKING:
    from swiftship.orchestration.events import EventPublisher
    from swiftship.services.llm_pool import ModelClient
    from swiftship.services.memory import ConversationMemory

logger = get_logger(name=__name__)

SUPERVISOR_AGENT = "supervisor"
INVOKE_AGENT_TOOL = "invokeAgent"
RESOLUTION_STATUSES = ("resolved", "pending", "requires_follow_up")


@dataclass(frozen=True)
class SessionContext:
    """Trusted caller context; the tenant never comes from model output."""

    tenant_id: str
    session_id: Optional[str] = None


@dataclass(frozen=True)
class Delegation:
    agent_id: str
    task_id: str
    status: TaskStatus
    text: str


@dataclass
class _Resolution:
    context_id: str
    reachable: Dict[str, AgentCard]
    agents_invoked: List[str] = field(default_factory=list)
    delegations: List[Delegation] = field(default_factory=list)
    actions: List[str] = field(default_factory=list)
    customer_notified: bool = False

    def unresolved_failures(self) -> List[str]:
        """Agents whose most recent delegation did not complete."""
        latest: Dict[str, TaskStatus] = {}
        for delegation in self.delegations:
            latest[delegation.agent_id] = delegation.status
        return [agent for agent, status in latest.items() if status is not TaskStatus.COMPLETED]


class InvokeAgentInput(ToolInput):
    agent_id: str = Field(..., min_length=1, description="Id of the agent to delegate to")
    message: str = Field(..., min_length=1, description="Complete instruction for the agent")


class _SummaryDraft(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    classification: Optional[str] = None
    status: Optional[str] = None
    customer_impact: Optional[str] = None
    actions_completed: List[str] = Field(default_factory=list)


def extract_json_block(text: str) -> Optional[Dict[str, Any]]:
    """Pull the trailing JSON object out of a model reply."""
    if "```json" in text:
        candidate = text.rsplit("```json", 1)[1].split("```")[0].strip()
    elif text.count("```") >= 2:
        candidate = text.split("```")[-2].strip()
    else:
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            return None
        candidate = text[start : end + 1]
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def _strip_json_block(text: str) -> str:
    if "```json" in text:
        return text.split("```json", 1)[0].strip()
    return text.strip()


def parse_summary(text: str) -> Optional[_SummaryDraft]:
    data = extract_json_block(text)
    if data is None:
        return None
    try:
        return _SummaryDraft.model_validate(data)
    except PydanticValidationError:
        return None


class SupervisorOrchestrator:
    """Runs the supervisor loop for one exception at a time per call."""

    def __init__(
        self,
        model: ModelClient,
        bus: A2AMessageBus,
        directory: AgentDirectory,
        notifier: Notifier,
        *,
        publisher: Optional[EventPublisher] = None,
        memory: Optional[ConversationMemory] = None,
        policy: Sequence[PolicyRule] = DEFAULT_POLICY,
        max_iterations: int = 10,
        model_timeout: float = 60.0,
        task_timeout: float = 300.0,
        discovery_timeout: float = 5.0,
        parallel_tool_calls: bool = True,
        preserve_thinking_tags: bool = False,
    ) -> None:
        self._model = model
        self._bus = bus
        self._directory = directory
        self._notifier = notifier
        self._memory = memory
        self.policy = tuple(policy)
        self.max_iterations = max_iterations
        self.model_timeout = model_timeout
        self.task_timeout = task_timeout
        self.discovery_timeout = discovery_timeout
        self.parallel_tool_calls = parallel_tool_calls
        self.preserve_thinking_tags = preserve_thinking_tags
        self.tasks = TaskManager(SUPERVISOR_AGENT, publisher)

    async def register_agents(self, endpoints: Sequence[str]) -> List[AgentCard]:
        """Fetch and publish the cards of every reachable endpoint."""
        cards: List[AgentCard] = []
        for endpoint in endpoints:
            try:
                reply = await self._bus.request(
                    SUPERVISOR_AGENT, endpoint, {"method": "agent/card"}, timeout=self.discovery_timeout
                )
                card = AgentCard.from_dict(reply.payload["result"])
            except (TransportError, KeyError, TypeError) as exc:
                logger.warning("agent_discovery_failed", endpoint=endpoint, error=str(exc))
                continue
            self._directory.publish(card)
            cards.append(card)
        return cards

    async def resolve(
        self,
        event: ExceptionEvent,
        available_agents: Sequence[str],
        session: SessionContext,
    ) -> ResolutionSummary:
        context_id = event.context_id or str(uuid.uuid4())
        log = logger.bind(context_id=context_id, delivery_id=event.delivery_id)

        cards = await self.register_agents(available_agents)
        resolution = _Resolution(context_id=context_id, reachable={card.endpoint: card for card in cards})
        runtime = AgentRuntime(
            self._model,
            self._tools(resolution),
            build_system_prompt(self.policy, cards),
            name=SUPERVISOR_AGENT,
            max_iterations=self.max_iterations,
            model_timeout=self.model_timeout,
            parallel_tool_calls=self.parallel_tool_calls,
            preserve_thinking_tags=self.preserve_thinking_tags,
            memory=self._memory,
        )

        task = await self.tasks.create(context_id, Message.user(build_exception_message(event)))
        await self.tasks.transition(task, TaskStatus.WORKING)
        log.info("resolution_started", agents=list(resolution.reachable))

        outcome: Optional[RunOutcome]
        try:
            outcome = await runtime.handle(task, session.tenant_id, session_id=session.session_id)
        except AgentError as exc:
            log.error("resolution_loop_failed", error=str(exc))
            outcome = None
            await self._fail(task, str(exc))
        except Exception as exc:  # noqa: BLE001
            log.exception("resolution_loop_crashed")
            outcome = None
            await self._fail(task, f"Resolution aborted: {str(exc) or type(exc).__name__}")
        else:
            await self.tasks.transition(task, TaskStatus.COMPLETED, Message.assistant(outcome.text))

        if not resolution.customer_notified:
            await self._notify_customer(event, resolution)

        summary = self._summarize(event, resolution, outcome)
        log.info(
            "resolution_finished",
            status=summary.status,
            agents_invoked=summary.agents_invoked,
        )
        return summary

    async def _fail(self, task: Task, reason: str) -> None:
        if not task.is_terminal:
            await self.tasks.transition(task, TaskStatus.FAILED, Message.assistant(reason))

    def _tools(self, resolution: _Resolution) -> ToolRegistry:
        async def invoke_agent(tenant_id: str, payload: InvokeAgentInput) -> str:
            return await self._delegate(resolution, tenant_id, payload.agent_id, payload.message)

        email = customer_email_tool(self._notifier)

        async def send_customer_email(payload: Any) -> str:
            result = await email.handler(payload)
            resolution.customer_notified = True
            resolution.actions.append(f"Customer notified: {payload.subject}")
            return result

        agent_ids = ", ".join(resolution.reachable) or "none"
        return ToolRegistry(
            [
                ToolSpec(
                    name=INVOKE_AGENT_TOOL,
                    description=(
                        "Delegate a task to a specialist agent and wait for its final answer. "
                        f"Available agent ids: {agent_ids}"
                    ),
                    input_model=InvokeAgentInput,
                    handler=invoke_agent,
                    is_multi_tenant=True,
                ),
                dataclasses.replace(email, handler=send_customer_email),
            ]
        )

    async def _delegate(self, resolution: _Resolution, tenant_id: str, agent_id: str, text: str) -> str:
        if agent_id not in resolution.reachable:
            raise ToolExecutionError(
                f"Unknown agent '{agent_id}'. Available agents: {', '.join(resolution.reachable) or 'none'}"
            )
        resolution.agents_invoked.append(agent_id)
        task_id = str(uuid.uuid4())
        request = TaskRequest.from_text(resolution.context_id, text, task_id=task_id)
        payload = {
            "method": "message/send",
            "params": request.model_dump(by_alias=True, mode="json"),
            "tenant_id": tenant_id,
        }
        log = logger.bind(context_id=resolution.context_id, agent=agent_id, task_id=task_id)
        log.info("delegation_started")

        try:
            reply = await self._bus.request(SUPERVISOR_AGENT, agent_id, payload, timeout=self.task_timeout)
        except TransportError as exc:
            log.warning("delegation_transport_failed", error=str(exc))
            resolution.delegations.append(Delegation(agent_id, task_id, TaskStatus.FAILED, str(exc)))
            await self._cancel_remote(agent_id, task_id)
            raise ToolExecutionError(f"Agent '{agent_id}' is unavailable: {exc}") from exc

        if "error" in reply.payload:
            message = reply.payload["error"].get("message", "unknown error")
            resolution.delegations.append(Delegation(agent_id, task_id, TaskStatus.FAILED, message))
            raise ToolExecutionError(f"Agent '{agent_id}' rejected the task: {message}")

        task = Task.from_dict(reply.payload["result"])
        resolution.delegations.append(Delegation(agent_id, task.id, task.status, task.result_text))
        log.info("delegation_finished", status=task.status.value)
        if task.status is not TaskStatus.COMPLETED:
            raise ToolExecutionError(f"Agent '{agent_id}' task {task.status.value}: {task.result_text}")
        return task.result_text

    async def _cancel_remote(self, agent_id: str, task_id: str) -> None:
        try:
            await self._bus.request(
                SUPERVISOR_AGENT,
                agent_id,
                {"method": "tasks/cancel", "params": {"taskId": task_id}},
                timeout=self.discovery_timeout,
            )
        except TransportError as exc:
            logger.warning("delegation_cancel_failed", agent=agent_id, task_id=task_id, error=str(exc))

    async def _notify_customer(self, event: ExceptionEvent, resolution: _Resolution) -> None:
        notification = CustomerNotification(
            recipient=event.customer_email or f"delivery:{event.delivery_id}",
            subject=f"Update on your delivery {event.delivery_id}",
            body_html=(
                "<p>There was an issue with your delivery. Our team is looking into it "
                "and will follow up with next steps shortly.</p>"
            ),
        )
        try:
            await self._notifier.send(notification)
        except Exception as exc:  # noqa: BLE001
            logger.error("customer_fallback_notification_failed", delivery_id=event.delivery_id, error=str(exc))
            return
        resolution.customer_notified = True
        resolution.actions.append("Customer notified of delivery issue")

    def _summarize(
        self,
        event: ExceptionEvent,
        resolution: _Resolution,
        outcome: Optional[RunOutcome],
    ) -> ResolutionSummary:
        draft = parse_summary(outcome.text) if outcome is not None else None

        if outcome is None or outcome.exhausted or resolution.unresolved_failures():
            status = "requires_follow_up"
        elif draft is not None and draft.status in RESOLUTION_STATUSES:
            status = draft.status
        elif not resolution.customer_notified:
            status = "requires_follow_up"
        else:
            status = "resolved"

        actions = list(draft.actions_completed) if draft is not None else []
        for delegation in resolution.delegations:
            if delegation.status is TaskStatus.COMPLETED:
                actions.append(f"{delegation.agent_id}: {delegation.text}")
        actions.extend(resolution.actions)

        if draft is not None and draft.customer_impact:
            customer_impact = draft.customer_impact
        elif outcome is not None and _strip_json_block(outcome.text):
            customer_impact = _strip_json_block(outcome.text)
        else:
            customer_impact = "The customer has been told about the issue; an agent will follow up."

        return ResolutionSummary(
            classification=(draft.classification if draft is not None and draft.classification else event.status.status),
            agents_invoked=list(resolution.agents_invoked),
            actions_completed=_dedupe(actions),
            status=status,
            customer_impact=customer_impact,
        )


def _dedupe(items: Sequence[str]) -> List[str]:
    seen: Dict[str, None] = {}
    for item in items:
        seen.setdefault(item, None)
    return list(seen)
