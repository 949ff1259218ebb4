"""Application runtime composition."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from swiftship.agents.catalog import SpecialistDefinition, default_specialists
from swiftship.agents.reasoning import AgentRuntime
from swiftship.agents.specialist import SpecialistAgent
from swiftship.config import Config
from swiftship.core.event_channel import EventChannel, InMemoryEventChannel
from swiftship.core.logging import get_logger
from swiftship.core.message_bus import A2AMessageBus
from swiftship.orchestration.directory import AgentDirectory
from swiftship.orchestration.events import EventPublisher
from swiftship.orchestration.supervisor import SUPERVISOR_AGENT, SupervisorOrchestrator
from swiftship.services.llm_pool import LLMPool, ModelClient, OpenAIModelClient
from swiftship.services.memory import ConversationMemory, InMemoryConversationMemory
from swiftship.services.notifications import Notifier, OutboxNotifier
from swiftship.services.store import InMemoryStore, KeyValueStore

logger = get_logger(name=__name__)

ModelFactory = Callable[[str], ModelClient]


@dataclass
class AppContext:
    """Everything one running process shares."""

    config: Config
    bus: A2AMessageBus
    directory: AgentDirectory
    publisher: EventPublisher
    channel: EventChannel
    store: KeyValueStore
    notifier: Notifier
    memory: ConversationMemory
    supervisor: SupervisorOrchestrator
    agents: Dict[str, SpecialistAgent] = field(default_factory=dict)

    async def start(self) -> None:
        for agent in self.agents.values():
            await agent.start()
        await self.supervisor.register_agents(list(self.agents))
        logger.info("runtime_started", agents=list(self.agents))

    async def stop(self) -> None:
        for agent in self.agents.values():
            await agent.stop()
        logger.info("runtime_stopped")

    def endpoints(self) -> List[str]:
        return list(self.agents)


def build_llm_pool(config: Config) -> LLMPool:
    pool = LLMPool()
    if config.azure_openai:
        pool.register_azure_openai(config.model_name, config.azure_openai)
    elif config.openai:
        pool.register_openai(config.model_name, config.openai)
    return pool


def default_model_factory(config: Config) -> ModelFactory:
    """One pooled chat-completions client shared by every agent."""
    pool = build_llm_pool(config)
    if not pool.is_registered(config.model_name):
        logger.warning("model_not_configured", model=config.model_name)
    client = OpenAIModelClient(pool, config.model_name)
    return lambda _agent_id: client


def build_context(
    config: Config,
    *,
    model_factory: Optional[ModelFactory] = None,
    specialists: Optional[Dict[str, SpecialistDefinition]] = None,
    store: Optional[KeyValueStore] = None,
    notifier: Optional[Notifier] = None,
    channel: Optional[EventChannel] = None,
    memory: Optional[ConversationMemory] = None,
) -> AppContext:
    """Wire the bus, specialists and supervisor. Agents are started by :meth:`AppContext.start`."""
    model_factory = model_factory or default_model_factory(config)
    specialists = specialists if specialists is not None else default_specialists()
    store = store if store is not None else InMemoryStore()
    notifier = notifier if notifier is not None else OutboxNotifier()
    channel = channel if channel is not None else InMemoryEventChannel()
    memory = memory if memory is not None else InMemoryConversationMemory()
    limits = config.orchestration

    bus = A2AMessageBus()
    directory = AgentDirectory()
    publisher = EventPublisher(channel, timeout=limits.publish_timeout)

    agents: Dict[str, SpecialistAgent] = {}
    for endpoint, definition in specialists.items():
        runtime = AgentRuntime(
            model_factory(endpoint),
            definition.tool_registry(store),
            definition.system_prompt,
            name=endpoint,
            max_iterations=limits.max_iterations,
            model_timeout=limits.model_timeout,
            parallel_tool_calls=limits.parallel_tool_calls,
            preserve_thinking_tags=limits.preserve_thinking_tags,
        )
        agents[endpoint] = SpecialistAgent(definition.card, bus, runtime, publisher=publisher)

    supervisor = SupervisorOrchestrator(
        model_factory(SUPERVISOR_AGENT),
        bus,
        directory,
        notifier,
        publisher=publisher,
        memory=memory,
        max_iterations=limits.max_iterations,
        model_timeout=limits.model_timeout,
        task_timeout=limits.task_timeout,
        parallel_tool_calls=limits.parallel_tool_calls,
        preserve_thinking_tags=limits.preserve_thinking_tags,
    )

    return AppContext(
        config=config,
        bus=bus,
        directory=directory,
        publisher=publisher,
        channel=channel,
        store=store,
        notifier=notifier,
        memory=memory,
        supervisor=supervisor,
        agents=agents,
    )
