"""LLM client pool and the chat-completions model adapter."""
from __future__ import annotations

import asyncio
import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Protocol, Sequence, Union

import openai
from openai import AsyncAzureOpenAI, AsyncOpenAI

from swiftship.config import AzureOpenAIConfig, OpenAIConfig
from swiftship.core.errors import TransportError
from swiftship.core.logging import get_logger
from swiftship.core.models import Message, ModelResponse, PartKind, Role, ToolCall

logger = get_logger(name=__name__)


class ModelClient(Protocol):
    """The language model as seen by a reasoning loop."""

    async def complete(
        self,
        system_prompt: str,
        history: Sequence[Message],
        tools: Sequence[Dict[str, Any]],
    ) -> ModelResponse:
        ...


ClientConfig = Union[AzureOpenAIConfig, OpenAIConfig]


class LLMPool:
    """Manages shared LLM clients with concurrency limiting."""

    def __init__(self) -> None:
        self._configs: Dict[str, ClientConfig] = {}
        self._clients: Dict[str, Any] = {}
        self._semaphores: Dict[str, asyncio.Semaphore] = {}

    def register_azure_openai(self, name: str, config: AzureOpenAIConfig) -> None:
        """Register an Azure OpenAI model configuration."""
        self._register(name, config)

    def register_openai(self, name: str, config: OpenAIConfig) -> None:
        """Register a direct OpenAI model configuration."""
        self._register(name, config)

    def _register(self, name: str, config: ClientConfig) -> None:
        self._configs[name] = config
        self._semaphores[name] = asyncio.Semaphore(config.max_concurrent)
        self._clients.pop(name, None)

    def is_registered(self, model_name: str) -> bool:
        return model_name in self._configs

    @asynccontextmanager
    async def acquire(self, model_name: str) -> AsyncIterator[Any]:
        """Acquire access to a model client with concurrency control."""
        if model_name not in self._configs:
            raise KeyError(f"Model '{model_name}' not registered in LLM pool")

        async with self._semaphores[model_name]:
            # Lazy initialization on first use
            if model_name not in self._clients:
                self._clients[model_name] = self._create_client(self._configs[model_name])
            yield self._clients[model_name]

    @staticmethod
    def _create_client(config: ClientConfig) -> Any:
        if isinstance(config, AzureOpenAIConfig):
            return AsyncAzureOpenAI(
                api_key=config.api_key,
                api_version=config.api_version,
                azure_endpoint=config.endpoint,
            )
        return AsyncOpenAI(api_key=config.api_key)


def to_chat_messages(system_prompt: str, history: Sequence[Message]) -> List[Dict[str, Any]]:
    """Render history in chat-completions format."""
    messages: List[Dict[str, Any]] = [{"role": "system", "content": system_prompt}]
    for message in history:
        if message.role is Role.ASSISTANT:
            entry: Dict[str, Any] = {"role": "assistant", "content": message.text or None}
            tool_uses = message.tool_uses
            if tool_uses:
                entry["tool_calls"] = [
                    {
                        "id": part.tool_use_id,
                        "type": "function",
                        "function": {"name": part.name, "arguments": json.dumps(part.input or {})},
                    }
                    for part in tool_uses
                ]
            messages.append(entry)
            continue
        for part in message.parts:
            if part.kind is PartKind.TOOL_RESULT:
                messages.append(
                    {"role": "tool", "tool_call_id": part.tool_use_id, "content": part.content or ""}
                )
        if message.text:
            messages.append({"role": "user", "content": message.text})
    return messages


def to_chat_tools(tools: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        {
            "type": "function",
            "function": {
                "name": tool["name"],
                "description": tool["description"],
                "parameters": tool["input_schema"],
            },
        }
        for tool in tools
    ]


def _parse_arguments(raw: str) -> Dict[str, Any]:
    try:
        parsed = json.loads(raw or "{}")
    except json.JSONDecodeError:
        return {"_raw_arguments": raw}
    return parsed if isinstance(parsed, dict) else {"_raw_arguments": raw}


class OpenAIModelClient:
    """Chat-completions model bound to one pooled deployment."""

    def __init__(
        self,
        pool: LLMPool,
        model_name: str,
        *,
        temperature: float = 0.2,
        max_tokens: int = 10000,
    ) -> None:
        self._pool = pool
        self.model_name = model_name
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def complete(
        self,
        system_prompt: str,
        history: Sequence[Message],
        tools: Sequence[Dict[str, Any]],
    ) -> ModelResponse:
        request: Dict[str, Any] = {
            "model": self.model_name,
            "messages": to_chat_messages(system_prompt, history),
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        if tools:
            request["tools"] = to_chat_tools(tools)

        try:
            async with self._pool.acquire(self.model_name) as client:
                response = await client.chat.completions.create(**request)
        except (openai.OpenAIError, KeyError) as exc:
            logger.error("model_call_failed", model=self.model_name, error=str(exc))
            raise TransportError(f"Model call failed: {exc}") from exc

        if not response.choices:
            return ModelResponse()
        message = response.choices[0].message
        tool_calls = [
            ToolCall(id=call.id, name=call.function.name, input=_parse_arguments(call.function.arguments))
            for call in message.tool_calls or []
        ]
        return ModelResponse(text=message.content or None, tool_calls=tool_calls)
