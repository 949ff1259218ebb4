"""Configuration management for the exception desk."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class AzureOpenAIConfig:
    """Azure OpenAI service configuration."""

    api_key: str
    endpoint: str
    api_version: str = "2024-02-15-preview"
    deployment_name: str = "gpt-4"
    max_concurrent: int = 50


@dataclass(frozen=True)
class OpenAIConfig:
    """Direct OpenAI API configuration."""

    api_key: str
    model: str = "gpt-4o"
    max_concurrent: int = 50


@dataclass(frozen=True)
class OrchestrationConfig:
    """Bounds and switches for the reasoning loops."""

    max_iterations: int = 10
    model_timeout: float = 60.0
    task_timeout: float = 300.0
    publish_timeout: float = 2.0
    parallel_tool_calls: bool = True
    preserve_thinking_tags: bool = False


@dataclass(frozen=True)
class Config:
    """Application configuration loaded from environment variables."""

    azure_openai: Optional[AzureOpenAIConfig] = None
    openai: Optional[OpenAIConfig] = None
    orchestration: OrchestrationConfig = field(default_factory=OrchestrationConfig)
    default_tenant: str = "demo-tenant"
    log_level: str = "INFO"
    environment: str = "development"

    @property
    def model_name(self) -> str:
        if self.azure_openai:
            return self.azure_openai.deployment_name
        if self.openai:
            return self.openai.model
        return "gpt-4"

    @classmethod
    def from_env(cls) -> Config:
        """Load configuration from environment variables."""
        azure_key = os.getenv("AZURE_OPENAI_KEY")
        azure_endpoint = os.getenv("AZURE_OPENAI_ENDPOINT")

        azure_config = None
        if azure_key and azure_endpoint:
            azure_config = AzureOpenAIConfig(
                api_key=azure_key,
                endpoint=azure_endpoint,
                api_version=os.getenv("AZURE_OPENAI_API_VERSION", "2024-02-15-preview"),
                deployment_name=os.getenv("AZURE_OPENAI_DEPLOYMENT", "gpt-4"),
                max_concurrent=int(os.getenv("AZURE_OPENAI_MAX_CONCURRENT", "50")),
            )

        openai_config = None
        openai_key = os.getenv("OPENAI_API_KEY")
        if openai_key:
            openai_config = OpenAIConfig(
                api_key=openai_key,
                model=os.getenv("OPENAI_MODEL", "gpt-4o"),
                max_concurrent=int(os.getenv("OPENAI_MAX_CONCURRENT", "50")),
            )

        orchestration = OrchestrationConfig(
            max_iterations=int(os.getenv("SWIFTSHIP_MAX_ITERATIONS", "10")),
            model_timeout=float(os.getenv("SWIFTSHIP_MODEL_TIMEOUT", "60")),
            task_timeout=float(os.getenv("SWIFTSHIP_TASK_TIMEOUT", "300")),
            publish_timeout=float(os.getenv("SWIFTSHIP_PUBLISH_TIMEOUT", "2")),
            parallel_tool_calls=_env_bool("SWIFTSHIP_PARALLEL_TOOL_CALLS", True),
            preserve_thinking_tags=_env_bool("SWIFTSHIP_PRESERVE_THINKING_TAGS", False),
        )

        return cls(
            azure_openai=azure_config,
            openai=openai_config,
            orchestration=orchestration,
            default_tenant=os.getenv("SWIFTSHIP_DEFAULT_TENANT", "demo-tenant"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            environment=os.getenv("ENVIRONMENT", "development"),
        )
