"""Registry of tools exposed to a reasoning loop."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Type

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from swiftship.core.errors import UnknownTool, ValidationError

ToolHandler = Callable[..., Awaitable[Any]]


class ToolInput(BaseModel):
    """Base for tool input models; the model sees camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """One invocable function as seen by the model.

    Multi-tenant handlers are called as ``handler(tenant_id, payload)``, all
    others as ``handler(payload)``, where ``payload`` is an instance of
    ``input_model``.
    """

    name: str
    description: str
    input_model: Type[BaseModel]
    handler: ToolHandler
    is_multi_tenant: bool = False

    @property
    def input_schema(self) -> Dict[str, Any]:
        return self.input_model.model_json_schema()

    def validate(self, raw_input: Dict[str, Any]) -> BaseModel:
        try:
            return self.input_model.model_validate(raw_input)
        except PydanticValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'input'}: {err['msg']}" for err in exc.errors()
            )
            raise ValidationError(f"Invalid input for {self.name}: {problems}") from exc


class ToolRegistry:
    """Maps tool names to specs; read-only once the owning loop starts."""

    def __init__(self, tools: Optional[Iterable[ToolSpec]] = None) -> None:
        self._tools: Dict[str, ToolSpec] = {}
        for tool in tools or ():
            self.register(tool)

    def register(self, spec: ToolSpec) -> None:
        if spec.name in self._tools:
            raise ValueError(f"Tool '{spec.name}' is already registered")
        self._tools[spec.name] = spec

    def resolve(self, name: str) -> ToolSpec:
        if name not in self._tools:
            raise UnknownTool(name)
        return self._tools[name]

    def names(self) -> List[str]:
        return list(self._tools)

    def to_model_format(self) -> List[Dict[str, Any]]:
        """Describe tools for the model without handlers or tenancy details."""
        return [
            {"name": spec.name, "description": spec.description, "input_schema": spec.input_schema}
            for spec in self._tools.values()
        ]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)
