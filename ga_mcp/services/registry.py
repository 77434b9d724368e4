"""
Tool Registry.

Holds the catalog of tools: name, description, argument model and handler.
The catalog is assembled once at startup and is read-only afterwards; there
is no runtime registration.

Each tool declares its parameters as a pydantic model. The model's JSON
schema is what ``tools/list`` reports as ``inputSchema``, and the same model
validates arguments before the handler runs, so handlers only ever receive
validated input.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Type

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ga_mcp.core.analytics_client import AnalyticsClient
from ga_mcp.core.config import Settings
from ga_mcp.core.exceptions import NotFoundError, ValidationError


@dataclass(frozen=True)
class ToolContext:
    """Per-invocation collaborators handed to every handler."""
    settings: Settings
    client: AnalyticsClient


ToolHandler = Callable[[Any, ToolContext], Awaitable[Dict[str, Any]]]


@dataclass(frozen=True)
class ToolDefinition:
    """
    One registered tool.

    Attributes:
        name: Unique tool name, e.g. ``ga_kpi_overview``.
        description: Human-readable summary shown by ``tools/list``.
        args_model: Pydantic model declaring and validating the arguments.
        handler: Coroutine ``handler(args, ctx) -> dict``.
    """
    name: str
    description: str
    args_model: Type[BaseModel]
    handler: ToolHandler

    @property
    def parameter_schema(self) -> Dict[str, Any]:
        return self.args_model.model_json_schema()

    def describe(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'description': self.description,
            'inputSchema': self.parameter_schema,
        }

    def validate(self, arguments: Optional[Dict[str, Any]]) -> BaseModel:
        """
        Validate raw arguments against the declared model.

        Raises:
            ValidationError: With one ``{loc, msg}`` entry per failed field.
        """
        try:
            return self.args_model.model_validate(arguments or {})
        except PydanticValidationError as e:
            errors = [
                {'loc': list(err.get('loc', ())), 'msg': err.get('msg', '')}
                for err in e.errors()
            ]
            summary = '; '.join(
                f"{'.'.join(str(part) for part in err['loc']) or '(root)'}: {err['msg']}"
                for err in errors
            )
            raise ValidationError(f"Invalid arguments for {self.name}: {summary}", errors=errors) from e


class ToolRegistry:
    """
    Immutable name -> ToolDefinition mapping.

    Raises:
        ValueError: At construction, if two tools share a name.
    """

    def __init__(self, tools: Iterable[ToolDefinition]) -> None:
        catalog: Dict[str, ToolDefinition] = {}
        for tool in tools:
            if tool.name in catalog:
                raise ValueError(f"Duplicate tool name: {tool.name}")
            catalog[tool.name] = tool
        self._tools: Mapping[str, ToolDefinition] = MappingProxyType(catalog)

    def get(self, name: Optional[str]) -> ToolDefinition:
        """
        Resolve a tool by name.

        Raises:
            NotFoundError: If no tool has that name.
        """
        tool = self._tools.get(name or '')
        if tool is None:
            raise NotFoundError(f"tool not found: {name}")
        return tool

    def list_tools(self) -> List[Dict[str, Any]]:
        return [tool.describe() for tool in self._tools.values()]

    def names(self) -> List[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[ToolDefinition]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)
