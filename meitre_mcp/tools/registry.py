"""Declarative tool table: name → description, parameter model, executor."""

import logging
from collections.abc import Awaitable, Callable, Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ValidationError

from meitre_mcp.clients.meitre import MeitreClient
from meitre_mcp.models.base import CamelModel

logger = logging.getLogger(__name__)


class ToolArgumentError(ValueError):
    """Tool arguments failed schema validation; the tool was not executed."""

    def __init__(self, tool_name: str, errors: list[dict[str, Any]]) -> None:
        details = "; ".join(f"{e['field'] or '(arguments)'}: {e['message']}" for e in errors)
        super().__init__(f"Invalid arguments for {tool_name}: {details}")
        self.tool_name = tool_name
        self.errors = errors


@dataclass
class ToolContext:
    """Request-scoped state handed to every tool invocation.

    Attributes:
        api: The client for this request's account.
        has_header_restaurant: True when the restaurant scope was pinned by
            the ``restaurant`` transport header, which then overrides any
            ``restaurant`` tool argument.
    """

    api: MeitreClient
    has_header_restaurant: bool = False


class RestaurantParams(CamelModel):
    """Base for tools that act on one restaurant."""

    restaurant: str | None = None


ToolExecutor = Callable[[ToolContext, Any], Awaitable[Any]]


@dataclass(frozen=True)
class Tool:
    name: str
    description: str
    parameters: type[BaseModel]
    execute: ToolExecutor

    def input_schema(self) -> dict[str, Any]:
        return self.parameters.model_json_schema(by_alias=True)

    def validate(self, arguments: object) -> BaseModel:
        """Return *arguments* parsed into the tool's parameter model.

        Raises:
            ToolArgumentError: With one ``{field, message, type}`` entry per
                validation failure.
        """
        try:
            return self.parameters.model_validate(arguments)
        except ValidationError as exc:
            errors = [
                {
                    "field": ".".join(str(part) for part in err["loc"]),
                    "message": err["msg"],
                    "type": err["type"],
                }
                for err in exc.errors(include_url=False)
            ]
            raise ToolArgumentError(self.name, errors) from exc


class ToolRegistry:
    """Name-keyed table of tools, filled once at startup and read-only after."""

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}

    def tool(
        self,
        *,
        description: str,
        parameters: type[BaseModel],
        name: str | None = None,
    ) -> Callable[[ToolExecutor], ToolExecutor]:
        """Decorator registering an async ``(context, params)`` function."""

        def decorator(func: ToolExecutor) -> ToolExecutor:
            self.add(Tool(
                name=name or func.__name__,
                description=description,
                parameters=parameters,
                execute=func,
            ))
            return func

        return decorator

    def add(self, tool: Tool) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool
        logger.debug("Registered tool %s", tool.name)

    def get(self, name: object) -> Tool | None:
        if not isinstance(name, str):
            return None
        return self._tools.get(name)

    @property
    def tools(self) -> Mapping[str, Tool]:
        return MappingProxyType(self._tools)

    def __iter__(self) -> Iterator[Tool]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)
