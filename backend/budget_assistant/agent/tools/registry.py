"""Tool registry for the budget assistant.

Holds named capabilities the reasoning backend may call, advertises them in
registration order, and dispatches invocations by name. Arguments are
validated against the tool's pydantic model at the dispatch boundary.

The registry is populated once at startup and is read-only afterwards, so
lookups from several sessions at once are safe.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import structlog
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ...core.exceptions import ToolArgumentError, ToolNotFoundError

logger = structlog.get_logger()

ToolAction = Callable[..., Any]


@dataclass
class Tool:
    """A named capability: description, parameter schema and action.

    When `args_model` is set, the advertised `parameters` schema is derived
    from it (unless given explicitly) and the action receives a validated
    instance of the model instead of the raw argument mapping.
    """

    name: str
    description: str
    action: ToolAction
    parameters: dict[str, Any] = field(default_factory=dict)
    args_model: type[BaseModel] | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Tool name must not be empty")
        if not self.parameters:
            if self.args_model is not None:
                self.parameters = _schema_for(self.args_model)
            else:
                self.parameters = {"type": "object", "properties": {}}

    def descriptor(self) -> dict[str, Any]:
        """Name, description and parameter schema as advertised to the backend."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }


def _schema_for(model: type[BaseModel]) -> dict[str, Any]:
    schema = model.model_json_schema()
    # Backends reject the pydantic "title" noise on function schemas
    schema.pop("title", None)
    for prop in schema.get("properties", {}).values():
        prop.pop("title", None)
    return schema


class ToolRegistry:
    """Registry of tools keyed by unique name (last registration wins)."""

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        """Register a tool; a duplicate name replaces the old tool in its slot."""
        if tool.name in self._tools:
            logger.warning("Tool already registered, overwriting", tool=tool.name)

        self._tools[tool.name] = tool
        logger.info("Tool registered", tool=tool.name)

    def list(self) -> list[Tool]:
        """All registered tools in registration order."""
        return list(self._tools.values())

    def names(self) -> list[str]:
        return list(self._tools)

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    async def execute(self, name: str, arguments: dict[str, Any] | None = None) -> Any:
        """
        Run a tool by name.

        Args:
            name: Registered tool name
            arguments: Raw arguments as produced by the backend

        Returns:
            The tool action's result

        Raises:
            ToolNotFoundError: No tool with that name is registered
            ToolArgumentError: Arguments fail the tool's schema
            Exception: Whatever the action raises propagates unchanged
        """
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(f"Tool {name} not found", tool=name)

        arguments = arguments or {}

        if tool.args_model is not None:
            try:
                payload: Any = tool.args_model.model_validate(arguments)
            except PydanticValidationError as e:
                raise ToolArgumentError(
                    f"Invalid arguments for tool {name}: {e.errors(include_url=False)}",
                    tool=name,
                ) from e
        else:
            if not isinstance(arguments, dict):
                raise ToolArgumentError(
                    f"Arguments for tool {name} must be an object", tool=name
                )
            payload = arguments

        logger.debug("Executing tool", tool=name)
        result = tool.action(payload)
        if inspect.isawaitable(result):
            result = await result
        return result


__all__ = ["Tool", "ToolAction", "ToolRegistry"]
