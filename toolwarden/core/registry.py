"""Tool registry: name -> implementation lookup."""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

from toolwarden.core.errors import ToolError
from toolwarden.core.models import ToolContext, ToolDefinition, ToolResult

logger = logging.getLogger(__name__)


@runtime_checkable
class Tool(Protocol):
    """Anything with a definition and an async execute method."""

    definition: ToolDefinition

    async def execute(self, arguments: dict[str, Any], context: ToolContext) -> ToolResult: ...


class ToolRegistry:
    """Registered tools, kept in registration order."""

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        name = tool.definition.name
        if name in self._tools:
            raise ToolError(f"Tool already registered: {name}")
        self._tools[name] = tool
        logger.info("Registered tool %s", name)

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def get_or_raise(self, name: str) -> Tool:
        tool = self._tools.get(name)
        if tool is None:
            raise ToolError(f"Tool not found: {name}")
        return tool

    def has(self, name: str) -> bool:
        return name in self._tools

    def remove(self, name: str) -> bool:
        """Unregister ``name``. Returns False if it was not registered."""
        removed = self._tools.pop(name, None) is not None
        if removed:
            logger.info("Removed tool %s", name)
        return removed

    def list(self) -> list[Tool]:
        return list(self._tools.values())

    def get_definitions(self) -> list[ToolDefinition]:
        return [tool.definition for tool in self._tools.values()]

    def clear(self) -> None:
        self._tools.clear()

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools
