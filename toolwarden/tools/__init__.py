"""Built-in system tools."""

from __future__ import annotations

from toolwarden.core.config import ToolsConfig
from toolwarden.core.registry import ToolRegistry
from toolwarden.tools.base import SystemTool
from toolwarden.tools.bash import BashTool
from toolwarden.tools.definitions import SYSTEM_TOOL_DEFINITIONS, get_builtin_tool_definitions
from toolwarden.tools.files import EditTool, LsTool, ReadTool, WriteTool
from toolwarden.tools.search import GlobTool, GrepTool

BUILTIN_TOOLS: tuple[type[SystemTool], ...] = (
    BashTool,
    ReadTool,
    WriteTool,
    EditTool,
    GlobTool,
    GrepTool,
    LsTool,
)


def create_builtin_registry(sandbox_root: str, config: ToolsConfig | None = None) -> ToolRegistry:
    """Registry holding every built-in tool, all confined to ``sandbox_root``."""
    registry = ToolRegistry()
    for tool_class in BUILTIN_TOOLS:
        registry.register(tool_class(sandbox_root, config))
    return registry


__all__ = [
    "BUILTIN_TOOLS",
    "BashTool",
    "EditTool",
    "GlobTool",
    "GrepTool",
    "LsTool",
    "ReadTool",
    "SYSTEM_TOOL_DEFINITIONS",
    "SystemTool",
    "WriteTool",
    "create_builtin_registry",
    "get_builtin_tool_definitions",
]
