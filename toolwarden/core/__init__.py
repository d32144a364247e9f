"""Core modules: error taxonomy, data model, registry and executor."""

from toolwarden.core.errors import (
    ConfigError,
    SystemToolExecutionError,
    ToolError,
    ToolErrorCode,
    to_system_tool_error,
)
from toolwarden.core.models import (
    ErrorDetail,
    SystemToolResult,
    ToolCall,
    ToolContext,
    ToolDefinition,
    ToolResult,
    deserialize_tool_call,
    deserialize_tool_result,
    serialize_tool_call,
    serialize_tool_result,
    to_error_detail,
)

__all__ = [
    "ConfigError",
    "ErrorDetail",
    "SystemToolExecutionError",
    "SystemToolResult",
    "ToolCall",
    "ToolContext",
    "ToolDefinition",
    "ToolError",
    "ToolErrorCode",
    "ToolResult",
    "deserialize_tool_call",
    "deserialize_tool_result",
    "serialize_tool_call",
    "serialize_tool_result",
    "to_error_detail",
    "to_system_tool_error",
]
