"""Data models shared by the registry, executor and tools.

Python code uses snake_case attributes; the wire form (``model_dump(by_alias=True)``
and the serialize_* helpers) uses the camelCase names agents and providers expect.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from toolwarden.core.errors import (
    ToolError,
    ToolErrorCode,
    to_system_tool_error,
)


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ToolCall(_WireModel):
    """One invocation requested by the model. Immutable once created."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class ErrorDetail(_WireModel):
    """Normalized failure description attached to a ToolResult."""

    code: ToolErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] | None = None


class ToolResult(_WireModel):
    """Outcome of one tool call.

    ``error`` set implies ``result`` is None or a partial payload. The only
    case carrying both is an externally aborted run.
    """

    call_id: str
    name: str
    result: Any = None
    error: str | None = None
    error_detail: ErrorDetail | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class SystemToolResult(BaseModel):
    """Payload returned by filesystem and process tools."""

    title: str
    output: str
    metadata: dict[str, Any]

    @property
    def truncated(self) -> bool:
        return bool(self.metadata.get("truncated", False))


class ToolDefinition(BaseModel):
    """Name, description and JSON schema advertised to the model."""

    name: str = Field(min_length=1)
    description: str = Field(min_length=1)
    input_schema: dict[str, Any]

    def to_provider(self) -> dict[str, Any]:
        """Provider-facing shape: ``{name, description, parameters}``."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.input_schema,
        }


@dataclass
class ToolContext:
    """Per-call context handed to tools.

    ``abort_signal`` is an asyncio.Event that an outside party sets to request
    cancellation; tools observe it cooperatively.
    """

    conversation_id: str
    user_id: str
    workspace_id: str | None = None
    abort_signal: asyncio.Event | None = None

    @property
    def aborted(self) -> bool:
        return self.abort_signal is not None and self.abort_signal.is_set()


def to_error_detail(value: object) -> ErrorDetail:
    """Normalize any failure shape into an ErrorDetail."""
    normalized = to_system_tool_error(value)
    return ErrorDetail(
        code=normalized.code,
        message=normalized.message,
        retryable=normalized.retryable,
        details=normalized.details,
    )


def error_result(call_id: str, name: str, error: object, result: Any = None) -> ToolResult:
    """Build a ToolResult for a failure, keeping any partial payload."""
    detail = to_error_detail(error)
    return ToolResult(
        call_id=call_id,
        name=name,
        result=result,
        error=detail.message,
        error_detail=detail,
    )


def is_json_schema(value: object) -> bool:
    """True for an object schema with a ``properties`` mapping."""
    return (
        isinstance(value, dict)
        and value.get("type") == "object"
        and isinstance(value.get("properties"), dict)
    )


# =============================================================================
# Wire serialization
# =============================================================================


def serialize_tool_call(call: ToolCall) -> dict[str, Any]:
    """Serialize a call with its arguments encoded as a JSON string."""
    return {
        "id": call.id,
        "name": call.name,
        "argumentsJson": json.dumps(call.arguments, sort_keys=True),
    }


def deserialize_tool_call(payload: dict[str, Any]) -> ToolCall:
    """Inverse of serialize_tool_call.

    Raises:
        ToolError: If fields are missing or ``argumentsJson`` is not a JSON object.
    """
    if not isinstance(payload, dict):
        raise ToolError("Serialized tool call must be an object")

    call_id = payload.get("id")
    name = payload.get("name")
    raw_arguments = payload.get("argumentsJson")
    if not isinstance(call_id, str) or not isinstance(name, str):
        raise ToolError("Serialized tool call requires string 'id' and 'name'")
    if not isinstance(raw_arguments, str):
        raise ToolError("Serialized tool call requires string 'argumentsJson'")

    try:
        arguments = json.loads(raw_arguments)
    except json.JSONDecodeError as e:
        raise ToolError(f"Invalid tool call arguments JSON: {e.msg}") from e
    if not isinstance(arguments, dict):
        raise ToolError("Tool call arguments must decode to a JSON object")

    return ToolCall(id=call_id, name=name, arguments=arguments)


def serialize_tool_result(result: ToolResult) -> dict[str, Any]:
    """Serialize a result to its camelCase wire form, omitting unset error fields."""
    data = result.model_dump(mode="json", by_alias=True)
    for key in ("error", "errorDetail"):
        if data.get(key) is None:
            data.pop(key, None)
    return data


def deserialize_tool_result(payload: dict[str, Any]) -> ToolResult:
    """Inverse of serialize_tool_result.

    Raises:
        ToolError: If the payload does not describe a valid ToolResult.
    """
    if not isinstance(payload, dict):
        raise ToolError("Serialized tool result must be an object")
    data = dict(payload)
    data.setdefault("result", None)
    try:
        return ToolResult.model_validate(data)
    except ValidationError as e:
        raise ToolError(f"Invalid serialized tool result: {e.error_count()} error(s)") from e


__all__ = [
    "ErrorDetail",
    "SystemToolResult",
    "ToolCall",
    "ToolContext",
    "ToolDefinition",
    "ToolResult",
    "deserialize_tool_call",
    "deserialize_tool_result",
    "error_result",
    "is_json_schema",
    "serialize_tool_call",
    "serialize_tool_result",
    "to_error_detail",
]
