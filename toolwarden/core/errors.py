"""Shared error taxonomy for tool execution.

Every failure that crosses the tool boundary is expressed as one of five codes.
Callers branch on ``code``; message text is for humans only.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from enum import Enum
from typing import Any


class ToolErrorCode(str, Enum):
    """Machine-checkable error codes exposed to tool callers."""

    TOOL_NOT_FOUND = "TOOL_NOT_FOUND"
    TOOL_TIMEOUT = "TOOL_TIMEOUT"
    TOOL_VALIDATION_FAILED = "TOOL_VALIDATION_FAILED"
    TOOL_PERMISSION_DENIED = "TOOL_PERMISSION_DENIED"
    TOOL_EXECUTION_FAILED = "TOOL_EXECUTION_FAILED"


ABORTED_MESSAGE = "Tool execution aborted"


class ToolError(Exception):
    """Base error for tool registry and dispatch problems."""

    pass


class ConfigError(ToolError):
    """Invalid toolwarden configuration."""

    pass


class SystemToolExecutionError(ToolError):
    """Structured tool failure carrying a code, retry hint and details."""

    def __init__(
        self,
        code: ToolErrorCode,
        message: str,
        *,
        retryable: bool = False,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = ToolErrorCode(code)
        self.message = message
        self.retryable = retryable
        self.details = details

    def __repr__(self) -> str:
        return f"SystemToolExecutionError({self.code.value}, {self.message!r})"

    @classmethod
    def tool_not_found(cls, tool_name: str) -> SystemToolExecutionError:
        return cls(ToolErrorCode.TOOL_NOT_FOUND, f"Tool not found: {tool_name}")

    @classmethod
    def timeout(cls, timeout_ms: int) -> SystemToolExecutionError:
        return cls(
            ToolErrorCode.TOOL_TIMEOUT,
            f"Tool execution timed out after {timeout_ms}ms",
            retryable=True,
            details={"timeoutMs": timeout_ms},
        )

    @classmethod
    def validation(
        cls, message: str, details: dict[str, Any] | None = None
    ) -> SystemToolExecutionError:
        return cls(ToolErrorCode.TOOL_VALIDATION_FAILED, message, details=details)

    @classmethod
    def permission_denied(
        cls, message: str, details: dict[str, Any] | None = None
    ) -> SystemToolExecutionError:
        return cls(ToolErrorCode.TOOL_PERMISSION_DENIED, message, details=details)

    @classmethod
    def not_found(
        cls, message: str, details: dict[str, Any] | None = None
    ) -> SystemToolExecutionError:
        return cls(ToolErrorCode.TOOL_NOT_FOUND, message, details=details)

    @classmethod
    def failed(
        cls,
        message: str,
        *,
        retryable: bool = False,
        details: dict[str, Any] | None = None,
    ) -> SystemToolExecutionError:
        return cls(
            ToolErrorCode.TOOL_EXECUTION_FAILED,
            message,
            retryable=retryable,
            details=details,
        )

    @classmethod
    def aborted(cls, details: dict[str, Any] | None = None) -> SystemToolExecutionError:
        return cls.failed(ABORTED_MESSAGE, details=details)


_ERROR_CODE_VALUES = frozenset(code.value for code in ToolErrorCode)


def _is_error_code(value: object) -> bool:
    if isinstance(value, ToolErrorCode):
        return True
    return isinstance(value, str) and value in _ERROR_CODE_VALUES


def _is_error_detail_like(value: object) -> bool:
    if not isinstance(value, Mapping):
        return False
    if not _is_error_code(value.get("code")):
        return False
    details = value.get("details")
    return (
        isinstance(value.get("message"), str)
        and isinstance(value.get("retryable"), bool)
        and (details is None or isinstance(details, Mapping))
    )


def to_system_tool_error(
    value: object,
    fallback_code: ToolErrorCode = ToolErrorCode.TOOL_EXECUTION_FAILED,
) -> SystemToolExecutionError:
    """Collapse any raised or returned failure into a SystemToolExecutionError.

    Handles, in order: an existing SystemToolExecutionError, an ErrorDetail-shaped
    mapping, an exception carrying a known ``code`` attribute, a timeout without
    a message, any exception with a message, a non-empty string, and finally
    anything else (generic "Tool execution failed").
    """
    fallback_retryable = fallback_code == ToolErrorCode.TOOL_TIMEOUT

    if isinstance(value, SystemToolExecutionError):
        return value

    if _is_error_detail_like(value):
        details = value.get("details")
        return SystemToolExecutionError(
            ToolErrorCode(value["code"]),
            value["message"],
            retryable=value["retryable"],
            details=dict(details) if details is not None else None,
        )

    if isinstance(value, BaseException):
        code = getattr(value, "code", None)
        message = str(value)
        if _is_error_code(code) and message:
            known = ToolErrorCode(code)
            return SystemToolExecutionError(
                known, message, retryable=known == ToolErrorCode.TOOL_TIMEOUT
            )
        if isinstance(value, (asyncio.TimeoutError, TimeoutError)) and not message:
            return SystemToolExecutionError(
                ToolErrorCode.TOOL_TIMEOUT, "Tool execution timed out", retryable=True
            )
        if message:
            return SystemToolExecutionError(
                fallback_code, message, retryable=fallback_retryable
            )

    if isinstance(value, str) and value:
        return SystemToolExecutionError(fallback_code, value, retryable=fallback_retryable)

    return SystemToolExecutionError(
        fallback_code, "Tool execution failed", retryable=fallback_retryable
    )
