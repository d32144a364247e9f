"""Common plumbing for the built-in system tools."""

from __future__ import annotations

import logging
import os
from typing import Any, ClassVar

from jsonschema import Draft7Validator
from jsonschema.exceptions import ValidationError, best_match

from toolwarden.core.config import ToolsConfig
from toolwarden.core.errors import SystemToolExecutionError
from toolwarden.core.models import SystemToolResult, ToolContext, ToolDefinition, ToolResult
from toolwarden.sandbox.paths import to_sandbox_relative, validate_path
from toolwarden.sandbox.truncation import TruncationResult, truncate_output

logger = logging.getLogger(__name__)


def _error_field(error: ValidationError) -> str | None:
    if error.path:
        return str(error.path[0])
    if error.validator == "required" and isinstance(error.instance, dict):
        for name in error.validator_value:
            if name not in error.instance:
                return name
    return None


class SystemTool:
    """Base class for tools confined to one sandbox root.

    Subclasses set ``definition`` and implement ``run``. Arguments are checked
    against the definition's JSON schema before ``run`` is called, and any
    SystemToolExecutionError raised by ``run`` propagates to the executor.
    """

    definition: ClassVar[ToolDefinition]

    def __init__(self, sandbox_root: str, config: ToolsConfig | None = None) -> None:
        self.sandbox_root = os.path.abspath(sandbox_root)
        self.config = config or ToolsConfig()
        self._validator = Draft7Validator(self.definition.input_schema)

    @property
    def name(self) -> str:
        return self.definition.name

    def validate_arguments(self, arguments: dict[str, Any]) -> None:
        """Raise TOOL_VALIDATION_FAILED if ``arguments`` do not match the schema."""
        error = best_match(self._validator.iter_errors(arguments))
        if error is None:
            return
        field = _error_field(error)
        logger.debug("Invalid arguments for %s: %s", self.name, error.message)
        raise SystemToolExecutionError.validation(
            f"Invalid arguments for {self.name}: {error.message}",
            {"field": field, "reason": error.validator},
        )

    def resolve(self, path: str | None) -> str:
        """Sandbox-validate ``path``; None means the sandbox root."""
        return validate_path(path if path is not None else ".", self.sandbox_root)

    def relative(self, path: str) -> str:
        return to_sandbox_relative(path, self.sandbox_root)

    def truncate(self, content: str) -> TruncationResult:
        return truncate_output(
            content,
            max_lines=self.config.max_output_lines,
            max_bytes=self.config.max_output_bytes,
        )

    def build_result(
        self, title: str, content: str, metadata: dict[str, Any] | None = None
    ) -> SystemToolResult:
        """Truncate ``content`` and attach the standard size metadata.

        Metadata keys are camelCase, like the rest of the wire payload
        (``lineCount``, ``byteCount``).
        """
        truncated = self.truncate(content)
        return SystemToolResult(
            title=title,
            output=truncated.output,
            metadata={
                "truncated": truncated.metadata.truncated,
                "lineCount": truncated.metadata.original_lines,
                "byteCount": truncated.metadata.original_bytes,
                **(metadata or {}),
            },
        )

    def to_tool_result(self, payload: SystemToolResult) -> ToolResult:
        # call_id is re-stamped by the executor
        return ToolResult(call_id="", name=self.name, result=payload.model_dump())

    async def execute(self, arguments: dict[str, Any], context: ToolContext) -> ToolResult:
        self.validate_arguments(arguments)
        payload = await self.run(arguments, context)
        if isinstance(payload, ToolResult):
            return payload
        return self.to_tool_result(payload)

    async def run(
        self, arguments: dict[str, Any], context: ToolContext
    ) -> SystemToolResult | ToolResult:
        raise NotImplementedError
