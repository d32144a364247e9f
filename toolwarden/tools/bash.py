"""Shell command tool.

Validation happens in a fixed order before anything is spawned: arguments,
command denylist, working directory, abort signal. Only then is the command
handed to run_command, whose outcome is classified as aborted, timed out,
failed or successful.
"""

from __future__ import annotations

import logging
import math
from typing import Any

from toolwarden.core.errors import SystemToolExecutionError
from toolwarden.core.models import SystemToolResult, ToolContext, ToolResult, error_result
from toolwarden.sandbox.policy import validate_command
from toolwarden.sandbox.process import ExecutionOutcome, run_command
from toolwarden.tools.base import SystemTool
from toolwarden.tools.definitions import BASH_DEFINITION

logger = logging.getLogger(__name__)


class BashTool(SystemTool):
    """Run a shell command inside the sandbox root."""

    definition = BASH_DEFINITION

    def _timeout_ms(self, arguments: dict[str, Any]) -> int | float:
        value = arguments.get("timeout")
        if value is None:
            return self.config.default_timeout_ms
        if not math.isfinite(value):
            raise SystemToolExecutionError.validation(
                f"Invalid arguments for {self.name}: timeout must be a finite number",
                {"field": "timeout", "reason": "not_finite"},
            )
        return int(value) if float(value).is_integer() else value

    async def run(
        self, arguments: dict[str, Any], context: ToolContext
    ) -> SystemToolResult | ToolResult:
        command: str = arguments["command"]
        timeout_ms = self._timeout_ms(arguments)

        validate_command(command)
        cwd = self.resolve(arguments.get("workdir"))

        if context.aborted:
            raise SystemToolExecutionError.aborted(
                {"command": command, "workdir": cwd, "reason": "abort_signal"}
            )

        outcome = await run_command(
            command,
            cwd,
            timeout_ms,
            context.abort_signal,
            max_buffer_bytes=self.config.max_buffer_bytes,
            kill_grace_ms=self.config.kill_grace_ms,
        )
        return self._classify(command, cwd, timeout_ms, outcome)

    def _classify(
        self,
        command: str,
        cwd: str,
        timeout_ms: int | float,
        outcome: ExecutionOutcome,
    ) -> SystemToolResult | ToolResult:
        metadata: dict[str, Any] = {
            "command": command,
            "workdir": cwd,
            "timeoutMs": timeout_ms,
        }
        if outcome.aborted:
            metadata["aborted"] = True
        if outcome.dropped_bytes:
            metadata["bufferTruncated"] = True
            metadata["droppedBytes"] = outcome.dropped_bytes

        payload = self.build_result(
            f"Executed command: {command}", outcome.combined_output, metadata
        )

        if outcome.aborted and not outcome.timed_out:
            logger.warning("Command aborted: %s", command)
            # Keep the partial output alongside the error
            return error_result(
                "",
                self.name,
                SystemToolExecutionError.aborted(
                    {"command": command, "workdir": cwd, "reason": "abort_signal"}
                ),
                result=payload.model_dump(),
            )

        if outcome.timed_out:
            logger.warning("Command timed out after %sms: %s", timeout_ms, command)
            raise SystemToolExecutionError.timeout(timeout_ms)

        if not outcome.succeeded:
            details: dict[str, Any] = {
                "command": command,
                "workdir": cwd,
                "exitCode": outcome.exit_code,
                "signal": outcome.signal,
            }
            if outcome.stdout:
                details["stdout"] = outcome.stdout
            if outcome.stderr:
                details["stderr"] = outcome.stderr
            if outcome.exit_code is None:
                message = f"Command terminated by signal {outcome.signal}"
            else:
                message = f"Command failed with exit code {outcome.exit_code}"
            raise SystemToolExecutionError.failed(message, details=details)

        return payload
