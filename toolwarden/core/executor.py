"""Tool dispatch.

ToolExecutor is the boundary between the agent loop and tool code: nothing it
exposes raises. Every failure, including unknown tools, timeouts, aborts and
arbitrary exceptions from tool bodies, comes back as a ToolResult carrying an
``error`` string and a normalized ``error_detail``.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Sequence

from toolwarden.core.errors import SystemToolExecutionError
from toolwarden.core.models import ToolCall, ToolContext, ToolResult, error_result
from toolwarden.core.registry import ToolRegistry

logger = logging.getLogger(__name__)


def _aborted_result(call: ToolCall) -> ToolResult:
    return error_result(
        call.id,
        call.name,
        SystemToolExecutionError.aborted({"reason": "abort_signal"}),
    )


class ToolExecutor:
    """Dispatch ToolCalls to registered tools."""

    def __init__(self, registry: ToolRegistry) -> None:
        self.registry = registry

    async def execute(
        self,
        call: ToolCall,
        context: ToolContext,
        *,
        abort_signal: asyncio.Event | None = None,
    ) -> ToolResult:
        """Run one call. Never raises.

        An explicit ``abort_signal`` replaces the one on ``context``. If the
        signal fires while the tool runs and the tool reports no error of its
        own, the outcome is replaced by an aborted error.
        """
        signal = abort_signal or context.abort_signal
        if signal is not None and signal.is_set():
            return _aborted_result(call)

        tool = self.registry.get(call.name)
        if tool is None:
            logger.warning("Tool not found: %s", call.name)
            return error_result(
                call.id, call.name, SystemToolExecutionError.tool_not_found(call.name)
            )

        if signal is not context.abort_signal:
            context = dataclasses.replace(context, abort_signal=signal)

        logger.debug("Dispatching %s (%s)", call.name, call.id)
        try:
            outcome = await tool.execute(dict(call.arguments), context)
        except Exception as e:
            logger.debug("Tool %s raised %s", call.name, type(e).__name__)
            return error_result(call.id, call.name, e)

        if not isinstance(outcome, ToolResult):
            outcome = ToolResult(call_id=call.id, name=call.name, result=outcome)

        if signal is not None and signal.is_set() and outcome.error is None:
            return _aborted_result(call)

        return outcome.model_copy(update={"call_id": call.id, "name": call.name})

    async def execute_many(
        self,
        calls: Sequence[ToolCall],
        context: ToolContext,
        *,
        abort_signal: asyncio.Event | None = None,
    ) -> list[ToolResult]:
        """Run several calls; results are index-aligned with ``calls``.

        With an explicit abort signal the calls run one after another and the
        batch stops as soon as the signal is set, returning only the results
        gathered so far. Without one they run concurrently and every call
        settles independently.
        """
        if abort_signal is not None:
            results: list[ToolResult] = []
            for call in calls:
                if abort_signal.is_set():
                    logger.info("Batch aborted after %d of %d calls", len(results), len(calls))
                    break
                results.append(await self.execute(call, context, abort_signal=abort_signal))
            return results

        settled = await asyncio.gather(
            *(self.execute(call, context) for call in calls),
            return_exceptions=True,
        )
        results = []
        for call, outcome in zip(calls, settled):
            if isinstance(outcome, BaseException):
                results.append(error_result(call.id, call.name, outcome))
            else:
                results.append(outcome)
        return results

    async def execute_with_timeout(
        self,
        call: ToolCall,
        context: ToolContext,
        timeout_ms: int,
        *,
        abort_signal: asyncio.Event | None = None,
    ) -> ToolResult:
        """Race one call against ``timeout_ms``.

        ``timeout_ms <= 0`` fails immediately with a zero timeout. On expiry the
        tool task is cancelled and a retryable TOOL_TIMEOUT result is returned.
        """
        if timeout_ms <= 0:
            return error_result(call.id, call.name, SystemToolExecutionError.timeout(0))

        try:
            return await asyncio.wait_for(
                self.execute(call, context, abort_signal=abort_signal),
                timeout=timeout_ms / 1000,
            )
        except asyncio.TimeoutError:
            logger.warning("Tool %s (%s) timed out after %dms", call.name, call.id, timeout_ms)
            return error_result(call.id, call.name, SystemToolExecutionError.timeout(timeout_ms))
