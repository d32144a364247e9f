# conftest.py - Shared pytest fixtures for all tests
"""Shared pytest fixtures for the toolwarden test suite.

Provides:
- A temporary sandbox directory with a small file tree
- Registries and executors wired to simple fake tools or the built-ins
- A plain tool context (tests that need an abort signal build their own)

Async code is driven with ``asyncio.run`` from plain test functions.
"""

from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path
from typing import Any

import pytest

from toolwarden.core.config import ToolsConfig
from toolwarden.core.executor import ToolExecutor
from toolwarden.core.models import ToolContext, ToolDefinition, ToolResult
from toolwarden.core.registry import ToolRegistry
from toolwarden.tools import create_builtin_registry


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if sys.platform != "win32":
        return
    skip_process = pytest.mark.skip(reason="requires a POSIX shell")
    for item in items:
        if "process" in item.keywords:
            item.add_marker(skip_process)


# =============================================================================
# Sandbox Fixtures
# =============================================================================


@pytest.fixture
def sandbox_root(tmp_path: Path) -> str:
    """Create a sandbox directory with a small project tree.

    Creates:
        - src/main.py, src/util.py
        - docs/README.md
        - notes.txt

    Returns:
        Absolute, symlink-free path to the sandbox root.
    """
    root = tmp_path / "sandbox"
    (root / "src").mkdir(parents=True)
    (root / "docs").mkdir()
    (root / "src" / "main.py").write_text("def main():\n    print('hello')\n")
    (root / "src" / "util.py").write_text("def helper(x):\n    return x * 2\n")
    (root / "docs" / "README.md").write_text("# Project\n\nHello documentation.\n")
    (root / "notes.txt").write_text("alpha\nbeta\ngamma\n")
    return os.path.realpath(root)


@pytest.fixture
def outside_dir(tmp_path: Path) -> str:
    """A directory next to (not inside) the sandbox, holding secret.txt."""
    outside = tmp_path / "outside"
    outside.mkdir()
    (outside / "secret.txt").write_text("top secret\n")
    return os.path.realpath(outside)


@pytest.fixture
def tools_config() -> ToolsConfig:
    """Config with a short kill grace so process tests stay fast."""
    return ToolsConfig(kill_grace_ms=100)


# =============================================================================
# Registry and Executor Fixtures
# =============================================================================


class EchoTool:
    """Returns its arguments; used to exercise dispatch."""

    definition = ToolDefinition(
        name="echo",
        description="Echo the arguments back",
        input_schema={"type": "object", "properties": {"value": {"type": "string"}}},
    )

    async def execute(self, arguments: dict[str, Any], context: ToolContext) -> ToolResult:
        return ToolResult(call_id="ignored", name="ignored", result=dict(arguments))


class SleepTool:
    """Sleeps for ``ms`` milliseconds, then returns."""

    definition = ToolDefinition(
        name="sleep",
        description="Sleep for a while",
        input_schema={"type": "object", "properties": {"ms": {"type": "integer"}}},
    )

    async def execute(self, arguments: dict[str, Any], context: ToolContext) -> ToolResult:
        await asyncio.sleep(arguments.get("ms", 0) / 1000)
        return ToolResult(call_id="", name="sleep", result={"slept": arguments.get("ms", 0)})


@pytest.fixture
def registry() -> ToolRegistry:
    """Registry with the echo and sleep fakes."""
    reg = ToolRegistry()
    reg.register(EchoTool())
    reg.register(SleepTool())
    return reg


@pytest.fixture
def executor(registry: ToolRegistry) -> ToolExecutor:
    return ToolExecutor(registry)


@pytest.fixture
def builtin_executor(sandbox_root: str, tools_config: ToolsConfig) -> ToolExecutor:
    """Executor over every built-in tool, rooted at the sandbox."""
    return ToolExecutor(create_builtin_registry(sandbox_root, tools_config))


@pytest.fixture
def tool_context() -> ToolContext:
    return ToolContext(conversation_id="test-conv", user_id="test-user")
