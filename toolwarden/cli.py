"""CLI entry point for toolwarden.

Commands:
- toolwarden run: Run a shell command through the sandboxed bash tool
- toolwarden call: Invoke any built-in tool with JSON arguments
- toolwarden tools: List built-in tools
- toolwarden check-path: Show whether a path resolves inside the sandbox
- toolwarden check-command: Show whether a command passes the denylist
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
import uuid
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from toolwarden import __version__
from toolwarden.core.config import ToolsConfig, load_config
from toolwarden.core.errors import ConfigError, SystemToolExecutionError
from toolwarden.core.executor import ToolExecutor
from toolwarden.core.models import ToolCall, ToolContext, ToolResult
from toolwarden.sandbox.paths import validate_path
from toolwarden.sandbox.policy import validate_command
from toolwarden.tools import create_builtin_registry, get_builtin_tool_definitions

console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _config(ctx: click.Context) -> ToolsConfig:
    return ctx.obj["config"]


def _invoke(
    ctx: click.Context, root: str, name: str, arguments: dict[str, Any]
) -> ToolResult:
    config = _config(ctx)
    executor = ToolExecutor(create_builtin_registry(root, config))
    call = ToolCall(id=f"cli-{uuid.uuid4().hex[:8]}", name=name, arguments=arguments)
    context = ToolContext(conversation_id="cli", user_id="cli")
    return asyncio.run(executor.execute_with_timeout(call, context, config.call_timeout_ms))


def _print_result(result: ToolResult) -> None:
    payload = result.result if isinstance(result.result, dict) else None
    if payload is not None:
        console.print(f"[bold]{escape(payload.get('title', result.name))}[/bold]")
        output = payload.get("output", "")
        if output:
            console.print(escape(output), highlight=False)
        if payload.get("metadata", {}).get("truncated"):
            console.print("[yellow]Output truncated[/yellow]")

    if result.error_detail is not None:
        detail = result.error_detail
        console.print(f"[red]{detail.code.value}:[/red] {escape(detail.message)}")
        if detail.details:
            for key, value in detail.details.items():
                if key in ("stdout", "stderr"):
                    continue
                console.print(f"  [dim]{key}:[/dim] {escape(str(value))}")
        stderr = (detail.details or {}).get("stderr")
        if stderr:
            console.print(Panel(escape(stderr), title="stderr", border_style="red"))


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    help="Config file (overrides project and user config)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """toolwarden - sandboxed system tools for autonomous agents.

    Every path is confined to a sandbox root and every shell command is
    screened against a denylist and bounded in time and output.
    """
    _configure_logging(verbose)
    try:
        config = load_config(config_path)
    except ConfigError as e:
        console.print(f"[red]Config error:[/red] {escape(str(e))}")
        sys.exit(2)
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@main.command()
@click.argument("command")
@click.option(
    "--root",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    help="Sandbox root directory",
)
@click.option("--workdir", "-w", help="Working directory inside the sandbox")
@click.option("--timeout", "-t", type=int, help="Timeout in milliseconds")
@click.pass_context
def run(
    ctx: click.Context, command: str, root: str, workdir: str | None, timeout: int | None
) -> None:
    """Run COMMAND in the sandbox."""
    arguments: dict[str, Any] = {"command": command}
    if workdir is not None:
        arguments["workdir"] = workdir
    if timeout is not None:
        arguments["timeout"] = timeout

    result = _invoke(ctx, str(Path(root).resolve()), "bash", arguments)
    _print_result(result)
    if not result.ok:
        sys.exit(1)


@main.command()
@click.argument("name")
@click.option("--args", "args_json", default="{}", help="Tool arguments as a JSON object")
@click.option(
    "--root",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    help="Sandbox root directory",
)
@click.option("--json", "as_json", is_flag=True, help="Print the raw result as JSON")
@click.pass_context
def call(ctx: click.Context, name: str, args_json: str, root: str, as_json: bool) -> None:
    """Invoke built-in tool NAME."""
    try:
        arguments = json.loads(args_json)
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid --args JSON:[/red] {escape(e.msg)}")
        sys.exit(2)
    if not isinstance(arguments, dict):
        console.print("[red]--args must be a JSON object[/red]")
        sys.exit(2)

    result = _invoke(ctx, str(Path(root).resolve()), name, arguments)
    if as_json:
        click.echo(result.model_dump_json(by_alias=True, indent=2))
    else:
        _print_result(result)
    if not result.ok:
        sys.exit(1)


@main.command()
def tools() -> None:
    """List built-in tools."""
    table = Table(title="Built-in Tools")
    table.add_column("Tool", style="cyan")
    table.add_column("Description", style="white")
    table.add_column("Arguments", style="green")

    for definition in get_builtin_tool_definitions():
        required = set(definition.input_schema.get("required", []))
        arguments = ", ".join(
            name if name in required else f"[{name}]"
            for name in definition.input_schema.get("properties", {})
        )
        table.add_row(definition.name, definition.description, escape(arguments))

    console.print(table)


@main.command("check-path")
@click.argument("path")
@click.option(
    "--root",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    help="Sandbox root directory",
)
def check_path(path: str, root: str) -> None:
    """Show where PATH resolves and whether it stays inside the sandbox."""
    try:
        resolved = validate_path(path, str(Path(root).resolve()))
    except SystemToolExecutionError as e:
        reason = (e.details or {}).get("reason", "")
        console.print(f"[red]Denied[/red] ({reason}): {escape(e.message)}")
        sys.exit(1)
    console.print(f"[green]Allowed:[/green] {escape(resolved)}")


@main.command("check-command")
@click.argument("command")
def check_command(command: str) -> None:
    """Show whether COMMAND passes the command denylist."""
    try:
        validate_command(command)
    except SystemToolExecutionError as e:
        pattern = (e.details or {}).get("matchedPattern")
        suffix = f" (matched {escape(repr(pattern))})" if pattern else ""
        console.print(f"[red]Denied:[/red] {escape(e.message)}{suffix}")
        sys.exit(1)
    console.print("[green]Allowed[/green]")


if __name__ == "__main__":
    main()
