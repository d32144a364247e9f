"""Definitions (name, description, JSON schema) of the built-in system tools."""

from __future__ import annotations

from toolwarden.core.models import ToolDefinition

BASH_DEFINITION = ToolDefinition(
    name="bash",
    description="Execute shell commands within the project sandbox with timeout and safety checks.",
    input_schema={
        "type": "object",
        "properties": {
            "command": {"type": "string", "description": "Shell command to execute."},
            "workdir": {
                "type": "string",
                "description": "Optional working directory inside the project root.",
            },
            "timeout": {
                "type": "number",
                "exclusiveMinimum": 0,
                "description": "Optional timeout in milliseconds. Defaults to the system limit.",
            },
        },
        "required": ["command"],
    },
)

READ_DEFINITION = ToolDefinition(
    name="read",
    description="Read a file from the project sandbox with optional offset and line limit.",
    input_schema={
        "type": "object",
        "properties": {
            "path": {"type": "string", "minLength": 1, "description": "Path to the file to read."},
            "offset": {
                "type": "integer",
                "minimum": 1,
                "description": "Optional 1-based line number to start reading from.",
            },
            "limit": {
                "type": "integer",
                "minimum": 1,
                "description": "Optional maximum number of lines to return.",
            },
        },
        "required": ["path"],
    },
)

WRITE_DEFINITION = ToolDefinition(
    name="write",
    description=(
        "Create or overwrite a file in the project sandbox, creating parent directories "
        "when allowed."
    ),
    input_schema={
        "type": "object",
        "properties": {
            "path": {"type": "string", "minLength": 1, "description": "Path to the file to write."},
            "content": {"type": "string", "description": "Full file content to write."},
        },
        "required": ["path", "content"],
    },
)

EDIT_DEFINITION = ToolDefinition(
    name="edit",
    description="Replace an exact string match in a file and return a diff-style summary of the change.",
    input_schema={
        "type": "object",
        "properties": {
            "path": {"type": "string", "minLength": 1, "description": "Path to the file to edit."},
            "oldString": {"type": "string", "description": "Exact string to find in the file."},
            "newString": {"type": "string", "description": "Replacement string."},
        },
        "required": ["path", "oldString", "newString"],
    },
)

GLOB_DEFINITION = ToolDefinition(
    name="glob",
    description="Find files matching a glob pattern under the project sandbox.",
    input_schema={
        "type": "object",
        "properties": {
            "pattern": {"type": "string", "minLength": 1, "description": "Glob pattern to match files."},
            "path": {
                "type": "string",
                "description": "Optional base directory for the glob search.",
            },
        },
        "required": ["pattern"],
    },
)

GREP_DEFINITION = ToolDefinition(
    name="grep",
    description="Search file contents by regex pattern and return matching paths and line numbers.",
    input_schema={
        "type": "object",
        "properties": {
            "pattern": {
                "type": "string",
                "minLength": 1,
                "description": "Regular expression pattern to search for.",
            },
            "path": {"type": "string", "description": "Optional base directory to search in."},
            "include": {
                "type": "string",
                "description": "Optional file include pattern such as '*.py'.",
            },
            "maxResults": {
                "type": "integer",
                "minimum": 1,
                "description": "Optional cap on the number of matches returned.",
            },
        },
        "required": ["pattern"],
    },
)

LS_DEFINITION = ToolDefinition(
    name="ls",
    description=(
        "List directory entries in the project sandbox, including metadata such as type and size."
    ),
    input_schema={
        "type": "object",
        "properties": {
            "path": {
                "type": "string",
                "description": "Optional directory path to list. Defaults to current project root.",
            },
        },
    },
)

SYSTEM_TOOL_DEFINITIONS: tuple[ToolDefinition, ...] = (
    BASH_DEFINITION,
    READ_DEFINITION,
    WRITE_DEFINITION,
    EDIT_DEFINITION,
    GLOB_DEFINITION,
    GREP_DEFINITION,
    LS_DEFINITION,
)


def get_builtin_tool_definitions() -> list[ToolDefinition]:
    return list(SYSTEM_TOOL_DEFINITIONS)
