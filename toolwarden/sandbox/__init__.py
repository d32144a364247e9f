"""Sandbox primitives every path- or process-touching tool must go through."""

from toolwarden.sandbox.paths import canonicalize, is_safe_relative_path, validate_path
from toolwarden.sandbox.policy import (
    BANNED_COMMANDS,
    find_banned_pattern,
    is_banned_command,
    validate_command,
)
from toolwarden.sandbox.process import ExecutionOutcome, build_execution_env, run_command
from toolwarden.sandbox.truncation import truncate_output

__all__ = [
    "BANNED_COMMANDS",
    "ExecutionOutcome",
    "build_execution_env",
    "canonicalize",
    "find_banned_pattern",
    "is_banned_command",
    "is_safe_relative_path",
    "run_command",
    "truncate_output",
    "validate_command",
    "validate_path",
]
