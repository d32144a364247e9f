"""Denylist policy for shell commands.

This is syntax filtering layered on top of the sandbox path checks, not a
security boundary by itself: a determined caller can always obfuscate a
command. It catches the obvious destructive forms before anything is spawned.
"""

from __future__ import annotations

import logging
import re

from toolwarden.core.errors import SystemToolExecutionError

logger = logging.getLogger(__name__)

BANNED_COMMANDS: tuple[str, ...] = (
    # Recursive deletes of the filesystem root or home
    "rm -rf /",
    "rm -rf /*",
    "rm -rf ~",
    "rm -fr /",
    # Privilege escalation
    "sudo",
    "su",
    "doas",
    # Disk formatting / raw device writes
    "mkfs",
    "dd if=/dev/zero",
    "dd if=/dev/random",
    "dd if=/dev/urandom",
    "of=/dev/sd",
    "> /dev/sd",
    "format c:",
    # Destructive permission and ownership changes
    "chmod -r 777 /",
    "chmod 777 /",
    "chown -r",
    # Power state
    "shutdown",
    "reboot",
    "poweroff",
    "init 0",
    "init 6",
    # Fork bomb
    ":(){ :|:& };:",
)

# Privilege-escalation tokens are short enough to appear inside ordinary words
# ("subdirectory", "pseudocode"), so they only match as a command word: at the
# start of the command, after a separator or an opening quote, optionally with a
# directory prefix such as /usr/bin/.
_COMMAND_WORD_TOKENS = frozenset({"sudo", "su", "doas"})
_COMMAND_WORD_PATTERNS: dict[str, re.Pattern[str]] = {
    token: re.compile(
        rf"""(?:^|[\s;&|(`$'"])(?:[^\s;&|()`'"]*/)?{token}(?=$|[\s;&|)`'"])"""
    )
    for token in _COMMAND_WORD_TOKENS
}


def find_banned_pattern(command: str) -> str | None:
    """Return the first denylist entry matching ``command``, if any."""
    lowered = command.lower()
    for pattern in BANNED_COMMANDS:
        if pattern in _COMMAND_WORD_TOKENS:
            if _COMMAND_WORD_PATTERNS[pattern].search(lowered):
                return pattern
        elif pattern in lowered:
            return pattern
    return None


def is_banned_command(command: str) -> bool:
    return find_banned_pattern(command) is not None


def validate_command(command: str) -> None:
    """Check a shell command against the denylist.

    Raises:
        SystemToolExecutionError: TOOL_VALIDATION_FAILED for an empty command,
            TOOL_PERMISSION_DENIED (``reason="banned_command"``) on a match.
    """
    if not command or not command.strip():
        raise SystemToolExecutionError.validation(
            "Command must not be empty",
            {"command": command, "reason": "empty_command"},
        )

    matched = find_banned_pattern(command)
    if matched is not None:
        logger.warning("Blocked command %r (matched %r)", command, matched)
        raise SystemToolExecutionError.permission_denied(
            f"Command is not allowed: {command}",
            {
                "command": command,
                "matchedPattern": matched,
                "reason": "banned_command",
            },
        )
