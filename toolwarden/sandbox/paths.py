"""Sandbox path resolution.

Every path-touching tool routes user-supplied paths through validate_path.
The check is done twice: once lexically (relative path from root must not
climb out) and once after canonicalization, so a symlink that lives inside the
sandbox but points outside it is still rejected.
"""

from __future__ import annotations

import logging
import os
import re

from toolwarden.core.errors import SystemToolExecutionError

logger = logging.getLogger(__name__)

# C:\..., C:/..., and \\server\share or //server/share
_WINDOWS_DRIVE_PATH = re.compile(r"^[A-Za-z]:[\\/]")
_UNC_PATH = re.compile(r"^(\\\\|//)")


def _denied(attempted_path: str, sandbox_root: str, reason: str) -> SystemToolExecutionError:
    logger.warning("Sandbox denied path %r (root=%s, reason=%s)", attempted_path, sandbox_root, reason)
    return SystemToolExecutionError.permission_denied(
        f"Path is outside the sandbox: {attempted_path}",
        {
            "attemptedPath": attempted_path,
            "sandboxRoot": sandbox_root,
            "reason": reason,
        },
    )


def _escapes(relative: str) -> bool:
    return relative == os.pardir or relative.startswith(os.pardir + os.sep)


def is_within(path: str, root: str) -> bool:
    """True if ``path`` equals ``root`` or lies beneath it (both absolute)."""
    if path == root:
        return True
    try:
        relative = os.path.relpath(path, root)
    except ValueError:
        # Different drives on Windows
        return False
    return not _escapes(relative) and not os.path.isabs(relative)


def canonicalize(path: str) -> str:
    """Resolve symlinks in the longest existing prefix of ``path``.

    The target (or several of its parents) may not exist yet, e.g. a file about
    to be written. Walk upward until an existing ancestor is found, take its
    real path, then re-append the missing suffix.
    """
    current = os.path.abspath(path)
    suffix: list[str] = []

    # lexists so a dangling symlink is still resolved to where it points
    while not os.path.lexists(current):
        parent = os.path.dirname(current)
        if parent == current:
            break
        suffix.append(os.path.basename(current))
        current = parent

    resolved = os.path.realpath(current)
    for part in reversed(suffix):
        resolved = os.path.join(resolved, part)
    return resolved


def validate_path(target_path: str, sandbox_root: str) -> str:
    """Validate ``target_path`` against ``sandbox_root`` and return it absolute.

    Relative targets are resolved against the root; absolute targets are used
    as given. The returned path is lexically normalized (no ``.``/``..``,
    duplicate or trailing separators).

    Args:
        target_path: Path supplied by the caller (relative or absolute).
        sandbox_root: The sandbox directory.

    Returns:
        Absolute, normalized path inside the sandbox.

    Raises:
        SystemToolExecutionError: TOOL_PERMISSION_DENIED with ``details.reason``
            one of ``empty_path``, ``invalid_sandbox_root``,
            ``path_outside_sandbox`` or ``resolved_path_outside_sandbox``.
    """
    if not isinstance(sandbox_root, str) or not sandbox_root.strip():
        raise _denied(str(target_path), str(sandbox_root), "invalid_sandbox_root")

    root = os.path.abspath(sandbox_root)

    if not isinstance(target_path, str) or not target_path.strip():
        raise _denied(str(target_path), root, "empty_path")

    if os.path.isabs(target_path):
        candidate = os.path.abspath(target_path)
    else:
        candidate = os.path.abspath(os.path.join(root, target_path))

    if not is_within(candidate, root):
        raise _denied(target_path, root, "path_outside_sandbox")

    # SECURITY: compare real locations so symlinks cannot smuggle the path out
    if not is_within(canonicalize(candidate), canonicalize(root)):
        raise _denied(target_path, root, "resolved_path_outside_sandbox")

    return candidate


def is_safe_relative_path(path: str) -> bool:
    """True for a non-empty relative path with no parent-traversal segment.

    Rejects POSIX-absolute, Windows drive-absolute and UNC paths regardless of
    the host platform.
    """
    if not isinstance(path, str) or not path.strip():
        return False
    if path.startswith(("/", "\\")) or _WINDOWS_DRIVE_PATH.match(path) or _UNC_PATH.match(path):
        return False
    segments = re.split(r"[\\/]+", path)
    return os.pardir not in segments


def to_sandbox_relative(path: str, sandbox_root: str) -> str:
    """Render an absolute in-sandbox path relative to the root (``.`` for the root)."""
    relative = os.path.relpath(path, os.path.abspath(sandbox_root))
    return relative.replace(os.sep, "/")
