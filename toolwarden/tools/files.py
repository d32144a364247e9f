"""File tools: read, write, edit and ls."""

from __future__ import annotations

import difflib
import logging
import os
from datetime import datetime, timezone
from typing import Any

from toolwarden.core.errors import SystemToolExecutionError
from toolwarden.core.models import SystemToolResult, ToolContext
from toolwarden.sandbox.paths import canonicalize, is_within
from toolwarden.tools.base import SystemTool
from toolwarden.tools.definitions import (
    EDIT_DEFINITION,
    LS_DEFINITION,
    READ_DEFINITION,
    WRITE_DEFINITION,
)

logger = logging.getLogger(__name__)

DEFAULT_READ_LIMIT = 2000
DIFF_CONTEXT_LINES = 3


def _read_text(path: str) -> str:
    with open(path, "rb") as f:
        return f.read().decode("utf-8", errors="replace")


def _write_text(path: str, content: str) -> int:
    data = content.encode("utf-8")
    with open(path, "wb") as f:
        f.write(data)
    return len(data)


def _require_file(path: str, display: str) -> None:
    if not os.path.exists(path):
        raise SystemToolExecutionError.failed(
            f"File not found: {display}",
            details={"path": display, "reason": "file_not_found"},
        )
    if os.path.isdir(path):
        raise SystemToolExecutionError.failed(
            f"Path is a directory: {display}",
            details={"path": display, "reason": "is_directory"},
        )


class ReadTool(SystemTool):
    """Line-numbered view of a text file."""

    definition = READ_DEFINITION

    async def run(self, arguments: dict[str, Any], context: ToolContext) -> SystemToolResult:
        path = self.resolve(arguments["path"])
        display = self.relative(path)
        offset: int = arguments.get("offset", 1)
        limit: int = arguments.get("limit", DEFAULT_READ_LIMIT)

        _require_file(path, display)
        content = _read_text(path)

        lines = content.split("\n") if content else []
        selected = lines[offset - 1 : offset - 1 + limit]
        numbered = "\n".join(f"{offset + i}: {line}" for i, line in enumerate(selected))

        return self.build_result(
            f"Read {display}",
            numbered,
            {
                "path": display,
                "offset": offset,
                "limit": limit,
                "totalLines": len(lines),
            },
        )


class WriteTool(SystemTool):
    """Create or overwrite a file, creating parent directories."""

    definition = WRITE_DEFINITION

    async def run(self, arguments: dict[str, Any], context: ToolContext) -> SystemToolResult:
        path = self.resolve(arguments["path"])
        display = self.relative(path)

        if os.path.isdir(path):
            raise SystemToolExecutionError.failed(
                f"Path is a directory: {display}",
                details={"path": display, "reason": "is_directory"},
            )

        created = not os.path.exists(path)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        written = _write_text(path, arguments["content"])
        logger.debug("Wrote %d bytes to %s", written, path)

        return self.build_result(
            f"Wrote {display}",
            f"Successfully wrote {written} bytes to {display}",
            {"path": display, "bytesWritten": written, "created": created},
        )


class EditTool(SystemTool):
    """Replace exactly one occurrence of a string in a file."""

    definition = EDIT_DEFINITION

    async def run(self, arguments: dict[str, Any], context: ToolContext) -> SystemToolResult:
        path = self.resolve(arguments["path"])
        display = self.relative(path)
        old: str = arguments["oldString"]
        new: str = arguments["newString"]

        _require_file(path, display)
        content = _read_text(path)

        # An empty search string is treated as matching nothing
        count = content.count(old) if old else 0
        if count == 0:
            raise SystemToolExecutionError.failed(
                f"String not found in {display}",
                details={"path": display, "reason": "string_not_found"},
            )
        if count > 1:
            raise SystemToolExecutionError.validation(
                f"Ambiguous match: found {count} occurrences in {display}; "
                "include more surrounding context",
                {"path": display, "reason": "ambiguous_match", "count": count},
            )

        index = content.find(old)
        line_number = content.count("\n", 0, index) + 1
        updated = content.replace(old, new, 1)
        _write_text(path, updated)

        diff = "\n".join(
            difflib.unified_diff(
                content.splitlines(),
                updated.splitlines(),
                fromfile=f"a/{display}",
                tofile=f"b/{display}",
                n=DIFF_CONTEXT_LINES,
                lineterm="",
            )
        )
        return self.build_result(
            f"Edited {display} at line {line_number}",
            diff,
            {
                "path": display,
                "lineNumber": line_number,
                "replacedLength": len(old),
                "insertedLength": len(new),
            },
        )


def _format_timestamp(seconds: float) -> str:
    return datetime.fromtimestamp(seconds, tz=timezone.utc).isoformat()


class LsTool(SystemTool):
    """Directory listing: type, size, modification time and name per entry.

    Directories sort before files; both alphabetically. Symlinks resolving
    outside the sandbox are listed but never followed.
    """

    definition = LS_DEFINITION

    def _describe(self, entry: os.DirEntry[str], sandbox: str) -> tuple[bool, str]:
        if entry.is_symlink() and not is_within(canonicalize(entry.path), sandbox):
            return False, f"l\t-\t-\t{entry.name} -> [outside sandbox]"
        try:
            stat = entry.stat()
        except OSError:
            return False, f"l\t-\t-\t{entry.name} -> [broken link]"
        modified = _format_timestamp(stat.st_mtime)
        if entry.is_dir():
            return True, f"d\t-\t{modified}\t{entry.name}/"
        return False, f"-\t{stat.st_size}\t{modified}\t{entry.name}"

    async def run(self, arguments: dict[str, Any], context: ToolContext) -> SystemToolResult:
        path = self.resolve(arguments.get("path"))
        display = self.relative(path)

        if not os.path.exists(path):
            raise SystemToolExecutionError.failed(
                f"Path not found: {display}",
                details={"path": display, "reason": "path_not_found"},
            )
        if not os.path.isdir(path):
            raise SystemToolExecutionError.validation(
                f"Not a directory: {display}",
                {"path": display, "reason": "not_a_directory"},
            )

        sandbox = canonicalize(self.sandbox_root)
        with os.scandir(path) as it:
            entries = sorted(it, key=lambda e: e.name.lower())

        directories: list[str] = []
        files: list[str] = []
        for entry in entries:
            is_dir, line = self._describe(entry, sandbox)
            (directories if is_dir else files).append(line)

        lines = directories + files
        output = "\n".join(lines) if lines else "Empty directory."
        return self.build_result(
            f"Listed {display}",
            output,
            {
                "path": display,
                "entryCount": len(lines),
                "directories": len(directories),
                "files": len(files),
            },
        )
