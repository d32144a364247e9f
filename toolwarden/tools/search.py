"""Search tools: glob over file names, grep over file contents."""

from __future__ import annotations

import fnmatch
import logging
import os
import re
from pathlib import Path
from typing import Any

from toolwarden.core.errors import SystemToolExecutionError
from toolwarden.core.models import SystemToolResult, ToolContext
from toolwarden.sandbox.paths import is_safe_relative_path, validate_path
from toolwarden.tools.base import SystemTool
from toolwarden.tools.definitions import GLOB_DEFINITION, GREP_DEFINITION

logger = logging.getLogger(__name__)

DEFAULT_MAX_RESULTS = 200
SKIPPED_DIRECTORIES = frozenset({".git"})


def _require_existing(path: str, display: str) -> None:
    if not os.path.exists(path):
        raise SystemToolExecutionError.failed(
            f"Path not found: {display}",
            details={"path": display, "reason": "path_not_found"},
        )


class GlobTool(SystemTool):
    """Sandbox-relative files matching a glob pattern, sorted."""

    definition = GLOB_DEFINITION

    async def run(self, arguments: dict[str, Any], context: ToolContext) -> SystemToolResult:
        pattern: str = arguments["pattern"]
        if not is_safe_relative_path(pattern):
            raise SystemToolExecutionError.validation(
                f"Glob pattern must be relative and stay inside the sandbox: {pattern}",
                {"field": "pattern", "reason": "unsafe_pattern"},
            )

        base = self.resolve(arguments.get("path"))
        display = self.relative(base)
        _require_existing(base, display)
        if not os.path.isdir(base):
            raise SystemToolExecutionError.validation(
                f"Not a directory: {display}",
                {"path": display, "reason": "not_a_directory"},
            )

        matches: list[str] = []
        for candidate in Path(base).glob(pattern):
            if not candidate.is_file():
                continue
            try:
                resolved = validate_path(str(candidate), self.sandbox_root)
            except SystemToolExecutionError:
                # Symlink pointing outside the sandbox
                continue
            matches.append(self.relative(resolved))
        matches.sort()

        output = "\n".join(matches) if matches else "No files found."
        return self.build_result(
            f"Glob: {pattern}",
            output,
            {"pattern": pattern, "path": display, "matchCount": len(matches)},
        )


class GrepTool(SystemTool):
    """Regex search over text files, reported as ``path:line: text``."""

    definition = GREP_DEFINITION

    def _candidate_files(self, base: str, include: str | None) -> list[str]:
        if os.path.isfile(base):
            return [base]
        found: list[str] = []
        for dirpath, dirnames, filenames in os.walk(base):
            dirnames[:] = sorted(d for d in dirnames if d not in SKIPPED_DIRECTORIES)
            for filename in sorted(filenames):
                if include and not fnmatch.fnmatch(filename, include):
                    continue
                found.append(os.path.join(dirpath, filename))
        return found

    def _search_file(self, path: str, regex: re.Pattern[str]) -> list[tuple[int, str]] | None:
        """Matching (line number, text) pairs, or None if the file was skipped."""
        try:
            validate_path(path, self.sandbox_root)
            with open(path, "rb") as f:
                data = f.read()
        except (OSError, SystemToolExecutionError) as e:
            logger.debug("Skipping %s: %s", path, e)
            return None
        if b"\0" in data:
            return None
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError:
            return None
        return [
            (number, line)
            for number, line in enumerate(text.splitlines(), start=1)
            if regex.search(line)
        ]

    async def run(self, arguments: dict[str, Any], context: ToolContext) -> SystemToolResult:
        pattern: str = arguments["pattern"]
        include: str | None = arguments.get("include")
        max_results: int = arguments.get("maxResults", DEFAULT_MAX_RESULTS)

        try:
            regex = re.compile(pattern)
        except re.error as e:
            raise SystemToolExecutionError.validation(
                f"Invalid regex pattern: {e}",
                {"field": "pattern", "reason": "invalid_regex"},
            ) from e

        base = self.resolve(arguments.get("path"))
        display = self.relative(base)
        _require_existing(base, display)

        matches: list[tuple[str, int, str]] = []
        files_searched = 0
        for path in self._candidate_files(base, include):
            found = self._search_file(path, regex)
            if found is None:
                continue
            files_searched += 1
            relative = self.relative(path)
            matches.extend((relative, number, line) for number, line in found)

        matches.sort(key=lambda m: (m[0], m[1]))
        capped = len(matches) > max_results
        matches = matches[:max_results]

        output = (
            "\n".join(f"{path}:{number}: {line}" for path, number, line in matches)
            if matches
            else "No matches found."
        )
        metadata: dict[str, Any] = {
            "pattern": pattern,
            "path": display,
            "matchCount": len(matches),
            "filesSearched": files_searched,
            "capped": capped,
        }
        if capped:
            metadata["cappedAt"] = max_results
        return self.build_result(f"Grep: {pattern}", output, metadata)
