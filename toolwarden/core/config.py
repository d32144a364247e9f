"""Configuration loading for tool limits.

Files are merged lowest precedence first:

    package default -> ~/.toolwarden/config.yaml -> <project>/.toolwarden/config.yaml -> explicit path

The command denylist is deliberately not configurable.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

import jsonschema
import yaml

from toolwarden.core.errors import ConfigError
from toolwarden.sandbox.process import KILL_GRACE_MS, MAX_BUFFER_BYTES
from toolwarden.sandbox.truncation import DEFAULT_MAX_BYTES, DEFAULT_MAX_LINES

logger = logging.getLogger(__name__)

PACKAGE_DIR = Path(__file__).parent.parent
DEFAULT_CONFIG_PATH = PACKAGE_DIR / "config/tools.yaml"
SCHEMA_PATH = PACKAGE_DIR / "config/tools_schema.json"
DEFAULT_TIMEOUT_MS = 30_000


@dataclass(frozen=True)
class ToolsConfig:
    """Limits applied by the built-in tools and the CLI."""

    default_timeout_ms: int = DEFAULT_TIMEOUT_MS
    call_timeout_ms: int = 120_000
    max_output_lines: int = DEFAULT_MAX_LINES
    max_output_bytes: int = DEFAULT_MAX_BYTES
    max_buffer_bytes: int = MAX_BUFFER_BYTES
    kill_grace_ms: int = KILL_GRACE_MS

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def _load_schema() -> dict[str, Any]:
    with open(SCHEMA_PATH, encoding="utf-8") as f:
        return json.load(f)


def _read_config_file(path: Path, schema: dict[str, Any]) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Invalid config in {path}: {e}") from e

    if data is None:
        return {}

    try:
        jsonschema.validate(data, schema)
    except jsonschema.ValidationError as e:
        location = " -> ".join(str(p) for p in e.absolute_path) or "<root>"
        raise ConfigError(
            f"Config validation failed in {path}: {e.message}\nPath: {location}"
        ) from e
    return data


def config_search_paths(project_dir: Path | None = None) -> list[Path]:
    """Candidate config files, highest precedence first."""
    project = (project_dir or Path.cwd()).resolve()
    return [
        project / ".toolwarden/config.yaml",
        Path.home() / ".toolwarden/config.yaml",
        DEFAULT_CONFIG_PATH,
    ]


def load_config(path: str | Path | None = None, project_dir: Path | None = None) -> ToolsConfig:
    """Load and merge configuration files.

    Args:
        path: Explicit config file; must exist when given.
        project_dir: Project directory searched for ``.toolwarden/config.yaml``
            (defaults to the current directory).

    Raises:
        ConfigError: If a file cannot be parsed or fails schema validation.
    """
    schema = _load_schema()
    candidates = config_search_paths(project_dir)
    if path is not None:
        explicit = Path(path)
        if not explicit.exists():
            raise ConfigError(f"Config file not found: {explicit}")
        candidates.insert(0, explicit)

    merged: dict[str, Any] = {}
    for candidate in reversed(candidates):
        if not candidate.exists():
            continue
        merged.update(_read_config_file(candidate, schema))
        logger.debug("Loaded config from %s", candidate)

    known = {f.name for f in fields(ToolsConfig)}
    return ToolsConfig(**{k: v for k, v in merged.items() if k in known})
