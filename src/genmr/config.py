"""Configuration system for gen-mr.

Configuration lives in ``.gen-mr/config.json`` files: one local to the
current project and one global in the user's home directory. Both are merged
with the local file taking precedence. The effective configuration is an
immutable dataclass so it can be passed freely through the workflow.
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from typing import cast

from returns.result import Failure
from returns.result import Result
from returns.result import Success


CONFIG_DIR_NAME = ".gen-mr"
CONFIG_FILE_NAME = "config.json"
DEFAULT_GITLAB_HOST = "gitlab.com"
DEFAULT_OPENAI_MODEL = "gpt-3.5-turbo"

# JSON key -> dataclass field
_KEY_MAP: dict[str, str] = {
    "githubToken": "github_token",
    "gitlabToken": "gitlab_token",
    "gitlabHost": "gitlab_host",
    "openaiToken": "openai_token",
    "openaiModel": "openai_model",
    "editorCommand": "editor_command",
}

_SECRET_KEYS = frozenset({"githubToken", "gitlabToken", "openaiToken"})


@dataclass(frozen=True, slots=True)
class GenMRConfig:
    """Immutable effective configuration."""

    github_token: str | None = None
    gitlab_token: str | None = None
    gitlab_host: str = DEFAULT_GITLAB_HOST
    openai_token: str | None = None
    openai_model: str = DEFAULT_OPENAI_MODEL
    editor_command: str | None = None


# -----------------------------
# Configuration Paths
# -----------------------------


def get_local_config_path() -> Path:
    """Get the project-local configuration file path."""
    return Path.cwd() / CONFIG_DIR_NAME / CONFIG_FILE_NAME


def get_global_config_path() -> Path:
    """Get the per-user configuration file path."""
    return Path.home() / CONFIG_DIR_NAME / CONFIG_FILE_NAME


def get_config_paths() -> tuple[Path, ...]:
    """Get configuration file paths in order of precedence (highest first).

    1. GEN_MR_CONFIG environment variable (absolute path to config file)
    2. Current directory .gen-mr/config.json
    3. ~/.gen-mr/config.json
    """
    paths: list[Path] = []

    if explicit := os.getenv("GEN_MR_CONFIG"):
        paths.append(Path(explicit))

    paths.append(get_local_config_path())
    paths.append(get_global_config_path())
    return tuple(paths)


# -----------------------------
# Loading
# -----------------------------


def load_config_file(path: Path) -> Result[dict[str, Any], str]:
    """Load configuration from a JSON file.

    Args:
        path: Path to the configuration file

    Returns:
        Result containing the parsed JSON data or error message
    """
    try:
        if not path.exists():
            return Failure(f"Configuration file not found: {path}")

        if not path.is_file():
            return Failure(f"Path is not a file: {path}")

        data = json.loads(path.read_text(encoding="utf-8"))

        if not isinstance(data, dict):
            return Failure(f"Configuration must be a JSON object, got {type(data).__name__}")

        return Success(cast("dict[str, Any]", data))

    except json.JSONDecodeError as e:
        return Failure(f"Invalid JSON in {path}: {e}")
    except OSError as e:
        return Failure(f"Failed to read {path}: {e}")


def parse_config(data: dict[str, Any]) -> GenMRConfig:
    """Build a GenMRConfig from raw JSON data, ignoring unknown keys."""
    values = {field_name: data[key] for key, field_name in _KEY_MAP.items() if data.get(key)}
    return GenMRConfig(**values)


def merge_config_data(*layers: dict[str, Any]) -> dict[str, Any]:
    """Merge raw config layers given lowest precedence first."""
    merged: dict[str, Any] = {}
    for layer in layers:
        merged.update(layer)
    return merged


def load_raw_config(paths: tuple[Path, ...] | None = None) -> Result[dict[str, Any], str]:
    """Load and merge every existing config file.

    Missing files are skipped; a present but unreadable file is an error.
    Fails when no configuration file exists at all.
    """
    candidate_paths = paths if paths is not None else get_config_paths()
    layers: list[dict[str, Any]] = []

    for path in candidate_paths:
        if not path.exists():
            continue
        result = load_config_file(path)
        if isinstance(result, Failure):
            return result
        layers.append(result.unwrap())

    if not layers:
        return Failure(f"No config found in {CONFIG_DIR_NAME} directory")

    # paths are highest precedence first
    return Success(merge_config_data(*reversed(layers)))


def load_config(paths: tuple[Path, ...] | None = None) -> Result[GenMRConfig, str]:
    """Load the effective configuration."""
    return load_raw_config(paths).map(parse_config)


# -----------------------------
# Saving
# -----------------------------


def config_path_for_scope(is_global: bool) -> Path:
    """Get the config file written by a local or global save."""
    return get_global_config_path() if is_global else get_local_config_path()


def save_config_value(key: str, value: str, is_global: bool = False) -> Result[Path, str]:
    """Store a single key in the local or global config file.

    Other keys already present in the file are preserved. A missing or
    corrupt file is replaced.
    """
    if key not in _KEY_MAP:
        return Failure(f"Unknown configuration key: {key}")

    path = config_path_for_scope(is_global)
    existing = load_config_file(path)
    data = existing.unwrap() if isinstance(existing, Success) else {}
    data[key] = value

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    except OSError as e:
        return Failure(f"Failed to write {path}: {e}")
    return Success(path)


# -----------------------------
# Display
# -----------------------------


def mask_secret(value: str) -> str:
    """Mask a token keeping only its first and last four characters."""
    visible = 4
    if len(value) <= visible * 2:
        return "*" * len(value)
    return f"{value[:visible]}{'*' * (len(value) - visible * 2)}{value[-visible:]}"


def format_config(data: dict[str, Any]) -> str:
    """Render raw config data for display with secrets masked."""
    if not data:
        return "(empty)"
    lines = []
    for key in sorted(data):
        value = data[key]
        shown = mask_secret(str(value)) if key in _SECRET_KEYS and value else value
        lines.append(f"  {key}: {shown}")
    return "\n".join(lines)
