"""Shell configuration loading with environment and user-directory overrides.

Configuration is a small YAML file:

    schema_version: "1.0"
    prompt: "raven> "
    log_level: INFO
    env:
      EDITOR: vim
    variables:
      greeting: hello
      limits: [1, 2, 3]

Search order (first hit wins):
    1. An explicit path passed to `load_config`
    2. The file named by the RAVENSHELL_CONFIG environment variable
    3. The user config file (~/.config/ravenshell/config.yaml)

A missing file means defaults. A malformed one is an error.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

__all__ = [
    "RAVENSHELL_CONFIG",
    "ShellConfig",
    "default_config_path",
    "load_config",
]

# Environment variable naming an explicit configuration file
RAVENSHELL_CONFIG = "RAVENSHELL_CONFIG"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ShellConfig:
    """Settings for the command-line front end and the evaluator it builds."""
    prompt: str = "# "
    log_level: str = "WARNING"
    env: Dict[str, str] = field(default_factory=dict)
    variables: Dict[str, Any] = field(default_factory=dict)
    source: Optional[Path] = None


def default_config_path() -> Path:
    """The per-user configuration file location."""
    return Path.home() / ".config" / "ravenshell" / "config.yaml"


def _candidate_path(explicit: Optional[Path]) -> Optional[Path]:
    if explicit is not None:
        if not explicit.exists():
            raise FileNotFoundError(f"Config file not found: {explicit}")
        return explicit

    env_path = os.environ.get(RAVENSHELL_CONFIG)
    if env_path:
        path = Path(env_path).expanduser()
        if not path.exists():
            raise FileNotFoundError(
                f"Config file named by {RAVENSHELL_CONFIG} not found: {path}"
            )
        return path

    user_path = default_config_path()
    if user_path.is_file():
        return user_path
    return None


def _load_yaml(path: Path) -> Dict[str, Any]:
    """Load and validate a YAML config file."""
    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid config format in {path}: expected dict at root")

    schema_version = str(data.get("schema_version", "1.0"))
    if not schema_version.startswith("1."):
        raise ValueError(
            f"Unsupported schema version '{schema_version}' in {path}. "
            f"Expected version 1.x"
        )
    return data


def load_config(path: Optional[Path | str] = None) -> ShellConfig:
    """
    Load shell configuration.

    Args:
        path: Explicit config file; overrides the environment and user file

    Returns:
        ShellConfig, with defaults for anything the file leaves out

    Raises:
        FileNotFoundError: An explicitly named file does not exist
        ValueError: The file is not a mapping or has bad field types
    """
    found = _candidate_path(Path(path) if path is not None else None)
    if found is None:
        return ShellConfig()

    data = _load_yaml(found)
    config = ShellConfig(source=found)

    if "prompt" in data:
        config.prompt = str(data["prompt"])

    if "log_level" in data:
        level = str(data["log_level"]).upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Invalid log_level '{data['log_level']}' in {found}")
        config.log_level = level

    env = data.get("env", {}) or {}
    if not isinstance(env, dict):
        raise ValueError(f"'env' in {found} must be a mapping")
    config.env = {str(k): str(v) for k, v in env.items()}

    variables = data.get("variables", {}) or {}
    if not isinstance(variables, dict):
        raise ValueError(f"'variables' in {found} must be a mapping")
    config.variables = {str(k): v for k, v in variables.items()}

    return config
