"""
Configuration file loading.

Reads ``ecocash.yaml`` from a project directory and overlays
``ecocash.{env}.yaml`` when present.
"""

from collections.abc import Iterator
from pathlib import Path
from typing import Any

import yaml

from ecocash.config.resolver import resolve_config

CONFIG_FILENAME = "ecocash.yaml"


SECTIONS = ("features", "retry", "circuit_breaker", "offline_queue", "logging")


class Config:
    """Parsed ecocash.yaml contents; nested keys are reachable as ``"retry.policy"``."""

    def __init__(self, data: dict[str, Any]):
        self.data = data

    def _lookup(self, key: str) -> tuple[bool, Any]:
        node: Any = self.data
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return False, None
            node = node[part]
        return True, node

    def get(self, key: str, default: Any = None) -> Any:
        """Value at a dotted key; ``default`` when missing or null."""
        found, value = self._lookup(key)
        return default if not found or value is None else value

    def section(self, key: str) -> dict[str, Any]:
        """Nested mapping at ``key``, or an empty dict."""
        value = self.get(key, {})
        return value if isinstance(value, dict) else {}

    def __getitem__(self, key: str) -> Any:
        found, value = self._lookup(key)
        if not found:
            raise KeyError(f"Config key '{key}' not found")
        return Config(value) if isinstance(value, dict) and "." not in key else value

    def __contains__(self, key: str) -> bool:
        return self._lookup(key)[0]

    def __iter__(self) -> Iterator[str]:
        return iter(self.data)

    def validate(self) -> None:
        """Check that every known section is a mapping."""
        if not isinstance(self.data, dict):
            raise ValueError(f"ecocash config must be a mapping, got {type(self.data).__name__}")

        problems = [
            f"'{name}' section must be a mapping, got {type(self.data[name]).__name__}"
            for name in SECTIONS
            if self.data.get(name) is not None and not isinstance(self.data[name], dict)
        ]
        if problems:
            raise ValueError("\n".join(problems))


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        where = f" at line {mark.line + 1}, column {mark.column + 1}" if mark is not None else ""
        raise ValueError(f"Invalid YAML in {path}{where}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"{path.name} must contain a mapping at the top level, got {type(data).__name__}")
    return data


def load_config(project_path: Path | None = None, env: str | None = None) -> Config:
    """
    Load SDK configuration.

    Args:
        project_path: Directory holding ecocash.yaml (default: current directory)
        env: Overlay name; ``ecocash.{env}.yaml`` is merged over the base file

    Returns:
        Config instance with merged, resolved configuration

    Raises:
        FileNotFoundError: ecocash.yaml is missing
        ValueError: A file is not valid YAML or not a mapping
    """
    if project_path is None:
        project_path = Path.cwd()
    project_path = Path(project_path)

    base_config_path = project_path / CONFIG_FILENAME
    if not base_config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {base_config_path}\n"
            f"  Suggestion: Create an {CONFIG_FILENAME} file in your project root"
        )
    if not base_config_path.is_file():
        raise FileNotFoundError(f"Configuration path is not a file: {base_config_path}")

    config_data = _read_yaml(base_config_path)

    if env:
        env_config_path = project_path / f"ecocash.{env}.yaml"
        if env_config_path.exists():
            _merge_dict(config_data, _read_yaml(env_config_path))

    env_name = env or str(config_data.get("environment", "sandbox"))
    config = Config(resolve_config(config_data, env_name))
    config.validate()
    return config


def _merge_dict(base: dict, override: dict) -> None:
    """Recursively merge override into base."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _merge_dict(base[key], value)
        else:
            base[key] = value
