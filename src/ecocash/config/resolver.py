"""
Placeholder substitution for ecocash.yaml values.

``${NAME}`` pulls a process environment variable, so secrets such as the
API key stay out of the file. ``{env}`` becomes the active environment
name, e.g. ``logs/ecocash-{env}.log``.
"""

import os
import re
from typing import Any

_ENV_VAR = re.compile(r"\$\{([^}]+)\}")


def resolve_config(config_data: dict[str, Any], env: str = "sandbox") -> dict[str, Any]:
    """Copy of ``config_data`` with placeholders filled in; unset variables stay as written."""
    return _substitute(config_data, env)


def _substitute(node: Any, env: str) -> Any:
    if isinstance(node, dict):
        return {key: _substitute(value, env) for key, value in node.items()}
    if isinstance(node, list):
        return [_substitute(value, env) for value in node]
    if not isinstance(node, str):
        return node
    expanded = _ENV_VAR.sub(lambda match: os.environ.get(match.group(1), match.group(0)), node)
    return expanded.replace("{env}", env)


def has_unresolved_variable(value: Any) -> bool:
    """True when a string still contains a ``${VAR}`` reference."""
    return isinstance(value, str) and bool(_ENV_VAR.search(value))
