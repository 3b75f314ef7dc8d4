"""
Configuration merging helpers for Taskloom.

Layers are merged dict-by-dict; later layers win.
"""

from typing import Any


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Merge rules:
    - Nested dicts are merged recursively
    - Lists and scalars in ``override`` replace the base value
    - A key prefixed with '+' whose value is a list appends to the base list
    - A ``None`` value removes the key

    Args:
        base: Base dictionary (not modified).
        override: Values layered on top.

    Returns:
        A new merged dictionary.

    Examples:
        >>> deep_merge({"models": {"main": {"provider": "openai"}}},
        ...            {"models": {"main": {"model_id": "gpt-4o"}}})
        {'models': {'main': {'provider': 'openai', 'model_id': 'gpt-4o'}}}
    """
    result = base.copy()

    for key, value in override.items():
        if key.startswith("+") and isinstance(value, list):
            target = key[1:]
            existing = result.get(target)
            if isinstance(existing, list):
                result[target] = existing + [item for item in value if item not in existing]
            else:
                result[target] = list(value)
        elif value is None:
            result.pop(key, None)
        elif isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def get_nested_value(config: dict[str, Any], key_path: str) -> Any:
    """
    Get a value by dot-separated path, e.g. ``"models.main.provider"``.

    Returns:
        The value, or None if any segment is missing.
    """
    current: Any = config
    for key in key_path.split("."):
        if not isinstance(current, dict) or key not in current:
            return None
        current = current[key]
    return current


def set_nested_value(config: dict[str, Any], key_path: str, value: Any) -> dict[str, Any]:
    """
    Set a value by dot-separated path, creating intermediate dicts.

    Returns:
        The same (modified) dictionary.
    """
    keys = key_path.split(".")
    current = config

    for key in keys[:-1]:
        if not isinstance(current.get(key), dict):
            current[key] = {}
        current = current[key]

    current[keys[-1]] = value
    return config
