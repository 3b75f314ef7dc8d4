"""
Configuration loader for Taskloom.

Loads and merges configuration from multiple sources:
1. Default values
2. Global config (~/.taskloom/config.yaml)
3. Project config (<project>/.taskloom/config.yaml)
4. Environment variables (TASKLOOM_<SECTION>__<KEY>)
"""

import os
import re
from pathlib import Path
from typing import Any

import yaml

from taskloom.config.merger import deep_merge, set_nested_value
from taskloom.config.schema import Config
from taskloom.storage.paths import get_global_config_path, get_project_config_path

ENV_PREFIX = "TASKLOOM_"
ENV_NESTING = "__"

# Variables under the prefix that are not config keys
_RESERVED_ENV = {"TASKLOOM_HOME"}


class ConfigurationError(Exception):
    """Raised when configuration loading or validation fails."""

    pass


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a YAML configuration file.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed configuration dictionary ({} when missing or empty).

    Raises:
        ConfigurationError: If the file cannot be read or parsed.
    """
    try:
        with open(path, encoding="utf-8") as f:
            content = yaml.safe_load(f)
    except FileNotFoundError:
        return {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read {path}: {e}") from e

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ConfigurationError(f"Expected a mapping at the top of {path}")
    return content


def apply_env_overrides(
    config: dict[str, Any],
    environ: dict[str, str] | None = None,
) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Variables follow the pattern ``TASKLOOM_<SECTION>__<KEY>``, where a
    double underscore separates nesting levels, e.g.
    ``TASKLOOM_MODELS__MAIN__MODEL_ID=gpt-4o``.

    Args:
        config: Configuration dictionary to modify.
        environ: Environment mapping. Defaults to os.environ.

    Returns:
        Configuration with environment overrides applied.
    """
    environ = os.environ if environ is None else environ

    for key, value in environ.items():
        if not key.startswith(ENV_PREFIX) or key in _RESERVED_ENV:
            continue

        parts = key[len(ENV_PREFIX) :].lower().split(ENV_NESTING)
        if not all(parts):
            continue

        config = set_nested_value(config, ".".join(parts), _parse_env_value(value))

    return config


def _parse_env_value(value: str) -> Any:
    """Parse an environment variable string into bool, int, float, or str."""
    lowered = value.lower()
    if lowered in ("true", "yes", "on"):
        return True
    if lowered in ("false", "no", "off"):
        return False
    if lowered in ("none", "null"):
        return None

    if re.match(r"^-?\d+$", value):
        return int(value)
    if re.match(r"^-?\d+\.\d+$", value):
        return float(value)

    return value


def load_config(
    project_root: Path | str | None = None,
    skip_global: bool = False,
    skip_env: bool = False,
) -> Config:
    """
    Load and merge configuration from all sources.

    Args:
        project_root: Project directory whose .taskloom/config.yaml is layered in.
        skip_global: Skip the global ~/.taskloom/config.yaml.
        skip_env: Skip environment variable overrides.

    Returns:
        Merged and validated Config object.

    Raises:
        ConfigurationError: If any source is unreadable or the result is invalid.
    """
    config_dict = Config().model_dump()

    if not skip_global:
        config_dict = deep_merge(config_dict, load_yaml_file(get_global_config_path()))

    if project_root is not None:
        config_dict = deep_merge(
            config_dict, load_yaml_file(get_project_config_path(project_root))
        )

    if not skip_env:
        config_dict = apply_env_overrides(config_dict)

    try:
        return Config.model_validate(config_dict)
    except Exception as e:
        raise ConfigurationError(f"Configuration validation failed: {e}") from e
