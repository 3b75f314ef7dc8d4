"""
Taskloom configuration.

Pydantic schema, YAML/env loading, the model catalog and the role-oriented
ConfigManager used by the AI layer.
"""

from taskloom.config.env import resolve_env_variable
from taskloom.config.loader import (
    ConfigurationError,
    apply_env_overrides,
    load_config,
    load_yaml_file,
)
from taskloom.config.manager import ConfigManager
from taskloom.config.merger import deep_merge, get_nested_value, set_nested_value
from taskloom.config.models import (
    ModelCost,
    ModelInfo,
    ModelMap,
    find_model,
    get_model_map,
    load_model_map,
)
from taskloom.config.schema import (
    Config,
    GeneralConfig,
    ModelsConfig,
    RoleModelConfig,
    TelemetryConfig,
)

__all__ = [
    # Schema
    "Config",
    "GeneralConfig",
    "ModelsConfig",
    "RoleModelConfig",
    "TelemetryConfig",
    # Loading
    "ConfigurationError",
    "apply_env_overrides",
    "load_config",
    "load_yaml_file",
    "resolve_env_variable",
    # Merging
    "deep_merge",
    "get_nested_value",
    "set_nested_value",
    # Model catalog
    "ModelCost",
    "ModelInfo",
    "ModelMap",
    "find_model",
    "get_model_map",
    "load_model_map",
    # Manager
    "ConfigManager",
]
