"""Storage utilities for Taskloom."""

from taskloom.storage.paths import (
    find_project_root,
    get_global_config_path,
    get_models_override_path,
    get_project_config_path,
    get_project_env_path,
    get_secrets_dir,
    get_taskloom_home,
)

__all__ = [
    "find_project_root",
    "get_global_config_path",
    "get_models_override_path",
    "get_project_config_path",
    "get_project_env_path",
    "get_secrets_dir",
    "get_taskloom_home",
]
