"""
Path utilities for Taskloom.

Provides consistent path resolution for configuration and secrets
files, plus project root discovery.
"""

import os
from pathlib import Path

# Directory/file names that mark the root of a project, in priority order
PROJECT_MARKERS = (".taskloom", ".git")


def get_taskloom_home() -> Path:
    """
    Get the Taskloom home directory.

    Resolution order:
    1. TASKLOOM_HOME environment variable
    2. Default: ~/.taskloom

    Returns:
        Path to the Taskloom home directory.
    """
    env_home = os.environ.get("TASKLOOM_HOME")
    if env_home:
        return Path(env_home).expanduser().resolve()
    return Path.home() / ".taskloom"


def get_global_config_path() -> Path:
    """Path to ~/.taskloom/config.yaml"""
    return get_taskloom_home() / "config.yaml"


def get_models_override_path() -> Path:
    """Path to ~/.taskloom/models.yaml (user additions to the model catalog)."""
    return get_taskloom_home() / "models.yaml"


def get_secrets_dir() -> Path:
    """Path to ~/.taskloom/secrets/"""
    return get_taskloom_home() / "secrets"


def find_project_root(start_path: Path | str | None = None) -> Path:
    """
    Find the project root by walking up from a starting directory.

    A directory is a project root if it contains any of PROJECT_MARKERS.
    Markers are checked in order across the whole ancestry, so a
    ``.taskloom`` directory higher up wins over a nested ``.git``. The
    Taskloom home directory is never taken as a project marker.

    Args:
        start_path: Directory to start from. Defaults to cwd.

    Returns:
        The project root, or the starting directory if no marker is found.
    """
    start = Path(start_path).expanduser().resolve() if start_path else Path.cwd()
    candidates = [start, *start.parents]

    home = get_taskloom_home().resolve()

    for marker in PROJECT_MARKERS:
        for directory in candidates:
            path = directory / marker
            if path.exists() and path.resolve() != home:
                return directory

    return start


def get_project_config_path(project_root: Path | str) -> Path:
    """Path to <project>/.taskloom/config.yaml"""
    return Path(project_root) / ".taskloom" / "config.yaml"


def get_project_env_path(project_root: Path | str) -> Path:
    """Path to the project's .env file."""
    return Path(project_root) / ".env"
