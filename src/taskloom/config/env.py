"""
Environment variable resolution with session and project fallbacks.
"""

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from dotenv import dotenv_values

from taskloom.storage.paths import get_project_env_path

logger = logging.getLogger(__name__)

# A caller session; its optional "env" mapping overrides the process environment
Session = Mapping[str, Any]


def _session_env(session: Session | None) -> Mapping[str, Any]:
    if not session:
        return {}
    env = session.get("env")
    return env if isinstance(env, Mapping) else {}


def resolve_env_variable(
    key: str,
    session: Session | None = None,
    project_root: Path | str | None = None,
) -> str | None:
    """
    Resolve an environment variable.

    Lookup order:
    1. ``session["env"][key]``
    2. The process environment
    3. ``<project_root>/.env``

    Args:
        key: Variable name, e.g. ``ANTHROPIC_API_KEY``.
        session: Optional caller session.
        project_root: Optional project directory holding a .env file.

    Returns:
        The first non-empty value found, or None.
    """
    value = _session_env(session).get(key)
    if value:
        return str(value)

    value = os.environ.get(key)
    if value:
        return value

    if project_root is not None:
        env_path = get_project_env_path(project_root)
        if env_path.is_file():
            value = dotenv_values(env_path).get(key)
            if value:
                logger.debug(f"Resolved {key} from {env_path}")
                return value

    return None
