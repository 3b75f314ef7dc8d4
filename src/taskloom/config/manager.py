"""
Configuration access for the AI layer.

``ConfigManager`` answers the per-role questions the orchestrator asks
(which provider, which model, which parameters) from the merged
configuration of a project.
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from taskloom.config.env import Session
from taskloom.config.loader import load_config
from taskloom.config.models import ModelMap, find_model, get_model_map
from taskloom.config.schema import Config, RoleModelConfig

if TYPE_CHECKING:
    from taskloom.providers.keys import ApiKeyResolver

logger = logging.getLogger(__name__)


def _role_name(role: Any) -> str:
    return getattr(role, "value", role)


class ConfigManager:
    """
    Role-oriented view over Taskloom configuration.

    Configuration is loaded per project root and cached. Pass ``config`` to
    pin a single configuration regardless of project root (tests, embedding).
    """

    def __init__(
        self,
        config: Config | None = None,
        model_map: ModelMap | None = None,
        key_resolver: "ApiKeyResolver | None" = None,
    ):
        self._fixed_config = config
        self._model_map = model_map
        self._key_resolver = key_resolver
        self._cache: dict[str, Config] = {}

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    def get_config(self, project_root: Path | str | None = None) -> Config:
        """Get the merged configuration for a project root."""
        if self._fixed_config is not None:
            return self._fixed_config

        cache_key = str(Path(project_root).resolve()) if project_root else ""
        if cache_key not in self._cache:
            self._cache[cache_key] = load_config(project_root)
        return self._cache[cache_key]

    def clear_cache(self) -> None:
        self._cache.clear()

    @property
    def model_map(self) -> ModelMap:
        if self._model_map is None:
            self._model_map = get_model_map()
        return self._model_map

    @property
    def key_resolver(self) -> "ApiKeyResolver":
        if self._key_resolver is None:
            from taskloom.providers.keys import ApiKeyResolver
            from taskloom.secrets import SecretsManager

            self._key_resolver = ApiKeyResolver(secrets=SecretsManager())
        return self._key_resolver

    # -------------------------------------------------------------------------
    # Role lookups
    # -------------------------------------------------------------------------

    def get_role_config(self, role: Any, project_root: Path | str | None = None) -> RoleModelConfig:
        role_config = self.get_config(project_root).get_role_config(_role_name(role))
        if role_config is None:
            logger.warning(f"No model configuration for role '{_role_name(role)}'")
            return RoleModelConfig()
        return role_config

    def get_provider(self, role: Any, project_root: Path | str | None = None) -> str | None:
        return self.get_role_config(role, project_root).provider

    def get_model_id(self, role: Any, project_root: Path | str | None = None) -> str | None:
        return self.get_role_config(role, project_root).model_id

    def get_parameters_for_role(
        self, role: Any, project_root: Path | str | None = None
    ) -> dict[str, Any]:
        """
        Generation parameters for a role.

        ``max_tokens`` is capped at the model's catalog limit when known.

        Returns:
            Dict with ``max_tokens`` and ``temperature``.
        """
        role_config = self.get_role_config(role, project_root)
        max_tokens = role_config.max_tokens

        if role_config.provider and role_config.model_id:
            model = find_model(self.model_map, role_config.provider, role_config.model_id)
            if model is not None and model.max_tokens and model.max_tokens < max_tokens:
                logger.debug(
                    f"Capping max_tokens for role '{_role_name(role)}' at "
                    f"{model.max_tokens} (limit of {role_config.model_id})"
                )
                max_tokens = model.max_tokens

        return {"max_tokens": max_tokens, "temperature": role_config.temperature}

    def get_base_url_for_role(self, role: Any, project_root: Path | str | None = None) -> str | None:
        """Role base URL override, else the Ollama default for the ollama provider."""
        role_config = self.get_role_config(role, project_root)
        if role_config.base_url:
            return role_config.base_url
        if (role_config.provider or "").lower() == "ollama":
            return self.get_config(project_root).general.ollama_base_url
        return None

    # -------------------------------------------------------------------------
    # Keys and general settings
    # -------------------------------------------------------------------------

    def is_api_key_set(
        self,
        provider: str,
        session: Session | None = None,
        project_root: Path | str | None = None,
    ) -> bool:
        return self.key_resolver.is_key_set(provider, session, project_root)

    def get_user_id(self, project_root: Path | str | None = None) -> str | None:
        return self.get_config(project_root).general.user_id

    def get_debug_flag(self, project_root: Path | str | None = None) -> bool:
        return self.get_config(project_root).general.debug

    def get_strict_roles(self, project_root: Path | str | None = None) -> bool:
        return self.get_config(project_root).general.strict_roles
