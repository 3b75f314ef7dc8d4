"""
API key resolution for Taskloom providers.
"""

import logging
from collections.abc import Callable
from pathlib import Path

from taskloom.config.env import Session, resolve_env_variable
from taskloom.providers.exceptions import MissingApiKeyError, UnknownProviderError
from taskloom.secrets import SecretsManager

logger = logging.getLogger(__name__)

# Environment variable holding each provider's key
PROVIDER_ENV_VARS: dict[str, str] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "google": "GOOGLE_API_KEY",
    "perplexity": "PERPLEXITY_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "azure": "AZURE_OPENAI_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
    "xai": "XAI_API_KEY",
    "ollama": "OLLAMA_API_KEY",
}

# Local providers that work without a key
KEY_OPTIONAL_PROVIDERS = frozenset({"ollama"})

EnvResolver = Callable[[str, Session | None, Path | str | None], str | None]


def is_key_optional(provider: str) -> bool:
    return provider.lower() in KEY_OPTIONAL_PROVIDERS


class ApiKeyResolver:
    """
    Looks up provider credentials.

    Sources, in priority order: the caller session's ``env``, the process
    environment, the project ``.env`` file, and finally the encrypted key
    store.
    """

    def __init__(
        self,
        env_resolver: EnvResolver = resolve_env_variable,
        secrets: SecretsManager | None = None,
    ):
        self.env_resolver = env_resolver
        self.secrets = secrets

    def get_env_var_name(self, provider: str) -> str:
        """
        Raises:
            UnknownProviderError: If the provider has no key mapping.
        """
        env_var = PROVIDER_ENV_VARS.get(provider.lower())
        if env_var is None:
            raise UnknownProviderError(provider)
        return env_var

    def _lookup(
        self,
        provider: str,
        env_var: str,
        session: Session | None,
        project_root: Path | str | None,
    ) -> str | None:
        value = self.env_resolver(env_var, session, project_root)
        if value:
            return value

        if self.secrets is not None:
            stored = self.secrets.get(provider.lower())
            if stored:
                logger.debug(f"Using stored key for provider '{provider}'")
                return stored

        return None

    def resolve(
        self,
        provider: str,
        session: Session | None = None,
        project_root: Path | str | None = None,
    ) -> str | None:
        """
        Resolve the API key for a provider.

        Args:
            provider: Provider name (case-insensitive).
            session: Optional caller session with an ``env`` override mapping.
            project_root: Project directory for the .env fallback.

        Returns:
            The key, or None for a key-optional provider without one.

        Raises:
            UnknownProviderError: If the provider is not known.
            MissingApiKeyError: If a required key cannot be found.
        """
        env_var = self.get_env_var_name(provider)
        api_key = self._lookup(provider, env_var, session, project_root)

        if is_key_optional(provider):
            return api_key or None

        if not api_key:
            raise MissingApiKeyError(provider, env_var)
        return api_key

    def is_key_set(
        self,
        provider: str,
        session: Session | None = None,
        project_root: Path | str | None = None,
    ) -> bool:
        """Non-throwing availability check. Unknown providers report False."""
        if is_key_optional(provider):
            return True
        env_var = PROVIDER_ENV_VARS.get(provider.lower())
        if env_var is None:
            return False
        return bool(self._lookup(provider, env_var, session, project_root))
