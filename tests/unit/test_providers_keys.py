"""
Unit tests for API key resolution and the encrypted key store.
"""

from pathlib import Path

import pytest

from taskloom.config.env import resolve_env_variable
from taskloom.providers import ApiKeyResolver, MissingApiKeyError, UnknownProviderError
from taskloom.secrets import DecryptionError, SecretsManager
from taskloom.storage.paths import find_project_root


# =============================================================================
# Environment Resolution Tests
# =============================================================================


class TestResolveEnvVariable:
    """Tests for resolve_env_variable lookup order."""

    def test_session_wins(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "from-env")
        session = {"env": {"ANTHROPIC_API_KEY": "from-session"}}
        assert resolve_env_variable("ANTHROPIC_API_KEY", session) == "from-session"

    def test_process_env(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "from-env")
        assert resolve_env_variable("ANTHROPIC_API_KEY", {"env": {}}) == "from-env"

    def test_project_dotenv(self, monkeypatch, project_dir: Path):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        (project_dir / ".env").write_text("ANTHROPIC_API_KEY=from-dotenv\n")
        assert resolve_env_variable("ANTHROPIC_API_KEY", None, project_dir) == "from-dotenv"

    def test_project_dotenv_with_keys_in_home(self, monkeypatch, temp_dir: Path):
        """A stored key under ~/.taskloom does not hide a git project's .env."""
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        user_home = temp_dir / "home"
        monkeypatch.setenv("TASKLOOM_HOME", str(user_home / ".taskloom"))
        SecretsManager(user_home / ".taskloom" / "secrets").set("openai", "sk-stored")
        project = user_home / "code" / "proj"
        (project / ".git").mkdir(parents=True)
        (project / ".env").write_text("ANTHROPIC_API_KEY=from-project\n")
        monkeypatch.chdir(project)

        root = find_project_root()

        assert root == project.resolve()
        assert resolve_env_variable("ANTHROPIC_API_KEY", None, root) == "from-project"

    def test_missing(self, monkeypatch, project_dir: Path):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        assert resolve_env_variable("ANTHROPIC_API_KEY", None, project_dir) is None

    def test_session_without_env_mapping(self, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        assert resolve_env_variable("ANTHROPIC_API_KEY", {"env": "nope"}) is None


# =============================================================================
# ApiKeyResolver Tests
# =============================================================================


def _resolver(values: dict[str, str], secrets=None) -> ApiKeyResolver:
    return ApiKeyResolver(
        env_resolver=lambda name, session=None, root=None: values.get(name),
        secrets=secrets,
    )


class TestApiKeyResolver:
    """Tests for ApiKeyResolver."""

    def test_resolves_mapped_variable(self):
        resolver = _resolver({"OPENAI_API_KEY": "sk-test"})
        assert resolver.resolve("openai") == "sk-test"

    def test_provider_name_is_case_insensitive(self):
        resolver = _resolver({"OPENAI_API_KEY": "sk-test"})
        assert resolver.resolve("OpenAI") == "sk-test"

    def test_azure_variable(self):
        assert _resolver({}).get_env_var_name("azure") == "AZURE_OPENAI_API_KEY"

    def test_missing_key_raises(self):
        with pytest.raises(MissingApiKeyError) as exc_info:
            _resolver({}).resolve("anthropic")
        assert exc_info.value.env_var == "ANTHROPIC_API_KEY"

    def test_unknown_provider_raises(self):
        with pytest.raises(UnknownProviderError, match="Unknown provider 'acme'"):
            _resolver({}).resolve("acme")

    def test_ollama_without_key(self):
        assert _resolver({}).resolve("ollama") is None

    def test_ollama_with_key(self):
        assert _resolver({"OLLAMA_API_KEY": "local"}).resolve("ollama") == "local"

    def test_secrets_store_fallback(self, temp_dir: Path):
        secrets = SecretsManager(temp_dir / "secrets")
        secrets.set("anthropic", "stored-key")

        resolver = _resolver({}, secrets=secrets)
        assert resolver.resolve("anthropic") == "stored-key"

    def test_env_beats_secrets_store(self, temp_dir: Path):
        secrets = SecretsManager(temp_dir / "secrets")
        secrets.set("anthropic", "stored-key")

        resolver = _resolver({"ANTHROPIC_API_KEY": "env-key"}, secrets=secrets)
        assert resolver.resolve("anthropic") == "env-key"

    def test_is_key_set(self):
        resolver = _resolver({"OPENAI_API_KEY": "sk-test"})
        assert resolver.is_key_set("openai") is True
        assert resolver.is_key_set("anthropic") is False
        assert resolver.is_key_set("ollama") is True
        assert resolver.is_key_set("acme") is False

    def test_session_passed_through(self):
        seen = {}

        def env_resolver(name, session=None, root=None):
            seen["session"] = session
            seen["root"] = root
            return "key"

        resolver = ApiKeyResolver(env_resolver=env_resolver)
        resolver.resolve("openai", {"env": {}}, "/proj")
        assert seen == {"session": {"env": {}}, "root": "/proj"}


# =============================================================================
# SecretsManager Tests
# =============================================================================


class TestSecretsManager:
    """Tests for the encrypted key store."""

    def test_set_and_get(self, temp_dir: Path):
        manager = SecretsManager(temp_dir / "secrets")
        manager.set("OpenAI", "sk-123")

        assert manager.get("openai") == "sk-123"
        assert manager.exists("openai")
        assert (temp_dir / "secrets" / "openai.enc").read_bytes() != b"sk-123"

    def test_get_missing(self, temp_dir: Path):
        assert SecretsManager(temp_dir / "secrets").get("openai") is None

    def test_list_and_delete(self, temp_dir: Path):
        manager = SecretsManager(temp_dir / "secrets")
        manager.set("openai", "a")
        manager.set("anthropic", "b")

        assert manager.list() == ["anthropic", "openai"]
        assert manager.delete("openai") is True
        assert manager.delete("openai") is False
        assert manager.list() == ["anthropic"]

    def test_list_without_directory(self, temp_dir: Path):
        assert SecretsManager(temp_dir / "missing").list() == []

    def test_changed_master_key(self, temp_dir: Path):
        secrets_dir = temp_dir / "secrets"
        SecretsManager(secrets_dir).set("openai", "sk-123")
        (secrets_dir / "master.key").unlink()

        with pytest.raises(DecryptionError):
            SecretsManager(secrets_dir).get("openai")

    def test_default_directory_follows_home(self, taskloom_home: Path):
        assert SecretsManager().secrets_dir == taskloom_home / "secrets"
