"""
Pytest configuration and fixtures for taskloom tests.
"""

import tempfile
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from taskloom.config import ConfigManager
from taskloom.config.models import ModelCost, ModelInfo
from taskloom.config.schema import Config, RoleModelConfig
from taskloom.providers.adapters import ProviderFunctions
from taskloom.providers.keys import ApiKeyResolver
from taskloom.providers.models import ProviderResponse, TokenUsage


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def taskloom_home(temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point TASKLOOM_HOME at an empty temporary directory."""
    home = temp_dir / ".taskloom-home"
    home.mkdir()
    monkeypatch.setenv("TASKLOOM_HOME", str(home))
    return home


@pytest.fixture
def project_dir(temp_dir: Path) -> Path:
    """Provide a project directory with a .taskloom/ marker."""
    project = temp_dir / "project"
    (project / ".taskloom").mkdir(parents=True)
    return project


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove provider keys and TASKLOOM_* overrides from the environment."""
    import os

    from taskloom.providers.keys import PROVIDER_ENV_VARS

    for env_var in PROVIDER_ENV_VARS.values():
        monkeypatch.delenv(env_var, raising=False)
    for key in list(os.environ):
        if key.startswith("TASKLOOM_") and key != "TASKLOOM_HOME":
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def model_map() -> dict[str, list[ModelInfo]]:
    """A small model catalog with known pricing."""
    return {
        "anthropic": [
            ModelInfo(
                id="claude-main",
                cost_per_1m_tokens=ModelCost(input=3.0, output=15.0),
                max_tokens=120000,
            ),
            ModelInfo(
                id="claude-fallback",
                cost_per_1m_tokens=ModelCost(input=3.0, output=15.0),
                max_tokens=64000,
            ),
        ],
        "perplexity": [
            ModelInfo(
                id="sonar-pro",
                cost_per_1m_tokens=ModelCost(input=3.0, output=15.0),
                allowed_roles=["main", "research", "fallback"],
                max_tokens=8700,
            ),
        ],
        "ollama": [ModelInfo(id="llama3", cost_per_1m_tokens=ModelCost(input=0, output=0))],
    }


def make_config(general: dict[str, Any] | None = None, **roles: dict[str, Any]) -> Config:
    """
    Build a Config whose roles are exactly those given.

    Roles not passed are left without provider and model.
    """
    models = {
        name: RoleModelConfig(**roles.get(name, {})) for name in ("main", "research", "fallback")
    }
    return Config.model_validate({"models": models, "general": general or {}})


def make_manager(config: Config, model_map=None, keys: dict[str, str] | None = None) -> ConfigManager:
    """ConfigManager pinned to ``config`` whose keys come only from ``keys``."""
    keys = keys or {}
    resolver = ApiKeyResolver(env_resolver=lambda name, session=None, root=None: keys.get(name))
    return ConfigManager(config=config, model_map=model_map or {}, key_resolver=resolver)


def text_response(text: str = "ok", input_tokens: int = 10, output_tokens: int = 5):
    return ProviderResponse(
        text=text, usage=TokenUsage(input_tokens=input_tokens, output_tokens=output_tokens)
    )


def functions(**fns) -> ProviderFunctions:
    return ProviderFunctions(**fns)
