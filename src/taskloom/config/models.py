"""
Model catalog for Taskloom.

Single source of truth for the models each provider offers, their pricing
and output-token limits. The packaged defaults in
``config/defaults/supported_models.yaml`` are merged with the user's
``~/.taskloom/models.yaml``.
"""

import logging
from pathlib import Path

from pydantic import BaseModel, Field

from taskloom.config.loader import load_yaml_file
from taskloom.config.merger import deep_merge
from taskloom.storage.paths import get_models_override_path

logger = logging.getLogger(__name__)

DEFAULT_MODELS_PATH = Path(__file__).parent / "defaults" / "supported_models.yaml"


class ModelCost(BaseModel):
    """Per-million-token pricing."""

    input: float = 0.0
    output: float = 0.0
    currency: str = "USD"


class ModelInfo(BaseModel):
    """Information about a specific AI model."""

    id: str
    name: str | None = None
    swe_score: float | None = None
    cost_per_1m_tokens: ModelCost | None = None
    allowed_roles: list[str] = Field(default_factory=lambda: ["main", "fallback"])
    max_tokens: int | None = None


# provider name -> models
ModelMap = dict[str, list[ModelInfo]]


def load_model_map(
    defaults_path: Path | None = None,
    override_path: Path | None = None,
) -> ModelMap:
    """
    Load the model catalog from packaged defaults and user overrides.

    Args:
        defaults_path: Packaged catalog. Defaults to DEFAULT_MODELS_PATH.
        override_path: User catalog. Defaults to ~/.taskloom/models.yaml.

    Returns:
        Mapping of lowercase provider name to its models.

    Raises:
        ConfigurationError: If either file is not valid YAML.
    """
    base = load_yaml_file(defaults_path or DEFAULT_MODELS_PATH)
    user = load_yaml_file(override_path or get_models_override_path())
    merged = deep_merge(base, user)

    model_map: ModelMap = {}
    for provider, models in merged.items():
        if not isinstance(models, list):
            logger.warning(f"Ignoring malformed model list for provider '{provider}'")
            continue
        model_map[provider.lower()] = [ModelInfo.model_validate(m) for m in models]

    return model_map


_cached_model_map: ModelMap | None = None


def get_model_map(reload: bool = False) -> ModelMap:
    """Get the cached model catalog, loading it on first use."""
    global _cached_model_map

    if _cached_model_map is None or reload:
        _cached_model_map = load_model_map()

    return _cached_model_map


def find_model(model_map: ModelMap, provider: str, model_id: str) -> ModelInfo | None:
    """Find a model by provider and id, or None."""
    for model in model_map.get(provider.lower(), []):
        if model.id == model_id:
            return model
    return None


def get_models_for_role(model_map: ModelMap, role: str) -> list[tuple[str, ModelInfo]]:
    """List (provider, model) pairs that may serve a role."""
    return [
        (provider, model)
        for provider, models in model_map.items()
        for model in models
        if role in model.allowed_roles
    ]
