"""
Pydantic configuration schema for Taskloom.

This module defines all configuration models with validation.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# Role Model Configuration
# =============================================================================


class RoleModelConfig(BaseModel):
    """Provider, model and generation parameters for one role."""

    model_config = ConfigDict(extra="allow")

    provider: str | None = None
    model_id: str | None = None
    max_tokens: int = Field(default=64000, ge=1)
    temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    base_url: str | None = None


def _default_main() -> RoleModelConfig:
    return RoleModelConfig(
        provider="anthropic",
        model_id="claude-3-7-sonnet-20250219",
        max_tokens=64000,
        temperature=0.2,
    )


def _default_research() -> RoleModelConfig:
    return RoleModelConfig(
        provider="perplexity",
        model_id="sonar-pro",
        max_tokens=8700,
        temperature=0.1,
    )


def _default_fallback() -> RoleModelConfig:
    return RoleModelConfig(
        provider="anthropic",
        model_id="claude-3-5-sonnet-20241022",
        max_tokens=64000,
        temperature=0.2,
    )


class ModelsConfig(BaseModel):
    """Role to model mapping."""

    model_config = ConfigDict(extra="allow")

    main: RoleModelConfig = Field(default_factory=_default_main)
    research: RoleModelConfig = Field(default_factory=_default_research)
    fallback: RoleModelConfig = Field(default_factory=_default_fallback)


# =============================================================================
# Telemetry Configuration
# =============================================================================


class TelemetryConfig(BaseModel):
    """Usage telemetry configuration."""

    model_config = ConfigDict(extra="allow")

    enable: bool = True
    # JSON Lines file to append records to; None logs only
    path: str | None = None


# =============================================================================
# General Configuration
# =============================================================================


class GeneralConfig(BaseModel):
    """General settings configuration."""

    model_config = ConfigDict(extra="allow")

    debug: bool = False
    log_level: Literal["debug", "info", "warning", "error"] = "warning"
    user_id: str | None = "anonymous"
    project_name: str = "Taskloom"
    ollama_base_url: str | None = "http://localhost:11434"
    strict_roles: bool = Field(
        default=False,
        description="Reject unknown roles instead of falling back to the main sequence",
    )


# =============================================================================
# Root Configuration Model
# =============================================================================


class Config(BaseModel):
    """
    Root configuration model for Taskloom.

    Loaded from YAML files and environment variables, merged in order of
    priority (see taskloom.config.loader).
    """

    model_config = ConfigDict(extra="allow")

    models: ModelsConfig = Field(default_factory=ModelsConfig)
    general: GeneralConfig = Field(default_factory=GeneralConfig)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)

    def get_role_config(self, role: str) -> RoleModelConfig | None:
        """Get the model configuration for a role name, or None if unknown."""
        value = getattr(self.models, role, None)
        return value if isinstance(value, RoleModelConfig) else None
