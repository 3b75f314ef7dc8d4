"""
Unified AI service for Taskloom.

Main interface of the AI layer: generate text, stream text, or generate a
structured object for a role, with retries, role fallback and telemetry.
"""

import logging
from pathlib import Path
from typing import Any

from taskloom.config.env import Session
from taskloom.config.manager import ConfigManager
from taskloom.providers.adapters import ProviderRegistry, build_default_registry
from taskloom.providers.cost import CostTable
from taskloom.providers.keys import ApiKeyResolver
from taskloom.providers.models import Role, ServiceRequest, ServiceResult, ServiceType
from taskloom.providers.orchestrator import RoleFallbackOrchestrator
from taskloom.providers.retry import RetryExecutor
from taskloom.providers.telemetry import (
    JsonlTelemetrySink,
    LoggingTelemetrySink,
    TelemetryRecorder,
    TelemetrySink,
)

logger = logging.getLogger(__name__)

DEFAULT_OBJECT_NAME = "generated_object"
DEFAULT_OUTPUT_TYPE = "cli"


def build_telemetry_recorder(
    config: ConfigManager,
    project_root: Path | str | None = None,
) -> TelemetryRecorder | None:
    """
    Build the telemetry recorder described by configuration.

    Returns:
        The recorder, or None when telemetry is disabled.
    """
    settings = config.get_config(project_root)
    if not settings.telemetry.enable:
        return None

    sinks: list[TelemetrySink] = [LoggingTelemetrySink(debug=settings.general.debug)]
    if settings.telemetry.path:
        sinks.append(JsonlTelemetrySink(settings.telemetry.path))

    return TelemetryRecorder(cost_table=CostTable(config.model_map), sinks=sinks)


class AIService:
    """
    Role-based access to AI providers.

    The provider registry is built once and handed to the orchestrator;
    pass your own ``registry`` to substitute adapters.
    """

    def __init__(
        self,
        config: ConfigManager | None = None,
        registry: ProviderRegistry | None = None,
        key_resolver: ApiKeyResolver | None = None,
        telemetry: TelemetryRecorder | None = None,
        retry: RetryExecutor | None = None,
    ):
        """
        Args:
            config: Configuration access. Creates a ConfigManager if not provided.
            registry: Provider function sets. Defaults to the built-in LiteLLM adapters.
            key_resolver: API key resolver. Defaults to the config manager's.
            telemetry: Usage recorder. Built from configuration if not provided.
            retry: Retry executor. Uses default backoff if not provided.
        """
        self.config = config or ConfigManager()
        self.registry = registry if registry is not None else build_default_registry()
        self.key_resolver = key_resolver or self.config.key_resolver
        if telemetry is None:
            telemetry = build_telemetry_recorder(self.config)
        self.telemetry = telemetry
        self.orchestrator = RoleFallbackOrchestrator(
            config=self.config,
            registry=self.registry,
            key_resolver=self.key_resolver,
            retry=retry,
            telemetry=self.telemetry,
        )

    async def _run(
        self,
        service_type: ServiceType,
        *,
        role: Role | str,
        prompt: str | None,
        system_prompt: str | None,
        session: Session | None,
        project_root: Path | str | None,
        command_name: str | None,
        output_type: str,
        schema: Any = None,
        object_name: str | None = None,
        extra: dict[str, Any],
    ) -> ServiceResult:
        request = ServiceRequest(
            role=role,
            prompt=prompt,
            system_prompt=system_prompt,
            session=session,
            project_root=project_root,
            schema=schema,
            object_name=object_name,
            command_name=command_name,
            output_type=output_type,
            extra=extra,
        )
        return await self.orchestrator.run(service_type, request)

    async def generate_text_service(
        self,
        *,
        role: Role | str = Role.MAIN,
        prompt: str | None = None,
        system_prompt: str | None = None,
        session: Session | None = None,
        project_root: Path | str | None = None,
        command_name: str | None = None,
        output_type: str = DEFAULT_OUTPUT_TYPE,
        **extra: Any,
    ) -> ServiceResult:
        """
        Generate text.

        Args:
            role: Starting role ('main', 'research' or 'fallback').
            prompt: The user prompt (required).
            system_prompt: Optional system prompt.
            session: Optional caller session whose ``env`` overrides API keys.
            project_root: Project directory. Discovered from cwd if not given.
            command_name: Name of the calling command (for telemetry).
            output_type: 'cli' or 'mcp'.
            **extra: Passed through to the provider call.

        Returns:
            ServiceResult whose ``main_result`` is the generated text.
        """
        return await self._run(
            ServiceType.GENERATE_TEXT,
            role=role,
            prompt=prompt,
            system_prompt=system_prompt,
            session=session,
            project_root=project_root,
            command_name=command_name,
            output_type=output_type,
            extra=extra,
        )

    async def stream_text_service(
        self,
        *,
        role: Role | str = Role.MAIN,
        prompt: str | None = None,
        system_prompt: str | None = None,
        session: Session | None = None,
        project_root: Path | str | None = None,
        command_name: str | None = None,
        output_type: str = DEFAULT_OUTPUT_TYPE,
        **extra: Any,
    ) -> ServiceResult:
        """
        Stream text.

        ``main_result`` is the provider response; iterate its ``stream``
        to receive text deltas. Streams carry no usage, so telemetry is None.
        """
        return await self._run(
            ServiceType.STREAM_TEXT,
            role=role,
            prompt=prompt,
            system_prompt=system_prompt,
            session=session,
            project_root=project_root,
            command_name=command_name,
            output_type=output_type,
            extra=extra,
        )

    async def generate_object_service(
        self,
        *,
        schema: Any,
        role: Role | str = Role.MAIN,
        prompt: str | None = None,
        system_prompt: str | None = None,
        object_name: str = DEFAULT_OBJECT_NAME,
        session: Session | None = None,
        project_root: Path | str | None = None,
        command_name: str | None = None,
        output_type: str = DEFAULT_OUTPUT_TYPE,
        **extra: Any,
    ) -> ServiceResult:
        """
        Generate a structured object matching ``schema``.

        Args:
            schema: A pydantic model class or a JSON-schema dict.
            object_name: Name of the tool/object the model is asked to produce.

        Returns:
            ServiceResult whose ``main_result`` is the object (a model
            instance when ``schema`` is a pydantic model).

        Raises:
            CapabilityError: If the configured model cannot do tool calling.
        """
        return await self._run(
            ServiceType.GENERATE_OBJECT,
            role=role,
            prompt=prompt,
            system_prompt=system_prompt,
            session=session,
            project_root=project_root,
            command_name=command_name,
            output_type=output_type,
            schema=schema,
            object_name=object_name,
            extra=extra,
        )


# Singleton instance
_ai_service: AIService | None = None


def get_ai_service(reload: bool = False) -> AIService:
    """
    Get the shared AI service instance.

    Args:
        reload: Force recreation of the service.
    """
    global _ai_service

    if _ai_service is None or reload:
        _ai_service = AIService()

    return _ai_service


def clear_ai_service() -> None:
    """Clear the shared AI service instance."""
    global _ai_service
    _ai_service = None


async def generate_text_service(**params: Any) -> ServiceResult:
    """Generate text with the shared service. See AIService.generate_text_service."""
    return await get_ai_service().generate_text_service(**params)


async def stream_text_service(**params: Any) -> ServiceResult:
    """Stream text with the shared service. See AIService.stream_text_service."""
    return await get_ai_service().stream_text_service(**params)


async def generate_object_service(**params: Any) -> ServiceResult:
    """Generate an object with the shared service. See AIService.generate_object_service."""
    return await get_ai_service().generate_object_service(**params)
