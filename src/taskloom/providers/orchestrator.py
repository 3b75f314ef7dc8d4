"""
Role fallback orchestration for Taskloom.

Walks the role sequence for a call, resolving each role to a provider and
model, until one succeeds or every role has been tried.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from taskloom.config.env import Session
from taskloom.providers.adapters import ProviderRegistry
from taskloom.providers.exceptions import (
    AIConfigurationError,
    AllRolesFailedError,
    CapabilityError,
    ErrorKind,
    UnknownProviderError,
    classify_error,
    extract_error_message,
)
from taskloom.providers.keys import ApiKeyResolver, is_key_optional
from taskloom.providers.models import (
    ROLE_SEQUENCES,
    CallParams,
    ProviderResponse,
    Role,
    ServiceRequest,
    ServiceResult,
    ServiceType,
    TelemetryRecord,
    build_messages,
)
from taskloom.providers.retry import RetryExecutor
from taskloom.providers.telemetry import TelemetryRecorder
from taskloom.storage.paths import find_project_root

logger = logging.getLogger(__name__)

ALL_ROLES_FAILED_MESSAGE = "AI service call failed for all configured roles."


class ConfigSource(Protocol):
    """Read-only configuration consumed by the orchestrator."""

    def get_provider(self, role: Role, project_root: Path | str | None = None) -> str | None: ...

    def get_model_id(self, role: Role, project_root: Path | str | None = None) -> str | None: ...

    def get_parameters_for_role(
        self, role: Role, project_root: Path | str | None = None
    ) -> dict[str, Any]: ...

    def get_base_url_for_role(
        self, role: Role, project_root: Path | str | None = None
    ) -> str | None: ...

    def is_api_key_set(
        self, provider: str, session: Session | None = None, project_root: Path | str | None = None
    ) -> bool: ...

    def get_user_id(self, project_root: Path | str | None = None) -> str | None: ...

    def get_debug_flag(self, project_root: Path | str | None = None) -> bool: ...

    def get_strict_roles(self, project_root: Path | str | None = None) -> bool: ...


@dataclass
class FallbackAttempt:
    """Record of one role that was skipped or failed."""

    role: Role
    provider: str | None
    model_id: str | None
    reason: str
    kind: ErrorKind | None = None  # None when skipped before any call

    @property
    def skipped(self) -> bool:
        return self.kind is None


def build_role_sequence(role: Role | str, strict: bool = False) -> tuple[Role, ...]:
    """
    Get the order in which roles are tried for a starting role.

    Args:
        role: The starting role.
        strict: Raise on an unknown role instead of using the main sequence.

    Raises:
        AIConfigurationError: If the role is unknown and ``strict`` is set.
    """
    try:
        start = Role(role)
    except ValueError:
        if strict:
            raise AIConfigurationError(f"Unknown AI role specified: {role}") from None
        logger.warning(
            f"Unknown initial role: {role}. Defaulting to main -> fallback -> research sequence."
        )
        start = Role.MAIN
    return ROLE_SEQUENCES[start]


def format_attempt_summary(attempts: list[FallbackAttempt]) -> str:
    """Human-readable summary of what each role did."""
    if not attempts:
        return "No roles attempted"

    lines = []
    for attempt in attempts:
        target = f"{attempt.provider or 'unknown'}/{attempt.model_id or 'unknown'}"
        status = "skipped" if attempt.skipped else attempt.kind.value
        lines.append(f"  - {attempt.role.value} ({target}): {status} ({attempt.reason})")
    return "Role attempts:\n" + "\n".join(lines)


class RoleFallbackOrchestrator:
    """
    Runs one service call across the role fallback sequence.

    Roles are tried strictly in order; a role is skipped when it is not
    usable (no provider/model, no key, unsupported operation) and fails when
    its provider call fails after retries. A capability gap during object
    generation aborts the whole sequence.
    """

    def __init__(
        self,
        config: ConfigSource,
        registry: ProviderRegistry,
        key_resolver: ApiKeyResolver,
        retry: RetryExecutor | None = None,
        telemetry: TelemetryRecorder | None = None,
    ):
        self.config = config
        self.registry = registry
        self.key_resolver = key_resolver
        self.retry = retry or RetryExecutor()
        self.telemetry = telemetry

    async def run(self, service_type: ServiceType | str, request: ServiceRequest) -> ServiceResult:
        """
        Execute a service call with role fallback.

        Args:
            service_type: The operation to perform.
            request: Call parameters.

        Returns:
            The main result plus telemetry (None if not recorded).

        Raises:
            AIConfigurationError: Missing prompt, missing object schema, unknown
                role in strict mode, or a provider without key mapping.
            CapabilityError: The model cannot do structured output.
            AllRolesFailedError: No role produced a result.
        """
        service_type = ServiceType(service_type)
        if not request.prompt:
            raise AIConfigurationError("User prompt content is missing.")
        if service_type == ServiceType.GENERATE_OBJECT and request.schema is None:
            raise AIConfigurationError("Object generation requires a schema.")

        project_root = request.project_root or find_project_root()
        debug = self.config.get_debug_flag(project_root)
        if debug:
            logger.info(
                f"{service_type.value} service called (role: {request.role}, "
                f"command: {request.command_name}, output: {request.output_type}, "
                f"project root: {project_root})"
            )

        sequence = build_role_sequence(
            request.role, strict=self.config.get_strict_roles(project_root)
        )
        attempts: list[FallbackAttempt] = []
        last_message = ALL_ROLES_FAILED_MESSAGE

        for role in sequence:
            provider_name: str | None = None
            model_id: str | None = None

            try:
                logger.info(f"New AI service call with role: {role.value}")
                provider_name = self.config.get_provider(role, project_root)
                model_id = self.config.get_model_id(role, project_root)

                if not provider_name or not model_id:
                    self._skip(
                        attempts, role, provider_name, model_id, "provider or model not configured"
                    )
                    continue

                provider_key = provider_name.lower()
                if not is_key_optional(provider_key) and not self.config.is_api_key_set(
                    provider_key, request.session, project_root
                ):
                    self._skip(attempts, role, provider_name, model_id, "API key not set")
                    continue

                role_params = self.config.get_parameters_for_role(role, project_root)
                base_url = self.config.get_base_url_for_role(role, project_root)

                function_set = self.registry.get(provider_key)
                if function_set is None:
                    self._skip(attempts, role, provider_name, model_id, "provider not supported")
                    continue

                provider_fn = function_set.get(service_type)
                if provider_fn is None:
                    self._skip(
                        attempts,
                        role,
                        provider_name,
                        model_id,
                        f"{service_type.value} not implemented by provider",
                    )
                    continue

                api_key = self.key_resolver.resolve(provider_key, request.session, project_root)

                call_params = CallParams(
                    api_key=api_key,
                    model_id=model_id,
                    max_tokens=role_params.get("max_tokens"),
                    temperature=role_params.get("temperature"),
                    messages=build_messages(request.prompt, request.system_prompt),
                    base_url=base_url,
                    extra=dict(request.extra),
                )
                if service_type == ServiceType.GENERATE_OBJECT:
                    call_params.schema = request.schema
                    call_params.object_name = request.object_name

                response = await self.retry.attempt(
                    provider_fn, call_params, provider_name, model_id, role, debug=debug
                )

            except UnknownProviderError:
                raise

            except Exception as e:
                message = extract_error_message(e)
                kind = classify_error(e, service_type)
                logger.error(
                    f"Service call failed for role {role.value} (Provider: "
                    f"{provider_name or 'unknown'}, Model: {model_id or 'unknown'}): {message}"
                )
                attempts.append(FallbackAttempt(role, provider_name, model_id, message, kind))
                last_message = message

                if kind == ErrorKind.CAPABILITY:
                    capability_message = (
                        f"Model '{model_id or 'unknown'}' via provider '{provider_name or 'unknown'}' "
                        "does not support the 'tool use' required by generate_object_service. "
                        "Please configure a model that supports tool/function calling for the "
                        f"'{role.value}' role, or use generate_text_service if structured output "
                        "is not strictly required."
                    )
                    logger.error(f"[Tool Support Error] {capability_message}")
                    raise CapabilityError(capability_message, provider_name, model_id) from e
                continue

            telemetry = self._record_telemetry(
                request, project_root, provider_name, model_id, response
            )
            return ServiceResult(
                main_result=self._main_result(service_type, response),
                telemetry_data=telemetry,
            )

        logger.error(
            f"All roles in the sequence [{', '.join(r.value for r in sequence)}] failed.\n"
            f"{format_attempt_summary(attempts)}"
        )
        raise AllRolesFailedError(last_message, attempts)

    def _skip(
        self,
        attempts: list[FallbackAttempt],
        role: Role,
        provider: str | None,
        model_id: str | None,
        reason: str,
    ) -> None:
        logger.warning(
            f"Skipping role '{role.value}' (Provider: {provider}, Model: {model_id}): {reason}."
        )
        attempts.append(FallbackAttempt(role, provider, model_id, reason))

    def _main_result(self, service_type: ServiceType, response: ProviderResponse) -> Any:
        if service_type == ServiceType.GENERATE_TEXT:
            return response.text
        if service_type == ServiceType.GENERATE_OBJECT:
            return response.object
        return response

    def _record_telemetry(
        self,
        request: ServiceRequest,
        project_root: Path | str,
        provider_name: str,
        model_id: str,
        response: ProviderResponse,
    ) -> TelemetryRecord | None:
        if self.telemetry is None:
            return None

        if response.usage is None:
            logger.warning(
                f"Cannot log telemetry for {request.command_name} ({provider_name}/{model_id}): "
                "AI result missing 'usage' data. (May be expected for streams)"
            )
            return None

        try:
            user_id = self.config.get_user_id(project_root)
            if not user_id:
                return None
            return self.telemetry.record(
                user_id=user_id,
                command_name=request.command_name,
                provider_name=provider_name,
                model_id=model_id,
                input_tokens=response.usage.input_tokens,
                output_tokens=response.usage.output_tokens,
                output_type=request.output_type,
            )
        except Exception as e:
            logger.error(f"Failed to record telemetry: {e}")
            return None
