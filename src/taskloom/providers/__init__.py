"""
Taskloom Provider Layer.

Unified access to AI models via LiteLLM with:
- Role-based model selection (main, research, fallback)
- Retries with exponential backoff for transient errors
- Role fallback sequences
- Error classification
- Cost and usage telemetry
"""

from taskloom.providers.adapters import (
    LiteLLMProvider,
    ProviderFunctions,
    ProviderRegistry,
    build_default_registry,
)
from taskloom.providers.cost import CostTable, calculate_cost
from taskloom.providers.exceptions import (
    AIConfigurationError,
    AIServiceError,
    AllRolesFailedError,
    CapabilityError,
    ErrorKind,
    MissingApiKeyError,
    UnknownProviderError,
    classify_error,
    extract_error_message,
    is_retryable_error,
)
from taskloom.providers.keys import PROVIDER_ENV_VARS, ApiKeyResolver
from taskloom.providers.models import (
    ROLE_SEQUENCES,
    CallParams,
    CostEntry,
    Message,
    MessageRole,
    ProviderResponse,
    Role,
    ServiceRequest,
    ServiceResult,
    ServiceType,
    SessionUsage,
    TelemetryRecord,
    TokenUsage,
)
from taskloom.providers.orchestrator import (
    FallbackAttempt,
    RoleFallbackOrchestrator,
    build_role_sequence,
)
from taskloom.providers.retry import RetryExecutor
from taskloom.providers.service import (
    AIService,
    clear_ai_service,
    generate_object_service,
    generate_text_service,
    get_ai_service,
    stream_text_service,
)
from taskloom.providers.telemetry import (
    JsonlTelemetrySink,
    LoggingTelemetrySink,
    TelemetryRecorder,
)

__all__ = [
    # Service
    "AIService",
    "get_ai_service",
    "clear_ai_service",
    "generate_text_service",
    "stream_text_service",
    "generate_object_service",
    # Models
    "Role",
    "ROLE_SEQUENCES",
    "ServiceType",
    "Message",
    "MessageRole",
    "CallParams",
    "ProviderResponse",
    "TokenUsage",
    "CostEntry",
    "TelemetryRecord",
    "ServiceRequest",
    "ServiceResult",
    "SessionUsage",
    # Exceptions
    "AIServiceError",
    "AIConfigurationError",
    "UnknownProviderError",
    "MissingApiKeyError",
    "CapabilityError",
    "AllRolesFailedError",
    "ErrorKind",
    "classify_error",
    "extract_error_message",
    "is_retryable_error",
    # Orchestration
    "RoleFallbackOrchestrator",
    "FallbackAttempt",
    "build_role_sequence",
    "RetryExecutor",
    # Adapters
    "LiteLLMProvider",
    "ProviderFunctions",
    "ProviderRegistry",
    "build_default_registry",
    # Keys, cost, telemetry
    "ApiKeyResolver",
    "PROVIDER_ENV_VARS",
    "CostTable",
    "calculate_cost",
    "TelemetryRecorder",
    "LoggingTelemetrySink",
    "JsonlTelemetrySink",
]
