"""
Provider exceptions for Taskloom.

Defines the error hierarchy of the AI layer and the single classifier that
maps provider errors onto a stable taxonomy.
"""

import json
from enum import Enum
from typing import Any

from litellm.exceptions import (
    APIConnectionError,
    RateLimitError as LiteLLMRateLimitError,
    ServiceUnavailableError,
    Timeout,
)

from taskloom.providers.models import ServiceType


class ErrorKind(Enum):
    """Classification of provider failures for retry/fallback decisions."""

    CONFIGURATION = "configuration"
    TRANSIENT = "transient"
    CAPABILITY = "capability"
    PERMANENT = "permanent"


# Substrings (lowercase) of messages that indicate a transient failure
TRANSIENT_PATTERNS = (
    "rate limit",
    "overloaded",
    "service temporarily unavailable",
    "timeout",
    "network error",
)

# Substrings (lowercase) meaning the model cannot do tool/function calling
CAPABILITY_PATTERNS = (
    "no endpoints found that support tool use",
    "does not support tool_use",
    "tool use is not supported",
    "tools are not supported",
    "function calling is not supported",
)

UNKNOWN_ERROR_MESSAGE = "An unknown AI service error occurred."


class AIServiceError(Exception):
    """Base exception for AI layer errors."""

    pass


class AIConfigurationError(AIServiceError):
    """The call cannot proceed because of caller input or configuration."""

    pass


class UnknownProviderError(AIConfigurationError):
    """A provider name has no known API key mapping."""

    def __init__(self, provider: str):
        super().__init__(f"Unknown provider '{provider}' for API key resolution.")
        self.provider = provider


class MissingApiKeyError(AIConfigurationError):
    """A required API key could not be resolved."""

    def __init__(self, provider: str, env_var: str):
        super().__init__(
            f"Required API key {env_var} for provider '{provider}' is not set in "
            "environment, session, or .env file."
        )
        self.provider = provider
        self.env_var = env_var


class CapabilityError(AIServiceError):
    """The selected model structurally cannot perform the requested operation."""

    def __init__(self, message: str, provider: str | None = None, model_id: str | None = None):
        super().__init__(message)
        self.provider = provider
        self.model_id = model_id


class AllRolesFailedError(AIServiceError):
    """Every role in the fallback sequence was skipped or failed."""

    def __init__(self, message: str, attempts: list[Any] | None = None):
        super().__init__(message)
        self.attempts = attempts or []


def _dig(obj: Any, *path: str) -> Any:
    """Follow attributes or mapping keys; None as soon as one is missing."""
    current = obj
    for name in path:
        if current is None:
            return None
        if isinstance(current, dict):
            current = current.get(name)
        else:
            current = getattr(current, name, None)
    return current


def _message_from_body(body: Any) -> str | None:
    if isinstance(body, str):
        try:
            body = json.loads(body)
        except ValueError:
            return None
    message = _dig(body, "error", "message")
    return message if isinstance(message, str) and message else None


def extract_error_message(error: Any) -> str:
    """
    Extract a short human-readable message from a provider error.

    Nested SDK shapes are preferred over the top-level message:
    ``error.data.error.message``, ``error.error.message``, then a JSON
    response body, then ``error.message`` / ``str(error)``.

    Args:
        error: An exception, error payload, or plain string.

    Returns:
        The extracted message.
    """
    try:
        if isinstance(error, str):
            return error

        for path in (("data", "error", "message"), ("error", "message")):
            message = _dig(error, *path)
            if isinstance(message, str) and message:
                return message

        for attr in ("response_body", "responseBody", "body"):
            message = _message_from_body(_dig(error, attr))
            if message:
                return message

        message = _dig(error, "message")
        if isinstance(message, str) and message:
            return message

        if isinstance(error, BaseException) and str(error):
            return str(error)

        return UNKNOWN_ERROR_MESSAGE
    except Exception:
        return "Failed to extract error message."


def get_status_code(error: Any) -> int | None:
    """HTTP status carried by an SDK error, if any."""
    for attr in ("status_code", "status"):
        status = getattr(error, attr, None)
        if isinstance(status, int):
            return status
    return None


def classify_error(error: Any, service_type: ServiceType | None = None) -> ErrorKind:
    """
    Classify an error for retry and fallback decisions.

    Args:
        error: The exception (or message) to classify.
        service_type: The operation that failed; capability gaps are only
            recognised for generate_object.

    Returns:
        The error kind.
    """
    if isinstance(error, AIConfigurationError):
        return ErrorKind.CONFIGURATION

    message = extract_error_message(error).lower()

    if service_type == ServiceType.GENERATE_OBJECT and any(
        pattern in message for pattern in CAPABILITY_PATTERNS
    ):
        return ErrorKind.CAPABILITY

    if isinstance(
        error, (LiteLLMRateLimitError, ServiceUnavailableError, APIConnectionError, Timeout)
    ):
        return ErrorKind.TRANSIENT

    raw_message = str(getattr(error, "message", "") or error).lower()
    if any(pattern in message or pattern in raw_message for pattern in TRANSIENT_PATTERNS):
        return ErrorKind.TRANSIENT

    status = get_status_code(error)
    if status is not None and (status == 429 or status >= 500):
        return ErrorKind.TRANSIENT

    return ErrorKind.PERMANENT


def is_retryable_error(error: Any) -> bool:
    """True if the error is expected to succeed on retry."""
    return classify_error(error) == ErrorKind.TRANSIENT
