"""
Provider data models for Taskloom.

Defines roles, call parameters, responses and telemetry records shared by
every part of the AI layer.
"""

from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any


class Role(str, Enum):
    """Logical model selector mapped to a provider+model by configuration."""

    MAIN = "main"
    RESEARCH = "research"
    FALLBACK = "fallback"


class ServiceType(str, Enum):
    """The three operations every provider adapter may implement."""

    GENERATE_TEXT = "generate_text"
    STREAM_TEXT = "stream_text"
    GENERATE_OBJECT = "generate_object"


class MessageRole(str, Enum):
    """Valid message roles."""

    SYSTEM = "system"
    USER = "user"


# Order in which roles are tried, keyed by the starting role
ROLE_SEQUENCES: dict[Role, tuple[Role, Role, Role]] = {
    Role.MAIN: (Role.MAIN, Role.FALLBACK, Role.RESEARCH),
    Role.RESEARCH: (Role.RESEARCH, Role.FALLBACK, Role.MAIN),
    Role.FALLBACK: (Role.FALLBACK, Role.MAIN, Role.RESEARCH),
}


@dataclass(frozen=True)
class Message:
    """Conversation message."""

    role: str  # "system" | "user"
    content: str

    def to_dict(self) -> dict[str, str]:
        """Convert to the chat-completions dict format."""
        return {"role": self.role, "content": self.content}

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=MessageRole.SYSTEM.value, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=MessageRole.USER.value, content=content)


def build_messages(prompt: str, system_prompt: str | None = None) -> list[Message]:
    """Optional system prompt followed by the user prompt."""
    messages = []
    if system_prompt:
        messages.append(Message.system(system_prompt))
    messages.append(Message.user(prompt))
    return messages


@dataclass
class TokenUsage:
    """Token usage statistics."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    def __post_init__(self) -> None:
        if self.total_tokens == 0:
            self.total_tokens = self.input_tokens + self.output_tokens


@dataclass
class CallParams:
    """Parameters handed to a provider function for a single attempt."""

    api_key: str | None
    model_id: str
    max_tokens: int | None
    temperature: float | None
    messages: list[Message]
    base_url: str | None = None
    schema: Any = None
    object_name: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class ProviderResponse:
    """
    Output of a provider function.

    Which payload is set depends on the service type: ``text`` for
    generate_text, ``object`` for generate_object, ``stream`` for stream_text.
    """

    text: str | None = None
    object: Any = None
    stream: AsyncIterator[str] | None = None
    usage: TokenUsage | None = None
    raw: Any = None


# A provider function: CallParams in, ProviderResponse out
ProviderFn = Callable[[CallParams], Awaitable[ProviderResponse]]


@dataclass(frozen=True)
class CostEntry:
    """Per-million-token pricing for one provider+model."""

    input_cost_per_1m: float = 0.0
    output_cost_per_1m: float = 0.0
    currency: str = "USD"


@dataclass(frozen=True)
class TelemetryRecord:
    """Usage record emitted once per successful call."""

    timestamp: datetime
    user_id: str
    command_name: str | None
    model_used: str
    provider_name: str
    input_tokens: int
    output_tokens: int
    total_tokens: int
    total_cost: float
    currency: str

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data


@dataclass
class ServiceRequest:
    """Parameters of one top-level service call."""

    role: Role | str
    prompt: str | None
    system_prompt: str | None = None
    session: Mapping[str, Any] | None = None
    project_root: Path | str | None = None
    schema: Any = None
    object_name: str | None = None
    command_name: str | None = None
    output_type: str = "cli"
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class ServiceResult:
    """Result of a top-level service call."""

    main_result: Any
    telemetry_data: TelemetryRecord | None = None


@dataclass
class SessionUsage:
    """Aggregated usage for one model across calls."""

    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    total_cost: float = 0.0
    request_count: int = 0

    def add(self, record: TelemetryRecord) -> None:
        self.input_tokens += record.input_tokens
        self.output_tokens += record.output_tokens
        self.total_cost += record.total_cost
        self.request_count += 1
