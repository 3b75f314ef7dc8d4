"""
Provider adapters for Taskloom.

Every provider exposes the same three functions (generate text, stream text,
generate object) taking ``CallParams`` and returning ``ProviderResponse``.
The concrete adapters are thin wrappers around LiteLLM.
"""

import json
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

import litellm
from litellm import acompletion
from pydantic import BaseModel

from taskloom.providers.models import (
    CallParams,
    ProviderFn,
    ProviderResponse,
    ServiceType,
    TokenUsage,
)

logger = logging.getLogger(__name__)

# Drop parameters a provider does not accept instead of failing the call
litellm.drop_params = True


@dataclass(frozen=True)
class ProviderFunctions:
    """The function set of one provider. Missing operations are None."""

    generate_text: ProviderFn | None = None
    stream_text: ProviderFn | None = None
    generate_object: ProviderFn | None = None

    def get(self, service_type: ServiceType) -> ProviderFn | None:
        return getattr(self, service_type.value, None)


# Lowercase provider name -> function set
ProviderRegistry = dict[str, ProviderFunctions]


def _extract_usage(response: Any) -> TokenUsage | None:
    usage = getattr(response, "usage", None)
    if usage is None:
        return None
    return TokenUsage(
        input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
        output_tokens=getattr(usage, "completion_tokens", 0) or 0,
    )


def schema_to_json(schema: Any) -> dict[str, Any]:
    """JSON schema for a pydantic model class or a JSON-schema dict."""
    if isinstance(schema, type) and issubclass(schema, BaseModel):
        return schema.model_json_schema()
    if isinstance(schema, dict):
        return schema
    raise TypeError(f"Unsupported schema type: {type(schema).__name__}")


class LiteLLMProvider:
    """
    Provider adapter backed by ``litellm.acompletion``.

    Args:
        name: Provider name as used in configuration (e.g. 'google').
        litellm_prefix: LiteLLM routing prefix (e.g. 'gemini').
    """

    def __init__(self, name: str, litellm_prefix: str | None = None):
        self.name = name
        self.litellm_prefix = litellm_prefix or name

    def _request_kwargs(self, params: CallParams) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": f"{self.litellm_prefix}/{params.model_id}",
            "messages": [m.to_dict() for m in params.messages],
        }
        if params.max_tokens:
            kwargs["max_tokens"] = params.max_tokens
        if params.temperature is not None:
            kwargs["temperature"] = params.temperature
        if params.api_key:
            kwargs["api_key"] = params.api_key
        if params.base_url:
            kwargs["api_base"] = params.base_url
        kwargs.update(params.extra)
        return kwargs

    async def generate_text(self, params: CallParams) -> ProviderResponse:
        """Generate a complete text reply."""
        response = await acompletion(**self._request_kwargs(params))
        message = response.choices[0].message
        return ProviderResponse(
            text=message.content or "",
            usage=_extract_usage(response),
            raw=response,
        )

    async def stream_text(self, params: CallParams) -> ProviderResponse:
        """
        Start a streaming reply.

        The returned response carries an async iterator of text deltas and no
        usage; consuming the stream is up to the caller.
        """
        kwargs = self._request_kwargs(params)
        kwargs["stream"] = True
        response = await acompletion(**kwargs)
        return ProviderResponse(stream=self._iter_text(response), raw=response)

    async def _iter_text(self, response: Any) -> AsyncIterator[str]:
        async for chunk in response:
            if chunk.choices and chunk.choices[0].delta.content:
                yield chunk.choices[0].delta.content

    async def generate_object(self, params: CallParams) -> ProviderResponse:
        """
        Generate a structured object by forcing a single tool call.

        Raises:
            ValueError: If the model answers without calling the tool.
            pydantic.ValidationError: If the arguments do not match ``schema``.
        """
        object_name = params.object_name or "generated_object"
        kwargs = self._request_kwargs(params)
        kwargs["tools"] = [
            {
                "type": "function",
                "function": {
                    "name": object_name,
                    "description": f"Generate a {object_name} object.",
                    "parameters": schema_to_json(params.schema),
                },
            }
        ]
        kwargs["tool_choice"] = {"type": "function", "function": {"name": object_name}}

        response = await acompletion(**kwargs)
        message = response.choices[0].message
        tool_calls = getattr(message, "tool_calls", None)
        if not tool_calls:
            raise ValueError(
                f"Model '{params.model_id}' via provider '{self.name}' "
                "does not support tool_use: no tool call in response."
            )

        arguments = tool_calls[0].function.arguments
        data = json.loads(arguments) if isinstance(arguments, str) else arguments

        schema = params.schema
        if isinstance(schema, type) and issubclass(schema, BaseModel):
            data = schema.model_validate(data)

        return ProviderResponse(object=data, usage=_extract_usage(response), raw=response)

    def functions(self) -> ProviderFunctions:
        return ProviderFunctions(
            generate_text=self.generate_text,
            stream_text=self.stream_text,
            generate_object=self.generate_object,
        )


# Provider name -> LiteLLM routing prefix
LITELLM_PREFIXES: dict[str, str] = {
    "anthropic": "anthropic",
    "openai": "openai",
    "google": "gemini",
    "perplexity": "perplexity",
    "xai": "xai",
    "openrouter": "openrouter",
    "ollama": "ollama",
    "mistral": "mistral",
    "azure": "azure",
}


def build_default_registry() -> ProviderRegistry:
    """Build the registry of all built-in providers."""
    return {
        name: LiteLLMProvider(name, prefix).functions()
        for name, prefix in LITELLM_PREFIXES.items()
    }
