"""LiteLLM provider implementation.

Supports 100+ LLM providers through litellm:
- Anthropic: "anthropic/claude-sonnet-4-5"
- OpenAI: "gpt-4.1", "gpt-4o-mini"
- Local: "ollama/llama3", "ollama/qwen2.5-coder"

See https://docs.litellm.ai/docs/providers for full list.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path
from typing import TYPE_CHECKING, Any

import litellm

from stepwise.config.secrets import fetch_secret
from stepwise.core.llm.provider import (
    Message,
    Role,
    StreamChunk,
    ToolCallDelta,
    Usage,
)
from stepwise.core.llm.providers import find_provider
from stepwise.errors import ConfigError
from stepwise.logging import get_logger

if TYPE_CHECKING:
    from stepwise.config.schema import LLMConfig

log = get_logger("llm")


def to_openai_message(message: Message) -> dict[str, Any]:
    """Convert a Message to the OpenAI chat format litellm expects."""
    data: dict[str, Any] = {"role": message.role.value, "content": message.content}
    if message.role is Role.ASSISTANT and message.tool_calls:
        data["tool_calls"] = [
            {
                "id": call.id,
                "type": "function",
                "function": {"name": call.tool_name, "arguments": call.raw_arguments or "{}"},
            }
            for call in message.tool_calls
        ]
    if message.role is Role.TOOL:
        data["tool_call_id"] = message.tool_call_id
        data["content"] = message.content or ""
    return data


def _usage(raw: Any) -> Usage | None:
    if not raw:
        return None
    return Usage(
        prompt_tokens=getattr(raw, "prompt_tokens", 0) or 0,
        completion_tokens=getattr(raw, "completion_tokens", 0) or 0,
        total_tokens=getattr(raw, "total_tokens", 0) or 0,
    )


def _tool_call_deltas(raw: Any) -> list[ToolCallDelta]:
    deltas: list[ToolCallDelta] = []
    for tc in raw or []:
        function = getattr(tc, "function", None)
        deltas.append(
            ToolCallDelta(
                index=getattr(tc, "index", None),
                id=getattr(tc, "id", None),
                name=getattr(function, "name", None) if function else None,
                arguments=getattr(function, "arguments", None) if function else None,
            )
        )
    return deltas


class LiteLLMProvider:
    """LLM provider using litellm for multi-provider support.

    Usage:
        provider = LiteLLMProvider("anthropic/claude-sonnet-4-5")
        provider = LiteLLMProvider("ollama/llama3", api_base="http://localhost:11434")
    """

    def __init__(
        self,
        model: str,
        *,
        api_key: str | None = None,
        api_base: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> None:
        self._model = model
        self._api_key = api_key
        self._api_base = api_base
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._kwargs = kwargs

    @property
    def model(self) -> str:
        return self._model

    def _build_kwargs(
        self,
        system_prompt: str,
        history: list[Message],
        tool_schemas: list[dict[str, Any]] | None,
    ) -> dict[str, Any]:
        messages = [{"role": "system", "content": system_prompt}]
        messages.extend(to_openai_message(m) for m in history)

        kwargs: dict[str, Any] = {
            "model": self._model,
            "messages": messages,
            "stream": True,
            "stream_options": {"include_usage": True},
            **self._kwargs,
        }
        if tool_schemas:
            kwargs["tools"] = tool_schemas
        if self._temperature is not None:
            kwargs["temperature"] = self._temperature
        if self._max_tokens:
            kwargs["max_tokens"] = self._max_tokens
        if self._api_key:
            kwargs["api_key"] = self._api_key
        if self._api_base:
            kwargs["api_base"] = self._api_base
        return kwargs

    async def generate_stream(
        self,
        system_prompt: str,
        history: list[Message],
        tool_schemas: list[dict[str, Any]] | None = None,
    ) -> AsyncIterator[StreamChunk]:
        kwargs = self._build_kwargs(system_prompt, history, tool_schemas)
        log.debug("Streaming %s with %d messages", self._model, len(history))

        response = await litellm.acompletion(**kwargs)

        async for chunk in response:
            usage = _usage(getattr(chunk, "usage", None))
            if not chunk.choices:
                if usage:
                    yield StreamChunk(usage=usage)
                continue

            choice = chunk.choices[0]
            delta = choice.delta
            yield StreamChunk(
                text=(getattr(delta, "content", None) or "") if delta else "",
                reasoning=(getattr(delta, "reasoning_content", None) or "") if delta else "",
                tool_call_deltas=_tool_call_deltas(getattr(delta, "tool_calls", None))
                if delta
                else [],
                usage=usage,
                finish_reason=choice.finish_reason,
            )


def _resolve_api_key(config: LLMConfig, model: str, secrets_path: Path | None) -> str | None:
    """Find the API key for ``model`` or raise ConfigError when one is required."""
    if config.api_key:
        key = fetch_secret(config.api_key, secrets_path=secrets_path)
        if not key:
            raise ConfigError(f"secret {config.api_key} is not set", "llm.api_key")
        return key

    provider = find_provider(model)
    if provider is not None:
        if provider.env_var is None:
            return None
        key = fetch_secret(provider.env_var, secrets_path=secrets_path)
        if not key:
            raise ConfigError(f"{provider.env_var} is not set for model {model}", "llm")
        return key

    # Unknown to the catalog: ask litellm which keys the model needs
    status = litellm.validate_environment(model=model)
    missing = [
        name for name in status.get("missing_keys", [])
        if not fetch_secret(name, secrets_path=secrets_path)
    ]
    if missing:
        raise ConfigError(f"missing credentials for {model}: {', '.join(missing)}", "llm")
    keys = status.get("missing_keys", [])
    if len(keys) == 1:
        return fetch_secret(keys[0], secrets_path=secrets_path)
    return None


def create_provider(config: LLMConfig, secrets_path: Path | None = None) -> LiteLLMProvider:
    """Create a provider from config, validating model and credentials up front.

    Raises:
        ConfigError: If no model is configured or its credentials are missing.
    """
    if not config.model:
        raise ConfigError("no model configured (set llm.model or STEPWISE_MODEL)", "llm")

    api_key = _resolve_api_key(config, config.model, secrets_path)
    return LiteLLMProvider(
        config.model,
        api_key=api_key,
        api_base=config.api_base,
        temperature=config.temperature,
        max_tokens=config.max_tokens,
    )
