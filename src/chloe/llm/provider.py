"""LLM provider abstraction — unified via litellm.

litellm handles all provider-specific details (Gemini, Anthropic, OpenAI,
...) and normalizes streaming to OpenAI-format chunks. Those chunks are
converted to a small dict format consumed by ``streaming.generate``:

    {
        "finish_reason": str | None,
        "delta": {
            "content": str | None,
            "tool_calls": [...] | None,   # OpenAI-style tool call deltas
        },
        "usage": {
            "prompt_tokens": int,
            "completion_tokens": int,
            "total_tokens": int,
        } | None,
    }
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    stop_never,
    wait_fixed,
)

if TYPE_CHECKING:
    from litellm import CustomStreamWrapper, ModelResponse, ModelResponseStream

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (ConnectionError, TimeoutError, OSError)


@dataclass
class RetryPolicy:
    """How transient transport errors are retried.

    ``max_retries`` of 0 retries forever.
    """

    api_call_delay: float = 2.0
    max_retries: int = 3


@dataclass
class ProviderConfig:
    """Configuration for an LLM provider."""

    model: str
    temperature: float | None = None
    max_tokens: int | None = None
    retry: RetryPolicy = field(default_factory=RetryPolicy)


@runtime_checkable
class ChatProvider(Protocol):
    """Protocol for LLM providers."""

    @property
    def config(self) -> ProviderConfig: ...

    def stream(
        self,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> AsyncIterator[dict[str, Any]]:
        """Stream a chat completion. Yields normalized chunk dicts."""
        ...


@dataclass
class LiteLLMProvider:
    """LLM provider backed by litellm.

    The provider is picked from the model prefix ("gemini/...",
    "anthropic/...", "openai/...") and API keys come from the environment.
    """

    _config: ProviderConfig

    @property
    def config(self) -> ProviderConfig:
        return self._config

    async def stream(
        self,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> AsyncIterator[dict[str, Any]]:
        kwargs = build_request(self._config, system, messages, tools)
        response = await _acompletion_with_retry(self._config.retry, **kwargs)

        async for chunk in response:  # type: ignore[union-attr]
            yield _chunk_to_dict(chunk)


def build_request(
    config: ProviderConfig,
    system: str,
    messages: list[dict[str, Any]],
    tools: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Keyword arguments for one streamed ``litellm.acompletion`` call.

    Unset sampling options and an empty tool list are left out so the
    provider's own defaults apply.
    """
    head = [{"role": "system", "content": system}] if system else []
    kwargs: dict[str, Any] = {
        "model": config.model,
        "messages": head + list(messages),
        "stream": True,
        "stream_options": {"include_usage": True},
    }
    optional = {
        "tools": tools or None,
        "temperature": config.temperature,
        "max_tokens": config.max_tokens,
    }
    kwargs.update({k: v for k, v in optional.items() if v is not None})
    return kwargs


def transient_errors() -> tuple[type[BaseException], ...]:
    """Errors worth retrying: builtin network errors and litellm's wrappers."""
    import litellm

    return TRANSIENT_ERRORS + (
        litellm.APIConnectionError,
        litellm.Timeout,
        litellm.RateLimitError,
        litellm.ServiceUnavailableError,
        litellm.InternalServerError,
    )


def _retrying(policy: RetryPolicy) -> AsyncRetrying:
    if policy.max_retries == 0:
        stop = stop_never
    else:
        stop = stop_after_attempt(policy.max_retries + 1)
    return AsyncRetrying(
        retry=retry_if_exception_type(transient_errors()),
        stop=stop,
        wait=wait_fixed(policy.api_call_delay),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


async def _acompletion_with_retry(
    policy: RetryPolicy, **kwargs: Any
) -> CustomStreamWrapper | ModelResponse:
    """Call litellm.acompletion, retrying transient errors per ``policy``."""
    import litellm

    async for attempt in _retrying(policy):
        with attempt:
            return await litellm.acompletion(**kwargs)
    raise AssertionError("unreachable")  # pragma: no cover


def _tool_call_delta(tc: Any) -> dict[str, Any]:
    fn = tc.function
    return {
        "index": tc.index,
        "id": tc.id,
        "function": {
            "name": getattr(fn, "name", None),
            "arguments": getattr(fn, "arguments", None),
        },
    }


def _usage_dict(usage: Any) -> dict[str, int]:
    keys = ("prompt_tokens", "completion_tokens", "total_tokens")
    return {k: getattr(usage, k, 0) or 0 for k in keys}


def _chunk_to_dict(chunk: ModelResponseStream) -> dict[str, Any]:
    """Normalize a litellm stream chunk (see the module docstring)."""
    delta: dict[str, Any] = {}
    finish_reason = None

    choices = getattr(chunk, "choices", None)
    if choices:
        choice = choices[0]
        finish_reason = choice.finish_reason
        if choice.delta.content is not None:
            delta["content"] = choice.delta.content
        if choice.delta.tool_calls:
            delta["tool_calls"] = [_tool_call_delta(tc) for tc in choice.delta.tool_calls]

    result: dict[str, Any] = {"finish_reason": finish_reason, "delta": delta}
    usage = getattr(chunk, "usage", None)
    if usage:
        result["usage"] = _usage_dict(usage)
    return result


def create_provider(
    model: str,
    temperature: float | None = None,
    max_tokens: int | None = None,
    api_call_delay: float = 2.0,
    max_retries: int = 3,
) -> ChatProvider:
    """Create a LiteLLM provider.

    Args:
        model: Model name with provider prefix (e.g. "gemini/gemini-2.5-flash").
        temperature: Sampling temperature.
        max_tokens: Max output tokens.
        api_call_delay: Seconds to wait before retrying a failed call.
        max_retries: Retries on transient errors (0 for unlimited).
    """
    config = ProviderConfig(
        model=model,
        temperature=temperature,
        max_tokens=max_tokens,
        retry=RetryPolicy(api_call_delay=api_call_delay, max_retries=max_retries),
    )
    return LiteLLMProvider(_config=config)
