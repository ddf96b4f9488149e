"""ConversationSession — the multi-turn exchange with the model.

Requests and responses are tagged unions so the loop branches on ``kind``
instead of sniffing the shape of a provider response.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Callable, Literal, Protocol, runtime_checkable

from chloe.llm.message import Message, ToolCall
from chloe.llm.provider import ChatProvider
from chloe.llm.streaming import generate
from chloe.tool.base import ToolResult
from chloe.tool.serialize import serialize_output

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolResultEntry:
    """A tool call paired with the result it produced."""

    call: ToolCall
    result: ToolResult


@dataclass(frozen=True)
class PromptRequest:
    text: str
    kind: Literal["prompt"] = "prompt"


@dataclass(frozen=True)
class ToolResultsRequest:
    results: tuple[ToolResultEntry, ...]
    kind: Literal["tool_results"] = "tool_results"


PendingRequest = PromptRequest | ToolResultsRequest


@dataclass(frozen=True)
class FinalText:
    text: str
    kind: Literal["final_text"] = "final_text"


@dataclass(frozen=True)
class ToolCalls:
    calls: Sequence[ToolCall]
    text: str = ""
    kind: Literal["tool_calls"] = "tool_calls"


ModelResponse = FinalText | ToolCalls


def classify_response(text: str | None, raw_calls: Any) -> ModelResponse:
    """Turn a raw model reply into a ``ModelResponse``.

    Only a non-empty list or tuple counts as tool calls. Anything else,
    including a malformed payload, is a final answer.
    """
    if isinstance(raw_calls, (list, tuple)) and raw_calls:
        return ToolCalls(calls=tuple(raw_calls), text=text or "")
    if raw_calls is not None and not isinstance(raw_calls, (list, tuple)):
        logger.warning(
            "Ignoring malformed tool call payload of type %s",
            type(raw_calls).__name__,
        )
    return FinalText(text=text or "")


@runtime_checkable
class ConversationSession(Protocol):
    """What the agent loop needs from a model conversation."""

    def set_tools(self, specs: Sequence[dict[str, Any]]) -> None:
        """Attach or replace the tool schemas sent with every request."""
        ...

    async def send(self, request: PendingRequest) -> ModelResponse: ...


class LLMConversation:
    """ConversationSession backed by a ``ChatProvider``.

    Keeps the model-facing history. A failed ``send`` leaves the history
    as it was before the call.
    """

    def __init__(
        self,
        provider: ChatProvider,
        system_prompt: str = "",
        tools: Sequence[dict[str, Any]] | None = None,
        on_text: Callable[[str], None] | None = None,
    ) -> None:
        self._provider = provider
        self._system = system_prompt
        self._tools: list[dict[str, Any]] = list(tools or [])
        self._on_text = on_text
        self._history: list[Message] = []

    @property
    def provider(self) -> ChatProvider:
        return self._provider

    @property
    def history(self) -> list[Message]:
        return list(self._history)

    @property
    def tools(self) -> list[dict[str, Any]]:
        return list(self._tools)

    def set_tools(self, specs: Sequence[dict[str, Any]]) -> None:
        self._tools = list(specs)

    def reset(self) -> None:
        self._history.clear()

    async def send(self, request: PendingRequest) -> ModelResponse:
        if request.kind == "prompt":
            self._drop_unanswered_calls()
        mark = len(self._history)
        if request.kind == "prompt":
            self._history.append(Message.user(request.text))
        else:
            for entry in request.results:
                self._history.append(
                    Message.tool_result(
                        entry.call.id,
                        entry.call.name,
                        serialize_output(entry.result.output),
                    )
                )

        try:
            result = await generate(
                self._provider,
                self._system,
                self._history,
                self._tools or None,
                on_text=self._on_text,
            )
        except BaseException:
            del self._history[mark:]
            raise

        self._history.append(result.message)
        return classify_response(result.message.text, result.tool_calls)

    def _drop_unanswered_calls(self) -> None:
        """Drop a trailing assistant message whose tool calls got no results.

        This happens when a turn fails between rounds; providers reject a
        history where tool calls are not followed by their results.
        """
        if not self._history:
            return
        last = self._history[-1]
        if last.requests_tools:
            logger.debug("Dropping %d unanswered tool calls", len(last.tool_call_parts))
            self._history.pop()
