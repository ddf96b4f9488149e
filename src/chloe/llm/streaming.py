"""Streaming generation primitive."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from chloe.llm.message import (
    ContentPart,
    Message,
    TextPart,
    TokenUsage,
    ToolCall,
    ToolCallPart,
)
from chloe.llm.provider import ChatProvider

logger = logging.getLogger(__name__)

# Tool specs in OpenAI format
ToolSpec = dict[str, Any]

OnText = Callable[[str], None] | None


@dataclass
class GenerateResult:
    """Result of a single LLM generation."""

    message: Message
    usage: TokenUsage = field(default_factory=TokenUsage)
    finish_reason: str | None = None

    @property
    def tool_calls(self) -> list[ToolCall]:
        return self.message.tool_calls

    @property
    def has_tool_calls(self) -> bool:
        return len(self.tool_calls) > 0


async def generate(
    provider: ChatProvider,
    system: str,
    messages: list[Message],
    tools: list[ToolSpec] | None = None,
    on_text: OnText = None,
) -> GenerateResult:
    """Stream one LLM response and assemble it into an assistant message.

    One API call, one assistant message. Tool call deltas are accumulated
    per stream index and emitted in index order.
    """
    api_messages = [m.to_openai_dict() for m in messages]

    text_buffer = ""
    tool_call_buffers: dict[int, dict[str, str]] = {}
    usage = TokenUsage()
    finish_reason = None

    async for chunk in provider.stream(system, api_messages, tools):
        if chunk.get("finish_reason"):
            finish_reason = chunk["finish_reason"]

        delta = chunk.get("delta", {})

        content = delta.get("content")
        if content:
            text_buffer += content
            if on_text:
                on_text(content)
                # Let subscribers run between chunks.
                await asyncio.sleep(0)

        for tc_delta in delta.get("tool_calls") or []:
            buf = tool_call_buffers.setdefault(
                tc_delta.get("index", 0), {"id": "", "name": "", "arguments": ""}
            )
            if tc_delta.get("id"):
                buf["id"] = tc_delta["id"]
            func = tc_delta.get("function") or {}
            if func.get("name"):
                buf["name"] = func["name"]
            if func.get("arguments"):
                buf["arguments"] += func["arguments"]

        if chunk.get("usage"):
            u = chunk["usage"]
            usage = TokenUsage(
                input_tokens=u.get("prompt_tokens", 0),
                output_tokens=u.get("completion_tokens", 0),
                total_tokens=u.get("total_tokens", 0),
            )

    parts: list[ContentPart] = []
    if text_buffer:
        parts.append(TextPart(text=text_buffer))
    for idx in sorted(tool_call_buffers):
        buf = tool_call_buffers[idx]
        parts.append(
            ToolCallPart(
                id=buf["id"] or f"call_{idx}",
                name=buf["name"],
                arguments=buf["arguments"],
            )
        )

    logger.debug(
        "Generated %d chars, %d tool calls (finish_reason=%s)",
        len(text_buffer),
        len(tool_call_buffers),
        finish_reason,
    )
    return GenerateResult(
        message=Message(role="assistant", parts=parts),
        usage=usage,
        finish_reason=finish_reason,
    )
