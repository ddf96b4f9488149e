"""Message types exchanged with the model."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Literal

logger = logging.getLogger(__name__)

Role = Literal["system", "user", "assistant", "tool"]


@dataclass
class TextPart:
    type: Literal["text"] = "text"
    text: str = ""


@dataclass
class ToolCallPart:
    """One tool call as the model streamed it; ``arguments`` is raw JSON."""

    type: Literal["tool_call"] = "tool_call"
    id: str = ""
    name: str = ""
    arguments: str = ""


@dataclass
class ToolResultPart:
    """The serialized result answering the call with ``tool_call_id``."""

    type: Literal["tool_result"] = "tool_result"
    tool_call_id: str = ""
    name: str = ""
    content: str = ""


ContentPart = TextPart | ToolCallPart | ToolResultPart


def parse_arguments(part: ToolCallPart) -> dict[str, Any]:
    """Decode a call's JSON arguments.

    Models occasionally emit truncated or non-object arguments; those
    decode to ``{}`` so the tool's own validation reports the problem.
    """
    if not part.arguments:
        return {}
    try:
        value = json.loads(part.arguments)
    except json.JSONDecodeError:
        logger.warning(
            "Unparsable arguments for tool %s: %s", part.name, part.arguments[:200]
        )
        return {}
    if not isinstance(value, dict):
        logger.warning("Arguments for tool %s are not an object", part.name)
        return {}
    return value


@dataclass
class ToolCall:
    id: str
    name: str
    arguments: dict[str, Any]

    @classmethod
    def from_part(cls, part: ToolCallPart) -> ToolCall:
        return cls(id=part.id, name=part.name, arguments=parse_arguments(part))


@dataclass
class TokenUsage:
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0


@dataclass
class Message:
    """A model-facing conversation message made of typed parts."""

    role: Role
    parts: list[ContentPart] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "".join(p.text for p in self.parts if isinstance(p, TextPart))

    @property
    def tool_call_parts(self) -> list[ToolCallPart]:
        return [p for p in self.parts if isinstance(p, ToolCallPart)]

    @property
    def tool_calls(self) -> list[ToolCall]:
        """Decoded tool calls, in the order the model emitted them."""
        return [ToolCall.from_part(p) for p in self.tool_call_parts]

    @property
    def requests_tools(self) -> bool:
        return self.role == "assistant" and bool(self.tool_call_parts)

    @classmethod
    def system(cls, text: str) -> Message:
        return cls(role="system", parts=[TextPart(text=text)])

    @classmethod
    def user(cls, text: str) -> Message:
        return cls(role="user", parts=[TextPart(text=text)])

    @classmethod
    def assistant(
        cls, text: str = "", tool_calls: list[ToolCallPart] | None = None
    ) -> Message:
        parts: list[ContentPart] = [TextPart(text=text)] if text else []
        parts.extend(tool_calls or [])
        return cls(role="assistant", parts=parts)

    @classmethod
    def tool_result(cls, tool_call_id: str, name: str, content: str) -> Message:
        part = ToolResultPart(tool_call_id=tool_call_id, name=name, content=content)
        return cls(role="tool", parts=[part])

    def to_openai_dict(self) -> dict[str, Any]:
        """Render in the OpenAI chat format litellm accepts for every provider."""
        if self.role == "tool":
            return self._tool_dict()
        if self.role == "assistant":
            return self._assistant_dict()
        return {"role": self.role, "content": self.text}

    def _tool_dict(self) -> dict[str, Any]:
        result = next((p for p in self.parts if isinstance(p, ToolResultPart)), None)
        if result is None:
            return {"role": "tool", "content": ""}
        return {
            "role": "tool",
            "tool_call_id": result.tool_call_id,
            "name": result.name,
            "content": result.content,
        }

    def _assistant_dict(self) -> dict[str, Any]:
        # OpenAI wants null content, not "", on a pure tool-call turn.
        d: dict[str, Any] = {"role": "assistant", "content": self.text or None}
        calls = self.tool_call_parts
        if calls:
            d["tool_calls"] = [
                {
                    "id": c.id,
                    "type": "function",
                    "function": {"name": c.name, "arguments": c.arguments},
                }
                for c in calls
            ]
        return d
