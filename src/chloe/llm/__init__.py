"""LLM abstraction layer — unified via litellm with streaming."""

from chloe.llm.message import (
    ContentPart,
    Message,
    TextPart,
    TokenUsage,
    ToolCall,
    ToolCallPart,
    ToolResultPart,
)
from chloe.llm.provider import (
    ChatProvider,
    LiteLLMProvider,
    ProviderConfig,
    RetryPolicy,
    create_provider,
)
from chloe.llm.streaming import GenerateResult, generate

__all__ = [
    "Message",
    "ContentPart",
    "TextPart",
    "ToolCallPart",
    "ToolResultPart",
    "ToolCall",
    "TokenUsage",
    "ChatProvider",
    "LiteLLMProvider",
    "ProviderConfig",
    "RetryPolicy",
    "create_provider",
    "generate",
    "GenerateResult",
]
