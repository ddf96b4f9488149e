"""Session — model conversation, transcript and the UI event wire."""

from chloe.session.conversation import (
    ConversationSession,
    FinalText,
    LLMConversation,
    ModelResponse,
    PendingRequest,
    PromptRequest,
    ToolCalls,
    ToolResultEntry,
    ToolResultsRequest,
    classify_response,
)
from chloe.session.transcript import ChatMessage, Transcript
from chloe.session.wire import EventType, Wire, WireEvent

__all__ = [
    "ConversationSession",
    "FinalText",
    "LLMConversation",
    "ModelResponse",
    "PendingRequest",
    "PromptRequest",
    "ToolCalls",
    "ToolResultEntry",
    "ToolResultsRequest",
    "classify_response",
    "ChatMessage",
    "Transcript",
    "EventType",
    "Wire",
    "WireEvent",
]
