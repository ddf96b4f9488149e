"""Agent — the conversation loop and the assistant persona."""

from chloe.agent.loop import (
    APOLOGY,
    AgentLoop,
    AgentState,
    AssistantStatus,
    TurnOutcome,
    tool_announcement,
)
from chloe.agent.persona import DEFAULT_PERSONA, Persona

__all__ = [
    "APOLOGY",
    "AgentLoop",
    "AgentState",
    "AssistantStatus",
    "TurnOutcome",
    "tool_announcement",
    "DEFAULT_PERSONA",
    "Persona",
]
