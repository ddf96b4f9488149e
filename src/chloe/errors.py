"""Exception hierarchy for chloe."""

from __future__ import annotations


class ChloeError(Exception):
    """Base class for all chloe errors."""


class ConfigError(ChloeError):
    """Configuration could not be loaded or validated."""


class ToolInvocationError(ChloeError):
    """A tool call could not be carried out."""

    def __init__(self, tool_name: str, message: str) -> None:
        self.tool_name = tool_name
        super().__init__(f"{tool_name}: {message}")


class UnknownToolError(ToolInvocationError):
    """The model asked for a tool that is not registered."""

    def __init__(self, tool_name: str, available: list[str]) -> None:
        self.available = available
        super().__init__(
            tool_name,
            f"unknown tool. Available tools: {', '.join(available) or '(none)'}",
        )


class InvalidToolArguments(ToolInvocationError):
    """Tool arguments failed parameter validation."""
