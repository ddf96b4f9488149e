"""Tool registry — register, look up and invoke in-process tools."""

from __future__ import annotations

import logging
from typing import Any

from chloe.errors import UnknownToolError
from chloe.tool.base import BaseTool, ToolResult

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Registry of available tools.

    Implements ``ToolInvoker``: ``invoke`` dispatches by name and raises
    ``UnknownToolError`` for names that were never registered.
    """

    def __init__(self) -> None:
        self._tools: dict[str, BaseTool] = {}

    def register(self, tool: BaseTool) -> None:
        if tool.name in self._tools:
            logger.warning("Tool %s already registered, overwriting", tool.name)
        self._tools[tool.name] = tool

    def register_many(self, tools: list[BaseTool]) -> None:
        for tool in tools:
            self.register(tool)

    def get(self, name: str) -> BaseTool | None:
        return self._tools.get(name)

    def get_specs(self, names: list[str] | None = None) -> list[dict[str, Any]]:
        """Get OpenAI tool specs, optionally filtered by name."""
        tools = list(self._tools.values())
        if names is not None:
            tools = [t for t in tools if t.name in names]
        return [t.to_openai_spec() for t in tools]

    def names(self) -> list[str]:
        return list(self._tools.keys())

    def subset(self, names: list[str]) -> ToolRegistry:
        """Create a new registry with only the specified tools."""
        reg = ToolRegistry()
        for name in names:
            tool = self._tools.get(name)
            if tool:
                reg.register(tool)
            else:
                logger.warning("Tool %s not found in registry", name)
        return reg

    async def invoke(self, name: str, arguments: dict[str, Any]) -> ToolResult:
        tool = self._tools.get(name)
        if tool is None:
            raise UnknownToolError(name, self.names())
        return await tool(arguments)

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools
