"""Built-in general-purpose tools."""

from chloe.tool.builtin.think import ThinkTool

__all__ = ["ThinkTool"]
