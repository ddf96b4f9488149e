"""Tool system — base classes, registry, invokers and the schema catalog."""

from chloe.tool.base import BaseTool, ToolResult, function_spec
from chloe.tool.catalog import TOOL_DECLARATIONS, tool_names
from chloe.tool.invoker import CallbackInvoker, ToolInvoker, as_tool_result
from chloe.tool.registry import ToolRegistry
from chloe.tool.serialize import serialize_output, truncate_output

__all__ = [
    "BaseTool",
    "ToolResult",
    "function_spec",
    "TOOL_DECLARATIONS",
    "tool_names",
    "CallbackInvoker",
    "ToolInvoker",
    "as_tool_result",
    "ToolRegistry",
    "serialize_output",
    "truncate_output",
]
