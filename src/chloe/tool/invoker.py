"""ToolInvoker contract and an adapter for application-supplied handlers."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Mapping, Sequence
from typing import Any, Callable, Protocol, runtime_checkable

from chloe.tool.base import ToolResult

logger = logging.getLogger(__name__)

ToolHandler = Callable[[str, dict[str, Any]], Awaitable[Any] | Any]


@runtime_checkable
class ToolInvoker(Protocol):
    """Performs a named tool call against application state.

    Either returns a ``ToolResult`` or raises.
    """

    async def invoke(self, name: str, arguments: dict[str, Any]) -> ToolResult: ...


class CallbackInvoker:
    """Adapt an application callback into a ``ToolInvoker``.

    The handler receives ``(name, arguments)`` and may be sync or async. It
    may return ``{"output": value}``, a ``ToolResult``, or a bare value,
    which is wrapped as the output.
    """

    def __init__(
        self,
        handler: ToolHandler,
        specs: Sequence[Mapping[str, Any]] = (),
    ) -> None:
        self._handler = handler
        self._specs = [dict(s) for s in specs]

    def get_specs(self) -> list[dict[str, Any]]:
        return list(self._specs)

    def names(self) -> list[str]:
        return [s["function"]["name"] for s in self._specs]

    async def invoke(self, name: str, arguments: dict[str, Any]) -> ToolResult:
        logger.debug("Invoking application tool %s", name)
        result = self._handler(name, arguments)
        if inspect.isawaitable(result):
            result = await result
        return as_tool_result(result)


def as_tool_result(value: Any) -> ToolResult:
    """Normalize a handler's return value into a ``ToolResult``."""
    if isinstance(value, ToolResult):
        return value
    if isinstance(value, Mapping) and set(value) == {"output"}:
        return ToolResult(output=value["output"])
    return ToolResult(output=value)
