"""Wire protocol — decouples the agent loop from the presentation layer.

The loop and transcript publish; the chat panel (or the CLI) subscribes
and renders. Subscribers never call back into the loop. A ``None`` on a
subscriber queue means the wire has closed.
"""

from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass, field
from typing import Any

EventQueue = asyncio.Queue["WireEvent | None"]


class EventType(enum.Enum):
    TURN_BEGIN = "turn_begin"  # data: prompt
    TURN_END = "turn_end"  # data: outcome
    MESSAGE = "message"  # data: index, role, content
    TOOL_CALL = "tool_call"  # data: name, arguments
    STATUS = "status"  # data: busy, last_tool
    ERROR = "error"  # data: error


@dataclass(frozen=True)
class WireEvent:
    type: EventType
    data: dict[str, Any] = field(default_factory=dict)


class Wire:
    """Broadcast of chat events to any number of subscribers.

    Every subscriber gets every event in send order. Events sent after
    ``close()`` are dropped.
    """

    def __init__(self) -> None:
        self._queues: list[EventQueue] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def subscriber_count(self) -> int:
        return len(self._queues)

    def send(self, event: WireEvent) -> None:
        if self._closed:
            return
        for q in self._queues:
            q.put_nowait(event)

    def emit(self, type_: EventType, **data: Any) -> None:
        self.send(WireEvent(type=type_, data=data))

    def send_message(self, index: int, role: str, content: str) -> None:
        self.emit(EventType.MESSAGE, index=index, role=role, content=content)

    def send_tool_call(self, name: str, arguments: dict[str, Any]) -> None:
        self.emit(EventType.TOOL_CALL, name=name, arguments=arguments)

    def send_status(self, busy: bool, last_tool: str | None = None) -> None:
        self.emit(EventType.STATUS, busy=busy, last_tool=last_tool)

    def send_error(self, error: str) -> None:
        self.emit(EventType.ERROR, error=error)

    def subscribe(self) -> EventQueue:
        q: EventQueue = asyncio.Queue()
        self._queues.append(q)
        return q

    def unsubscribe(self, q: EventQueue) -> None:
        if q in self._queues:
            self._queues.remove(q)

    def close(self) -> None:
        """Mark the wire closed and wake every subscriber with ``None``."""
        if self._closed:
            return
        self._closed = True
        for q in self._queues:
            q.put_nowait(None)
