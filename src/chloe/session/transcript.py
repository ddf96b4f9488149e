"""Transcript — the append-only record of what the user sees."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Literal

from chloe.session.wire import Wire

Role = Literal["user", "assistant"]


@dataclass(frozen=True)
class ChatMessage:
    """One displayed message. Immutable once appended."""

    role: Role
    content: str


class Transcript:
    """Ordered, append-only list of chat messages.

    Order is causal order, which is also display order. When a wire is
    attached every append is broadcast as a ``MESSAGE`` event.
    """

    def __init__(self, wire: Wire | None = None) -> None:
        self._messages: list[ChatMessage] = []
        self._wire = wire

    def append(self, message: ChatMessage) -> None:
        self._messages.append(message)
        if self._wire is not None:
            self._wire.send_message(
                len(self._messages) - 1, message.role, message.content
            )

    def add_user(self, text: str) -> ChatMessage:
        message = ChatMessage(role="user", content=text)
        self.append(message)
        return message

    def add_assistant(self, text: str) -> ChatMessage:
        message = ChatMessage(role="assistant", content=text)
        self.append(message)
        return message

    def snapshot(self) -> tuple[ChatMessage, ...]:
        return tuple(self._messages)

    @property
    def last(self) -> ChatMessage | None:
        return self._messages[-1] if self._messages else None

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(tuple(self._messages))

    def __getitem__(self, index: int) -> ChatMessage:
        return self._messages[index]
