"""The tool-calling conversation loop."""

from __future__ import annotations

import enum
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from chloe.llm.message import ToolCall
from chloe.selection import Match, augment
from chloe.session.conversation import (
    ConversationSession,
    ModelResponse,
    PendingRequest,
    PromptRequest,
    ToolResultEntry,
    ToolResultsRequest,
)
from chloe.session.transcript import ChatMessage, Transcript
from chloe.session.wire import EventType, Wire
from chloe.tool.catalog import TOOL_DECLARATIONS
from chloe.tool.invoker import ToolInvoker, as_tool_result

logger = logging.getLogger(__name__)

APOLOGY = "Sorry, I ran into an issue. Please try again."


def tool_announcement(name: str) -> str:
    return f"Running command: `{name}`..."


class AgentState(enum.Enum):
    IDLE = "idle"
    AWAITING_MODEL = "awaiting_model"
    AWAITING_TOOLS = "awaiting_tools"


class TurnOutcome(enum.Enum):
    """How a call to ``AgentLoop.run`` ended."""

    COMPLETE = "complete"  # Final answer appended
    ERROR = "error"  # Apology appended
    REJECTED = "rejected"  # Nothing happened


@dataclass(frozen=True)
class AssistantStatus:
    """Read-only view for the presentation layer."""

    messages: tuple[ChatMessage, ...]
    busy: bool
    state: AgentState
    last_tool_used: str | None


class AgentLoop:
    """Drives one user turn at a time to a final answer.

    A turn alternates between awaiting the model and awaiting tools until
    the model answers in plain text. Tool calls from one response are
    invoked one at a time in the order the model emitted them, and their
    results go back to the model as a single request.

    Any exception from the session or the invoker ends the turn with one
    apology message. Announcements for the failed round are never shown.
    """

    def __init__(
        self,
        session: ConversationSession | None,
        invoker: ToolInvoker,
        tools: Sequence[dict[str, Any]] | None = None,
        transcript: Transcript | None = None,
        wire: Wire | None = None,
    ) -> None:
        self._session = session
        self._invoker = invoker
        self._tools = list(tools) if tools is not None else _specs_of(invoker)
        self._wire = wire
        self._transcript = transcript if transcript is not None else Transcript(wire)
        self._state = AgentState.IDLE
        self._last_tool_used: str | None = None

    @property
    def transcript(self) -> Transcript:
        return self._transcript

    @property
    def state(self) -> AgentState:
        return self._state

    @property
    def busy(self) -> bool:
        return self._state is not AgentState.IDLE

    @property
    def last_tool_used(self) -> str | None:
        return self._last_tool_used

    @property
    def tools(self) -> list[dict[str, Any]]:
        return list(self._tools)

    def attach_session(self, session: ConversationSession | None) -> None:
        self._session = session

    def status(self) -> AssistantStatus:
        return AssistantStatus(
            messages=self._transcript.snapshot(),
            busy=self.busy,
            state=self._state,
            last_tool_used=self._last_tool_used,
        )

    async def run(
        self, prompt: str, selection: Sequence[Match] | None = None
    ) -> TurnOutcome:
        """Run one turn for ``prompt``.

        Empty prompts, a turn already in progress, or a missing session make
        this a no-op that returns ``TurnOutcome.REJECTED``.
        """
        if not prompt.strip():
            logger.debug("Ignoring empty prompt")
            return TurnOutcome.REJECTED
        if self.busy:
            logger.debug("Ignoring prompt while a turn is in progress")
            return TurnOutcome.REJECTED
        session = self._session
        if session is None:
            logger.debug("Ignoring prompt: no conversation session")
            return TurnOutcome.REJECTED

        self._transcript.add_user(prompt)
        # Busy from here on; nothing above awaits.
        self._state = AgentState.AWAITING_MODEL
        self._emit(EventType.TURN_BEGIN, prompt=prompt)
        self._emit_status()
        logger.info("Turn started (%d chars)", len(prompt))

        outcome = TurnOutcome.ERROR
        try:
            await self._drive(session, PromptRequest(augment(prompt, selection)))
            outcome = TurnOutcome.COMPLETE
        except Exception as e:
            logger.error("Turn failed: %s", e, exc_info=True)
            self._transcript.add_assistant(APOLOGY)
            if self._wire is not None:
                self._wire.send_error(str(e))
        finally:
            self._state = AgentState.IDLE
            self._emit(EventType.TURN_END, outcome=outcome.value)
            self._emit_status()

        logger.info("Turn finished: %s", outcome.value)
        return outcome

    submit_prompt = run

    async def _drive(
        self, session: ConversationSession, request: PendingRequest
    ) -> None:
        round_no = 0
        while True:
            round_no += 1
            self._state = AgentState.AWAITING_MODEL
            session.set_tools(self._tools)
            response = await session.send(request)

            calls = _tool_calls_of(response)
            if calls is None:
                self._transcript.add_assistant(getattr(response, "text", "") or "")
                return

            self._state = AgentState.AWAITING_TOOLS
            entries: list[ToolResultEntry] = []
            for call in calls:
                logger.info("Round %d: running tool %s", round_no, call.name)
                self._last_tool_used = call.name
                if self._wire is not None:
                    self._wire.send_tool_call(call.name, call.arguments)
                self._emit_status()
                result = await self._invoker.invoke(call.name, call.arguments)
                entries.append(ToolResultEntry(call=call, result=as_tool_result(result)))

            for entry in entries:
                self._transcript.add_assistant(tool_announcement(entry.call.name))
            request = ToolResultsRequest(results=tuple(entries))

    def _emit(self, type_: EventType, **data: Any) -> None:
        if self._wire is not None:
            self._wire.emit(type_, **data)

    def _emit_status(self) -> None:
        if self._wire is not None:
            self._wire.send_status(self.busy, self._last_tool_used)


def _tool_calls_of(response: ModelResponse) -> list[ToolCall] | None:
    """The calls to run, or None when the response is a final answer."""
    if getattr(response, "kind", None) != "tool_calls":
        return None
    calls = getattr(response, "calls", None)
    if not isinstance(calls, (list, tuple)) or not calls:
        logger.warning("Tool call payload is not a sequence; treating as final answer")
        return None
    return list(calls)


def _specs_of(invoker: ToolInvoker) -> list[dict[str, Any]]:
    get_specs = getattr(invoker, "get_specs", None)
    if callable(get_specs):
        return list(get_specs())
    return [dict(d) for d in TOOL_DECLARATIONS]
