"""Tests for chloe.agent.loop (AgentLoop turn handling)."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from chloe.agent.loop import (
    APOLOGY,
    AgentLoop,
    AgentState,
    TurnOutcome,
    tool_announcement,
)
from chloe.llm.message import ToolCall
from chloe.selection import Column, Match
from chloe.session.conversation import (
    FinalText,
    PromptRequest,
    ToolCalls,
    ToolResultsRequest,
)
from chloe.session.wire import EventType, Wire
from chloe.tool.base import ToolResult


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeSession:
    """Replays scripted responses; exceptions in the script are raised."""

    def __init__(self, responses: list[Any]) -> None:
        self.responses = list(responses)
        self.requests: list[Any] = []
        self.tool_sets: list[list[dict[str, Any]]] = []

    def set_tools(self, specs: list[dict[str, Any]]) -> None:
        self.tool_sets.append(list(specs))

    async def send(self, request: Any) -> Any:
        self.requests.append(request)
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


class BlockingSession(FakeSession):
    """Holds every send until ``release`` is set."""

    def __init__(self) -> None:
        super().__init__([])
        self.release = asyncio.Event()

    async def send(self, request: Any) -> Any:
        self.requests.append(request)
        await self.release.wait()
        return FinalText(text="done")


class FakeInvoker:
    def __init__(self, fail_on: set[str] | None = None) -> None:
        self.fail_on = fail_on or set()
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def invoke(self, name: str, arguments: dict[str, Any]) -> ToolResult:
        self.calls.append((name, arguments))
        if name in self.fail_on:
            raise RuntimeError(f"{name} exploded")
        return ToolResult(output={"tool": name, "ok": True})


class BlockingInvoker(FakeInvoker):
    """Holds every invocation until ``release`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.release = asyncio.Event()

    async def invoke(self, name: str, arguments: dict[str, Any]) -> ToolResult:
        self.calls.append((name, arguments))
        await self.release.wait()
        return ToolResult(output={"tool": name, "ok": True})


def _call(name: str, call_id: str = "c1", **arguments: Any) -> ToolCall:
    return ToolCall(id=call_id, name=name, arguments=arguments)


def _make_loop(
    responses: list[Any], invoker: FakeInvoker | None = None, **kwargs: Any
) -> tuple[AgentLoop, FakeSession, FakeInvoker]:
    session = FakeSession(responses)
    invoker = invoker or FakeInvoker()
    return AgentLoop(session, invoker, tools=[], **kwargs), session, invoker


# ---------------------------------------------------------------------------
# Basic turns
# ---------------------------------------------------------------------------


class TestTurns:
    async def test_final_answer_without_tools(self) -> None:
        loop, session, invoker = _make_loop([FinalText(text="All cards look good.")])

        outcome = await loop.run("Review current column cards")

        assert outcome is TurnOutcome.COMPLETE
        messages = loop.transcript.snapshot()
        assert [(m.role, m.content) for m in messages] == [
            ("user", "Review current column cards"),
            ("assistant", "All cards look good."),
        ]
        assert invoker.calls == []
        assert loop.busy is False

    async def test_single_tool_call_then_final_answer(self) -> None:
        args = {"column_names": ["first_name", "fname"]}
        call = ToolCall(id="c1", name="match_columns", arguments=args)
        loop, session, invoker = _make_loop(
            [ToolCalls(calls=[call]), FinalText(text="Matched 2 columns.")]
        )

        outcome = await loop.run("Match unmatched columns")

        assert outcome is TurnOutcome.COMPLETE
        assert [(m.role, m.content) for m in loop.transcript] == [
            ("user", "Match unmatched columns"),
            ("assistant", tool_announcement("match_columns")),
            ("assistant", "Matched 2 columns."),
        ]
        assert invoker.calls == [("match_columns", args)]

        follow_up = session.requests[1]
        assert isinstance(follow_up, ToolResultsRequest)
        assert len(follow_up.results) == 1
        assert follow_up.results[0].call is call
        assert follow_up.results[0].result.output == {"tool": "match_columns", "ok": True}

    async def test_tool_failure_collapses_turn(self) -> None:
        calls = [
            _call("review_matches", "c1"),
            _call("confirm_match", "c2", match_id="m1"),
            _call("generate_sql", "c3"),
        ]
        invoker = FakeInvoker(fail_on={"confirm_match"})
        loop, session, _ = _make_loop([ToolCalls(calls=calls)], invoker)

        outcome = await loop.run("Auto-apply all AI suggestions")

        assert outcome is TurnOutcome.ERROR
        assert [(m.role, m.content) for m in loop.transcript] == [
            ("user", "Auto-apply all AI suggestions"),
            ("assistant", APOLOGY),
        ]
        # Invocation stops at the failing call.
        assert [name for name, _ in invoker.calls] == ["review_matches", "confirm_match"]
        assert len(session.requests) == 1
        assert loop.busy is False

    async def test_non_sequence_tool_calls_are_a_final_answer(self) -> None:
        loop, _, invoker = _make_loop([ToolCalls(calls="oops", text="")])  # type: ignore[arg-type]

        outcome = await loop.run("Fully-Auto: Review, Apply, Match")

        assert outcome is TurnOutcome.COMPLETE
        assert [(m.role, m.content) for m in loop.transcript] == [
            ("user", "Fully-Auto: Review, Apply, Match"),
            ("assistant", ""),
        ]
        assert invoker.calls == []

    async def test_empty_tool_call_list_is_a_final_answer(self) -> None:
        loop, _, invoker = _make_loop([ToolCalls(calls=[], text="Nothing to do.")])

        await loop.run("Match unmatched columns")

        assert loop.transcript.last is not None
        assert loop.transcript.last.content == "Nothing to do."
        assert invoker.calls == []


# ---------------------------------------------------------------------------
# Rejected input
# ---------------------------------------------------------------------------


class TestRejection:
    @pytest.mark.parametrize("prompt", ["", "   ", "\n\t "])
    async def test_blank_prompt_is_a_no_op(self, prompt: str) -> None:
        loop, session, invoker = _make_loop([FinalText(text="unused")])

        outcome = await loop.run(prompt)

        assert outcome is TurnOutcome.REJECTED
        assert len(loop.transcript) == 0
        assert session.requests == []
        assert session.tool_sets == []
        assert invoker.calls == []

    async def test_no_session_is_a_no_op(self) -> None:
        invoker = FakeInvoker()
        loop = AgentLoop(None, invoker, tools=[])

        assert await loop.run("hello") is TurnOutcome.REJECTED
        assert len(loop.transcript) == 0
        assert loop.busy is False

    async def test_session_attached_later(self) -> None:
        loop = AgentLoop(None, FakeInvoker(), tools=[])
        loop.attach_session(FakeSession([FinalText(text="hi")]))

        assert await loop.run("hello") is TurnOutcome.COMPLETE
        assert len(loop.transcript) == 2

    async def test_prompt_while_busy_is_ignored(self) -> None:
        session = BlockingSession()
        invoker = FakeInvoker()
        loop = AgentLoop(session, invoker, tools=[])

        first = asyncio.create_task(loop.run("first"))
        await asyncio.sleep(0)
        assert loop.busy is True
        assert loop.state is AgentState.AWAITING_MODEL

        outcome = await loop.run("second")

        assert outcome is TurnOutcome.REJECTED
        assert len(loop.transcript) == 1
        assert len(session.requests) == 1
        assert invoker.calls == []

        session.release.set()
        assert await first is TurnOutcome.COMPLETE
        assert [m.content for m in loop.transcript] == ["first", "done"]
        assert loop.busy is False

    async def test_prompt_while_running_tools_is_ignored(self) -> None:
        invoker = BlockingInvoker()
        loop, session, _ = _make_loop(
            [ToolCalls(calls=[_call("match_columns")]), FinalText(text="Matched.")],
            invoker,
        )

        first = asyncio.create_task(loop.run("Match unmatched columns"))
        while not invoker.calls:
            await asyncio.sleep(0)
        assert loop.busy is True
        assert loop.state is AgentState.AWAITING_TOOLS

        outcome = await loop.run("Download SQL")

        assert outcome is TurnOutcome.REJECTED
        assert len(loop.transcript) == 1
        assert len(session.requests) == 1
        assert len(invoker.calls) == 1

        invoker.release.set()
        assert await first is TurnOutcome.COMPLETE
        assert [m.content for m in loop.transcript] == [
            "Match unmatched columns",
            tool_announcement("match_columns"),
            "Matched.",
        ]
        assert loop.busy is False


# ---------------------------------------------------------------------------
# Round-trips
# ---------------------------------------------------------------------------


class TestRoundTrips:
    async def test_calls_run_in_order_and_results_keep_order(self) -> None:
        calls = [
            _call("review_matches", "c1", status="pending"),
            _call("apply_suggestions", "c2"),
            _call("generate_sql", "c3", table_name="people"),
        ]
        loop, session, invoker = _make_loop(
            [ToolCalls(calls=calls), FinalText(text="Done.")]
        )

        await loop.run("Auto-Process & Match")

        assert [name for name, _ in invoker.calls] == [
            "review_matches",
            "apply_suggestions",
            "generate_sql",
        ]
        announcements = [
            m.content for m in loop.transcript if m.content.startswith("Running command")
        ]
        assert announcements == [tool_announcement(c.name) for c in calls]
        packaged = session.requests[1]
        assert [e.call.id for e in packaged.results] == ["c1", "c2", "c3"]

    async def test_multiple_rounds(self) -> None:
        loop, session, invoker = _make_loop(
            [
                ToolCalls(calls=[_call("review_matches", "c1")]),
                ToolCalls(calls=[_call("match_columns", "c2")]),
                FinalText(text="All matched."),
            ]
        )

        outcome = await loop.run("Match unmatched columns")

        assert outcome is TurnOutcome.COMPLETE
        assert len(session.requests) == 3
        assert isinstance(session.requests[0], PromptRequest)
        assert isinstance(session.requests[1], ToolResultsRequest)
        assert isinstance(session.requests[2], ToolResultsRequest)
        assert [m.content for m in loop.transcript] == [
            "Match unmatched columns",
            tool_announcement("review_matches"),
            tool_announcement("match_columns"),
            "All matched.",
        ]
        assert loop.last_tool_used == "match_columns"

    async def test_failure_in_later_round_keeps_earlier_rounds(self) -> None:
        loop, _, _ = _make_loop(
            [
                ToolCalls(calls=[_call("review_matches", "c1")]),
                ConnectionError("network down"),
            ]
        )

        outcome = await loop.run("Review current column cards")

        assert outcome is TurnOutcome.ERROR
        assert [m.content for m in loop.transcript] == [
            "Review current column cards",
            tool_announcement("review_matches"),
            APOLOGY,
        ]

    async def test_model_failure_reports_apology(self) -> None:
        loop, _, invoker = _make_loop([TimeoutError("slow")])

        outcome = await loop.run("hello")

        assert outcome is TurnOutcome.ERROR
        assert [m.content for m in loop.transcript] == ["hello", APOLOGY]
        assert invoker.calls == []
        assert loop.busy is False

    async def test_tools_attached_before_every_send(self) -> None:
        specs = [{"type": "function", "function": {"name": "x"}}]
        session = FakeSession(
            [ToolCalls(calls=[_call("x")]), FinalText(text="ok")]
        )
        loop = AgentLoop(session, FakeInvoker(), tools=specs)

        await loop.run("go")

        assert session.tool_sets == [specs, specs]

    async def test_default_tools_come_from_invoker(self) -> None:
        class SpecInvoker(FakeInvoker):
            def get_specs(self) -> list[dict[str, Any]]:
                return [{"type": "function", "function": {"name": "only"}}]

        loop = AgentLoop(FakeSession([]), SpecInvoker())

        assert [t["function"]["name"] for t in loop.tools] == ["only"]

    async def test_plain_invoker_result_is_wrapped(self) -> None:
        class DictInvoker:
            async def invoke(self, name: str, arguments: dict[str, Any]) -> Any:
                return {"output": [1, 2, 3]}

        session = FakeSession([ToolCalls(calls=[_call("x")]), FinalText(text="ok")])
        loop = AgentLoop(session, DictInvoker(), tools=[])

        await loop.run("go")

        assert session.requests[1].results[0].result == ToolResult(output=[1, 2, 3])


# ---------------------------------------------------------------------------
# Selection context
# ---------------------------------------------------------------------------


class TestSelection:
    async def test_selection_goes_to_model_not_transcript(self) -> None:
        selection = [
            Match(
                id="m1",
                final_name="email",
                columns=[Column(column_name="mail"), Column(column_name="e_mail")],
            )
        ]
        loop, session, _ = _make_loop([FinalText(text="Looks right.")])

        await loop.run("Is this right?", selection)

        sent = session.requests[0]
        assert isinstance(sent, PromptRequest)
        assert sent.text == (
            "The user has highlighted the following matches:\n"
            "- email: [mail, e_mail]\n\n"
            "User's question: Is this right?"
        )
        assert loop.transcript[0].content == "Is this right?"

    async def test_no_selection_sends_prompt_as_is(self) -> None:
        loop, session, _ = _make_loop([FinalText(text="ok")])

        await loop.submit_prompt("Review current column cards", [])

        assert session.requests[0].text == "Review current column cards"


# ---------------------------------------------------------------------------
# Status and wire events
# ---------------------------------------------------------------------------


class TestStatus:
    async def test_status_snapshot(self) -> None:
        loop, _, _ = _make_loop(
            [ToolCalls(calls=[_call("generate_sql")]), FinalText(text="SQL ready.")]
        )

        await loop.run("Download SQL")
        status = loop.status()

        assert status.busy is False
        assert status.state is AgentState.IDLE
        assert status.last_tool_used == "generate_sql"
        assert status.messages == loop.transcript.snapshot()

    async def test_wire_events_for_a_turn(self) -> None:
        wire = Wire()
        queue = wire.subscribe()
        loop, _, _ = _make_loop(
            [ToolCalls(calls=[_call("review_matches")]), FinalText(text="ok")],
            wire=wire,
        )

        await loop.run("Review current column cards")

        events = []
        while not queue.empty():
            events.append(queue.get_nowait())
        types = [e.type for e in events]
        assert types[0] is EventType.MESSAGE
        assert EventType.TURN_BEGIN in types
        assert types.index(EventType.TOOL_CALL) < types.index(EventType.TURN_END)
        tool_event = next(e for e in events if e.type is EventType.TOOL_CALL)
        assert tool_event.data["name"] == "review_matches"
        assert events[-1].type is EventType.STATUS
        assert events[-1].data == {"busy": False, "last_tool": "review_matches"}
        end = next(e for e in events if e.type is EventType.TURN_END)
        assert end.data["outcome"] == "complete"

    async def test_wire_error_event_on_failure(self) -> None:
        wire = Wire()
        queue = wire.subscribe()
        loop, _, _ = _make_loop([RuntimeError("boom")], wire=wire)

        await loop.run("hello")

        events = []
        while not queue.empty():
            events.append(queue.get_nowait())
        errors = [e for e in events if e.type is EventType.ERROR]
        assert len(errors) == 1
        assert errors[0].data["error"] == "boom"
