"""Tests for the orchestrator core."""

from __future__ import annotations

import asyncio
import time

import pytest

from tests.mock_providers import MockAdapter, text_turn, tool_call_turn
from tests.mock_tools import AskUserTool, EchoTool, FailingTool, add, make_sleepy_tool
from agentkit.errors import TransportError, TurnLimitExceeded
from agentkit.events import ErrorEvent, MessageEvent, TextDelta
from agentkit.llm.models import Model
from agentkit.llm.types import (
    AssistantMessage,
    FinishReason,
    StreamDelta,
    SystemMessage,
    ToolCallDelta,
    ToolMessage,
    UserMessage,
)
from agentkit.orchestrator.cancellation import CancelToken
from agentkit.orchestrator.core import (
    Orchestrator,
    OrchestratorState,
    encode_tool_result,
    turn_info,
    with_turn_info,
)
from agentkit.tools.base import FunctionTool
from agentkit.tools.registry import ToolRegistry

MODEL = Model(id="mock-model")


@pytest.fixture
def registry():
    reg = ToolRegistry()
    reg.register(add)
    reg.register(EchoTool())
    reg.register(FailingTool())
    reg.register(AskUserTool())
    return reg


async def collect(agen) -> list:
    return [event async for event in agen]


def messages_of(events) -> list:
    return [e.message for e in events if isinstance(e, MessageEvent)]


# ---------------------------------------------------------------------------
# Basic flow
# ---------------------------------------------------------------------------


class TestTextOnly:
    async def test_single_turn(self, registry):
        adapter = MockAdapter(turns=[text_turn("Hello world!")])
        orch = Orchestrator(adapter, registry)

        events = await collect(orch.run([UserMessage("hi")], MODEL))

        texts = [e.text for e in events if isinstance(e, TextDelta)]
        assert "".join(texts) == "Hello world!"
        final = messages_of(events)
        assert len(final) == 1
        assert isinstance(final[0], AssistantMessage)
        assert final[0].content == "Hello world!"
        assert adapter.call_count == 1
        assert orch.state is OrchestratorState.DONE

    async def test_input_not_mutated(self, registry):
        adapter = MockAdapter(turns=[text_turn("ok")])
        history = [UserMessage("hi")]
        orch = Orchestrator(adapter, registry)
        await collect(orch.run(history, MODEL))
        assert len(history) == 1
        assert len(orch.messages) == 2

    async def test_tools_offered_to_adapter(self, registry):
        adapter = MockAdapter(turns=[text_turn("ok")])
        await collect(Orchestrator(adapter, registry).run([UserMessage("hi")], MODEL))
        assert [t.name for t in adapter.last_tools] == ["add", "ask_user", "echo", "explode"]


class TestAddExample:
    """The canonical two-turn run: tool call, then answer."""

    async def test_two_plus_two(self, registry):
        adapter = MockAdapter(
            turns=[
                tool_call_turn([("add", {"a": 2, "b": 2}, "call_1")]),
                text_turn("4"),
            ]
        )
        orch = Orchestrator(adapter, registry)

        events = await collect(orch.run([UserMessage("What is 2+2?")], MODEL))

        assert adapter.call_count == 2
        assert len(orch.messages) == 4
        user, call_msg, result, answer = orch.messages
        assert isinstance(user, UserMessage)
        assert call_msg.tool_calls[0].name == "add"
        assert isinstance(result, ToolMessage)
        assert result.tool_call_id == "call_1"
        assert result.name == "add"
        assert result.content == "4"
        assert answer.content == "4"
        assert messages_of(events) == orch.messages[1:]

    async def test_tool_result_sent_back(self, registry):
        adapter = MockAdapter(
            turns=[
                tool_call_turn([("echo", {"message": "ping"}, "call_e")]),
                text_turn("done"),
            ]
        )
        await collect(Orchestrator(adapter, registry).run([UserMessage("go")], MODEL))
        sent = adapter.requests[1]
        assert isinstance(sent[-1], ToolMessage)
        assert sent[-1].content == "ping"


# ---------------------------------------------------------------------------
# Continuation decision
# ---------------------------------------------------------------------------


class TestContinuation:
    @pytest.mark.parametrize(
        "reason", [None, FinishReason.STOP, FinishReason.LENGTH, FinishReason.CONTENT_FILTER]
    )
    async def test_stops_without_calls(self, registry, reason):
        adapter = MockAdapter(turns=[[StreamDelta(content="x", finish_reason=reason)]])
        await collect(Orchestrator(adapter, registry).run([UserMessage("hi")], MODEL))
        assert adapter.call_count == 1

    async def test_continues_on_tool_calls_without_calls(self, registry):
        # The only call is missing its name, so it is dropped.
        adapter = MockAdapter(
            turns=[
                [
                    StreamDelta(tool_calls=[ToolCallDelta(index=0, id="c", type="function")]),
                    StreamDelta(finish_reason=FinishReason.TOOL_CALLS),
                ],
                text_turn("recovered"),
            ]
        )
        orch = Orchestrator(adapter, registry)
        await collect(orch.run([UserMessage("hi")], MODEL))
        assert adapter.call_count == 2
        assert orch.messages[-1].content == "recovered"


class TestTurnLimit:
    async def test_ceiling_ends_run(self, registry):
        adapter = MockAdapter(turns=[tool_call_turn([("add", {"a": 1, "b": 1}, "c")])])
        orch = Orchestrator(adapter, registry, max_turns=3)

        events = await collect(orch.run([UserMessage("loop")], MODEL))

        assert adapter.call_count == 3
        assert isinstance(events[-1], ErrorEvent)
        assert isinstance(events[-1].error, TurnLimitExceeded)
        assert str(events[-1].error) == "Maximum turns (3) exceeded"
        assert orch.turns == 4
        assert orch.state is OrchestratorState.DONE

    async def test_zero_turns_makes_no_call(self, registry):
        adapter = MockAdapter()
        events = await collect(
            Orchestrator(adapter, registry, max_turns=0).run([UserMessage("hi")], MODEL)
        )
        assert adapter.call_count == 0
        assert len(events) == 1
        assert isinstance(events[0], ErrorEvent)


class TestTurnInfo:
    def test_text(self):
        assert turn_info(2, 5) == "You are on turn 2 of 5. You have 3 turns remaining."

    def test_appended_to_first_system_message(self):
        system = SystemMessage("You are helpful.")
        msgs = [system, UserMessage("hi"), SystemMessage("second")]
        updated = with_turn_info(msgs, 1, 5)
        assert updated[0].id == system.id
        assert updated[0].content == (
            "You are helpful.\n\nYou are on turn 1 of 5. You have 4 turns remaining."
        )
        assert updated[2].content == "second"
        assert msgs[0].content == "You are helpful."

    def test_prepended_when_missing(self):
        msgs = [UserMessage("hi")]
        updated = with_turn_info(msgs, 1, 2)
        assert len(updated) == 2
        assert isinstance(updated[0], SystemMessage)
        assert updated[0].content == "You are on turn 1 of 2. You have 1 turns remaining."

    async def test_request_annotated_history_clean(self, registry):
        adapter = MockAdapter(turns=[text_turn("ok")])
        orch = Orchestrator(adapter, registry, max_turns=5)
        await collect(orch.run([SystemMessage("Be brief."), UserMessage("hi")], MODEL))
        assert adapter.last_messages[0].content.endswith(
            "You are on turn 1 of 5. You have 4 turns remaining."
        )
        assert orch.messages[0].content == "Be brief."


# ---------------------------------------------------------------------------
# Tool execution
# ---------------------------------------------------------------------------


class TestToolErrors:
    async def test_failure_becomes_result(self, registry):
        adapter = MockAdapter(
            turns=[tool_call_turn([("explode", {}, "c1")]), text_turn("sorry")]
        )
        orch = Orchestrator(adapter, registry)
        await collect(orch.run([UserMessage("go")], MODEL))
        result = orch.messages[2]
        assert isinstance(result, ToolMessage)
        assert result.content == "Error: disk on fire"
        assert adapter.call_count == 2

    async def test_invalid_arguments_hint(self, registry):
        adapter = MockAdapter(
            turns=[tool_call_turn([("add", {"a": "two"}, "c1")]), text_turn("retry")]
        )
        orch = Orchestrator(adapter, registry)
        await collect(orch.run([UserMessage("go")], MODEL))
        content = orch.messages[2].content
        assert content.startswith("Error: Invalid arguments for tool 'add'")
        assert content.endswith("Please fix the arguments and try again.")

    async def test_malformed_json_arguments(self, registry):
        adapter = MockAdapter(
            turns=[
                [
                    StreamDelta(
                        tool_calls=[
                            ToolCallDelta(
                                index=0, id="c1", type="function", name="add", arguments="{oops"
                            )
                        ]
                    ),
                    StreamDelta(finish_reason=FinishReason.TOOL_CALLS),
                ],
                text_turn("retry"),
            ]
        )
        orch = Orchestrator(adapter, registry)
        await collect(orch.run([UserMessage("go")], MODEL))
        assert orch.messages[2].content.startswith("Error: Invalid arguments for tool 'add'")

    async def test_unknown_tool(self, registry):
        adapter = MockAdapter(
            turns=[tool_call_turn([("nope", {}, "c1")]), text_turn("ok")]
        )
        orch = Orchestrator(adapter, registry)
        await collect(orch.run([UserMessage("go")], MODEL))
        assert orch.messages[2].content == "Tool nope not found."
        assert orch.messages[2].tool_call_id == "c1"

    async def test_one_failure_does_not_affect_siblings(self, registry):
        adapter = MockAdapter(
            turns=[
                tool_call_turn(
                    [("explode", {}, "c0"), ("echo", {"message": "fine"}, "c1")]
                ),
                text_turn("ok"),
            ]
        )
        orch = Orchestrator(adapter, registry)
        await collect(orch.run([UserMessage("go")], MODEL))
        assert [m.content for m in orch.messages[2:4]] == ["Error: disk on fire", "fine"]


class TestToolOrdering:
    async def test_results_in_index_order(self):
        finished: list[str] = []
        reg = ToolRegistry(
            [make_sleepy_tool("slow", 0.05, finished), make_sleepy_tool("fast", 0.0, finished)]
        )
        adapter = MockAdapter(
            turns=[
                tool_call_turn([("slow", {}, "c0"), ("fast", {}, "c1")]),
                text_turn("ok"),
            ]
        )
        orch = Orchestrator(adapter, reg)
        await collect(orch.run([UserMessage("go")], MODEL))

        assert finished == ["fast", "slow"]
        results = [m for m in orch.messages if isinstance(m, ToolMessage)]
        assert [r.tool_call_id for r in results] == ["c0", "c1"]
        assert [r.content for r in results] == ["slow", "fast"]

    async def test_concurrency_bound(self):
        active = 0
        peak = 0

        async def work() -> str:
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return "done"

        tools = [
            FunctionTool(f"t{i}", "work", {"type": "object", "properties": {}}, work)
            for i in range(4)
        ]
        adapter = MockAdapter(
            turns=[
                tool_call_turn([(f"t{i}", {}, f"c{i}") for i in range(4)]),
                text_turn("ok"),
            ]
        )
        orch = Orchestrator(adapter, ToolRegistry(tools), max_concurrent_tools=2)
        await collect(orch.run([UserMessage("go")], MODEL))
        assert peak == 2

    async def test_sync_tools_overlap(self):
        def nap() -> str:
            time.sleep(0.2)
            return "rested"

        tools = [
            FunctionTool(f"nap{i}", "Blocks for a while.", {"type": "object", "properties": {}}, nap)
            for i in range(3)
        ]
        adapter = MockAdapter(
            turns=[
                tool_call_turn([(f"nap{i}", {}, f"c{i}") for i in range(3)]),
                text_turn("ok"),
            ]
        )
        orch = Orchestrator(adapter, ToolRegistry(tools))

        start = time.perf_counter()
        await collect(orch.run([UserMessage("go")], MODEL))
        elapsed = time.perf_counter() - start

        results = [m for m in orch.messages if isinstance(m, ToolMessage)]
        assert [r.content for r in results] == ["rested"] * 3
        assert elapsed < 0.55


class TestUIPause:
    async def test_pauses_after_regular_tools(self, registry):
        ask = registry.get("ask_user")
        adapter = MockAdapter(
            turns=[
                tool_call_turn(
                    [("ask_user", {"question": "Which file?"}, "c0"), ("add", {"a": 1, "b": 2}, "c1")]
                ),
                text_turn("never"),
            ]
        )
        orch = Orchestrator(adapter, registry)
        events = await collect(orch.run([UserMessage("go")], MODEL))

        assert adapter.call_count == 1
        assert orch.state is OrchestratorState.AWAITING_INPUT
        assert ask.invoked is False
        final = messages_of(events)
        assert len(final) == 2
        assert isinstance(final[1], ToolMessage)
        assert final[1].tool_call_id == "c1"
        assert final[1].content == "3"

    async def test_only_ui_call(self, registry):
        adapter = MockAdapter(
            turns=[tool_call_turn([("ask_user", {"question": "?"}, "c0")])]
        )
        orch = Orchestrator(adapter, registry)
        events = await collect(orch.run([UserMessage("go")], MODEL))
        assert len(messages_of(events)) == 1
        assert orch.state is OrchestratorState.AWAITING_INPUT


# ---------------------------------------------------------------------------
# Cancellation and failures
# ---------------------------------------------------------------------------


class TestCancellation:
    async def test_cancel_before_start(self, registry):
        token = CancelToken()
        token.cancel()
        adapter = MockAdapter(turns=[text_turn("never")])
        events = await collect(Orchestrator(adapter, registry).run([UserMessage("hi")], MODEL, token))
        assert events == []
        assert adapter.call_count == 0

    async def test_cancel_is_idempotent(self):
        token = CancelToken()
        token.cancel()
        token.cancel()
        assert token.cancelled
        await asyncio.wait_for(token.wait(), timeout=1)

    async def test_cancel_during_stream(self, registry):
        token = CancelToken()
        adapter = MockAdapter(turns=[text_turn("one two three four")], delay=0.001)
        orch = Orchestrator(adapter, registry)

        events = []
        async for event in orch.run([UserMessage("hi")], MODEL, token):
            events.append(event)
            token.cancel()

        assert events == [TextDelta("one ")]
        assert len(orch.messages) == 1
        assert orch.state is OrchestratorState.DONE

    async def test_cancel_during_tools(self):
        token = CancelToken()

        async def hang() -> str:
            token.cancel()
            await asyncio.sleep(10)
            return "unreachable"

        reg = ToolRegistry([FunctionTool("hang", "", {"type": "object", "properties": {}}, hang)])
        adapter = MockAdapter(turns=[tool_call_turn([("hang", {}, "c0")]), text_turn("x")])
        orch = Orchestrator(adapter, reg)

        events = await asyncio.wait_for(
            collect(orch.run([UserMessage("go")], MODEL, token)), timeout=2
        )

        final = messages_of(events)
        assert len(final) == 1
        assert isinstance(final[0], AssistantMessage)
        assert not any(isinstance(m, ToolMessage) for m in orch.messages)
        assert adapter.call_count == 1


class TestTransportFailure:
    async def test_error_propagates(self, registry):
        class BrokenAdapter(MockAdapter):
            async def stream(self, messages, model, tools=(), cancel=None):
                raise TransportError("http://mock.invalid", "boom", 500)
                yield  # pragma: no cover

        orch = Orchestrator(BrokenAdapter(), registry)
        with pytest.raises(TransportError) as exc_info:
            await collect(orch.run([UserMessage("hi")], MODEL))
        assert exc_info.value.status_code == 500
        assert orch.state is OrchestratorState.DONE


class TestEncodeToolResult:
    def test_string_passthrough(self):
        assert encode_tool_result("plain") == "plain"

    def test_json_encoded(self):
        assert encode_tool_result({"x": [1, 2]}) == '{"x": [1, 2]}'
        assert encode_tool_result(4) == "4"
        assert encode_tool_result(None) == "null"
