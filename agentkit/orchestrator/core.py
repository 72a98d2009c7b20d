"""
Orchestrator core -- the turn loop that ties everything together.

The orchestrator:
1. Annotates the system prompt with the remaining turn budget
2. Streams one backend call per turn through the wire adapter
3. Folds the deltas into an assistant message, forwarding text live
4. Decides whether to stop, pause for a UI tool, or keep going
5. Runs the turn's regular tool calls concurrently, appending results in
   tool-call index order
6. Stops at ``max_turns`` with a ``TurnLimitExceeded`` error event

Only one backend call is in flight per run.  Cancellation is cooperative:
the token is polled at the top of each turn, per stream line, and while
tools run; once observed the stream ends without further events.
"""

from __future__ import annotations

import asyncio
import json
import logging
from enum import Enum
from typing import Any, AsyncIterator, Sequence

from agentkit.errors import InvalidToolArgs, TurnLimitExceeded
from agentkit.events import AgentEvent, ErrorEvent, MessageEvent
from agentkit.llm.delta_accumulator import DeltaAccumulator
from agentkit.llm.models import Model
from agentkit.llm.providers.base import WireAdapter
from agentkit.llm.types import FinishReason, Message, SystemMessage, ToolCall, ToolMessage
from agentkit.orchestrator.cancellation import CancelToken
from agentkit.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

DEFAULT_MAX_TURNS = 20

_TERMINAL_FINISH_REASONS = frozenset(
    {FinishReason.STOP, FinishReason.LENGTH, FinishReason.CONTENT_FILTER}
)


class OrchestratorState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    ACCUMULATING = "accumulating"
    DECIDING = "deciding"
    EXECUTING_TOOLS = "executing_tools"
    AWAITING_INPUT = "awaiting_input"
    DONE = "done"


def turn_info(current_turn: int, max_turns: int) -> str:
    return (
        f"You are on turn {current_turn} of {max_turns}. "
        f"You have {max_turns - current_turn} turns remaining."
    )


def with_turn_info(
    messages: Sequence[Message], current_turn: int, max_turns: int
) -> list[Message]:
    """
    Return a copy of *messages* whose first system message carries the turn
    budget.  A system message is prepended when there is none.  The system
    message keeps its id.
    """
    info = turn_info(current_turn, max_turns)
    updated = list(messages)
    for i, msg in enumerate(updated):
        if isinstance(msg, SystemMessage):
            updated[i] = SystemMessage(id=msg.id, content=f"{msg.content}\n\n{info}")
            return updated
    updated.insert(0, SystemMessage(content=info))
    return updated


def encode_tool_result(result: Any) -> str:
    if isinstance(result, str):
        return result
    return json.dumps(result, default=str)


class Orchestrator:
    """
    Drives one conversation run against one wire adapter.

    Parameters
    ----------
    adapter : WireAdapter
        Backend to stream from.
    registry : ToolRegistry
        Tools offered to the model.  Read-only for the duration of a run.
    max_turns : int
        Hard ceiling on backend calls per run.
    max_concurrent_tools : int
        Bound on tools executing at once within a turn.

    After (or during) a run, ``messages`` holds the run's conversation and
    ``state`` the current ``OrchestratorState``.
    """

    def __init__(
        self,
        adapter: WireAdapter,
        registry: ToolRegistry | None = None,
        max_turns: int = DEFAULT_MAX_TURNS,
        max_concurrent_tools: int = 8,
    ) -> None:
        self.adapter = adapter
        self.registry = registry or ToolRegistry()
        self.max_turns = max_turns
        self.max_concurrent_tools = max_concurrent_tools
        self.messages: list[Message] = []
        self.state = OrchestratorState.IDLE
        self.turns = 0

    async def run(
        self,
        messages: Sequence[Message],
        model: Model,
        cancel: CancelToken | None = None,
    ) -> AsyncIterator[AgentEvent]:
        """
        Run the turn loop over a snapshot of *messages*.

        Yields ``TextDelta``/``ReasoningDelta`` fragments live, a
        ``MessageEvent`` for every completed assistant or tool message, and an
        ``ErrorEvent`` if the turn ceiling is hit.  ``TransportError`` from the
        adapter propagates.
        """
        self.messages = list(messages)
        self.turns = 0
        self.state = OrchestratorState.IDLE
        tools = self.registry.list()

        while True:
            if _is_cancelled(cancel):
                logger.info("Run cancelled before turn %d", self.turns + 1)
                self.state = OrchestratorState.DONE
                return

            self.turns += 1
            if self.turns > self.max_turns:
                logger.warning("Turn limit reached (max_turns=%d)", self.max_turns)
                self.state = OrchestratorState.DONE
                yield ErrorEvent(TurnLimitExceeded(self.max_turns))
                return

            request_messages = with_turn_info(self.messages, self.turns, self.max_turns)

            # Stream and accumulate
            self.state = OrchestratorState.REQUESTING
            accumulator = DeltaAccumulator()
            try:
                async for delta in self.adapter.stream(
                    request_messages, model, tools, cancel
                ):
                    self.state = OrchestratorState.ACCUMULATING
                    for event in accumulator.feed(delta):
                        yield event
            except Exception:
                self.state = OrchestratorState.DONE
                raise

            if _is_cancelled(cancel):
                logger.info("Run cancelled during turn %d; discarding partial reply", self.turns)
                self.state = OrchestratorState.DONE
                return

            assistant = accumulator.finish()
            self.messages.append(assistant)
            yield MessageEvent(assistant)

            # Continuation decision
            self.state = OrchestratorState.DECIDING
            calls = assistant.tool_calls or []
            if not calls:
                reason = accumulator.finish_reason
                if reason is None or reason in _TERMINAL_FINISH_REASONS:
                    self.state = OrchestratorState.DONE
                    return
                # e.g. "tool_calls" with nothing decodable; the turn ceiling
                # bounds this.
                logger.info(
                    "finish_reason=%s without tool calls on turn %d; continuing",
                    reason,
                    self.turns,
                )
                continue

            ui_calls = [c for c in calls if self.registry.is_ui(c.name)]
            auto_calls = [c for c in calls if not self.registry.is_ui(c.name)]

            if auto_calls:
                self.state = OrchestratorState.EXECUTING_TOOLS
                results = await self._execute_tool_calls(auto_calls, cancel)
                if results is None:
                    logger.info("Run cancelled during tool execution on turn %d", self.turns)
                    self.state = OrchestratorState.DONE
                    return
                for msg in results:
                    self.messages.append(msg)
                    yield MessageEvent(msg)

            if ui_calls:
                logger.info(
                    "Pausing for external input: %s",
                    ", ".join(c.name for c in ui_calls),
                )
                self.state = OrchestratorState.AWAITING_INPUT
                return

    # ------------------------------------------------------------------
    # Tool execution
    # ------------------------------------------------------------------

    async def _execute_tool_calls(
        self,
        calls: list[ToolCall],
        cancel: CancelToken | None,
    ) -> list[ToolMessage] | None:
        """
        Run *calls* concurrently and return their results in index order.

        Returns ``None`` if *cancel* fires first; in-flight tools are
        cancelled and nothing is returned.
        """
        ordered = sorted(calls, key=lambda c: c.index)
        semaphore = asyncio.Semaphore(max(1, self.max_concurrent_tools))
        batch = asyncio.ensure_future(
            asyncio.gather(*(self._execute_tool_call(c, semaphore) for c in ordered))
        )

        if cancel is None:
            return list(await batch)

        waiter = asyncio.ensure_future(cancel.wait())
        try:
            await asyncio.wait({batch, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()

        if cancel.cancelled:
            batch.cancel()
            try:
                await batch
            except asyncio.CancelledError:
                pass
            return None
        return list(batch.result())

    async def _execute_tool_call(
        self, call: ToolCall, semaphore: asyncio.Semaphore
    ) -> ToolMessage:
        """Invoke one tool; every failure becomes an ``Error: ...`` result."""
        tool = self.registry.get(call.name)
        if tool is None:
            logger.warning("Model called unknown tool %r", call.name)
            content = f"Tool {call.name} not found."
        else:
            async with semaphore:
                try:
                    content = encode_tool_result(await tool.invoke(call.arguments))
                except InvalidToolArgs as exc:
                    logger.info("Invalid arguments for %s: %s", call.name, exc.reason)
                    content = f"Error: {exc}. Please fix the arguments and try again."
                except Exception as exc:
                    logger.exception("Tool %s failed", call.name)
                    content = f"Error: {exc}"
        return ToolMessage(content=content, tool_call_id=call.id, name=call.name)


def _is_cancelled(cancel: CancelToken | None) -> bool:
    return cancel is not None and cancel.cancelled
