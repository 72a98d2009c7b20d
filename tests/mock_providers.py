"""
Mock wire adapters for testing.

Provides canned per-turn ``StreamDelta`` scripts so tests can exercise the
accumulator and orchestrator without hitting real APIs.
"""

from __future__ import annotations

import asyncio
import json
from typing import AsyncIterator, Sequence

from agentkit.llm.models import Model
from agentkit.llm.providers.base import LineDecoder, WireAdapter, WireRequest
from agentkit.llm.types import FinishReason, Message, StreamDelta, ToolCallDelta
from agentkit.orchestrator.cancellation import CancelToken
from agentkit.tools.base import Tool


class MockAdapter(WireAdapter):
    """
    An adapter that yields one pre-configured delta list per backend call.

    Usage::

        adapter = MockAdapter(turns=[
            [StreamDelta(content="Hello "), StreamDelta(content="world!",
             finish_reason=FinishReason.STOP)],
        ])

    When the script runs out, the last turn is replayed.

    Parameters
    ----------
    turns:
        One list of ``StreamDelta`` objects per call to ``stream``.
    delay:
        Optional sleep between deltas, to leave room for cancellation.
    """

    def __init__(
        self,
        turns: list[list[StreamDelta]] | None = None,
        delay: float = 0.0,
    ) -> None:
        super().__init__()
        self._turns = turns or [[StreamDelta(finish_reason=FinishReason.STOP)]]
        self._delay = delay
        self.call_count = 0
        self.last_messages: list[Message] | None = None
        self.last_tools: list[Tool] | None = None
        self.requests: list[list[Message]] = []

    @property
    def name(self) -> str:
        return "mock"

    def build_request(
        self, messages: Sequence[Message], model: Model, tools: Sequence[Tool]
    ) -> WireRequest:
        return WireRequest(url="http://mock.invalid/chat", body={})

    def new_decoder(self) -> LineDecoder:
        return lambda line: None

    async def stream(
        self,
        messages: Sequence[Message],
        model: Model,
        tools: Sequence[Tool] = (),
        cancel: CancelToken | None = None,
    ) -> AsyncIterator[StreamDelta]:
        turn = self._turns[min(self.call_count, len(self._turns) - 1)]
        self.call_count += 1
        self.last_messages = list(messages)
        self.last_tools = list(tools)
        self.requests.append(list(messages))
        for delta in turn:
            if cancel is not None and cancel.cancelled:
                return
            if self._delay:
                await asyncio.sleep(self._delay)
            yield delta


def text_turn(text: str) -> list[StreamDelta]:
    """A turn that streams *text* one word at a time and stops."""
    words = text.split(" ")
    deltas = [
        StreamDelta(content=word + (" " if i < len(words) - 1 else ""))
        for i, word in enumerate(words)
    ]
    deltas.append(StreamDelta(finish_reason=FinishReason.STOP))
    return deltas


def tool_call_turn(
    calls: list[tuple[str, dict, str]],
    content_prefix: str = "",
) -> list[StreamDelta]:
    """
    A turn that streams one or more tool calls and finishes with
    ``tool_calls``.

    *calls* is a list of ``(tool_name, tool_args, call_id)`` tuples.  Each
    call's arguments are split in halves across two deltas.
    """
    deltas: list[StreamDelta] = []
    if content_prefix:
        deltas.append(StreamDelta(content=content_prefix))

    for idx, (name, _, call_id) in enumerate(calls):
        deltas.append(
            StreamDelta(
                tool_calls=[ToolCallDelta(index=idx, id=call_id, type="function", name=name)]
            )
        )
    for idx, (_, args, _) in enumerate(calls):
        args_json = json.dumps(args)
        half = len(args_json) // 2
        for part in (args_json[:half], args_json[half:]):
            deltas.append(
                StreamDelta(tool_calls=[ToolCallDelta(index=idx, arguments=part)])
            )

    deltas.append(StreamDelta(finish_reason=FinishReason.TOOL_CALLS))
    return deltas
