"""
Folds a turn's ``StreamDelta`` sequence into one ``AssistantMessage``.

Design goals:
  - Text and reasoning fragments are appended to their buffers and handed
    straight back to the caller as pass-through events.
  - Tool-call fragments are merged into a buffer keyed by ``index``.
    ``id``/``type``/``name`` overwrite (last non-None wins); ``arguments``
    and ``thought_signature`` are concatenated in arrival order.
  - The most recent non-None ``finish_reason`` is kept.
  - ``finish()`` emits tool calls sorted by index.  An entry still missing
    ``id``, ``type`` or ``name`` at that point is *dropped* and recorded in
    ``self.dropped`` -- it does not fail the turn.

One accumulator serves exactly one turn.
"""

from __future__ import annotations

import logging

from agentkit.events import AgentEvent, ReasoningDelta, TextDelta
from agentkit.llm.types import (
    AssistantMessage,
    FinishReason,
    FunctionCall,
    ReasoningDetail,
    StreamDelta,
    ToolCall,
    ToolCallDelta,
)

logger = logging.getLogger(__name__)


class DeltaAccumulator:
    """Buffers stream deltas and builds the finished assistant message."""

    def __init__(self) -> None:
        self._content: list[str] = []
        self._reasoning: list[str] | None = None
        self._details: list[ReasoningDetail] = []
        self._calls: dict[int, dict] = {}
        self.finish_reason: FinishReason | str | None = None
        self.dropped: list[int] = []

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def feed(self, delta: StreamDelta) -> list[AgentEvent]:
        """
        Merge one delta into the buffers.

        Returns the text/reasoning fragments it carried as events, in the
        order content-then-reasoning.
        """
        events: list[AgentEvent] = []

        if delta.finish_reason is not None:
            self.finish_reason = delta.finish_reason

        if delta.content:
            self._content.append(delta.content)
            events.append(TextDelta(delta.content))

        if delta.reasoning is not None:
            if self._reasoning is None:
                self._reasoning = []
            if delta.reasoning:
                self._reasoning.append(delta.reasoning)
                events.append(ReasoningDelta(delta.reasoning))

        if delta.reasoning_details:
            self._details.extend(delta.reasoning_details)

        for fragment in delta.tool_calls or ():
            self._merge(fragment)

        return events

    def finish(self) -> AssistantMessage:
        """Build the assistant message from everything fed so far."""
        calls: list[ToolCall] = []
        for idx in sorted(self._calls):
            buf = self._calls[idx]
            if not (buf["id"] and buf["type"] and buf["name"]):
                logger.warning(
                    "Dropping incomplete tool call idx=%d id=%s name=%s",
                    idx,
                    buf["id"],
                    buf["name"],
                )
                self.dropped.append(idx)
                continue
            calls.append(
                ToolCall(
                    index=idx,
                    id=buf["id"],
                    type=buf["type"],
                    function=FunctionCall(
                        name=buf["name"],
                        arguments=buf["arguments"],
                        thought_signature=buf["signature"],
                    ),
                )
            )

        content = "".join(self._content)
        return AssistantMessage(
            content=content or None,
            tool_calls=calls or None,
            reasoning="".join(self._reasoning) if self._reasoning is not None else None,
            reasoning_details=list(self._details) or None,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _merge(self, fragment: ToolCallDelta) -> None:
        buf = self._calls.setdefault(
            fragment.index,
            {"id": None, "type": None, "name": None, "arguments": "", "signature": None},
        )
        if fragment.id is not None:
            buf["id"] = fragment.id
        if fragment.type is not None:
            buf["type"] = fragment.type
        if fragment.name is not None:
            buf["name"] = fragment.name
        if fragment.arguments:
            buf["arguments"] += fragment.arguments
        if fragment.thought_signature:
            buf["signature"] = (buf["signature"] or "") + fragment.thought_signature
