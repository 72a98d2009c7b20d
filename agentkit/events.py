"""
Events emitted by an orchestration run.

A run yields a flat stream of these.  ``TextDelta`` and ``ReasoningDelta``
are live fragments for typing effects; ``MessageEvent`` carries a completed
message (assistant or tool); ``ErrorEvent`` carries a designed terminal
condition such as the turn limit.  There is no "done" sentinel: the stream
simply ends.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from agentkit.llm.types import Message, message_to_dict

EVENT_TEXT_DELTA = "text_delta"
EVENT_REASONING_DELTA = "reasoning_delta"
EVENT_MESSAGE = "message"
EVENT_ERROR = "error"


@dataclass(frozen=True)
class TextDelta:
    text: str
    type: str = field(default=EVENT_TEXT_DELTA, init=False)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "text": self.text}


@dataclass(frozen=True)
class ReasoningDelta:
    text: str
    type: str = field(default=EVENT_REASONING_DELTA, init=False)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "text": self.text}


@dataclass(frozen=True)
class MessageEvent:
    message: Message
    type: str = field(default=EVENT_MESSAGE, init=False)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "message": message_to_dict(self.message)}


@dataclass(frozen=True)
class ErrorEvent:
    error: Exception
    type: str = field(default=EVENT_ERROR, init=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "error": str(self.error),
            "error_type": type(self.error).__name__,
        }


AgentEvent = Union[TextDelta, ReasoningDelta, MessageEvent, ErrorEvent]
