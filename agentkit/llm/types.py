"""
Core types for the LLM subsystem.

Conversation entries are a tagged union over four frozen dataclasses
(``UserMessage``, ``AssistantMessage``, ``SystemMessage``, ``ToolMessage``)
discriminated by ``role``.  Every message gets a uuid4 ``id`` at construction;
the id is never derived from content.

Encoding to and from plain dicts is a pure mapping table keyed on the role
(see ``message_to_dict`` / ``message_from_dict``).  The dict shape follows the
OpenAI chat wire format with snake_case keys.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Union


def new_id() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL = "tool"


class FinishReason(str, Enum):
    STOP = "stop"
    LENGTH = "length"
    CONTENT_FILTER = "content_filter"
    TOOL_CALLS = "tool_calls"

    @classmethod
    def parse(cls, value: str | None) -> FinishReason | str | None:
        """Map a backend value onto the enum; unknown values are kept raw."""
        if value is None:
            return None
        try:
            return cls(value)
        except ValueError:
            return value


# ---------------------------------------------------------------------------
# Tool calls
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FunctionCall:
    name: str
    arguments: str  # JSON-encoded
    thought_signature: str | None = None


@dataclass(frozen=True)
class ToolCall:
    """
    A complete tool call requested by the model.

    *index* is the position within one assistant turn and is the key the
    accumulator merges fragments on.
    """

    id: str
    function: FunctionCall
    index: int = 0
    type: str = "function"

    @property
    def name(self) -> str:
        return self.function.name

    @property
    def arguments(self) -> str:
        return self.function.arguments


@dataclass(frozen=True)
class ReasoningDetail:
    """A structured reasoning segment (``reasoning_details`` on the wire)."""

    type: str  # "reasoning.text", "reasoning.summary", "reasoning.encrypted"
    id: str | None = None
    format: str | None = None
    index: int | None = None
    text: str | None = None
    summary: str | None = None
    signature: str | None = None
    data: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"type": self.type}
        for key in ("id", "format", "index", "text", "summary", "signature", "data"):
            value = getattr(self, key)
            if value is not None:
                d[key] = value
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReasoningDetail:
        return cls(
            type=data.get("type", "reasoning.text"),
            id=data.get("id"),
            format=data.get("format"),
            index=data.get("index"),
            text=data.get("text"),
            summary=data.get("summary"),
            signature=data.get("signature"),
            data=data.get("data"),
        )


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UserMessage:
    content: str
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=_now)
    role: Role = field(default=Role.USER, init=False)


@dataclass(frozen=True)
class SystemMessage:
    content: str
    id: str = field(default_factory=new_id)
    role: Role = field(default=Role.SYSTEM, init=False)


@dataclass(frozen=True)
class AssistantMessage:
    content: str | None = None
    tool_calls: list[ToolCall] | None = None
    reasoning: str | None = None
    reasoning_details: list[ReasoningDetail] | None = None
    id: str = field(default_factory=new_id)
    role: Role = field(default=Role.ASSISTANT, init=False)


@dataclass(frozen=True)
class ToolMessage:
    content: str
    tool_call_id: str
    name: str | None = None
    id: str = field(default_factory=new_id)
    role: Role = field(default=Role.TOOL, init=False)


Message = Union[UserMessage, AssistantMessage, SystemMessage, ToolMessage]


# ---------------------------------------------------------------------------
# Streaming
# ---------------------------------------------------------------------------


@dataclass
class ToolCallDelta:
    """
    A fragment of a tool call as it arrives on the wire.

    Any subset of fields may be present.  ``arguments`` and
    ``thought_signature`` are partial strings that the accumulator
    concatenates; the other fields overwrite.
    """

    index: int = 0
    id: str | None = None
    type: str | None = None
    name: str | None = None
    arguments: str | None = None
    thought_signature: str | None = None


@dataclass
class StreamDelta:
    """One decoded chunk from a wire adapter."""

    content: str | None = None
    reasoning: str | None = None
    reasoning_details: list[ReasoningDetail] | None = None
    tool_calls: list[ToolCallDelta] | None = None
    finish_reason: FinishReason | str | None = None


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def tool_call_to_dict(call: ToolCall, *, include_index: bool = True) -> dict[str, Any]:
    function: dict[str, Any] = {
        "name": call.function.name,
        "arguments": call.function.arguments,
    }
    if call.function.thought_signature is not None:
        function["thought_signature"] = call.function.thought_signature
    d: dict[str, Any] = {"id": call.id, "type": call.type, "function": function}
    if include_index:
        d["index"] = call.index
    return d


def tool_call_from_dict(data: dict[str, Any], position: int = 0) -> ToolCall:
    function = data.get("function") or {}
    index = data.get("index")
    return ToolCall(
        id=data["id"],
        type=data.get("type") or "function",
        index=position if index is None else index,
        function=FunctionCall(
            name=function["name"],
            arguments=function.get("arguments") or "{}",
            thought_signature=function.get("thought_signature"),
        ),
    )


def _encode_user(msg: UserMessage) -> dict[str, Any]:
    return {"content": msg.content, "created_at": msg.created_at.isoformat()}


def _encode_system(msg: SystemMessage) -> dict[str, Any]:
    return {"content": msg.content}


def _encode_assistant(msg: AssistantMessage) -> dict[str, Any]:
    d: dict[str, Any] = {"content": msg.content}
    if msg.tool_calls:
        d["tool_calls"] = [tool_call_to_dict(tc) for tc in msg.tool_calls]
    if msg.reasoning is not None:
        d["reasoning"] = msg.reasoning
    if msg.reasoning_details:
        d["reasoning_details"] = [rd.to_dict() for rd in msg.reasoning_details]
    return d


def _encode_tool(msg: ToolMessage) -> dict[str, Any]:
    d: dict[str, Any] = {"content": msg.content, "tool_call_id": msg.tool_call_id}
    if msg.name is not None:
        d["name"] = msg.name
    return d


def _decode_user(data: dict[str, Any]) -> UserMessage:
    created = data.get("created_at")
    if isinstance(created, str):
        return UserMessage(
            content=data["content"],
            id=data.get("id") or new_id(),
            created_at=datetime.fromisoformat(created),
        )
    return UserMessage(content=data["content"], id=data.get("id") or new_id())


def _decode_system(data: dict[str, Any]) -> SystemMessage:
    return SystemMessage(content=data["content"], id=data.get("id") or new_id())


def _decode_assistant(data: dict[str, Any]) -> AssistantMessage:
    raw_calls = data.get("tool_calls")
    raw_details = data.get("reasoning_details")
    return AssistantMessage(
        id=data.get("id") or new_id(),
        content=data.get("content"),
        tool_calls=(
            [tool_call_from_dict(tc, i) for i, tc in enumerate(raw_calls)]
            if raw_calls
            else None
        ),
        reasoning=data.get("reasoning"),
        reasoning_details=(
            [ReasoningDetail.from_dict(rd) for rd in raw_details]
            if raw_details
            else None
        ),
    )


def _decode_tool(data: dict[str, Any]) -> ToolMessage:
    return ToolMessage(
        id=data.get("id") or new_id(),
        content=data["content"],
        tool_call_id=data["tool_call_id"],
        name=data.get("name"),
    )


_ENCODERS: dict[type, Callable[[Any], dict[str, Any]]] = {
    UserMessage: _encode_user,
    SystemMessage: _encode_system,
    AssistantMessage: _encode_assistant,
    ToolMessage: _encode_tool,
}

_DECODERS: dict[str, Callable[[dict[str, Any]], Message]] = {
    Role.USER.value: _decode_user,
    Role.SYSTEM.value: _decode_system,
    Role.ASSISTANT.value: _decode_assistant,
    Role.TOOL.value: _decode_tool,
}


def message_to_dict(message: Message) -> dict[str, Any]:
    """Serialize a message to a plain dict (``id`` and ``role`` included)."""
    encoder = _ENCODERS.get(type(message))
    if encoder is None:
        raise TypeError(f"Not a message: {message!r}")
    d = {"id": message.id, "role": message.role.value}
    d.update(encoder(message))
    return d


def message_from_dict(data: dict[str, Any]) -> Message:
    """
    Reconstruct a message from a dict.

    A missing ``id`` gets a fresh one.  Raises ``ValueError`` for an unknown
    ``role``.
    """
    role = data.get("role")
    decoder = _DECODERS.get(role)  # type: ignore[arg-type]
    if decoder is None:
        raise ValueError(f"Unknown message role: {role!r}")
    return decoder(data)
