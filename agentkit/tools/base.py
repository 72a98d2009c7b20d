from __future__ import annotations

import asyncio
import inspect
import json
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable

from agentkit.errors import InvalidArgsEncoding, InvalidToolArgs
from agentkit.tools.validation import ToolValidator


class ToolKind(Enum):
    REGULAR = "regular"
    UI = "ui"


def normalize_schema(schema: dict) -> dict:
    s = dict(schema or {})
    s.setdefault("type", "object")
    s.setdefault("additionalProperties", False)
    return s


def decode_arguments(tool_name: str, arguments: str | bytes) -> dict:
    """
    Decode a tool-call ``arguments`` payload into a dict.

    Raises ``InvalidArgsEncoding`` when the payload is not valid UTF-8 and
    ``InvalidToolArgs`` when it is not a JSON object.
    """
    try:
        if isinstance(arguments, bytes):
            text = arguments.decode("utf-8")
        else:
            arguments.encode("utf-8")
            text = arguments
    except UnicodeError as exc:
        raise InvalidArgsEncoding() from exc

    if not text.strip():
        return {}
    try:
        decoded = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidToolArgs(tool_name, text, exc.msg) from exc
    if not isinstance(decoded, dict):
        raise InvalidToolArgs(tool_name, text, "arguments must be a JSON object")
    return decoded


class Tool(ABC):
    """
    The calling contract a pluggable tool satisfies.

    The orchestrator only reads ``name``, ``description``, ``parameters`` and
    ``kind``, and calls ``invoke`` with the raw JSON argument string.
    ``invoke`` returns any JSON-encodable value and may raise ``ToolError``.
    """

    @property
    @abstractmethod
    def name(self) -> str: ...

    @property
    @abstractmethod
    def description(self) -> str: ...

    @property
    @abstractmethod
    def parameters(self) -> dict: ...

    @property
    def kind(self) -> ToolKind:
        return ToolKind.REGULAR

    @abstractmethod
    async def invoke(self, arguments: str) -> Any: ...

    def to_openai_schema(self) -> dict:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": normalize_schema(self.parameters),
                "strict": False,
            },
        }

    def to_gemini_declaration(self) -> dict:
        # Gemini rejects additionalProperties in function declarations.
        params = dict(self.parameters or {})
        params.setdefault("type", "object")
        params.pop("additionalProperties", None)
        return {
            "name": self.name,
            "description": self.description,
            "parameters": params,
        }


class FunctionTool(Tool):
    """
    A tool backed by a plain (sync or async) function taking keyword args.

    Sync functions are run with ``asyncio.to_thread`` so they neither block
    the event loop nor serialize a turn's concurrent tool calls.

    Arguments are decoded and validated against *parameters* before the
    function runs, so schema violations surface as ``InvalidToolArgs``.
    """

    def __init__(
        self,
        name: str,
        description: str,
        parameters: dict,
        func: Callable[..., Any] | Callable[..., Awaitable[Any]],
        kind: ToolKind = ToolKind.REGULAR,
    ) -> None:
        self._name = name
        self._description = description
        self._parameters = parameters
        self._func = func
        self._kind = kind

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def parameters(self) -> dict:
        return self._parameters

    @property
    def kind(self) -> ToolKind:
        return self._kind

    async def invoke(self, arguments: str) -> Any:
        args = decode_arguments(self.name, arguments)
        valid, error = ToolValidator.validate(self, args)
        if not valid:
            raise InvalidToolArgs(self.name, arguments, error or "schema validation failed")

        if inspect.iscoroutinefunction(self._func):
            return await self._func(**args)
        # Sync functions run in a worker thread so a batch of calls overlaps.
        result = await asyncio.to_thread(self._func, **args)
        if inspect.isawaitable(result):
            result = await result
        return result


def tool(
    name: str | None = None,
    *,
    description: str = "",
    parameters: dict | None = None,
    kind: ToolKind = ToolKind.REGULAR,
) -> Callable[[Callable[..., Any]], FunctionTool]:
    """Decorator form of ``FunctionTool``; the docstring is the default description."""

    def wrap(func: Callable[..., Any]) -> FunctionTool:
        return FunctionTool(
            name=name or func.__name__,
            description=description or inspect.getdoc(func) or "",
            parameters=parameters or {"type": "object", "properties": {}},
            func=func,
            kind=kind,
        )

    return wrap


def openai_tools_schema(tools: Iterable[Tool]) -> list[dict]:
    """The ``tools`` request field for OpenAI-style endpoints."""
    return [t.to_openai_schema() for t in tools]


def gemini_tools_schema(tools: Iterable[Tool]) -> list[dict]:
    # Gemini groups every declaration under a single tools entry.
    declarations = [t.to_gemini_declaration() for t in tools]
    if not declarations:
        return []
    return [{"functionDeclarations": declarations}]
