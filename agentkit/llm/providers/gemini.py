"""
Gemini adapter.

Talks to the native ``streamGenerateContent`` endpoint rather than Gemini's
OpenAI-compatible shim, so function calls keep their ``thoughtSignature``.

Request shape::

    POST {base}/v1beta/models/{model}:streamGenerateContent?alt=sse&key={api_key}
    {"contents": [{"role", "parts"}], "tools": [...], "systemInstruction": {...}}

``alt=sse`` is always sent. Without it the API streams one pretty-printed
JSON array whose objects span many lines, which cannot be decoded line by
line. The decoder still accepts bare JSON lines and array framing
(``[``, ``,{...}``, ``]``) from servers that answer the plain ``?key=``
form.

Each event (an SSE ``data:`` line, or a bare JSON line from servers that
stream newline-delimited objects) carries ``candidates[0].content.parts``.
Function calls arrive whole (never split across chunks), so every
``functionCall`` part becomes one complete ``ToolCallDelta``.

Dependencies: ``httpx``.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Sequence

import httpx

from agentkit.errors import AgentClientError
from agentkit.llm.models import Model
from agentkit.llm.providers.base import LineDecoder, WireAdapter, WireRequest
from agentkit.llm.types import (
    AssistantMessage,
    FinishReason,
    Message,
    StreamDelta,
    SystemMessage,
    ToolCallDelta,
    ToolMessage,
    UserMessage,
)
from agentkit.tools.base import Tool, gemini_tools_schema

logger = logging.getLogger(__name__)

_FINISH_REASONS: dict[str, FinishReason] = {
    "STOP": FinishReason.STOP,
    "MAX_TOKENS": FinishReason.LENGTH,
    "SAFETY": FinishReason.CONTENT_FILTER,
    "RECITATION": FinishReason.CONTENT_FILTER,
    "BLOCKLIST": FinishReason.CONTENT_FILTER,
    "PROHIBITED_CONTENT": FinishReason.CONTENT_FILTER,
    "SPII": FinishReason.CONTENT_FILTER,
}


def _map_finish_reason(value: str | None) -> FinishReason | str | None:
    if value is None or value == "FINISH_REASON_UNSPECIFIED":
        return None
    return _FINISH_REASONS.get(value, value.lower())


def _parse_json_or_text(raw: str) -> Any:
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return raw


class _GeminiStreamDecoder:
    """Per-stream decoder; numbers function calls across the whole response."""

    def __init__(self) -> None:
        self._next_index = 0

    def __call__(self, line: str) -> StreamDelta | None:
        text = line.strip()
        if text.startswith("data:"):
            text = text[len("data:"):].strip()
        # Tolerate the framing of a streamed JSON array.
        text = text.lstrip("[,").rstrip(",]").strip()
        if not text:
            return None
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            logger.debug("Skipping unparseable Gemini line: %s", text[:200])
            return None
        if not isinstance(data, dict):
            return None
        if "error" in data:
            logger.warning("Backend reported an in-stream error: %s", data["error"])
            return None

        candidates = data.get("candidates")
        if not candidates:
            return None
        candidate = candidates[0]
        parts = (candidate.get("content") or {}).get("parts") or []

        content: list[str] = []
        reasoning: list[str] = []
        calls: list[ToolCallDelta] = []
        for part in parts:
            if "text" in part:
                (reasoning if part.get("thought") else content).append(part["text"])
            elif "functionCall" in part:
                fc = part["functionCall"]
                calls.append(
                    ToolCallDelta(
                        index=self._next_index,
                        id=fc.get("id") or f"call_{uuid.uuid4().hex[:24]}",
                        type="function",
                        name=fc.get("name"),
                        arguments=json.dumps(fc.get("args") or {}),
                        thought_signature=part.get("thoughtSignature"),
                    )
                )
                self._next_index += 1

        finish_reason = _map_finish_reason(candidate.get("finishReason"))
        if calls and finish_reason in (None, FinishReason.STOP):
            finish_reason = FinishReason.TOOL_CALLS

        return StreamDelta(
            content="".join(content) if content else None,
            reasoning="".join(reasoning) if reasoning else None,
            tool_calls=calls or None,
            finish_reason=finish_reason,
        )


class GeminiAdapter(WireAdapter):
    """Adapter for Google's Gemini ``generativelanguage`` API."""

    default_base_url = "https://generativelanguage.googleapis.com"

    def __init__(
        self,
        api_key: str = "",
        base_url: str | None = None,
        timeout: float = 120.0,
        max_retries: int = 0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key:
            raise AgentClientError.missing_credentials("gemini")
        super().__init__(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
            transport=transport,
        )

    @property
    def name(self) -> str:
        return "gemini"

    # ------------------------------------------------------------------
    # Request building
    # ------------------------------------------------------------------

    def build_contents(
        self, messages: Sequence[Message]
    ) -> tuple[list[dict[str, Any]], dict[str, Any] | None]:
        """
        Restructure the conversation into ``contents`` + ``systemInstruction``.

        System messages are pulled out and joined; consecutive tool results
        are merged into one ``user`` turn of ``functionResponse`` parts.
        """
        contents: list[dict[str, Any]] = []
        system_texts: list[str] = []
        call_names: dict[str, str] = {}

        for msg in messages:
            if isinstance(msg, SystemMessage):
                system_texts.append(msg.content)
            elif isinstance(msg, UserMessage):
                contents.append({"role": "user", "parts": [{"text": msg.content}]})
            elif isinstance(msg, AssistantMessage):
                parts: list[dict[str, Any]] = []
                if msg.content:
                    parts.append({"text": msg.content})
                for tc in msg.tool_calls or ():
                    call_names[tc.id] = tc.name
                    args = _parse_json_or_text(tc.arguments or "{}")
                    part: dict[str, Any] = {
                        "functionCall": {
                            "name": tc.name,
                            "args": args if isinstance(args, dict) else {},
                        }
                    }
                    if tc.function.thought_signature:
                        part["thoughtSignature"] = tc.function.thought_signature
                    parts.append(part)
                contents.append({"role": "model", "parts": parts or [{"text": ""}]})
            elif isinstance(msg, ToolMessage):
                name = msg.name or call_names.get(msg.tool_call_id, "")
                part = {
                    "functionResponse": {
                        "name": name,
                        "response": {"content": _parse_json_or_text(msg.content)},
                    }
                }
                last = contents[-1] if contents else None
                if last is not None and last.get("_tool_results"):
                    last["parts"].append(part)
                else:
                    contents.append({"role": "user", "parts": [part], "_tool_results": True})

        for c in contents:
            c.pop("_tool_results", None)

        system = (
            {"parts": [{"text": "\n\n".join(system_texts)}]} if system_texts else None
        )
        return contents, system

    def build_request(
        self,
        messages: Sequence[Message],
        model: Model,
        tools: Sequence[Tool],
    ) -> WireRequest:
        contents, system = self.build_contents(messages)
        body: dict[str, Any] = {"contents": contents}
        if tools:
            body["tools"] = gemini_tools_schema(tools)
        if system is not None:
            body["systemInstruction"] = system
        return WireRequest(
            url=f"{self._base_url}/v1beta/models/{model.id}:streamGenerateContent",
            body=body,
            headers={"Content-Type": "application/json"},
            params={"alt": "sse", "key": self._api_key},
        )

    # ------------------------------------------------------------------
    # Stream decoding
    # ------------------------------------------------------------------

    def new_decoder(self) -> LineDecoder:
        return _GeminiStreamDecoder()
