"""
OpenAI-compatible chat-completion adapter.

Works with any endpoint that speaks the OpenAI ``/v1/chat/completions`` wire
protocol -- OpenAI itself, Azure OpenAI, vLLM, LM Studio, LocalAI, etc.

Dependencies: ``httpx`` (async HTTP client).  No ``openai`` SDK needed.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Sequence

from agentkit.llm.models import Model
from agentkit.llm.providers.base import LineDecoder, WireAdapter, WireRequest
from agentkit.llm.types import (
    AssistantMessage,
    FinishReason,
    Message,
    ReasoningDetail,
    StreamDelta,
    SystemMessage,
    ToolCallDelta,
    ToolMessage,
    UserMessage,
    tool_call_to_dict,
)
from agentkit.tools.base import Tool, openai_tools_schema

logger = logging.getLogger(__name__)


class OpenAICompatAdapter(WireAdapter):
    """
    Adapter for any OpenAI-API-compatible endpoint.

    The response is server-sent events: one ``data: {json}`` line per chunk,
    terminated by ``data: [DONE]``.
    """

    default_base_url = "https://api.openai.com/v1"

    # Whether assistant reasoning is echoed back in requests.
    send_reasoning = False

    @property
    def name(self) -> str:
        return "openai-compat"

    # ------------------------------------------------------------------
    # Request building
    # ------------------------------------------------------------------

    def _build_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
        }
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _wire_message(self, msg: Message) -> dict[str, Any]:
        if isinstance(msg, AssistantMessage):
            m: dict[str, Any] = {"role": "assistant", "content": msg.content}
            if msg.tool_calls:
                m["tool_calls"] = [
                    tool_call_to_dict(tc, include_index=False) for tc in msg.tool_calls
                ]
            if self.send_reasoning:
                if msg.reasoning is not None:
                    m["reasoning"] = msg.reasoning
                if msg.reasoning_details:
                    m["reasoning_details"] = [rd.to_dict() for rd in msg.reasoning_details]
            return m
        if isinstance(msg, ToolMessage):
            m = {"role": "tool", "content": msg.content, "tool_call_id": msg.tool_call_id}
            if msg.name is not None:
                m["name"] = msg.name
            return m
        if isinstance(msg, (UserMessage, SystemMessage)):
            return {"role": msg.role.value, "content": msg.content}
        raise TypeError(f"Not a message: {msg!r}")

    def _extra_body(self, model: Model) -> dict[str, Any]:
        return {}

    def build_request(
        self,
        messages: Sequence[Message],
        model: Model,
        tools: Sequence[Tool],
    ) -> WireRequest:
        body: dict[str, Any] = {
            "model": model.id,
            "messages": [self._wire_message(m) for m in messages],
            "stream": True,
        }
        if tools:
            body["tools"] = openai_tools_schema(tools)
            body["tool_choice"] = "auto"
        body.update(self._extra_body(model))
        return WireRequest(
            url=f"{self._base_url}/chat/completions",
            body=body,
            headers=self._build_headers(),
        )

    # ------------------------------------------------------------------
    # Stream decoding
    # ------------------------------------------------------------------

    def is_end_of_stream(self, line: str) -> bool:
        return line.startswith("data:") and line[len("data:"):].strip() == "[DONE]"

    def new_decoder(self) -> LineDecoder:
        return self.decode_line

    def decode_line(self, line: str) -> StreamDelta | None:
        """
        Decode one SSE line.

        Comments (``: keep-alive``), blank event boundaries and lines whose
        payload is not JSON are skipped.
        """
        if not line.startswith("data:"):
            return None
        data_str = line[len("data:"):].strip()
        try:
            data = json.loads(data_str)
        except json.JSONDecodeError:
            logger.debug("Skipping unparseable SSE data: %s", data_str[:200])
            return None
        if not isinstance(data, dict):
            return None
        if "error" in data:
            logger.warning("Backend reported an in-stream error: %s", data["error"])
            return None
        return self._data_to_delta(data)

    def _data_to_delta(self, data: dict) -> StreamDelta | None:
        """Convert a parsed SSE ``data`` payload into a ``StreamDelta``."""
        choices = data.get("choices")
        if not choices:
            return None

        choice = choices[0]
        delta = choice.get("delta") or {}

        reasoning = delta.get("reasoning")
        if reasoning is None:
            # vLLM / DeepSeek style
            reasoning = delta.get("reasoning_content")

        raw_details = delta.get("reasoning_details")
        details = (
            [ReasoningDetail.from_dict(rd) for rd in raw_details if isinstance(rd, dict)]
            if raw_details
            else None
        )

        tool_deltas: list[ToolCallDelta] | None = None
        raw_tcs = delta.get("tool_calls")
        if raw_tcs:
            tool_deltas = []
            for raw_tc in raw_tcs:
                func = raw_tc.get("function") or {}
                idx = raw_tc.get("index")
                tool_deltas.append(
                    ToolCallDelta(
                        index=0 if idx is None else idx,
                        id=raw_tc.get("id"),
                        type=raw_tc.get("type"),
                        name=func.get("name"),
                        arguments=func.get("arguments"),
                        thought_signature=func.get("thought_signature"),
                    )
                )

        return StreamDelta(
            content=delta.get("content"),
            reasoning=reasoning,
            reasoning_details=details,
            tool_calls=tool_deltas,
            finish_reason=FinishReason.parse(choice.get("finish_reason")),
        )
