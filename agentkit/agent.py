"""
Agent façade.

``AgentClient.process`` is the single entry point: it picks the wire adapter
for a ``Source``, checks the model can be served by it, and hands the run to
a fresh ``Orchestrator``.  The client itself keeps no per-run state.
"""

from __future__ import annotations

import logging
from typing import AsyncIterator, Iterable, Sequence

import httpx

from agentkit.errors import AgentClientError
from agentkit.events import AgentEvent
from agentkit.llm.models import Model, Source, SourceKind
from agentkit.llm.providers.base import WireAdapter
from agentkit.llm.providers.gemini import GeminiAdapter
from agentkit.llm.providers.openai_compat import OpenAICompatAdapter
from agentkit.llm.providers.openrouter import OpenRouterAdapter
from agentkit.llm.types import Message
from agentkit.orchestrator.cancellation import CancelToken
from agentkit.orchestrator.core import DEFAULT_MAX_TURNS, Orchestrator
from agentkit.tools.base import Tool
from agentkit.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


def build_adapter(
    source: Source,
    transport: httpx.AsyncBaseTransport | None = None,
    max_retries: int = 0,
) -> WireAdapter:
    """Construct the wire adapter for *source*."""
    if source.kind is SourceKind.OPENAI:
        return OpenAICompatAdapter(
            api_key=source.api_key,
            base_url=source.base_url,
            timeout=source.timeout,
            max_retries=max_retries,
            transport=transport,
        )
    if source.kind is SourceKind.OPENROUTER:
        if not source.api_key:
            raise AgentClientError.missing_credentials(source.kind.value)
        return OpenRouterAdapter(
            api_key=source.api_key,
            base_url=source.base_url,
            timeout=source.timeout,
            max_retries=max_retries,
            transport=transport,
            site_url=source.site_url,
            app_name=source.app_name,
        )
    if source.kind is SourceKind.GEMINI:
        return GeminiAdapter(
            api_key=source.api_key,
            base_url=source.base_url,
            timeout=source.timeout,
            max_retries=max_retries,
            transport=transport,
        )
    raise AgentClientError(f"Unsupported source: {source.kind!r}")


class AgentClient:
    """
    Stateless dispatcher from (source, model) to a wire adapter + orchestrator.

    Parameters
    ----------
    max_concurrent_tools : int
        Passed through to each ``Orchestrator``.
    max_retries : int
        Passed through to each adapter.
    transport : httpx.AsyncBaseTransport
        Optional transport override for every adapter built (tests).
    """

    def __init__(
        self,
        max_concurrent_tools: int = 8,
        max_retries: int = 0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.max_concurrent_tools = max_concurrent_tools
        self.max_retries = max_retries
        self._transport = transport

    def create_adapter(self, model: Model, source: Source) -> WireAdapter:
        if not source.accepts(model):
            raise AgentClientError.invalid_source(model.id, source.kind.value)
        return build_adapter(source, transport=self._transport, max_retries=self.max_retries)

    async def process(
        self,
        messages: Sequence[Message],
        model: Model,
        source: Source,
        tools: Iterable[Tool] | ToolRegistry = (),
        max_turns: int = DEFAULT_MAX_TURNS,
        cancel: CancelToken | None = None,
    ) -> AsyncIterator[AgentEvent]:
        """
        Stream the events of one orchestration run.

        Raises ``AgentClientError`` before any event if the model/source pair
        is invalid, and ``TransportError`` if the backend fails.
        """
        adapter = self.create_adapter(model, source)
        registry = tools if isinstance(tools, ToolRegistry) else ToolRegistry(tools)
        orchestrator = Orchestrator(
            adapter,
            registry,
            max_turns=max_turns,
            max_concurrent_tools=self.max_concurrent_tools,
        )
        logger.debug(
            "process: source=%s model=%s tools=%d max_turns=%d",
            source.id,
            model.id,
            len(registry),
            max_turns,
        )
        async for event in orchestrator.run(messages, model, cancel):
            yield event
