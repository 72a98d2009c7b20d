"""
Abstract base class for wire adapters.

A wire adapter turns (conversation, model, tools) into one streaming HTTP
request and decodes the response, line by line, into ``StreamDelta``
objects.  Adapters hold only connection settings; all per-stream decoding
state lives in the decoder returned by ``new_decoder`` and dies with the
stream.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import AsyncIterator, Callable, Sequence

import httpx

from agentkit.errors import TransportError
from agentkit.llm.models import Model
from agentkit.llm.types import Message, StreamDelta
from agentkit.orchestrator.cancellation import CancelToken
from agentkit.tools.base import Tool

logger = logging.getLogger(__name__)

LineDecoder = Callable[[str], "StreamDelta | None"]


@dataclass
class WireRequest:
    """Everything needed to open one streaming request."""

    url: str
    body: dict
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, str] = field(default_factory=dict)
    secret_params: tuple[str, ...] = ("key",)

    @property
    def display_url(self) -> str:
        """The URL with secret query parameters masked."""
        url = httpx.URL(self.url)
        if self.params:
            url = url.copy_merge_params(
                {k: "***" if k in self.secret_params else v for k, v in self.params.items()}
            )
        return str(url)


def _is_retryable(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


class WireAdapter(ABC):
    """
    Stream-capable adapter for one backend family.

    Parameters
    ----------
    api_key:
        Credential for the backend.  May be ``""`` for local endpoints.
    base_url:
        Override the backend's default base URL.
    timeout:
        HTTP timeout in seconds.  Bounding request latency is the adapter's
        job; the orchestrator has no timeout policy.
    max_retries:
        Retries on 429/5xx or connection failure *before* the first delta
        has been yielded.  Defaults to none.  Attempts are spaced by
        ``retry_delay``, which doubles from ``retry_backoff`` seconds.
    transport:
        Optional ``httpx`` transport, used by tests to mock the backend.
    """

    default_base_url: str = ""
    retry_backoff: float = 0.5

    def __init__(
        self,
        api_key: str = "",
        base_url: str | None = None,
        timeout: float = 120.0,
        max_retries: int = 0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = (base_url or self.default_base_url).rstrip("/")
        self._timeout = timeout
        self._max_retries = max_retries
        self._transport = transport

    def retry_delay(self, attempt: int) -> float:
        """Seconds to wait before retry number *attempt* (1-based)."""
        return self.retry_backoff * 2 ** (attempt - 1)

    # ------------------------------------------------------------------
    # Adapter interface
    # ------------------------------------------------------------------

    @property
    @abstractmethod
    def name(self) -> str:
        """Short adapter name (e.g. ``"openai-compat"``)."""
        ...

    @abstractmethod
    def build_request(
        self,
        messages: Sequence[Message],
        model: Model,
        tools: Sequence[Tool],
    ) -> WireRequest:
        """Serialize the conversation into the backend's request shape."""
        ...

    @abstractmethod
    def new_decoder(self) -> LineDecoder:
        """
        Return a fresh line decoder for one stream.

        The decoder maps a raw response line to a ``StreamDelta``, or
        ``None`` to skip the line (blank, unparseable, or carrying nothing).
        """
        ...

    def is_end_of_stream(self, line: str) -> bool:
        """Return ``True`` for an explicit end-of-stream sentinel line."""
        return False

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    async def stream(
        self,
        messages: Sequence[Message],
        model: Model,
        tools: Sequence[Tool] = (),
        cancel: CancelToken | None = None,
    ) -> AsyncIterator[StreamDelta]:
        """
        Open the request and yield decoded deltas.

        Raises ``TransportError`` on a non-2xx status (the body is drained
        into the error) or on connection failure.  If *cancel* is set while
        reading, the stream ends quietly.
        """
        request = self.build_request(messages, model, tools)
        logger.info(
            "REQUEST: adapter=%s model=%s tools=%d messages=%d api_key=%s",
            self.name,
            model.id,
            len(tools),
            len(messages),
            f"{self._api_key[:6]}..." if self._api_key else "(none)",
        )

        started = False
        for attempt in range(1 + self._max_retries):
            if attempt:
                await asyncio.sleep(self.retry_delay(attempt))
            try:
                async with httpx.AsyncClient(
                    timeout=self._timeout, transport=self._transport
                ) as client:
                    async with client.stream(
                        "POST",
                        request.url,
                        json=request.body,
                        headers=request.headers,
                        params=request.params or None,
                    ) as response:
                        if not response.is_success:
                            # Drain so the server's diagnostics reach the caller.
                            raw = await response.aread()
                            error = TransportError(
                                request.display_url,
                                raw.decode("utf-8", errors="replace"),
                                response.status_code,
                            )
                            if _is_retryable(response.status_code) and attempt < self._max_retries:
                                logger.warning(
                                    "Retrying after HTTP %d (attempt %d)",
                                    response.status_code,
                                    attempt + 1,
                                )
                                continue
                            raise error

                        decode = self.new_decoder()
                        async for line in response.aiter_lines():
                            if cancel is not None and cancel.cancelled:
                                logger.debug("Stream cancelled by caller")
                                return
                            if self.is_end_of_stream(line):
                                return
                            delta = decode(line)
                            if delta is not None:
                                started = True
                                yield delta
                        return
            except httpx.HTTPError as exc:
                if not started and attempt < self._max_retries:
                    logger.warning("Retrying after %s (attempt %d)", exc, attempt + 1)
                    continue
                raise TransportError(request.display_url, str(exc)) from exc
