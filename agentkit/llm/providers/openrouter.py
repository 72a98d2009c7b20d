"""
OpenRouter adapter.

Same wire protocol as OpenAI-compatible endpoints, plus the attribution
headers OpenRouter uses for its app rankings (``HTTP-Referer``, ``X-Title``)
and the ``reasoning`` request field.  Assistant reasoning is echoed back so
thinking models keep their context across tool calls.
"""

from __future__ import annotations

from typing import Any

import httpx

from agentkit.llm.models import Model
from agentkit.llm.providers.openai_compat import OpenAICompatAdapter


class OpenRouterAdapter(OpenAICompatAdapter):
    """
    Parameters
    ----------
    site_url:
        Sent as ``HTTP-Referer`` when set.
    app_name:
        Sent as ``X-Title`` when set.

    Other parameters are as for ``WireAdapter``.
    """

    default_base_url = "https://openrouter.ai/api/v1"
    send_reasoning = True

    def __init__(
        self,
        api_key: str = "",
        base_url: str | None = None,
        timeout: float = 120.0,
        max_retries: int = 0,
        transport: httpx.AsyncBaseTransport | None = None,
        site_url: str | None = None,
        app_name: str | None = None,
    ) -> None:
        super().__init__(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
            transport=transport,
        )
        self._site_url = site_url
        self._app_name = app_name

    @property
    def name(self) -> str:
        return "openrouter"

    def _build_headers(self) -> dict[str, str]:
        headers = super()._build_headers()
        if self._site_url:
            headers["HTTP-Referer"] = self._site_url
        if self._app_name:
            headers["X-Title"] = self._app_name
        return headers

    def _extra_body(self, model: Model) -> dict[str, Any]:
        reasoning = model.reasoning_config
        if reasoning is None:
            return {}
        return {"reasoning": reasoning.to_dict()}
