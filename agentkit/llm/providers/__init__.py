"""Wire adapters, one per backend family."""

from agentkit.llm.providers.base import WireAdapter, WireRequest
from agentkit.llm.providers.gemini import GeminiAdapter
from agentkit.llm.providers.openai_compat import OpenAICompatAdapter
from agentkit.llm.providers.openrouter import OpenRouterAdapter

__all__ = [
    "GeminiAdapter",
    "OpenAICompatAdapter",
    "OpenRouterAdapter",
    "WireAdapter",
    "WireRequest",
]
