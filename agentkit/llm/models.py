"""
Model and source descriptors.

A ``Source`` says *where* requests go (which wire adapter, base URL,
credentials); a ``Model`` says *what* to ask for.  Provider-specific models
must be paired with a matching source; ``custom`` models work anywhere.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from agentkit.config import AgentkitConfig


class SourceKind(str, Enum):
    OPENAI = "openai"
    OPENROUTER = "openrouter"
    GEMINI = "gemini"


class ModelProvider(str, Enum):
    OPENAI = "openai"
    OPENROUTER = "openrouter"
    GEMINI = "gemini"
    CUSTOM = "custom"


@dataclass(frozen=True)
class ReasoningConfig:
    """Extended-thinking budget forwarded to backends that support it."""

    max_tokens: int = 2000

    def to_dict(self) -> dict:
        return {"max_tokens": self.max_tokens}


DEFAULT_REASONING = ReasoningConfig()


@dataclass(frozen=True)
class Model:
    id: str
    provider: ModelProvider = ModelProvider.CUSTOM
    name: str | None = None
    reasoning: ReasoningConfig | None = None
    supported_parameters: tuple[str, ...] = ()

    @property
    def display_name(self) -> str:
        return self.name or self.id

    @property
    def supports_reasoning(self) -> bool:
        return "reasoning" in self.supported_parameters

    @property
    def reasoning_config(self) -> ReasoningConfig | None:
        """
        Explicit config wins; otherwise the default budget is enabled when the
        model advertises ``reasoning`` support.  Custom models never get one.
        """
        if self.provider is ModelProvider.CUSTOM:
            return None
        if self.reasoning is not None:
            return self.reasoning
        return DEFAULT_REASONING if self.supports_reasoning else None


@dataclass(frozen=True)
class Source:
    """
    Connection settings for one backend.

    ``api_key`` may be empty for unauthenticated OpenAI-compatible local
    endpoints; Gemini requires one.
    """

    kind: SourceKind
    api_key: str = ""
    base_url: str | None = None
    timeout: float = 120.0
    site_url: str | None = None
    app_name: str | None = None
    models: tuple[Model, ...] = field(default_factory=tuple)

    @property
    def id(self) -> str:
        return self.kind.value

    @property
    def display_name(self) -> str:
        return {
            SourceKind.OPENAI: "OpenAI",
            SourceKind.OPENROUTER: "OpenRouter",
            SourceKind.GEMINI: "Gemini",
        }[self.kind]

    def accepts(self, model: Model) -> bool:
        if model.provider is ModelProvider.CUSTOM:
            return True
        return model.provider.value == self.kind.value

    @classmethod
    def from_config(cls, cfg: AgentkitConfig, kind: SourceKind | str) -> Source:
        """Build a source from a loaded config, reading the key from the env."""
        kind = SourceKind(kind)
        section = getattr(cfg, kind.value)
        return cls(
            kind=kind,
            api_key=os.environ.get(section.api_key_env, ""),
            base_url=section.base_url or None,
            timeout=float(section.timeout_seconds),
            site_url=getattr(section, "site_url", None) or None,
            app_name=getattr(section, "app_name", None) or None,
        )
