"""LLM subsystem -- message types, model descriptors and wire adapters."""

from agentkit.llm.models import Model, ModelProvider, ReasoningConfig, Source, SourceKind
from agentkit.llm.types import (
    AssistantMessage,
    FinishReason,
    FunctionCall,
    Message,
    StreamDelta,
    SystemMessage,
    ToolCall,
    ToolCallDelta,
    ToolMessage,
    UserMessage,
)

__all__ = [
    "AssistantMessage",
    "FinishReason",
    "FunctionCall",
    "Message",
    "Model",
    "ModelProvider",
    "ReasoningConfig",
    "Source",
    "SourceKind",
    "StreamDelta",
    "SystemMessage",
    "ToolCall",
    "ToolCallDelta",
    "ToolMessage",
    "UserMessage",
]
