"""agentkit -- streaming, tool-calling conversational agent loop."""

__version__ = "0.1.0"

from agentkit.agent import AgentClient
from agentkit.errors import (
    AgentClientError,
    AgentError,
    InvalidArgsEncoding,
    InvalidToolArgs,
    ToolError,
    TransportError,
    TurnLimitExceeded,
)
from agentkit.events import AgentEvent, ErrorEvent, MessageEvent, ReasoningDelta, TextDelta
from agentkit.llm.models import Model, ModelProvider, Source, SourceKind
from agentkit.llm.types import (
    AssistantMessage,
    Message,
    SystemMessage,
    ToolCall,
    ToolMessage,
    UserMessage,
)
from agentkit.orchestrator.cancellation import CancelToken
from agentkit.tools import FunctionTool, Tool, ToolKind, ToolRegistry, tool

__all__ = [
    "AgentClient",
    "AgentClientError",
    "AgentError",
    "AgentEvent",
    "AssistantMessage",
    "CancelToken",
    "ErrorEvent",
    "FunctionTool",
    "InvalidArgsEncoding",
    "InvalidToolArgs",
    "Message",
    "MessageEvent",
    "Model",
    "ModelProvider",
    "ReasoningDelta",
    "Source",
    "SourceKind",
    "SystemMessage",
    "TextDelta",
    "Tool",
    "ToolCall",
    "ToolError",
    "ToolKind",
    "ToolMessage",
    "ToolRegistry",
    "TransportError",
    "TurnLimitExceeded",
    "UserMessage",
    "__version__",
]
