"""Tool calling contract, registry and schema validation."""

from agentkit.tools.base import FunctionTool, Tool, ToolKind, decode_arguments, tool
from agentkit.tools.registry import ToolRegistry

__all__ = [
    "FunctionTool",
    "Tool",
    "ToolKind",
    "ToolRegistry",
    "decode_arguments",
    "tool",
]
