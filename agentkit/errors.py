"""
Error taxonomy.

``TransportError`` is fatal and propagates out of the run.  ``ToolError`` is
recovered by the orchestrator and turned into a tool-result message.
``TurnLimitExceeded`` is surfaced as an error event, never raised out of the
event stream.
"""

from __future__ import annotations


class AgentError(Exception):
    """Base error type for agentkit."""


class TransportError(AgentError):
    """Non-2xx response, connection failure, or malformed top-level response."""

    def __init__(
        self,
        url: str,
        body: str = "",
        status_code: int | None = None,
    ) -> None:
        self.url = url
        self.body = body
        self.status_code = status_code
        status = f" (HTTP {status_code})" if status_code is not None else ""
        super().__init__(
            f"Invalid response from server{status}.\n URL: {url}\n Response: {body}"
        )


class ToolError(AgentError):
    """A tool invocation failed in a way the model can react to."""


class InvalidArgsEncoding(ToolError):
    def __init__(self) -> None:
        super().__init__("Invalid arguments encoding")


class InvalidToolArgs(ToolError):
    def __init__(self, tool_name: str, arguments: str, reason: str) -> None:
        self.tool_name = tool_name
        self.arguments = arguments
        self.reason = reason
        super().__init__(f"Invalid arguments for tool '{tool_name}': {reason}")


class TurnLimitExceeded(AgentError):
    def __init__(self, max_turns: int) -> None:
        self.max_turns = max_turns
        super().__init__(f"Maximum turns ({max_turns}) exceeded")


class AgentClientError(AgentError):
    """The façade could not pick or build a wire adapter."""

    @classmethod
    def invalid_source(cls, model_id: str, source_kind: str) -> AgentClientError:
        return cls(f"Invalid source: model {model_id!r} cannot be served by {source_kind!r}.")

    @classmethod
    def missing_credentials(cls, source_kind: str) -> AgentClientError:
        return cls(f"Missing API key or endpoint for {source_kind!r}.")


__all__ = [
    "AgentClientError",
    "AgentError",
    "InvalidArgsEncoding",
    "InvalidToolArgs",
    "ToolError",
    "TransportError",
    "TurnLimitExceeded",
]
