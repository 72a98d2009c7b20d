from __future__ import annotations

from importlib.metadata import entry_points
from typing import Iterable

from agentkit.tools.base import Tool, ToolKind


class ToolRegistry:
    """
    Name-keyed tool lookup for one run.

    The orchestrator only reads from it, so no locking is needed while tools
    execute concurrently.
    """

    def __init__(self, tools: Iterable[Tool] = ()):
        self._tools: dict[str, Tool] = {}
        for t in tools:
            self.register(t)

    def register(self, tool: Tool, *, overwrite: bool = False) -> None:
        if tool.name in self._tools and not overwrite:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def list(self, kind: ToolKind | None = None) -> list[Tool]:
        tools = list(self._tools.values())
        if kind is not None:
            tools = [t for t in tools if t.kind is kind]
        return sorted(tools, key=lambda t: t.name)

    def is_ui(self, name: str) -> bool:
        t = self.get(name)
        return t is not None and t.kind is ToolKind.UI

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def load_plugins(
        self,
        *,
        enabled: bool,
        group: str = "agentkit.tools",
        allow_distributions: set[str] | None = None,
        allow_tools: set[str] | None = None,
    ) -> int:
        """Register tools exposed as entry points; each entry point is a no-arg ``Tool`` class."""
        if not enabled:
            return 0
        loaded = 0
        for ep in entry_points(group=group):
            dist = getattr(ep, "dist", None)
            dist_name = getattr(dist, "name", None)
            if allow_distributions and dist_name and dist_name not in allow_distributions:
                continue
            if allow_tools and ep.name not in allow_tools:
                continue
            tool_cls = ep.load()
            self.register(tool_cls())
            loaded += 1
        return loaded
