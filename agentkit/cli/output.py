"""Output formatting utilities for the CLI."""

from __future__ import annotations

import yaml
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.text import Text

from agentkit.config import AgentkitConfig
from agentkit.events import AgentEvent, ErrorEvent, MessageEvent, ReasoningDelta, TextDelta
from agentkit.llm.types import AssistantMessage, ToolMessage


class EventPrinter:
    """Rich-based rendering of a run's event stream."""

    def __init__(self, console: Console | None = None, show_reasoning: bool = False) -> None:
        self.console = console or Console()
        self.show_reasoning = show_reasoning
        self._mid_line = False

    def handle(self, event: AgentEvent) -> None:
        if isinstance(event, TextDelta):
            self.console.print(event.text, end="", markup=False, highlight=False)
            self._mid_line = True
        elif isinstance(event, ReasoningDelta):
            if self.show_reasoning:
                self.console.print(Text(event.text, style="dim italic"), end="")
                self._mid_line = True
        elif isinstance(event, MessageEvent):
            self._end_line()
            msg = event.message
            if isinstance(msg, AssistantMessage) and msg.tool_calls:
                for tc in msg.tool_calls:
                    self.console.print(
                        f"[cyan]→ {tc.name}[/cyan] [dim]{tc.arguments}[/dim]",
                        highlight=False,
                    )
            elif isinstance(msg, ToolMessage):
                self.console.print(
                    f"  [{msg.name}] {msg.content[:200]}", markup=False, highlight=False
                )
        elif isinstance(event, ErrorEvent):
            self._end_line()
            self.console.print(f"[red]Error:[/red] {event.error}")

    def finish(self) -> None:
        self._end_line()

    def _end_line(self) -> None:
        if self._mid_line:
            self.console.print()
            self._mid_line = False


def format_config(cfg: AgentkitConfig, console: Console | None = None) -> None:
    console = console or Console()
    text = yaml.safe_dump(cfg.to_dict(), sort_keys=False)
    console.print(Panel(Syntax(text, "yaml", theme="monokai"), title="agentkit config"))
