"""
Main CLI application for agentkit.

Usage:
    agentkit run PROMPT [--source NAME] [--model ID] [--max-turns N]
    agentkit tools list
    agentkit config show|validate
    agentkit version
"""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import Optional

import typer
import yaml
from rich.console import Console

from agentkit import __version__
from agentkit.config import find_config_path, load_config

app = typer.Typer(name="agentkit", help="agentkit - streaming tool-calling agent CLI")
tools_app = typer.Typer(help="Tool management")
config_app = typer.Typer(help="Configuration management")

app.add_typer(tools_app, name="tools")
app.add_typer(config_app, name="config")

console = Console()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _setup_logging(verbose: bool) -> None:
    from rich.logging import RichHandler

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
    )


def _load_registry(enabled: bool):
    from agentkit.tools.registry import ToolRegistry

    registry = ToolRegistry()
    loaded = registry.load_plugins(enabled=enabled)
    logging.getLogger(__name__).debug("Loaded %d plugin tools", loaded)
    return registry


async def _run(
    cfg,
    prompt: str,
    source_name: str,
    model_id: str,
    max_turns: int,
    system: str | None,
    show_reasoning: bool,
) -> int:
    from agentkit.agent import AgentClient
    from agentkit.cli.output import EventPrinter
    from agentkit.errors import AgentClientError, TransportError
    from agentkit.events import ErrorEvent
    from agentkit.llm.models import Model, ModelProvider, Source
    from agentkit.llm.types import SystemMessage, UserMessage
    from agentkit.orchestrator.cancellation import CancelToken

    source = Source.from_config(cfg, source_name)
    model = Model(id=model_id, provider=ModelProvider(source.kind.value))
    registry = _load_registry(cfg.agent.load_plugins)

    messages = []
    if system:
        messages.append(SystemMessage(content=system))
    messages.append(UserMessage(content=prompt))

    cancel = CancelToken()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel.cancel)
    except NotImplementedError:
        pass

    client = AgentClient(
        max_concurrent_tools=cfg.agent.max_concurrent_tools,
        max_retries=cfg.agent.max_retries,
    )
    printer = EventPrinter(console, show_reasoning=show_reasoning)
    exit_code = 0
    try:
        async for event in client.process(
            messages, model, source, registry, max_turns=max_turns, cancel=cancel
        ):
            printer.handle(event)
            if isinstance(event, ErrorEvent):
                exit_code = 1
    except (AgentClientError, TransportError) as e:
        printer.finish()
        console.print(f"[red]Error:[/red] {e}")
        return 1
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except NotImplementedError:
            pass

    printer.finish()
    if cancel.cancelled:
        console.print("[yellow]Cancelled.[/yellow]")
        return 130
    return exit_code


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@app.command()
def run(
    prompt: str = typer.Argument(..., help="User prompt"),
    source: Optional[str] = typer.Option(None, "--source", "-s", help="openai, openrouter or gemini"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model id"),
    max_turns: Optional[int] = typer.Option(None, "--max-turns", help="Turn ceiling for the run"),
    system: Optional[str] = typer.Option(None, "--system", help="System prompt"),
    profile: Optional[str] = typer.Option(None, help="Config profile name"),
    reasoning: bool = typer.Option(False, "--reasoning", help="Print reasoning fragments"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Run one prompt through the agent loop and stream the output."""
    _setup_logging(verbose)
    cfg = load_config(find_config_path(), profile=profile)
    code = asyncio.run(
        _run(
            cfg,
            prompt,
            source or cfg.agent.default_source,
            model or cfg.agent.default_model,
            max_turns or cfg.agent.max_turns,
            system,
            reasoning,
        )
    )
    if code:
        raise typer.Exit(code)


@tools_app.command("list")
def tools_list():
    """List tools available to the agent (plugins included when enabled)."""
    from agentkit.tools.base import ToolKind

    cfg = load_config(find_config_path())
    registry = _load_registry(cfg.agent.load_plugins)
    if not len(registry):
        console.print("[dim]No tools registered.[/dim]")
        return
    for t in registry.list():
        tag = " [magenta](ui)[/magenta]" if t.kind is ToolKind.UI else ""
        console.print(f"[cyan]{t.name}[/cyan]{tag}  {t.description}")


@config_app.command("show")
def config_show():
    """Show effective config."""
    from agentkit.cli.output import format_config

    format_config(load_config(find_config_path()), console)


@config_app.command("validate")
def config_validate():
    """Validate config and show the effective defaults."""
    config_path = find_config_path()
    try:
        cfg = load_config(config_path)
    except (OSError, ValueError, TypeError, yaml.YAMLError) as e:
        console.print(f"[red]Config validation failed:[/red] {e}")
        raise typer.Exit(1)
    console.print("[green]Config is valid.[/green]")
    if config_path:
        console.print(f"  Loaded from: {config_path}")
    else:
        console.print("  [dim]No config file found, using defaults.[/dim]")
    console.print(f"  Default source: {cfg.agent.default_source} ({cfg.agent.default_model})")
    console.print(f"  Max turns: {cfg.agent.max_turns}")
    console.print(f"  Plugins enabled: {cfg.agent.load_plugins}")


@app.command()
def version():
    """Show version."""
    console.print(f"agentkit v{__version__}")


def main():
    app()


if __name__ == "__main__":
    main()
