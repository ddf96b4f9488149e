"""CLI entry point for chloe."""

from __future__ import annotations

import asyncio
import importlib
import json
import logging
from typing import Any

import typer

from chloe.agent.loop import AgentLoop
from chloe.agent.persona import DEFAULT_PERSONA, Persona
from chloe.config import ChloeConfig
from chloe.errors import ChloeError
from chloe.selection import Match
from chloe.session.wire import EventType, Wire
from chloe.tool.catalog import TOOL_DECLARATIONS
from chloe.tool.invoker import CallbackInvoker, ToolInvoker

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="chloe",
    help="Chat with Chloe, an AI data assistant for matching columns.",
    no_args_is_help=True,
)

HELP_TEXT = """\
Commands:
  /select FILE   highlight the matches listed in a JSON file
  /clear         clear the highlighted matches
  /status        show busy state and the last tool used
  /exit          quit"""


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def load_invoker(ref: str | None) -> ToolInvoker:
    """Resolve ``module:attr`` into a ToolInvoker.

    ``attr`` may be a ToolInvoker or a ``(name, arguments)`` handler, which is
    paired with the column-matching tool catalog. Without a reference the
    built-in tool registry is used.
    """
    if not ref:
        from chloe.tool.builtin import ThinkTool
        from chloe.tool.registry import ToolRegistry

        registry = ToolRegistry()
        registry.register(ThinkTool())
        return registry

    module_name, sep, attr = ref.partition(":")
    if not sep or not module_name or not attr:
        raise typer.BadParameter(f"Expected 'module:attr', got {ref!r}")
    try:
        target = getattr(importlib.import_module(module_name), attr)
    except (ImportError, AttributeError) as e:
        raise typer.BadParameter(f"Cannot load invoker {ref!r}: {e}") from e

    if isinstance(target, ToolInvoker):
        return target
    if callable(target):
        return CallbackInvoker(target, TOOL_DECLARATIONS)
    raise typer.BadParameter(f"{ref!r} is neither a ToolInvoker nor callable")


def apply_overrides(
    config: ChloeConfig, persona: Persona, model: str | None = None
) -> None:
    """Resolve the model and temperature for a chat.

    Priority: --model > env > config file > persona > defaults. The persona
    only fills settings that neither the environment nor the file set.
    """
    explicit = config.llm.model_fields_set
    if model:
        config.llm.model = model
    elif persona.model and "model" not in explicit:
        config.llm.model = persona.model
    if persona.temperature is not None and config.llm.temperature is None:
        config.llm.temperature = persona.temperature


def load_selection(path: str) -> list[Match]:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError("selection file must contain a JSON list of matches")
    return [Match.model_validate(item) for item in data]


@app.command()
def chat(
    model: str | None = typer.Option(
        None, "--model", "-m", help="LLM model to use (default: from env/config)."
    ),
    persona_path: str | None = typer.Option(
        None, "--persona", "-p", help="Persona markdown file."
    ),
    invoker_ref: str | None = typer.Option(
        None,
        "--invoker",
        "-i",
        help="Application tool handler as 'module:attr'.",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
) -> None:
    """Start an interactive chat session."""
    setup_logging(verbose)

    try:
        config = ChloeConfig.load(config_file)
        path = persona_path or config.persona_path
        persona = Persona.from_markdown(path) if path else DEFAULT_PERSONA
    except (ChloeError, OSError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    apply_overrides(config, persona, model)
    invoker = load_invoker(invoker_ref)

    typer.echo(f"Chat with {persona.name}. {persona.description}")
    typer.echo(f"Model: {config.llm.model}")
    typer.echo(HELP_TEXT)
    typer.echo("---")

    asyncio.run(_run_chat(config, persona, invoker))


@app.command()
def tools() -> None:
    """List the column-matching tool catalog."""
    for decl in TOOL_DECLARATIONS:
        fn = decl["function"]
        params = ", ".join(fn["parameters"].get("properties", {}))
        typer.echo(f"{fn['name']}({params})")
        typer.echo(f"    {fn['description']}")


async def _run_chat(config: ChloeConfig, persona: Persona, invoker: ToolInvoker) -> None:
    from chloe.llm.provider import create_provider
    from chloe.session.conversation import LLMConversation

    provider = create_provider(
        model=config.llm.model,
        temperature=config.llm.temperature,
        max_tokens=config.llm.max_tokens,
        api_call_delay=config.retry.api_call_delay,
        max_retries=config.retry.max_retries,
    )
    wire = Wire()
    loop = AgentLoop(
        LLMConversation(provider, system_prompt=persona.system_prompt),
        invoker,
        wire=wire,
    )
    queue = wire.subscribe()
    consumer = asyncio.create_task(_print_events(queue, persona.name))
    selection: list[Match] = []

    try:
        while True:
            try:
                line = await asyncio.to_thread(input, "> ")
            except (EOFError, KeyboardInterrupt):
                break

            command, _, arg = line.strip().partition(" ")
            if command == "/exit":
                break
            if command == "/clear":
                selection = []
                typer.echo("Selection cleared.")
                continue
            if command == "/select":
                try:
                    selection = load_selection(arg.strip())
                except (OSError, ValueError) as e:
                    typer.echo(f"Error: {e}", err=True)
                    continue
                typer.echo(f"Selected {len(selection)} matches.")
                continue
            if command == "/status":
                status = loop.status()
                typer.echo(
                    f"busy={status.busy} messages={len(status.messages)} "
                    f"last_tool={status.last_tool_used or '-'}"
                )
                continue

            await loop.submit_prompt(line, selection)
            await queue.join()
    finally:
        wire.close()
        await consumer


async def _print_events(queue: asyncio.Queue[Any], name: str) -> None:
    while True:
        event = await queue.get()
        try:
            if event is None:
                return
            d = event.data
            if event.type == EventType.TOOL_CALL:
                typer.echo(f"  > {d.get('name', '?')}")
            elif event.type == EventType.MESSAGE and d.get("role") == "assistant":
                typer.echo(f"{name}: {d.get('content', '')}")
            elif event.type == EventType.ERROR:
                logger.debug("Turn error: %s", d.get("error"))
        finally:
            queue.task_done()


def main() -> None:
    app()


if __name__ == "__main__":
    main()
