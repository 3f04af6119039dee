"""Developer CLI for inspecting adapter behaviour offline.

Provides ``request`` and ``replay`` sub-commands using Click and Rich for
output formatting.

Usage::

    kode-llm request params.json --model gpt-5
    kode-llm replay capture.sse --model gpt-4o --api chat --verbose
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

import click
import httpx
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from kode_llm.adapters import ChatCompletionsAdapter, ModelAPIAdapter, ResponsesAPIAdapter
from kode_llm.catalog import get_capabilities
from kode_llm.models import (
    ApiArchitecture,
    Message,
    ModelProfile,
    ReasoningEffort,
    StreamEvent,
    ToolDefinition,
    UnifiedRequestParams,
)
from kode_llm.streaming import StreamCollector

console = Console()

_ADAPTERS: dict[str, type[ModelAPIAdapter]] = {
    "chat": ChatCompletionsAdapter,
    "responses": ResponsesAPIAdapter,
}


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _make_adapter(model: str, api: str | None) -> ModelAPIAdapter:
    capabilities = get_capabilities(model)
    if api is None:
        api = (
            "responses"
            if capabilities.api_architecture == ApiArchitecture.RESPONSES_API
            else "chat"
        )
    return _ADAPTERS[api](capabilities, ModelProfile.from_env(model))


def _load_params(data: dict[str, Any]) -> UnifiedRequestParams:
    system_prompt = data.get("system_prompt", [])
    if isinstance(system_prompt, str):
        system_prompt = [system_prompt]
    effort = data.get("reasoning_effort")
    return UnifiedRequestParams(
        messages=[Message.from_dict(m) for m in data.get("messages", [])],
        system_prompt=list(system_prompt),
        tools=[
            ToolDefinition(
                name=t["name"],
                description=t.get("description", ""),
                parameters=t.get("parameters", {}),
                freeform=bool(t.get("freeform", False)),
            )
            for t in data.get("tools", [])
        ],
        max_tokens=int(data.get("max_tokens", 4096)),
        stream=bool(data.get("stream", False)),
        reasoning_effort=ReasoningEffort(effort) if effort else None,
        verbosity=data.get("verbosity"),
        previous_response_id=data.get("previous_response_id"),
        temperature=data.get("temperature"),
        allowed_tools=data.get("allowed_tools"),
    )


@click.group()
@click.version_option(package_name="kode-llm")
def main() -> None:
    """kode-llm: inspect model API adapter payloads and streams."""


@main.command()
@click.argument("params_json", type=click.Path(exists=True))
@click.option("--model", required=True, help="Model name to build the request for.")
@click.option(
    "--api",
    type=click.Choice(sorted(_ADAPTERS)),
    default=None,
    help="Wire protocol (defaults to the catalog entry for the model).",
)
def request(params_json: str, model: str, api: str | None) -> None:
    """Print the wire payload built from a JSON request description."""
    try:
        data = json.loads(Path(params_json).read_text())
        params = _load_params(data)
    except (ValueError, KeyError, TypeError) as exc:
        console.print(f"[red]Invalid request file:[/red] {escape(str(exc))}")
        raise SystemExit(1) from exc

    adapter = _make_adapter(model, api)
    console.print_json(data=adapter.create_request(params))


@main.command()
@click.argument("capture", type=click.Path(exists=True))
@click.option("--model", required=True, help="Model name the capture came from.")
@click.option(
    "--api",
    type=click.Choice(sorted(_ADAPTERS)),
    default=None,
    help="Wire protocol (defaults to the catalog entry for the model).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def replay(capture: str, model: str, api: str | None, verbose: bool) -> None:
    """Feed a captured SSE body through the streaming parser."""
    _setup_logging(verbose)
    adapter = _make_adapter(model, api)
    body = httpx.Response(200, content=Path(capture).read_bytes())

    events, collector = asyncio.run(_replay(adapter, body))

    table = Table(title="Stream Events")
    table.add_column("#", style="dim")
    table.add_column("Type", style="cyan")
    table.add_column("Detail")
    for i, event in enumerate(events):
        table.add_row(str(i), event.type.value, _describe(event))
    console.print(table)

    response = collector.to_response()
    console.print(f"[bold green]Response:[/bold green] {response.id}")
    if response.text():
        console.print(response.text(), markup=False)
    else:
        console.print("[dim](no text)[/dim]")
    for call in response.tool_calls:
        console.print(
            f"[yellow]Tool call:[/yellow] {escape(call.name)}({escape(call.arguments)})"
        )
    console.print(
        f"Tokens: input={response.usage.input_tokens} "
        f"output={response.usage.output_tokens} total={response.usage.total}"
    )


async def _replay(
    adapter: ModelAPIAdapter, body: httpx.Response
) -> tuple[list[StreamEvent], StreamCollector]:
    events: list[StreamEvent] = []
    collector = StreamCollector()
    async for event in adapter.parse_streaming_response(body):
        events.append(event)
        collector.process_event(event)
    return events, collector


def _describe(event: StreamEvent) -> str:
    if event.delta:
        return escape(repr(event.delta))
    if event.tool is not None:
        return escape(f"{event.tool.name} {event.tool.input}")
    if event.usage is not None:
        return f"input={event.usage.input_tokens} output={event.usage.output_tokens}"
    if event.error:
        return f"[red]{escape(event.error)}[/red]"
    return event.response_id or ""


if __name__ == "__main__":
    main()
