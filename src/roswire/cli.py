"""Typer CLI entrypoint for roswire.

Commands:
  topics    — list topics and their types
  services  — list services
  nodes     — list nodes
  echo      — print messages arriving on a topic
  pub       — publish a JSON message on a topic
  call      — call a service with a JSON request
  param     — get / set / delete a parameter
  config    — show or change the default rosbridge URL
"""

from __future__ import annotations

import asyncio
import base64
import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import numpy as np
import typer
from rich.console import Console
from rich.table import Table

from . import log_setup, rosapi
from .config import CONFIG_FILE, LOG_DIR, load_config, save_config
from .connection import Connection
from .errors import ServiceError

T = TypeVar("T")

app = typer.Typer(
    name="roswire",
    help="Talk to a rosbridge server from the command line.",
    add_completion=False,
)
param_app = typer.Typer(help="Get, set and delete parameters.", add_completion=False)
app.add_typer(param_app, name="param")
console = Console()


@dataclass
class _CliState:
    url: str
    timeout: float


def _jsonable(value: Any) -> Any:
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(value).decode("ascii")
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _parse_json(text: str, what: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        console.print(f"[red]Invalid JSON for {what}:[/red] {exc}")
        raise typer.Exit(2)


def _run(state: _CliState, work: Callable[[Connection], Awaitable[T]]) -> T:
    """Connect, run *work*, close; turn expected failures into exit codes."""

    async def _main() -> T:
        ros = Connection(state.url)
        ros.connect()
        try:
            await ros.wait_for_connection(timeout=state.timeout)
            return await work(ros)
        finally:
            ros.close()
            await ros.wait_closed(timeout=state.timeout)

    try:
        return asyncio.run(_main())
    except TimeoutError:
        console.print(f"[red]Timed out talking to {state.url}[/red]")
        raise typer.Exit(1)
    except ServiceError as exc:
        console.print(f"[red]Service call failed:[/red] {exc.values}")
        raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Global options
# ---------------------------------------------------------------------------


@app.callback()
def main(
    ctx: typer.Context,
    url: str = typer.Option(None, "--url", "-u", envvar="ROSWIRE_URL", help="rosbridge WebSocket URL."),
    timeout: float = typer.Option(5.0, "--timeout", "-t", help="Seconds to wait for the server."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log to the terminal at DEBUG level."),
) -> None:
    config = load_config()
    log_setup.init(
        "cli",
        LOG_DIR,
        level="DEBUG" if verbose else config.log_level,
        foreground=verbose,
    )
    ctx.obj = _CliState(url=url or config.url, timeout=timeout)


# ---------------------------------------------------------------------------
# Introspection
# ---------------------------------------------------------------------------


@app.command()
def topics(ctx: typer.Context) -> None:
    """List topics and their message types."""
    result = _run(ctx.obj, rosapi.get_topics)

    table = Table(title="topics", box=None, padding=(0, 2))
    table.add_column("Topic", style="bold")
    table.add_column("Type")
    for name, message_type in zip(result.get("topics", []), result.get("types", [])):
        table.add_row(name, message_type)
    console.print(table)


@app.command()
def services(ctx: typer.Context) -> None:
    """List advertised services."""
    for name in _run(ctx.obj, rosapi.get_services):
        console.print(name)


@app.command()
def nodes(ctx: typer.Context) -> None:
    """List running nodes."""
    for name in _run(ctx.obj, rosapi.get_nodes):
        console.print(name)


# ---------------------------------------------------------------------------
# Topics
# ---------------------------------------------------------------------------


@app.command()
def echo(
    ctx: typer.Context,
    topic: str = typer.Argument(..., help="Topic name, e.g. /chatter"),
    message_type: str = typer.Argument(..., help="Message type, e.g. std_msgs/String"),
    count: int = typer.Option(0, "--count", "-n", help="Stop after N messages (0 = forever)."),
    compression: str = typer.Option("none", "--compression", help="none, png, cbor or cbor-raw"),
    throttle_rate: int = typer.Option(0, "--throttle", help="Minimum ms between messages."),
) -> None:
    """Print messages published on TOPIC."""

    async def _echo(ros: Connection) -> None:
        done = asyncio.Event()
        seen = 0

        def _print(message: Any) -> None:
            nonlocal seen
            console.print_json(json.dumps(message, default=_jsonable))
            seen += 1
            if count and seen >= count:
                done.set()

        subscription = ros.topic(
            topic, message_type, compression=compression, throttle_rate=throttle_rate
        )
        subscription.subscribe(_print)
        ros.once("close", lambda *_: done.set())
        try:
            await done.wait()
        finally:
            subscription.unsubscribe()

    try:
        _run(ctx.obj, _echo)
    except KeyboardInterrupt:
        pass


@app.command()
def pub(
    ctx: typer.Context,
    topic: str = typer.Argument(..., help="Topic name."),
    message_type: str = typer.Argument(..., help="Message type."),
    message: str = typer.Argument(..., help='JSON message, e.g. \'{"data": "hi"}\''),
    latch: bool = typer.Option(False, "--latch", help="Latch the topic."),
    times: int = typer.Option(1, "--times", help="Number of times to publish."),
    rate: float = typer.Option(1.0, "--rate", help="Publish rate in Hz when --times > 1."),
) -> None:
    """Publish MESSAGE on TOPIC."""
    body = _parse_json(message, "message")

    async def _pub(ros: Connection) -> None:
        publisher = ros.topic(topic, message_type, latch=latch)
        for i in range(times):
            if i:
                await asyncio.sleep(1.0 / rate)
            publisher.publish(body)
        # Give the writer a chance to flush before the connection closes.
        await asyncio.sleep(0.1)
        publisher.unadvertise()

    _run(ctx.obj, _pub)
    console.print(f"[green]Published[/green] {times} message(s) on {topic}")


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


@app.command()
def call(
    ctx: typer.Context,
    service: str = typer.Argument(..., help="Service name."),
    request: str = typer.Argument("{}", help="JSON request arguments."),
    service_type: str = typer.Option(None, "--type", help="Service type, if the bridge needs it."),
) -> None:
    """Call SERVICE and print the response."""
    args = _parse_json(request, "request")

    async def _call(ros: Connection) -> Any:
        return await ros.service(service, service_type).call(args)

    console.print_json(json.dumps(_run(ctx.obj, _call), default=_jsonable))


# ---------------------------------------------------------------------------
# Parameters
# ---------------------------------------------------------------------------


@param_app.command("get")
def param_get(ctx: typer.Context, name: str = typer.Argument(..., help="Parameter name.")) -> None:
    """Print the value of parameter NAME."""
    value = _run(ctx.obj, lambda ros: ros.param(name).get())
    console.print_json(json.dumps(value))


@param_app.command("set")
def param_set(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Parameter name."),
    value: str = typer.Argument(..., help="JSON value."),
) -> None:
    """Set parameter NAME to the JSON VALUE."""
    parsed = _parse_json(value, "value")
    _run(ctx.obj, lambda ros: ros.param(name).set(parsed))
    console.print(f"[green]Set[/green] {name}")


@param_app.command("delete")
def param_delete(ctx: typer.Context, name: str = typer.Argument(..., help="Parameter name.")) -> None:
    """Delete parameter NAME."""
    _run(ctx.obj, lambda ros: ros.param(name).delete())
    console.print(f"[green]Deleted[/green] {name}")


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------


@app.command("config")
def config_cmd(
    url: str = typer.Option(None, "--set-url", help="Store a new default rosbridge URL."),
    log_level: str = typer.Option(None, "--log-level", help="Store a new default log level."),
) -> None:
    """Show the stored defaults, or change them."""
    config = load_config()
    if url is not None or log_level is not None:
        if url is not None:
            config.url = url
        if log_level is not None:
            config.log_level = log_level.upper()
        save_config(config)
        console.print(f"[green]Config saved to[/green] {CONFIG_FILE}")

    table = Table(title="roswire config", show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="bold")
    table.add_column("Value")
    table.add_row("URL", config.url)
    table.add_row("Log level", config.log_level)
    console.print(table)


if __name__ == "__main__":
    app()
