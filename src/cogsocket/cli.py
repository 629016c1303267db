"""CogSocket CLI.

Talk to a device (or any CogSocket endpoint) from the command line,
or serve a Python object graph.

Usage:
    cogsocket get ws://169.254.26.207/ws cam0/hmi/state
    cogsocket put ws://169.254.26.207/ws cam0/hmi/hs/~e12b16bc/softOnline true
    cogsocket post ws://169.254.26.207/ws cam0/hmi/openSession '{"cellNames": ["A0:Z8"]}'
    cogsocket listen ws://169.254.26.207/ws cam0/hmi/stateChanged --count 5
    cogsocket hello ws://169.254.26.207/ws
    cogsocket serve --root myapp.graph:root --port 8080

Values are parsed as JSON; anything that is not valid JSON is sent as a
plain string.
"""

from __future__ import annotations

import asyncio
import importlib
import json
import logging
import os
import sys
from collections.abc import Awaitable, Callable
from typing import Any

import click

from .config import CogSocketConfig
from .engine import CogSocket
from .errors import CogSocketError
from .protocol import MISSING
from .transport import WebSocketClientTransport


def parse_value(text: str) -> Any:
    """Parse a command-line value as JSON, falling back to the raw string."""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


def load_root(target: str) -> Any:
    """Import an object graph root from "package.module:attribute"."""
    module_name, _, attribute = target.partition(":")
    if not module_name or not attribute:
        raise click.BadParameter(f"Expected 'module:attribute', got '{target}'")
    module = importlib.import_module(module_name)
    try:
        return getattr(module, attribute)
    except AttributeError:
        raise click.BadParameter(f"Module '{module_name}' has no attribute '{attribute}'") from None


def _echo_json(value: Any) -> None:
    click.echo(json.dumps(value, indent=2))


def _run_session(
    ctx: click.Context, url: str, action: Callable[[CogSocket], Awaitable[Any]]
) -> Any:
    """Connect to `url`, run `action`, close; map protocol errors to exit codes."""
    config: CogSocketConfig = ctx.obj["config"]
    trace = click.echo if ctx.obj["trace"] else None

    async def run() -> Any:
        transport = WebSocketClientTransport(url, config)
        async with CogSocket(transport, config=config, log=trace) as cogsock:
            return await action(cogsock)

    try:
        return asyncio.run(run())
    except CogSocketError as e:
        raise click.ClickException(str(e)) from e
    except KeyboardInterrupt:
        sys.exit(130)


@click.group()
@click.option("-v", "--verbose", count=True, help="Increase log verbosity (-v info, -vv debug)")
@click.option("--trace", is_flag=True, help="Print every frame sent and received")
@click.option("--indent", type=int, default=None, help="Indent outbound JSON frames")
@click.pass_context
def main(ctx: click.Context, verbose: int, trace: bool, indent: int | None) -> None:
    """CogSocket - JSON RPC client and server for vision sensors."""
    level_name = os.getenv("COGSOCKET_LOG_LEVEL", "WARNING").upper()
    level = logging.getLevelName(level_name)
    if verbose:
        level = logging.INFO if verbose == 1 else logging.DEBUG
    logging.basicConfig(
        level=level if isinstance(level, int) else logging.WARNING,
        format="%(levelname)s: %(name)s: %(message)s",
        stream=sys.stderr,
    )

    config = CogSocketConfig.from_env()
    if indent is not None:
        config.indent = indent

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["trace"] = trace


@main.command()
@click.argument("url")
@click.argument("path")
@click.pass_context
def get(ctx: click.Context, url: str, path: str) -> None:
    """Read the property at PATH."""
    _echo_json(_run_session(ctx, url, lambda cogsock: cogsock.get(path)))


@main.command()
@click.argument("url")
@click.argument("path")
@click.argument("value")
@click.option("--no-response", is_flag=True, help="Do not wait for a response")
@click.pass_context
def put(ctx: click.Context, url: str, path: str, value: str, no_response: bool) -> None:
    """Assign VALUE (JSON) to the property at PATH."""
    _run_session(
        ctx, url, lambda cogsock: cogsock.put(path, parse_value(value), respond=not no_response)
    )


@main.command()
@click.argument("url")
@click.argument("path")
@click.argument("body", required=False)
@click.option("--no-response", is_flag=True, help="Do not wait for a response")
@click.pass_context
def post(ctx: click.Context, url: str, path: str, body: str | None, no_response: bool) -> None:
    """Invoke the method at PATH with BODY (JSON; a list is spread into arguments)."""
    payload = MISSING if body is None else parse_value(body)
    result = _run_session(
        ctx, url, lambda cogsock: cogsock.post(path, payload, respond=not no_response)
    )
    if not no_response:
        _echo_json(result)


@main.command()
@click.argument("url")
@click.argument("path")
@click.option("--count", type=int, default=0, help="Stop after COUNT events (0 = forever)")
@click.pass_context
def listen(ctx: click.Context, url: str, path: str, count: int) -> None:
    """Print every event emitted at PATH."""

    async def action(cogsock: CogSocket) -> None:
        done = asyncio.Event()
        received = 0

        def on_event(*args: Any) -> None:
            nonlocal received
            if done.is_set():
                return
            _echo_json(args[0] if len(args) == 1 else list(args))
            received += 1
            if count and received >= count:
                done.set()

        cogsock.on_close = done.set
        await cogsock.add_listener(path, on_event)
        await done.wait()
        if cogsock.is_open:
            await cogsock.remove_listener(path, on_event)

    _run_session(ctx, url, action)


@main.command()
@click.argument("url")
@click.pass_context
def hello(ctx: click.Context, url: str) -> None:
    """Exchange identity records with the endpoint at URL."""
    _echo_json(_run_session(ctx, url, lambda cogsock: cogsock.hello()))


@main.command()
@click.option("--root", "root_spec", required=True, help="Object graph root as module:attribute")
@click.option("--host", default="127.0.0.1", help="Host to bind to")
@click.option("--port", default=8080, help="Port to bind to")
@click.option("--path", "ws_path", default="/ws", help="WebSocket endpoint path")
@click.pass_context
def serve(ctx: click.Context, root_spec: str, host: str, port: int, ws_path: str) -> None:
    """Serve an object graph to CogSocket peers."""
    import uvicorn

    from .app import create_app

    root = load_root(root_spec)
    trace = click.echo if ctx.obj["trace"] else None
    app = create_app(root, path=ws_path, config=ctx.obj["config"], log=trace)

    click.echo(f"Serving {root_spec} on ws://{host}:{port}{ws_path}", err=True)
    click.echo("Press Ctrl+C to stop", err=True)
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
