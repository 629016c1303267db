"""End-to-end tests with two engines wired through paired MemoryTransports.

The "device" engine serves an object graph; the "client" engine talks to
it. Both run their reader tasks, exactly as over a real WebSocket.
"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from cogsocket import CogSocket, CogSocketConfig, EventEmitter, MemoryTransport
from cogsocket.errors import ConnectionClosedError, RemoteError


class Hmi(EventEmitter):
    def __init__(self) -> None:
        super().__init__()
        self.state = "Idle"
        self.release = asyncio.Event()

    def set_state(self, state: str) -> str:
        self.state = state
        self.emit("stateChanged", {"state": state})
        return state

    async def hang(self) -> None:
        await self.release.wait()

    def finish(self, result: str) -> None:
        self.state = "Done"
        self.emit("resultChanged", result)


def make_pair(
    root: Any, client_root: Any = None
) -> tuple[CogSocket, CogSocket]:
    left, right = MemoryTransport.pair()
    device = CogSocket(
        left, root, config=CogSocketConfig(identity={"name": "IS8505", "model": "8505"})
    )
    client = CogSocket(right, client_root, config=CogSocketConfig(identity={"name": "client"}))
    return device, client


@pytest.mark.anyio
async def test_get_put_get() -> None:
    hmi = Hmi()
    device, client = make_pair({"cam0": {"hmi": hmi}})

    async with device, client:
        assert await client.get("cam0/hmi/state") == "Idle"
        await client.put("cam0/hmi/state", "Online")
        assert await client.get("cam0/hmi/state") == "Online"

    assert hmi.state == "Online"


@pytest.mark.anyio
async def test_concurrent_requests() -> None:
    device, client = make_pair({"a": 1, "b": 2, "c": 3})

    async with device, client:
        results = await asyncio.gather(client.get("a"), client.get("b"), client.get("c"))

    assert results == [1, 2, 3]


@pytest.mark.anyio
async def test_hello_exchanges_identities() -> None:
    device, client = make_pair({})

    async with device, client:
        remote = await client.hello()

    assert remote == {"name": "IS8505", "model": "8505"}
    assert client.remote_info == {"name": "IS8505", "model": "8505"}
    assert device.remote_info == {"name": "client"}


@pytest.mark.anyio
async def test_remote_error() -> None:
    device, client = make_pair({"cam0": {}})

    async with device, client:
        with pytest.raises(RemoteError, match="No member 'stat'"):
            await client.get("cam0/stat")

        # The connection survives a failed request
        assert await client.post("@/hello") == {"name": "IS8505", "model": "8505"}


@pytest.mark.anyio
async def test_events_reach_listener() -> None:
    hmi = Hmi()
    device, client = make_pair({"hmi": hmi})
    events: asyncio.Queue[Any] = asyncio.Queue()

    async with device, client:
        await client.add_listener("hmi/stateChanged", events.put_nowait)
        assert await client.post("hmi/set_state", "Online") == "Online"

        event = await asyncio.wait_for(events.get(), timeout=1.0)
        assert event == {"state": "Online"}

        await client.remove_listener("hmi/stateChanged", events.put_nowait)
        assert hmi.listener_count("stateChanged") == 0


@pytest.mark.anyio
async def test_async_listener_awaits_request() -> None:
    """A listener can query the peer while handling the peer's event."""
    hmi = Hmi()
    device, client = make_pair({"hmi": hmi})
    states: asyncio.Queue[Any] = asyncio.Queue()

    async def on_result(result: Any) -> None:
        states.put_nowait((result, await client.get("hmi/state")))

    async with device, client:
        await client.add_listener("hmi/resultChanged", on_result)
        await client.post("hmi/finish", ["pass"])

        assert await asyncio.wait_for(states.get(), timeout=1.0) == ("pass", "Done")
        assert client.pending_requests == 0


@pytest.mark.anyio
async def test_async_method_calls_back_into_peer() -> None:
    """A served method can await a request to the endpoint that called it."""
    client_graph = {"user": "operator"}

    class Session:
        async def whoami(self) -> Any:
            return await device.get("user")

    device, client = make_pair({"session": Session()}, client_graph)

    async with device, client:
        assert await asyncio.wait_for(client.post("session/whoami"), timeout=1.0) == "operator"


@pytest.mark.anyio
async def test_both_endpoints_serve() -> None:
    """The device can call back into the client's graph on the same socket."""
    device, client = make_pair({"state": "Idle"}, {"user": "operator"})

    async with device, client:
        assert await device.get("user") == "operator"
        assert await client.get("state") == "Idle"


@pytest.mark.anyio
async def test_peer_close_fails_pending_and_closes() -> None:
    hmi = Hmi()
    device, client = make_pair({"hmi": hmi})
    closed = asyncio.Event()
    client.on_close = closed.set

    await device.open()
    await client.open()

    pending = asyncio.ensure_future(client.post("hmi/hang"))
    await asyncio.sleep(0.01)
    await device.close()

    await asyncio.wait_for(closed.wait(), timeout=1.0)
    with pytest.raises(ConnectionClosedError):
        await pending
    assert client.is_closed is True


@pytest.mark.anyio
async def test_serve_returns_when_peer_closes() -> None:
    device, client = make_pair({"state": "Idle"})

    serving = asyncio.ensure_future(device.serve())
    await client.open()
    assert await client.get("state") == "Idle"

    await client.close()
    await asyncio.wait_for(serving, timeout=1.0)

    assert device.is_closed is True
