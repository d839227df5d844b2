"""Pytest configuration for roswire tests.

Registers an in-memory transport kind, ``"fake"``, so tests can drive
open/close/message events by hand and inspect every frame sent.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest

from roswire import Connection, ConnectionOptions, register_transport_library
from roswire.transport import CloseEvent, ReadyState


class FakeTransport:
    instances: list[FakeTransport] = []

    def __init__(self, url: str, **options: Any) -> None:
        self.url = url
        self.options = options
        self.ready_state = ReadyState.CONNECTING
        self.on_open = None
        self.on_close = None
        self.on_error = None
        self.on_message = None
        self.sent: list[str] = []
        FakeTransport.instances.append(self)

    # Transport surface -------------------------------------------------

    def send(self, data: str) -> None:
        self.sent.append(data)

    def close(self) -> None:
        self.ready_state = ReadyState.CLOSING

    # Test drivers ------------------------------------------------------

    def open(self) -> None:
        self.ready_state = ReadyState.OPEN
        self.on_open(None)

    def drop(self, code: int = 1006) -> None:
        self.ready_state = ReadyState.CLOSED
        self.on_close(CloseEvent(code, ""))

    def fail(self, error: BaseException) -> None:
        self.on_error(error)

    async def deliver(self, frame: str | bytes | dict[str, Any]) -> None:
        if isinstance(frame, dict):
            frame = json.dumps(frame)
        await self.on_message(frame)

    def messages(self, op: str | None = None) -> list[dict[str, Any]]:
        decoded = [json.loads(s) for s in self.sent]
        if op is None:
            return decoded
        return [m for m in decoded if m["op"] == op]


register_transport_library("fake", FakeTransport)


@pytest.fixture(autouse=True)
def _reset_fake_transports():
    FakeTransport.instances.clear()
    yield
    FakeTransport.instances.clear()


@pytest.fixture
def make_ros():
    def _make(**overrides: Any) -> Connection:
        options = ConnectionOptions(**{"url": "ws://bridge.test:9090", "transport_library": "fake", **overrides})
        return Connection(options=options)

    return _make


@pytest.fixture
def ros(make_ros) -> Connection:
    """A Connection whose fake transport is already open."""
    connection = make_ros()
    connection.connect()
    connection.transport.open()
    return connection


@pytest.fixture
def transport(ros) -> FakeTransport:
    return ros.transport


@pytest.fixture
def transports() -> list[FakeTransport]:
    """Every fake transport created during the test, oldest first."""
    return FakeTransport.instances


class FakeRosapi:
    """Answers ``/rosapi/*`` calls sent over a FakeTransport.

    Parameters are kept as the JSON strings rosapi stores; any other
    service answers with the canned values in ``answers``.
    """

    def __init__(self, transport: FakeTransport) -> None:
        self.params: dict[str, str] = {}
        self.answers: dict[str, Any] = {}
        self._transport = transport
        self._send = transport.send
        self._tasks: set[asyncio.Task] = set()
        transport.send = self._intercept

    def _intercept(self, data: str) -> None:
        self._send(data)
        request = json.loads(data)
        if request["op"] != "call_service":
            return
        reply = {
            "op": "service_response",
            "id": request["id"],
            "service": request["service"],
            "values": self._answer(request["service"], request.get("args", {})),
            "result": True,
        }
        task = asyncio.get_running_loop().create_task(self._transport.deliver(reply))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _answer(self, service: str, args: dict[str, Any]) -> Any:
        if service == "/rosapi/set_param":
            self.params[args["name"]] = args["value"]
            return {}
        if service == "/rosapi/get_param":
            return {"value": self.params.get(args["name"], "")}
        if service == "/rosapi/delete_param":
            self.params.pop(args["name"], None)
            return {}
        return self.answers[service]


@pytest.fixture
def rosapi_server(transport) -> FakeRosapi:
    return FakeRosapi(transport)
