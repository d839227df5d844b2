"""Tests for the WebSocket transport against an in-process server."""

from __future__ import annotations

import asyncio
import json

import cbor2
import numpy as np
import pytest
from websockets.asyncio.server import serve

from roswire import Connection
from roswire.transport import ReadyState, WebSocketTransport, create_transport


@pytest.fixture
async def bridge():
    """A tiny rosbridge stand-in that answers subscribes with one publish."""
    received = []

    async def handler(ws):
        async for raw in ws:
            request = json.loads(raw)
            received.append(request)
            if request["op"] != "subscribe":
                continue
            if request["topic"] == "/noisy":
                await ws.send(json.dumps({"op": {}}))
            if request["compression"] == "cbor":
                body = {"data": np.arange(3, dtype="<f4")}
                await ws.send(cbor2.dumps({"op": "publish", "topic": request["topic"], "msg": body}, default=_encode))
            else:
                await ws.send(json.dumps({"op": "publish", "topic": request["topic"], "msg": {"data": "hello"}}))

    async with serve(handler, "127.0.0.1", 0) as server:
        port = server.sockets[0].getsockname()[1]
        yield f"ws://127.0.0.1:{port}", received


def _encode(encoder, value):
    encoder.encode(cbor2.CBORTag(85, value.tobytes()))


async def _first_message(ros, name, **options):
    got = asyncio.get_running_loop().create_future()
    ros.topic(name, "std_msgs/String", **options).subscribe(
        lambda message: got.done() or got.set_result(message)
    )
    return await asyncio.wait_for(got, 2)


async def test_subscribe_and_receive_json(bridge):
    url, received = bridge
    async with Connection(url) as ros:
        assert await _first_message(ros, "/chatter") == {"data": "hello"}
    assert received[0]["op"] == "subscribe"
    assert received[0]["topic"] == "/chatter"


async def test_malformed_frame_does_not_drop_connection(bridge):
    url, _ = bridge
    closes = []
    async with Connection(url) as ros:
        ros.on("close", closes.append)
        assert await _first_message(ros, "/noisy") == {"data": "hello"}
        assert ros.is_connected
        assert closes == []


async def test_cbor_frames_decode_to_arrays(bridge):
    url, _ = bridge
    async with Connection(url) as ros:
        message = await _first_message(ros, "/scan", compression="cbor")
    np.testing.assert_array_equal(message["data"], np.array([0, 1, 2], dtype=np.float32))


async def test_client_close_reports_normal_closure(bridge):
    url, _ = bridge
    closes = []
    ros = Connection(url)
    ros.on("close", closes.append)
    ros.connect()
    await ros.wait_for_connection(timeout=2)
    ros.close()
    await ros.wait_closed(timeout=2)

    assert ros.transport.ready_state == ReadyState.CLOSED
    assert not ros.is_connected
    assert [event.code for event in closes] == [1000]


async def test_unreachable_server_reports_error_then_close():
    events = []
    ros = Connection("ws://127.0.0.1:1")
    ros.on("error", lambda err: events.append("error"))
    ros.on("close", lambda event: events.append("close"))
    ros.connect()
    await ros.wait_closed(timeout=5)

    assert events == ["error", "close"]


async def test_send_before_open_is_dropped(caplog):
    transport = create_transport("websocket", "ws://127.0.0.1:1")
    assert isinstance(transport, WebSocketTransport)
    closes = []
    transport.on_close = closes.append
    transport.send("{}")
    transport.close()

    with pytest.raises(asyncio.CancelledError):
        await transport._task
    assert "not open" in caplog.text
    assert transport.ready_state == ReadyState.CLOSED
    assert len(closes) == 1
