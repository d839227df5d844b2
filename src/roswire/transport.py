"""Transport capability and its WebSocket implementation.

A transport is the only thing that touches the network. It exposes a
narrow surface modelled on a browser WebSocket:

  - ``send(text)`` / ``close()``
  - ``ready_state`` (CONNECTING, OPEN, CLOSING, CLOSED)
  - callback slots ``on_open``, ``on_close``, ``on_error`` and
    ``on_message``; the last one is a coroutine function that the transport
    awaits for each inbound frame, so frames are handed over in arrival order.

Transports are looked up by kind name when a Connection connects. Only
``"websocket"`` is built in; ``register_transport_library`` adds others.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Protocol

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class ReadyState(IntEnum):
    CONNECTING = 0
    OPEN = 1
    CLOSING = 2
    CLOSED = 3


@dataclass(frozen=True)
class CloseEvent:
    code: int | None = None
    reason: str = ""


class Transport(Protocol):
    ready_state: ReadyState
    on_open: Callable[[Any], None] | None
    on_close: Callable[[CloseEvent], None] | None
    on_error: Callable[[BaseException], None] | None
    on_message: Callable[[str | bytes], Awaitable[None]] | None

    def send(self, data: str) -> None: ...

    def close(self) -> None: ...


TransportFactory = Callable[..., Transport]

_transport_libraries: dict[str, TransportFactory] = {}


def register_transport_library(name: str, factory: TransportFactory) -> None:
    """Make *factory* available as ``transport_library=name``.

    The factory is called as ``factory(url, **transport_options)`` and must
    return an object satisfying :class:`Transport`.
    """
    _transport_libraries[name] = factory


def create_transport(kind: str, url: str, options: dict[str, Any] | None = None) -> Transport:
    factory = _transport_libraries.get(kind)
    if factory is None:
        raise ConfigurationError(f"Unknown transport library: {kind}")
    return factory(url, **(options or {}))


class WebSocketTransport:
    """One WebSocket connection attempt, driven by a background task.

    Must be constructed inside a running event loop. Outbound frames go
    through a queue drained by a writer task so they leave in call order.
    A transport is never reused: once CLOSED, build a new one.
    """

    def __init__(self, url: str, **options: Any) -> None:
        self.url = url
        self.ready_state = ReadyState.CONNECTING
        self.on_open: Callable[[Any], None] | None = None
        self.on_close: Callable[[CloseEvent], None] | None = None
        self.on_error: Callable[[BaseException], None] | None = None
        self.on_message: Callable[[str | bytes], Awaitable[None]] | None = None
        self._options = options
        self._ws: ClientConnection | None = None
        self._outbox: asyncio.Queue[str | None] = asyncio.Queue()
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name=f"roswire-transport {url}"
        )
        self._task.add_done_callback(self._on_task_done)

    # ------------------------------------------------------------------
    # Transport surface
    # ------------------------------------------------------------------

    def send(self, data: str) -> None:
        if self.ready_state != ReadyState.OPEN:
            logger.warning("Dropping frame: transport to %s is not open", self.url)
            return
        self._outbox.put_nowait(data)

    def close(self) -> None:
        if self.ready_state in (ReadyState.CLOSING, ReadyState.CLOSED):
            return
        if self._ws is None:
            # Still handshaking: abandon the attempt.
            self.ready_state = ReadyState.CLOSING
            self._task.cancel()
            return
        self.ready_state = ReadyState.CLOSING
        self._outbox.put_nowait(None)

    # ------------------------------------------------------------------
    # Connection task
    # ------------------------------------------------------------------

    async def _run(self) -> None:
        close_code: int | None = None
        close_reason = ""
        try:
            async with connect(self.url, **self._options) as ws:
                self._ws = ws
                if self.ready_state == ReadyState.CONNECTING:
                    self.ready_state = ReadyState.OPEN
                self._fire(self.on_open, None)

                writer = asyncio.create_task(self._write_loop(ws))
                try:
                    async for raw in ws:
                        if self.on_message is not None:
                            await self.on_message(raw)
                finally:
                    writer.cancel()
                close_code, close_reason = ws.protocol.close_code, ws.protocol.close_reason or ""
        except ConnectionClosed as exc:
            logger.warning("WebSocket to %s closed abnormally: %s", self.url, exc)
            if exc.rcvd is not None:
                close_code, close_reason = exc.rcvd.code, exc.rcvd.reason
            self._fire(self.on_error, exc)
        except (OSError, WebSocketException) as exc:
            logger.warning("WebSocket error on %s: %s", self.url, exc)
            self._fire(self.on_error, exc)
        finally:
            self._ws = None
            self.ready_state = ReadyState.CLOSED
            self._fire(self.on_close, CloseEvent(close_code, close_reason))

    async def _write_loop(self, ws: ClientConnection) -> None:
        while True:
            data = await self._outbox.get()
            if data is None:
                await ws.close()
                return
            try:
                await ws.send(data)
            except ConnectionClosed:
                return

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        # Cancelled before _run started, so its finally block never ran.
        if self.ready_state != ReadyState.CLOSED:
            self.ready_state = ReadyState.CLOSED
            self._fire(self.on_close, CloseEvent())

    @staticmethod
    def _fire(callback: Callable[[Any], None] | None, event: Any) -> None:
        if callback is not None:
            callback(event)


register_transport_library("websocket", WebSocketTransport)
