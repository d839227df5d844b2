"""Connection — one rosbridge session multiplexed into many named channels.

The Connection owns exactly one transport at a time and composes:
  - a ``FrameCodec`` that turns inbound frames into canonical messages;
  - a ``ChannelMultiplexer`` that fans those messages out by key.

Dispatch keys:
  publish           → the topic name          (payload: the ``msg`` body)
  service_response  → the call id             (payload: ServiceResponse)
  call_service      → the service name        (payload: CallService)
  status            → ``"status: <id>"`` or ``"status"`` (payload: Status)

Lifecycle events are emitted on ``connection``, ``close`` and ``error``.
Registrations survive reconnects; nothing is dropped implicitly on close.

Usage::

    async with Connection("ws://localhost:9090") as ros:
        chatter = ros.topic("/chatter", "std_msgs/String")
        chatter.subscribe(print)
        await ros.wait_closed()
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from .codec import FrameCodec
from .config import ConnectionOptions
from .emitter import ChannelMultiplexer, Listener
from .errors import ConfigurationError, FrameDecodeError
from .models import (
    Auth,
    CallService,
    Publish,
    ServiceResponse,
    SetLevel,
    Status,
    WireMessage,
    parse_inbound,
)
from .transport import CloseEvent, ReadyState, Transport, create_transport

if TYPE_CHECKING:
    from .param import Param
    from .service import Service
    from .topic import Topic

logger = logging.getLogger(__name__)


class Connection:
    """A rosbridge client session."""

    def __init__(
        self,
        url: str | None = None,
        *,
        options: ConnectionOptions | None = None,
    ) -> None:
        self.options = options.model_copy() if options is not None else ConnectionOptions()
        if url is not None:
            self.options.url = url
        self.is_connected = False
        self.id_counter = 0
        self._transport: Transport | None = None
        self._codec = FrameCodec(self.options.decoder)
        self._channels = ChannelMultiplexer()
        self._closed_by_user = False
        self._backoff = self.options.reconnect_delay
        self._reconnect_handle: asyncio.TimerHandle | None = None

    @property
    def transport(self) -> Transport | None:
        return self._transport

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def connect(self, url: str | None = None) -> None:
        """Open the transport unless one is already open or opening.

        Raises ConfigurationError for an unknown transport library or a
        missing URL, before any I/O is attempted.
        """
        if url is not None:
            self.options.url = url
        if self.options.url is None:
            raise ConfigurationError("No rosbridge URL configured")
        if self._transport is not None and self._transport.ready_state != ReadyState.CLOSED:
            return

        transport = create_transport(
            self.options.transport_library,
            self.options.url,
            self.options.transport_options,
        )
        transport.on_open = self._on_open
        transport.on_close = self._on_close
        transport.on_error = self._on_error
        transport.on_message = self._on_message
        self._transport = transport
        self._closed_by_user = False
        self._cancel_reconnect()
        logger.info("Connecting to rosbridge: %s", self.options.url)

    def close(self) -> None:
        """Close the transport. Automatic reconnection stops as well."""
        self._closed_by_user = True
        self._cancel_reconnect()
        if self._transport is not None:
            self._transport.close()

    async def wait_for_connection(self, timeout: float | None = None) -> None:
        if self.is_connected:
            return
        await self._wait_for_event("connection", timeout)

    async def wait_closed(self, timeout: float | None = None) -> None:
        if self._transport is None or self._transport.ready_state == ReadyState.CLOSED:
            return
        await self._wait_for_event("close", timeout)

    async def __aenter__(self) -> Connection:
        self.connect()
        await self.wait_for_connection()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()
        await self.wait_closed()

    async def _wait_for_event(self, channel: str, timeout: float | None) -> None:
        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()

        def _done(*_: Any) -> None:
            if not future.done():
                future.set_result(None)

        self.once(channel, _done)
        try:
            await asyncio.wait_for(future, timeout)
        finally:
            self.off(channel, _done)

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    def next_id(self, kind: str, name: str) -> str:
        """Allocate a collision-free operation id such as ``subscribe:/chatter:7``."""
        self.id_counter += 1
        return f"{kind}:{name}:{self.id_counter}"

    def send(self, message: WireMessage) -> None:
        """Serialise and send *message*, deferring until connected if needed.

        Each deferred send gets its own one-shot ``connection`` listener, so
        deferred messages go out in call order.
        """
        encoded = self._codec.encode(message)
        if self.is_connected:
            self._send_encoded(encoded)
        else:
            self.once("connection", lambda *_: self._send_encoded(encoded))

    def _send_encoded(self, encoded: str) -> None:
        if self._transport is None:
            logger.warning("Dropping outbound frame: no transport")
            return
        logger.debug("→ %s", encoded)
        self._transport.send(encoded)

    def authenticate(
        self,
        mac: str,
        client: str,
        dest: str,
        rand: str,
        t: int | float,
        level: str,
        end: int | float,
    ) -> None:
        """Send a rosauth request; see ``roswire.auth.compute_mac``."""
        self.send(Auth(mac=mac, client=client, dest=dest, rand=rand, t=t, level=level, end=end))

    def set_status_level(self, level: str, id: str | None = None) -> None:
        self.send(SetLevel(level=level, id=id))

    # ------------------------------------------------------------------
    # Channel multiplexer
    # ------------------------------------------------------------------

    def on(self, channel: str, callback: Listener) -> None:
        self._channels.on(channel, callback)

    def once(self, channel: str, callback: Listener) -> None:
        self._channels.once(channel, callback)

    def off(self, channel: str, callback: Listener) -> None:
        self._channels.off(channel, callback)

    def emit(self, channel: str, *args: Any) -> bool:
        return self._channels.emit(channel, *args)

    def listeners(self, channel: str) -> list[Listener]:
        return self._channels.listeners(channel)

    # ------------------------------------------------------------------
    # Transport callbacks
    # ------------------------------------------------------------------

    def _on_open(self, event: Any) -> None:
        self.is_connected = True
        self._backoff = self.options.reconnect_delay
        logger.info("Connected to rosbridge: %s", self.options.url)
        self.emit("connection", event)

    def _on_close(self, event: CloseEvent) -> None:
        self.is_connected = False
        logger.info("Connection to %s closed (code=%s)", self.options.url, event.code)
        self.emit("close", event)
        if self.options.reconnect and not self._closed_by_user:
            self._schedule_reconnect()

    def _on_error(self, error: BaseException) -> None:
        self.emit("error", error)

    async def _on_message(self, frame: str | bytes) -> None:
        try:
            data = await self._codec.decode(frame)
            message = parse_inbound(data)
            if message is not None:
                self._dispatch(message)
        except (FrameDecodeError, ValidationError) as exc:
            logger.warning("Dropping inbound frame: %s", exc)
        except Exception:
            logger.exception("Dropping inbound frame after unexpected error")

    def _dispatch(self, message: Publish | ServiceResponse | CallService | Status) -> None:
        match message:
            case Publish():
                self.emit(message.topic, message.msg)
            case ServiceResponse():
                if message.id is not None:
                    self.emit(message.id, message)
            case CallService():
                self.emit(message.service, message)
            case Status():
                if message.id:
                    self.emit(f"status: {message.id}", message)
                else:
                    self.emit("status", message)

    # ------------------------------------------------------------------
    # Automatic reconnection
    # ------------------------------------------------------------------

    def _schedule_reconnect(self) -> None:
        delay = self._backoff
        self._backoff = min(self._backoff * 2, self.options.reconnect_delay_max)
        logger.warning("Reconnecting to %s in %.1fs…", self.options.url, delay)
        self._reconnect_handle = asyncio.get_running_loop().call_later(delay, self._reconnect)

    def _reconnect(self) -> None:
        self._reconnect_handle = None
        self.connect()

    def _cancel_reconnect(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    def topic(self, name: str, message_type: str, **options: Any) -> Topic:
        from .topic import Topic

        return Topic(self, name, message_type, **options)

    def service(self, name: str, service_type: str | None = None) -> Service:
        from .service import Service

        return Service(self, name, service_type)

    def param(self, name: str) -> Param:
        from .param import Param

        return Param(self, name)
