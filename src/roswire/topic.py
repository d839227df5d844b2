"""Publish and/or subscribe to a rosbridge topic.

A Topic is the single registrant on its Connection for the topic name and
fans inbound messages out to any number of local callbacks. Local events
(on ``topic.events``):

  message      — one inbound message body
  unsubscribe  — the wire subscription was torn down
  unadvertise  — the wire advertisement was torn down
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

from .emitter import ChannelMultiplexer
from .models import Advertise, Publish, Subscribe, Unadvertise, Unsubscribe, WireMessage

if TYPE_CHECKING:
    from .connection import Connection

logger = logging.getLogger(__name__)

Compression = Literal["none", "png", "cbor", "cbor-raw"]
COMPRESSIONS: frozenset[str] = frozenset({"none", "png", "cbor", "cbor-raw"})


@dataclass(eq=False)
class PendingResubscription:
    """The wire message to replay when the connection comes back.

    ``waiting_for_reconnect`` is set when the message has been queued for
    resend and is cleared by the next ``connection`` event, so any number
    of ``close`` events before that produce a single resend.
    """

    message: WireMessage
    waiting_for_reconnect: bool = False

    def resend(self, ros: Connection) -> None:
        if self.waiting_for_reconnect:
            return
        self.waiting_for_reconnect = True
        ros.send(self.message)
        ros.once("connection", self.mark_reconnected)

    def mark_reconnected(self, *_: Any) -> None:
        self.waiting_for_reconnect = False


class Topic:
    """A named, typed data stream on a Connection.

    :param throttle_rate: minimum milliseconds between messages sent to us;
        negative values are treated as 0.
    :param queue_size: bridge-side queue when we publish.
    :param queue_length: bridge-side queue when we subscribe (0 disables).
    :param reconnect_on_close: replay subscribe/advertise after a reconnect.
    """

    def __init__(
        self,
        ros: Connection,
        name: str,
        message_type: str,
        *,
        compression: Compression = "none",
        throttle_rate: int = 0,
        queue_size: int = 100,
        queue_length: int = 0,
        latch: bool = False,
        reconnect_on_close: bool = True,
    ) -> None:
        if ros is None:
            raise ValueError("a Connection is required for Topic")
        if not name:
            raise ValueError("a topic name is required")
        if not message_type:
            raise ValueError(f"a message type is required for topic '{name}'")
        if compression not in COMPRESSIONS:
            raise ValueError(f"unsupported compression: {compression}")

        self.ros = ros
        self.name = name
        self.message_type = message_type
        self.compression = compression
        self.throttle_rate = max(0, throttle_rate)
        self.queue_size = queue_size
        self.queue_length = queue_length
        self.latch = latch
        self.reconnect_on_close = reconnect_on_close

        self.events = ChannelMultiplexer()
        self.is_advertised = False
        self.subscribe_id: str | None = None
        self.advertise_id: str | None = None
        self._subscription: PendingResubscription | None = None
        self._advertisement: PendingResubscription | None = None

    # ------------------------------------------------------------------
    # Subscribing
    # ------------------------------------------------------------------

    def subscribe(self, callback: Callable[[Any], Any] | None = None) -> None:
        """Attach *callback* and make sure a wire subscription exists."""
        if callback is not None:
            self.events.on("message", callback)

        if self.subscribe_id is not None:
            return

        self.ros.on(self.name, self._on_message)
        self.subscribe_id = self.ros.next_id("subscribe", self.name)
        message = Subscribe(
            id=self.subscribe_id,
            type=self.message_type,
            topic=self.name,
            compression=self.compression,
            throttle_rate=self.throttle_rate,
            queue_length=self.queue_length,
        )
        logger.debug("Subscribing to %s as %s", self.name, self.subscribe_id)
        self.ros.send(message)
        self._subscription = PendingResubscription(message)
        if self.reconnect_on_close:
            self.ros.on("close", self._resend_subscription)
        else:
            self.ros.once("close", self._drop_subscription)

    def unsubscribe(self, callback: Callable[[Any], Any] | None = None) -> None:
        """Detach *callback*; the wire subscription ends once none remain.

        Without a callback the wire subscription ends unconditionally. Local
        callbacks stay attached and resume on the next ``subscribe()``.
        """
        if callback is not None:
            self.events.off("message", callback)

        if self.subscribe_id is None:
            return
        if callback is not None and self.events.listener_count("message") > 0:
            return

        logger.debug("Unsubscribing %s from %s", self.subscribe_id, self.name)
        self.ros.off(self.name, self._on_message)
        self.ros.off("close", self._resend_subscription)
        self.ros.off("close", self._drop_subscription)
        self.events.emit("unsubscribe")
        self.ros.send(Unsubscribe(id=self.subscribe_id, topic=self.name))
        self.subscribe_id = None
        self._subscription = None

    def _on_message(self, message: Any) -> None:
        self.events.emit("message", message)

    def _resend_subscription(self, *_: Any) -> None:
        if self._subscription is not None:
            self._subscription.resend(self.ros)

    def _drop_subscription(self, *_: Any) -> None:
        # No replay: forget the wire subscription but keep local callbacks,
        # so a later subscribe() re-establishes it.
        self.ros.off(self.name, self._on_message)
        self.subscribe_id = None
        self._subscription = None

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    def advertise(self) -> None:
        if self.is_advertised:
            return

        self.advertise_id = self.ros.next_id("advertise", self.name)
        message = Advertise(
            id=self.advertise_id,
            type=self.message_type,
            topic=self.name,
            latch=self.latch,
            queue_size=self.queue_size,
        )
        self.ros.send(message)
        self._advertisement = PendingResubscription(message)
        self.is_advertised = True

        if self.reconnect_on_close:
            self.ros.on("close", self._resend_advertisement)
        else:
            self.ros.once("close", self._mark_unadvertised)

    def unadvertise(self) -> None:
        if not self.is_advertised:
            return

        self.ros.off("close", self._resend_advertisement)
        self.ros.off("close", self._mark_unadvertised)
        self.events.emit("unadvertise")
        self.ros.send(Unadvertise(id=self.advertise_id, topic=self.name))
        self.is_advertised = False
        self._advertisement = None

    def publish(self, message: Any) -> None:
        """Publish *message*, advertising the topic first if necessary."""
        if not self.is_advertised:
            self.advertise()

        self.ros.send(
            Publish(
                id=self.ros.next_id("publish", self.name),
                topic=self.name,
                msg=message,
                latch=self.latch,
            )
        )

    def _resend_advertisement(self, *_: Any) -> None:
        if self._advertisement is not None:
            self._advertisement.resend(self.ros)

    def _mark_unadvertised(self, *_: Any) -> None:
        self.is_advertised = False
        self._advertisement = None
