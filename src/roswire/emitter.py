"""ChannelMultiplexer — named-channel event fan-out.

Every component spawned from one Connection shares a single multiplexer.
Channel names are arbitrary strings: topic names, operation ids, service
names, or the fixed lifecycle events ``connection``, ``close``, ``error``
and ``status``.

There is no listener-count ceiling; a busy connection routinely carries
hundreds of registrations on ``close``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


@dataclass
class _Registration:
    callback: Listener
    once: bool = False


class ChannelMultiplexer:
    """Ordered listeners per channel, with one-shot support."""

    def __init__(self) -> None:
        self._channels: dict[str, list[_Registration]] = {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def on(self, channel: str, callback: Listener) -> None:
        """Call *callback* for every emit on *channel*."""
        self._channels.setdefault(channel, []).append(_Registration(callback))

    def once(self, channel: str, callback: Listener) -> None:
        """Call *callback* for the next emit on *channel* only."""
        self._channels.setdefault(channel, []).append(_Registration(callback, once=True))

    def off(self, channel: str, callback: Listener) -> None:
        """Remove the most recent registration of *callback* on *channel*.

        Removing a callback that was never registered is a no-op.
        """
        registrations = self._channels.get(channel)
        if not registrations:
            return
        for index in range(len(registrations) - 1, -1, -1):
            if registrations[index].callback == callback:
                del registrations[index]
                break
        if not registrations:
            del self._channels[channel]

    def remove_all_listeners(self, channel: str | None = None) -> None:
        if channel is None:
            self._channels.clear()
        else:
            self._channels.pop(channel, None)

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def emit(self, channel: str, *args: Any) -> bool:
        """Deliver *args* to every listener on *channel*, in registration order.

        One-shot listeners are detached before they run, so a listener that
        re-registers itself is not called twice for the same emit. A listener
        that raises is logged and the remaining listeners still run.

        Returns True if at least one listener was called.
        """
        registrations = self._channels.get(channel)
        if not registrations:
            return False

        snapshot = list(registrations)
        for registration in snapshot:
            if registration.once:
                try:
                    registrations.remove(registration)
                except ValueError:
                    # Already removed by an earlier listener in this emit.
                    continue
        if not registrations:
            self._channels.pop(channel, None)

        for registration in snapshot:
            try:
                registration.callback(*args)
            except Exception:
                logger.exception("Listener error on channel '%s'", channel)
        return True

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def listeners(self, channel: str) -> list[Listener]:
        return [r.callback for r in self._channels.get(channel, [])]

    def listener_count(self, channel: str) -> int:
        return len(self._channels.get(channel, []))

    def channel_names(self) -> list[str]:
        return list(self._channels.keys())
