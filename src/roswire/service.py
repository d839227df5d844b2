"""Service calls and service advertisement over rosbridge.

A Service is either a caller or a server, never both at once: while it is
advertised, ``call()`` refuses to run.

Calling::

    add = ros.service("/add_two_ints", "rospy_tutorials/AddTwoInts")
    result = await add.call({"a": 1, "b": 2})

Serving::

    def handle(request, response):
        response["sum"] = request["a"] + request["b"]
        return True

    add.advertise(handle)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .errors import ServiceError
from .models import AdvertiseService, CallService, ServiceResponse, UnadvertiseService

if TYPE_CHECKING:
    from .connection import Connection

logger = logging.getLogger(__name__)

# handler(request_args, response) -> success; fill ``response`` in place.
ServiceHandler = Callable[[Any, dict[str, Any]], bool]


@dataclass
class PendingCall:
    """One in-flight request, resolved by the first reply carrying its id."""

    id: str
    future: asyncio.Future[Any]

    def resolve(self, response: ServiceResponse) -> None:
        if self.future.done():
            # Caller cancelled or stopped waiting.
            return
        if response.result is False:
            self.future.set_exception(ServiceError(response.values))
        else:
            self.future.set_result(response.values)


class Service:
    def __init__(self, ros: Connection, name: str, service_type: str | None = None) -> None:
        self.ros = ros
        self.name = name
        self.service_type = service_type
        self.is_advertised = False
        self._handler: ServiceHandler | None = None

    # ------------------------------------------------------------------
    # Client role
    # ------------------------------------------------------------------

    def call(self, request: Any = None) -> asyncio.Future[Any] | None:
        """Call the service; returns a future for the response values.

        The future fails with ServiceError when the remote side reports
        failure. Returns None, without sending anything, while this instance
        is advertised as the server.
        """
        if self.is_advertised:
            return None

        call_id = self.ros.next_id("call_service", self.name)
        pending = PendingCall(call_id, asyncio.get_running_loop().create_future())
        self.ros.once(call_id, pending.resolve)
        self.ros.send(
            CallService(
                id=call_id,
                service=self.name,
                type=self.service_type,
                args=request if request is not None else {},
            )
        )
        return pending.future

    # ------------------------------------------------------------------
    # Server role
    # ------------------------------------------------------------------

    def advertise(self, handler: ServiceHandler) -> None:
        """Serve this service with *handler*. No-op if already advertised."""
        if self.is_advertised:
            return
        if self.service_type is None:
            raise ValueError(f"a service type is required to advertise '{self.name}'")

        self._handler = handler
        self.ros.on(self.name, self._handle_request)
        self.ros.send(AdvertiseService(type=self.service_type, service=self.name))
        self.is_advertised = True
        logger.info("Advertised service %s (%s)", self.name, self.service_type)

    def unadvertise(self) -> None:
        if not self.is_advertised:
            return

        self.ros.off(self.name, self._handle_request)
        self.ros.send(UnadvertiseService(service=self.name))
        self.is_advertised = False
        self._handler = None
        logger.info("Unadvertised service %s", self.name)

    def _handle_request(self, request: CallService) -> None:
        if self._handler is None:
            return

        response: dict[str, Any] = {}
        values: Any = response
        try:
            success = bool(self._handler(request.args, response))
        except Exception as exc:
            logger.exception("Service handler for '%s' failed", self.name)
            success = False
            values = str(exc)

        self.ros.send(
            ServiceResponse(
                id=request.id,
                service=self.name,
                values=values,
                result=success,
            )
        )
