"""Pydantic models for rosbridge v2 wire messages.

Every message is a JSON object discriminated by its ``op`` field. Outbound
messages are built from these models and serialised with
``model_dump_json()``; unset protocol options (see ``OPTIONAL_FIELDS``) are
omitted from the wire, payloads never are. Inbound messages are validated
through ``parse_inbound``, which only knows the operations a client can
receive.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializerFunctionWrapHandler,
    TypeAdapter,
    model_serializer,
)


# Protocol options left out of the frame when unset. Payload fields
# (msg, values, args) always go out, even as null.
OPTIONAL_FIELDS = frozenset({"id", "type", "latch", "level", "service"})


class WireMessage(BaseModel):
    """Common base: unknown fields from the server are kept, not rejected."""

    model_config = ConfigDict(extra="allow")

    @model_serializer(mode="wrap")
    def _omit_unset_options(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        return {
            key: value
            for key, value in handler(self).items()
            if value is not None or key not in OPTIONAL_FIELDS
        }


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class Auth(WireMessage):
    """One-way rosauth handshake; the server never replies."""

    op: Literal["auth"] = "auth"
    mac: str
    client: str
    dest: str
    rand: str
    t: int | float
    level: str
    end: int | float


class SetLevel(WireMessage):
    op: Literal["set_level"] = "set_level"
    level: str  # "none" | "error" | "warning" | "info"
    id: str | None = None


class Status(WireMessage):
    op: Literal["status"] = "status"
    id: str | None = None
    level: str | None = None
    msg: str | None = None


# ---------------------------------------------------------------------------
# Topics
# ---------------------------------------------------------------------------


class Subscribe(WireMessage):
    op: Literal["subscribe"] = "subscribe"
    id: str
    type: str
    topic: str
    compression: str = "none"
    throttle_rate: int = 0
    queue_length: int = 0


class Unsubscribe(WireMessage):
    op: Literal["unsubscribe"] = "unsubscribe"
    id: str | None = None
    topic: str


class Advertise(WireMessage):
    op: Literal["advertise"] = "advertise"
    id: str
    type: str
    topic: str
    latch: bool = False
    queue_size: int = 100


class Unadvertise(WireMessage):
    op: Literal["unadvertise"] = "unadvertise"
    id: str | None = None
    topic: str


class Publish(WireMessage):
    op: Literal["publish"] = "publish"
    id: str | None = None
    topic: str
    msg: Any = None
    latch: bool | None = None


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


class CallService(WireMessage):
    op: Literal["call_service"] = "call_service"
    id: str | None = None
    service: str
    type: str | None = None
    args: Any = Field(default_factory=dict)


class ServiceResponse(WireMessage):
    op: Literal["service_response"] = "service_response"
    id: str | None = None
    service: str | None = None
    values: Any = None
    result: bool = True


class AdvertiseService(WireMessage):
    op: Literal["advertise_service"] = "advertise_service"
    type: str
    service: str


class UnadvertiseService(WireMessage):
    op: Literal["unadvertise_service"] = "unadvertise_service"
    service: str


OutboundMessage = Union[
    Auth,
    SetLevel,
    Subscribe,
    Unsubscribe,
    Advertise,
    Unadvertise,
    Publish,
    CallService,
    ServiceResponse,
    AdvertiseService,
    UnadvertiseService,
]

InboundMessage = Annotated[
    Union[Publish, ServiceResponse, CallService, Status],
    Field(discriminator="op"),
]

INBOUND_OPS = frozenset({"publish", "service_response", "call_service", "status"})

_inbound_adapter: TypeAdapter[InboundMessage] = TypeAdapter(InboundMessage)


def parse_inbound(data: Any) -> Publish | ServiceResponse | CallService | Status | None:
    """Validate a decoded frame into its model.

    Returns None for operations a client does not handle. Raises
    ``pydantic.ValidationError`` when a known operation is malformed.
    """
    op = data.get("op") if isinstance(data, Mapping) else None
    if not isinstance(op, str) or op not in INBOUND_OPS:
        return None
    return _inbound_adapter.validate_python(dict(data))
