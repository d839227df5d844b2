"""Tests for wire message models."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from roswire.models import (
    AdvertiseService,
    CallService,
    Publish,
    ServiceResponse,
    SetLevel,
    Status,
    Subscribe,
    parse_inbound,
)


def test_parse_inbound_picks_model_by_op():
    assert isinstance(parse_inbound({"op": "publish", "topic": "/a", "msg": {}}), Publish)
    assert isinstance(parse_inbound({"op": "service_response", "id": "x", "values": {}}), ServiceResponse)
    assert isinstance(parse_inbound({"op": "call_service", "service": "/s", "args": {}}), CallService)
    assert isinstance(parse_inbound({"op": "status", "level": "error", "msg": "bad"}), Status)


@pytest.mark.parametrize(
    "data",
    [
        {"op": "fragment", "data": "..."},
        {"op": "advertise", "id": "a", "type": "t", "topic": "/t"},
        {"no_op": True},
        {"op": ["publish"]},
        {"op": {}},
        ["not", "a", "dict"],
    ],
)
def test_parse_inbound_ignores_unhandled_ops(data):
    assert parse_inbound(data) is None


def test_parse_inbound_rejects_malformed_known_op():
    with pytest.raises(ValidationError):
        parse_inbound({"op": "publish", "msg": {"data": 1}})


def test_extra_fields_from_server_are_kept():
    status = parse_inbound({"op": "status", "id": "s1", "level": "warning", "msg": "m", "extra": 5})
    assert status.model_extra == {"extra": 5}


def test_service_response_result_defaults_to_success():
    assert parse_inbound({"op": "service_response", "id": "x"}).result is True


def test_subscribe_wire_shape():
    message = Subscribe(id="subscribe:/a:1", type="std_msgs/String", topic="/a")
    assert json.loads(message.model_dump_json()) == {
        "op": "subscribe",
        "id": "subscribe:/a:1",
        "type": "std_msgs/String",
        "topic": "/a",
        "compression": "none",
        "throttle_rate": 0,
        "queue_length": 0,
    }


def test_optional_id_is_omitted():
    assert json.loads(SetLevel(level="info").model_dump_json()) == {"op": "set_level", "level": "info"}
    assert json.loads(SetLevel(level="info", id="x").model_dump_json()) == {
        "op": "set_level",
        "level": "info",
        "id": "x",
    }


def test_none_inside_payload_is_preserved():
    message = Publish(id="p", topic="/t", msg={"value": None}, latch=True)
    assert json.loads(message.model_dump_json())["msg"] == {"value": None}


def test_advertise_service_requires_type():
    with pytest.raises(ValidationError):
        AdvertiseService(service="/s")


def test_payload_fields_go_out_even_when_null():
    publish = json.loads(Publish(id="p", topic="/t", msg=None).model_dump_json())
    assert publish == {"op": "publish", "id": "p", "topic": "/t", "msg": None}

    response = json.loads(ServiceResponse(id="req-1", service="/s", values=None).model_dump_json())
    assert response == {"op": "service_response", "id": "req-1", "service": "/s", "values": None, "result": True}


def test_unset_call_options_are_omitted():
    call = json.loads(CallService(service="/reset").model_dump_json())
    assert call == {"op": "call_service", "service": "/reset", "args": {}}
