"""Tests for rosapi introspection helpers."""

from __future__ import annotations

import pytest

from roswire import rosapi


async def test_get_topics(ros, rosapi_server, transport):
    rosapi_server.answers["/rosapi/topics"] = {"topics": ["/rosout"], "types": ["rosgraph_msgs/Log"]}

    assert await rosapi.get_topics(ros) == {"topics": ["/rosout"], "types": ["rosgraph_msgs/Log"]}
    (request,) = transport.messages("call_service")
    assert request["type"] == "rosapi/Topics"


async def test_get_topic_type(ros, rosapi_server, transport):
    rosapi_server.answers["/rosapi/topic_type"] = {"type": "std_msgs/String"}

    assert await rosapi.get_topic_type(ros, "/chatter") == "std_msgs/String"
    assert transport.messages("call_service")[0]["args"] == {"topic": "/chatter"}


async def test_get_node_details(ros, rosapi_server):
    rosapi_server.answers["/rosapi/node_details"] = {
        "subscribing": ["/cmd_vel"],
        "publishing": ["/odom"],
        "services": ["/turtle/set_pen"],
    }

    details = await rosapi.get_node_details(ros, "/turtle")
    assert details == {"subscribing": ["/cmd_vel"], "publishing": ["/odom"], "services": ["/turtle/set_pen"]}


POSE_DEFS = [
    {
        "type": "geometry_msgs/PoseArray",
        "fieldnames": ["header", "poses"],
        "fieldtypes": ["std_msgs/Header", "geometry_msgs/Pose"],
        "fieldarraylen": [-1, 0],
    },
    {
        "type": "std_msgs/Header",
        "fieldnames": ["seq", "stamp", "frame_id"],
        "fieldtypes": ["uint32", "time", "string"],
        "fieldarraylen": [-1, -1, -1],
    },
    {
        "type": "geometry_msgs/Pose",
        "fieldnames": ["position", "covariance"],
        "fieldtypes": ["geometry_msgs/Point", "float64"],
        "fieldarraylen": [-1, 36],
    },
    {
        "type": "geometry_msgs/Point",
        "fieldnames": ["x", "y", "z"],
        "fieldtypes": ["float64", "float64", "float64"],
        "fieldarraylen": [-1, -1, -1],
    },
]


def test_decode_type_defs_nests_and_wraps_arrays():
    assert rosapi.decode_type_defs(POSE_DEFS) == {
        "header": {"seq": "uint32", "stamp": "time", "frame_id": "string"},
        "poses": [
            {
                "position": {"x": "float64", "y": "float64", "z": "float64"},
                "covariance": ["float64"],
            }
        ],
    }


def test_decode_type_defs_missing_nested_type():
    with pytest.raises(ValueError):
        rosapi.decode_type_defs(POSE_DEFS[:2])
