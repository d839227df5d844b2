"""Introspection queries answered by the rosapi node.

Each helper is a thin wrapper around one ``/rosapi/*`` service call and
returns the interesting part of the response.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .service import Service

if TYPE_CHECKING:
    from .connection import Connection


async def _call(ros: Connection, name: str, service_type: str, request: dict[str, Any] | None = None) -> Any:
    return await Service(ros, f"/rosapi/{name}", f"rosapi/{service_type}").call(request or {})


# ---------------------------------------------------------------------------
# Topics
# ---------------------------------------------------------------------------


async def get_topics(ros: Connection) -> dict[str, list[str]]:
    """Return ``{"topics": [...], "types": [...]}`` as reported by rosapi."""
    return await _call(ros, "topics", "Topics")


async def get_topics_for_type(ros: Connection, message_type: str) -> list[str]:
    result = await _call(ros, "topics_for_type", "TopicsForType", {"type": message_type})
    return result["topics"]


async def get_topic_type(ros: Connection, topic: str) -> str:
    result = await _call(ros, "topic_type", "TopicType", {"topic": topic})
    return result["type"]


async def get_topics_and_raw_types(ros: Connection) -> dict[str, list[str]]:
    return await _call(ros, "topics_and_raw_types", "TopicsAndRawTypes")


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


async def get_services(ros: Connection) -> list[str]:
    result = await _call(ros, "services", "Services")
    return result["services"]


async def get_services_for_type(ros: Connection, service_type: str) -> list[str]:
    result = await _call(ros, "services_for_type", "ServicesForType", {"type": service_type})
    return result["services"]


async def get_service_type(ros: Connection, service: str) -> str:
    result = await _call(ros, "service_type", "ServiceType", {"service": service})
    return result["type"]


async def get_service_request_details(ros: Connection, service_type: str) -> dict[str, Any]:
    return await _call(ros, "service_request_details", "ServiceRequestDetails", {"type": service_type})


async def get_service_response_details(ros: Connection, service_type: str) -> dict[str, Any]:
    return await _call(ros, "service_response_details", "ServiceResponseDetails", {"type": service_type})


# ---------------------------------------------------------------------------
# Nodes, parameters, actions
# ---------------------------------------------------------------------------


async def get_nodes(ros: Connection) -> list[str]:
    result = await _call(ros, "nodes", "Nodes")
    return result["nodes"]


async def get_node_details(ros: Connection, node: str) -> dict[str, list[str]]:
    result = await _call(ros, "node_details", "NodeDetails", {"node": node})
    return {
        "subscribing": result["subscribing"],
        "publishing": result["publishing"],
        "services": result["services"],
    }


async def get_params(ros: Connection) -> list[str]:
    result = await _call(ros, "get_param_names", "GetParamNames")
    return result["names"]


async def get_action_servers(ros: Connection) -> list[str]:
    result = await _call(ros, "action_servers", "GetActionServers")
    return result["action_servers"]


# ---------------------------------------------------------------------------
# Message definitions
# ---------------------------------------------------------------------------


async def get_message_details(ros: Connection, message_type: str) -> list[dict[str, Any]]:
    result = await _call(ros, "message_details", "MessageDetails", {"type": message_type})
    return result["typedefs"]


def decode_type_defs(defs: list[dict[str, Any]]) -> dict[str, Any]:
    """Fold rosapi typedefs into one nested ``{field: type}`` dict.

    ``defs[0]`` is the root type; the rest describe nested types it refers
    to. Array fields become one-element lists, e.g. ``{"data": ["float64"]}``.
    Raises ValueError when a nested type is missing from *defs*.
    """
    by_type = {d["type"]: d for d in defs}

    def _decode(typedef: dict[str, Any]) -> dict[str, Any]:
        fields: dict[str, Any] = {}
        for name, field_type, array_len in zip(
            typedef["fieldnames"], typedef["fieldtypes"], typedef["fieldarraylen"]
        ):
            if "/" in field_type:
                nested = by_type.get(field_type)
                if nested is None:
                    raise ValueError(f"Cannot find {field_type} in typedefs")
                value: Any = _decode(nested)
            else:
                value = field_type
            fields[name] = value if array_len == -1 else [value]
        return fields

    return _decode(defs[0])
