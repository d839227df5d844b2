"""Remote parameters, stored by rosapi as JSON strings."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from .service import Service

if TYPE_CHECKING:
    from .connection import Connection


class Param:
    def __init__(self, ros: Connection, name: str) -> None:
        self.ros = ros
        self.name = name

    async def get(self) -> Any:
        """Return the decoded parameter value, or None if it is not set."""
        client = Service(self.ros, "/rosapi/get_param", "rosapi/GetParam")
        result = await client.call({"name": self.name})
        value = result.get("value") if isinstance(result, dict) else None
        if not value:
            return None
        return json.loads(value)

    async def set(self, value: Any) -> Any:
        client = Service(self.ros, "/rosapi/set_param", "rosapi/SetParam")
        return await client.call({"name": self.name, "value": json.dumps(value)})

    async def delete(self) -> Any:
        client = Service(self.ros, "/rosapi/delete_param", "rosapi/DeleteParam")
        return await client.call({"name": self.name})
