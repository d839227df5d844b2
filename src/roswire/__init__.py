"""roswire — asyncio client for rosbridge.

Exports the building blocks an application needs:
  - Connection  — one WebSocket session, multiplexed into named channels
  - Topic       — publish/subscribe with reconnect resumption
  - Service     — call remote services or serve one locally
  - Param       — get/set/delete parameters through rosapi
  - rosapi      — introspection helpers (topics, services, nodes, …)
"""

from . import log_setup, rosapi
from .config import ConnectionOptions
from .connection import Connection
from .errors import ConfigurationError, FrameDecodeError, RosWireError, ServiceError
from .param import Param
from .service import Service
from .topic import Topic
from .transport import register_transport_library

__version__ = "0.1.0"
__all__ = [
    "log_setup",
    "rosapi",
    "Connection",
    "ConnectionOptions",
    "Topic",
    "Service",
    "Param",
    "register_transport_library",
    "RosWireError",
    "ConfigurationError",
    "FrameDecodeError",
    "ServiceError",
]
