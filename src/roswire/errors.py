"""Exception hierarchy shared by every roswire component."""

from __future__ import annotations

from typing import Any


class RosWireError(Exception):
    """Base class for all roswire errors."""


class ConfigurationError(RosWireError):
    """Raised synchronously when a Connection is configured with something unusable."""


class FrameDecodeError(RosWireError):
    """An inbound frame could not be decoded by any stage of the codec."""


class ServiceError(RosWireError):
    """A remote service answered with ``result: false``.

    ``values`` holds whatever the remote side sent back, usually an error
    string.
    """

    def __init__(self, values: Any) -> None:
        super().__init__(values)
        self.values = values
