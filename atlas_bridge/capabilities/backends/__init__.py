"""
Communication backends for the bridge.

Backends handle the actual communication with the broker and turn
inbound traffic into typed events.
"""

from .base import (
    Connected,
    ConnectionClosed,
    MessageReceived,
    Transport,
    TransportError,
    TransportEvent,
    TransportUnavailable,
)

__all__ = [
    "Connected",
    "ConnectionClosed",
    "MessageReceived",
    "Transport",
    "TransportError",
    "TransportEvent",
    "TransportUnavailable",
]
