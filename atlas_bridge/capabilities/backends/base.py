"""
Base protocol for the message transport and its inbound events.

The transport turns broker activity into a stream of typed events that a
single dispatcher consumes in arrival order.
"""

from dataclasses import dataclass
from typing import AsyncIterator, Optional, Protocol, Union, runtime_checkable


class TransportUnavailable(RuntimeError):
    """Raised by publish/subscribe when the transport is not connected."""

    pass


@dataclass(frozen=True)
class Connected:
    """The transport (re)connected to the broker."""


@dataclass(frozen=True)
class MessageReceived:
    """A message arrived on a subscribed topic."""

    topic: str
    payload: bytes


@dataclass(frozen=True)
class TransportError:
    """The transport hit an error (connection refused, protocol error, ...)."""

    error: Exception


@dataclass(frozen=True)
class ConnectionClosed:
    """The connection to the broker was lost or closed."""

    reason: Optional[str] = None


TransportEvent = Union[Connected, MessageReceived, TransportError, ConnectionClosed]


@runtime_checkable
class Transport(Protocol):
    """
    Protocol for publish/subscribe transports.

    ``publish`` and ``subscribe`` are fire-and-forget and must raise
    TransportUnavailable synchronously when not connected.
    """

    @property
    def backend_type(self) -> str:
        """Identifier for this backend type (e.g., 'mqtt')."""
        ...

    @property
    def is_connected(self) -> bool:
        """Check if the transport is currently connected."""
        ...

    def publish(
        self,
        topic: str,
        payload: Union[str, bytes],
        *,
        retain: bool = False,
        qos: int = 0,
    ) -> None:
        """Queue a message for publishing."""
        ...

    def subscribe(self, topics: list[str]) -> None:
        """Queue subscriptions for the given topics."""
        ...

    def events(self) -> AsyncIterator[TransportEvent]:
        """Yield inbound events until the transport is closed."""
        ...

    async def disconnect(self) -> None:
        """Close the transport and end the event stream."""
        ...
