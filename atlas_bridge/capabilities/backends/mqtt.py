"""
MQTT backend for device communication.

Wraps aiomqtt: connects (and reconnects) to the broker, yields inbound
traffic as typed transport events, and publishes fire-and-forget.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional, Union
from urllib.parse import urlsplit, urlunsplit

import aiomqtt

from .base import (
    Connected,
    ConnectionClosed,
    MessageReceived,
    TransportError,
    TransportEvent,
    TransportUnavailable,
)

logger = logging.getLogger("atlas.bridge.backends.mqtt")

DEFAULT_PORT = 1883
DEFAULT_TLS_PORT = 8883


@dataclass(frozen=True)
class BrokerAddress:
    """Connection parameters parsed from an ``mqtt://`` URL."""

    hostname: str
    port: int
    username: Optional[str] = None
    password: Optional[str] = None
    tls: bool = False


def parse_broker_url(url: str) -> BrokerAddress:
    """
    Parse a broker URL.

    Accepts ``mqtt://``, ``mqtts://``, ``tcp://`` and bare ``host[:port]``.
    """
    if "://" not in url:
        url = f"mqtt://{url}"
    parts = urlsplit(url)
    tls = parts.scheme in ("mqtts", "ssl", "tls")
    if not parts.hostname:
        raise ValueError(f"MQTT URL has no host: {sanitize_url(url)}")
    return BrokerAddress(
        hostname=parts.hostname,
        port=parts.port or (DEFAULT_TLS_PORT if tls else DEFAULT_PORT),
        username=parts.username,
        password=parts.password,
        tls=tls,
    )


def sanitize_url(url: str) -> str:
    """Strip ``user:pass@`` from a URL for logging."""
    try:
        parts = urlsplit(url)
        if parts.hostname and (parts.username or parts.password):
            netloc = parts.hostname
            if parts.port:
                netloc = f"{netloc}:{parts.port}"
            return urlunsplit(parts._replace(netloc=netloc))
    except ValueError:
        pass
    return re.sub(r"//[^@/]*@", "//", url)


@dataclass(frozen=True)
class LastWill:
    """Message the broker publishes on our behalf if we vanish."""

    topic: str
    payload: str
    qos: int = 0
    retain: bool = True


class MQTTBackend:
    """MQTT-based transport."""

    def __init__(
        self,
        url: str,
        client_id: Optional[str] = None,
        will: Optional[LastWill] = None,
        keepalive: int = 60,
        reconnect_interval: float = 5.0,
    ):
        self.url = url
        self.address = parse_broker_url(url)
        self.client_id = client_id
        self.will = will
        self.keepalive = keepalive
        self.reconnect_interval = reconnect_interval
        self._client: Optional[aiomqtt.Client] = None
        self._connected = False
        self._closing = False
        self._pending: set[asyncio.Task] = set()

    @property
    def backend_type(self) -> str:
        return "mqtt"

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        """Connect to the MQTT broker."""
        will = None
        if self.will is not None:
            will = aiomqtt.Will(
                topic=self.will.topic,
                payload=self.will.payload,
                qos=self.will.qos,
                retain=self.will.retain,
            )

        kwargs: dict[str, Any] = {}
        if self.address.tls:
            kwargs["tls_params"] = aiomqtt.TLSParameters()

        self._client = aiomqtt.Client(
            hostname=self.address.hostname,
            port=self.address.port,
            username=self.address.username,
            password=self.address.password,
            identifier=self.client_id,
            keepalive=self.keepalive,
            will=will,
            **kwargs,
        )
        try:
            await self._client.__aenter__()
        except Exception:
            self._client = None
            raise
        self._connected = True
        logger.info("MQTT connected to %s", sanitize_url(self.url))

    async def disconnect(self) -> None:
        """Disconnect from the MQTT broker and stop reconnecting."""
        self._closing = True
        await self._close_client()
        logger.info("MQTT disconnected")

    def publish(
        self,
        topic: str,
        payload: Union[str, bytes],
        *,
        retain: bool = False,
        qos: int = 0,
    ) -> None:
        """
        Publish without waiting for the broker.

        Raises:
            TransportUnavailable: If the client is not connected
        """
        client = self._require_client()
        self._track(
            client.publish(topic, payload=payload, qos=qos, retain=retain),
            f"publish to {topic}",
        )
        logger.debug("MQTT published to %s: %s", topic, payload)

    def subscribe(self, topics: list[str]) -> None:
        """Subscribe to topics without waiting for the broker."""
        client = self._require_client()
        if not topics:
            return
        self._track(
            client.subscribe([(topic, 0) for topic in topics]),
            f"subscribe to {len(topics)} topic(s)",
        )
        logger.info("MQTT subscribing to %s", ", ".join(topics))

    async def events(self) -> AsyncIterator[TransportEvent]:
        """
        Yield transport events, reconnecting after failures.

        Ends after disconnect() is called.
        """
        self._closing = False
        while not self._closing:
            try:
                await self.connect()
            except aiomqtt.MqttError as e:
                yield TransportError(e)
                await asyncio.sleep(self.reconnect_interval)
                continue

            yield Connected()

            reason: Optional[str] = None
            try:
                async for message in self._client.messages:
                    yield MessageReceived(
                        topic=str(message.topic),
                        payload=_payload_bytes(message.payload),
                    )
            except aiomqtt.MqttError as e:
                reason = str(e)
                yield TransportError(e)
            finally:
                self._connected = False

            await self._close_client()
            yield ConnectionClosed(reason)

            if not self._closing:
                logger.info("MQTT reconnecting in %.1fs", self.reconnect_interval)
                await asyncio.sleep(self.reconnect_interval)

    def _require_client(self) -> aiomqtt.Client:
        if not self._connected or self._client is None:
            raise TransportUnavailable("MQTT client not connected")
        return self._client

    def _track(self, coro, description: str) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(lambda t: self._on_done(t, description))

    def _on_done(self, task: asyncio.Task, description: str) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning("MQTT %s failed: %s", description, error)

    async def _close_client(self) -> None:
        self._connected = False
        client, self._client = self._client, None
        if client is None:
            return
        try:
            await client.__aexit__(None, None, None)
        except Exception as e:
            logger.debug("Error during MQTT disconnect: %s", e)


def _payload_bytes(payload: Any) -> bytes:
    if payload is None:
        return b""
    if isinstance(payload, (bytes, bytearray)):
        return bytes(payload)
    return str(payload).encode()
