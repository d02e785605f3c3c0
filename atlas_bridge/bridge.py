"""
Bridge orchestrator.

Owns the raw state cache, the suppression gate and the write coalescer,
routes inbound wire messages to the right device adapter and feeds the
HomeKit accessories. Transport events are consumed by a single
dispatcher in arrival order, so every handler runs to completion on the
event loop thread without locking.
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

from .capabilities.accessories import LightAccessory
from .capabilities.backends import (
    Connected,
    ConnectionClosed,
    MessageReceived,
    Transport,
    TransportError,
    TransportEvent,
    TransportUnavailable,
)
from .capabilities.devices import DeviceAdapter, create_adapters
from .capabilities.protocols import (
    COLOR_FIELDS,
    AccessoryFactory,
    BrightnessRounding,
    NormalizedState,
)
from .capabilities.scheduler import WriteCoalescer
from .capabilities.state_cache import DeviceStateCache
from .capabilities.suppression import DEFAULT_WINDOW_SECONDS, ColorEchoSuppressor
from .config import DeviceConfig
from .exceptions import CommunicationFailure

logger = logging.getLogger("atlas.bridge.bridge")


@dataclass
class DeviceBinding:
    """A configured device with its adapter and accessory."""

    device: DeviceConfig
    adapter: DeviceAdapter
    accessory: LightAccessory

    @property
    def topic(self) -> str:
        return self.device.topic


class Bridge:
    """
    Bidirectional state sync between MQTT lights and HomeKit accessories.

    Args:
        transport: Connected (or connecting) publish/subscribe transport
        devices: Validated device list
        accessory_factory: Creates the Lightbulb service for each device
        topic_prefix: zigbee2mqtt base topic
        suppression_window: Seconds to ignore inbound color after a color write
        rounding: Brightness rounding strategy for all adapters
        clock: Monotonic clock for the suppression window
        loop: Event loop for coalesced flushes (defaults to the running loop)
    """

    def __init__(
        self,
        transport: Transport,
        devices: Iterable[DeviceConfig],
        accessory_factory: AccessoryFactory,
        topic_prefix: str = "zigbee2mqtt",
        suppression_window: float = DEFAULT_WINDOW_SECONDS,
        rounding: BrightnessRounding = BrightnessRounding.ANCHORED,
        clock: Callable[[], float] = time.monotonic,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self.transport = transport
        self.cache = DeviceStateCache()
        self.suppressor = ColorEchoSuppressor(window_seconds=suppression_window, clock=clock)
        self.coalescer = WriteCoalescer(
            flush=self._flush,
            is_available=lambda: self.transport.is_connected,
            loop=loop,
        )
        self.adapters = create_adapters(topic_prefix, rounding)

        self._bindings: dict[str, DeviceBinding] = {}
        # full MQTT topic -> (binding, adapter channel)
        self._routes: dict[str, tuple[DeviceBinding, str]] = {}
        # last color pushed to or commanded from HomeKit, per device topic
        self._colors: dict[str, dict[str, Any]] = {}

        for device in devices:
            self._add_device(device, accessory_factory)

    def _add_device(self, device: DeviceConfig, factory: AccessoryFactory) -> None:
        adapter = self.adapters[device.type]
        service = factory.create_light(device)
        accessory = LightAccessory(
            topic=device.topic,
            name=device.name,
            capabilities=device.capabilities,
            service=service,
            read_state=lambda: self.get_state(device.topic),
            schedule_write=lambda payload: self.coalescer.schedule(device.topic, payload),
        )
        binding = DeviceBinding(device=device, adapter=adapter, accessory=accessory)
        self._bindings[device.topic] = binding
        for mqtt_topic, channel in adapter.inbound_topics(device.topic).items():
            self._routes[mqtt_topic] = (binding, channel)

        logger.info(
            "Configured %s light %s (%s): %s",
            device.type.value, device.name, device.topic,
            ", ".join(c.value for c in device.capabilities),
        )

    @property
    def subscription_topics(self) -> list[str]:
        return list(self._routes)

    def get_state(self, topic: str) -> Optional[NormalizedState]:
        """
        Normalized view of the cached raw state, None until the device reports.

        Inside the suppression window the color fields come from the last
        color HomeKit saw, not from the (possibly echoed) cache.
        """
        binding = self._bindings.get(topic)
        raw = self.cache.get(topic)
        if binding is None or raw is None:
            return None
        state = binding.adapter.to_normalized(raw)
        if topic in self._colors and self.suppressor.is_suppressed(topic):
            state = NormalizedState.from_dict({**state.to_dict(), **self._colors[topic]})
        return state

    def _remember_color(self, topic: str, state: NormalizedState) -> None:
        colors = {k: v for k, v in state.to_dict().items() if k in COLOR_FIELDS}
        if colors:
            self._colors.setdefault(topic, {}).update(colors)

    # Inbound

    def dispatch(self, event: TransportEvent) -> None:
        """Handle one transport event."""
        if isinstance(event, MessageReceived):
            self.handle_message(event.topic, event.payload)
        elif isinstance(event, Connected):
            self._on_connected()
        elif isinstance(event, TransportError):
            logger.error("MQTT error: %s", event.error)
        elif isinstance(event, ConnectionClosed):
            logger.warning("MQTT connection closed: %s", event.reason or "no reason given")

    def handle_message(self, topic: str, payload: bytes) -> None:
        route = self._routes.get(topic)
        if route is None:
            logger.debug("Ignoring message on unknown topic %s", topic)
            return

        binding, channel = route
        raw = binding.adapter.parse_message(channel, payload)
        if raw is None:
            return

        self.cache.merge(binding.topic, raw)
        logger.info("State update for %s: %s", binding.device.name, raw)

        partial = binding.adapter.to_normalized(raw)
        if partial.has_color and self.suppressor.is_suppressed(binding.topic):
            logger.debug("Suppressed color echo from %s", binding.device.name)
            partial = partial.without_color()
        else:
            self._remember_color(binding.topic, partial)

        if not partial.is_empty:
            binding.accessory.apply_state(partial)

    def _on_connected(self) -> None:
        topics = self.subscription_topics
        logger.info("Connected to MQTT broker, subscribing to %d topics", len(topics))
        try:
            self.transport.subscribe(topics)
        except TransportUnavailable as e:
            logger.warning("Subscribe failed: %s", e)
            return

        for binding in self._bindings.values():
            request = binding.adapter.state_request(binding.topic)
            if request is None:
                continue
            request_topic, request_payload = request
            try:
                self._publish(binding.topic, request_topic, request_payload)
            except CommunicationFailure as e:
                logger.warning("State request failed: %s", e)

    # Outbound

    def _flush(self, topic: str, payload: dict[str, Any]) -> None:
        binding = self._bindings.get(topic)
        if binding is None:
            return

        command = NormalizedState.from_dict(payload)
        message = binding.adapter.from_normalized(command, self.cache.get(topic))
        if not message:
            return

        self._publish(topic, binding.adapter.command_topic(topic), message)
        if command.has_color:
            self.suppressor.record(topic)
            self._remember_color(topic, command)

    def _publish(self, device_topic: str, mqtt_topic: str, payload: dict[str, Any]) -> None:
        if not self.transport.is_connected:
            raise CommunicationFailure(device_topic, "transport unavailable")
        try:
            self.transport.publish(mqtt_topic, json.dumps(payload))
        except TransportUnavailable as e:
            raise CommunicationFailure(device_topic, "transport unavailable") from e
        logger.debug("Published to %s: %s", mqtt_topic, payload)

    # Lifecycle

    async def run(self) -> None:
        """Consume transport events until the stream ends."""
        async for event in self.transport.events():
            try:
                self.dispatch(event)
            except Exception as e:
                logger.error("Error handling %s: %s", type(event).__name__, e, exc_info=True)

    async def shutdown(self) -> None:
        self.coalescer.cancel_all()
        await self.transport.disconnect()
        logger.info("Bridge stopped (%d devices cached)", self.cache.size)
