"""
WLED device simulator.

Reproduces the MQTT side of WLED firmware closely enough to drive the
bridge in demos and integration runs: bare-topic brightness/power
commands, ``/col`` color commands, ordered ``/api`` JSON processing and
the ``/g``, ``/c``, ``/status`` state messages.

Only the array form of ``seg[0].col[0]`` is interpreted. Real firmware
also accepts hex strings and ``{"r": .., "g": .., "b": ..}`` objects in
color slots; the simulator ignores those.

Bare-topic brightness values above 255 are clamped to 255 rather than
stored as sent.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Optional

from ..capabilities.backends import (
    Connected,
    ConnectionClosed,
    MessageReceived,
    Transport,
    TransportError,
    TransportEvent,
    TransportUnavailable,
)
from ..capabilities.backends.mqtt import LastWill
from ..capabilities.convert import int_to_rgb, rgb_to_hex
from ..capabilities.devices.base import is_number

logger = logging.getLogger("atlas.bridge.simulator")

MAX_BRIGHTNESS = 255

_LEADING_DECIMAL = re.compile(r"\s*([0-9]+)")
_LEADING_HEX = re.compile(r"\s*([0-9A-Fa-f]+)")


def _leading_int(text: str, base: int) -> Optional[int]:
    """Parse the leading run of digits like firmware's strtoul, None if there is none."""
    pattern = _LEADING_HEX if base == 16 else _LEADING_DECIMAL
    match = pattern.match(text)
    if match is None:
        return None
    return int(match.group(1), base)


def _channel(value: Any) -> int:
    return max(0, min(255, int(value)))


@dataclass
class WledState:
    """Simulated device state. ``bri == 0`` means off."""

    bri: int = 128
    bri_last: int = 128
    col: list[int] = field(default_factory=lambda: [255, 160, 0])

    @property
    def is_on(self) -> bool:
        return self.bri > 0

    @property
    def hex_color(self) -> str:
        return rgb_to_hex(*self.col)


class WledStateMachine:
    """
    Device-side command handling.

    The ``handle_*`` methods mutate the state and return whether the device
    would publish its state afterwards. ``state_messages`` renders that
    publish and refreshes ``bri_last``.
    """

    def __init__(self, state: Optional[WledState] = None):
        self.state = state or WledState()

    def toggle(self) -> None:
        s = self.state
        if s.bri == 0:
            s.bri = s.bri_last
        else:
            s.bri_last = s.bri
            s.bri = 0

    def set_brightness(self, value: int) -> None:
        s = self.state
        if value == 0 and s.bri > 0:
            s.bri_last = s.bri
        s.bri = value

    def set_color(self, rgb) -> None:
        self.state.col = [_channel(c) for c in rgb[:3]]

    def handle_brightness(self, payload: str) -> bool:
        """
        Bare-topic command.

        Rules are substring matches checked in order: "ON"/"on"/"true"
        restores the last brightness, "T"/"t" toggles, anything else is a
        decimal brightness. The device publishes even when nothing parsed.
        """
        if "ON" in payload or "on" in payload or "true" in payload:
            self.state.bri = self.state.bri_last
        elif "T" in payload or "t" in payload:
            self.toggle()
        else:
            value = _leading_int(payload, 10)
            if value is not None:
                self.set_brightness(min(value, MAX_BRIGHTNESS))
        return True

    def handle_color(self, payload: str) -> bool:
        """``/col`` command: ``#``/``h``/``H`` prefix means hex, otherwise decimal."""
        if payload[:1] in ("#", "h", "H"):
            value = _leading_int(payload[1:], 16)
        else:
            value = _leading_int(payload, 10)
        if value is None:
            logger.debug("Ignoring malformed color %r", payload[:50])
            return False
        self.state.col = list(int_to_rgb(value))
        return True

    def handle_api(self, payload: str) -> bool:
        """
        ``/api`` JSON command.

        Fields apply in the order bri, on, seg[0].col. Publishes only when
        brightness or color actually changed.
        """
        if not payload.startswith("{"):
            return False
        try:
            data = json.loads(payload)
        except ValueError:
            logger.debug("Ignoring malformed API payload %r", payload[:200])
            return False
        if not isinstance(data, dict):
            return False

        s = self.state
        bri_before = s.bri
        col_before = list(s.col)
        on_before = s.is_on

        if is_number(data.get("bri")):
            self.set_brightness(max(0, min(MAX_BRIGHTNESS, int(data["bri"]))))

        if "on" in data:
            on = data["on"]
            if on is True:
                if s.bri == 0:
                    s.bri = s.bri_last
            elif on is False:
                if s.bri > 0:
                    s.bri_last = s.bri
                    s.bri = 0
            elif on == "t":
                # Don't toggle back off when bri in this same message
                # just turned the device on.
                if on_before or s.bri == 0:
                    self.toggle()

        segments = data.get("seg")
        if isinstance(segments, list) and segments and isinstance(segments[0], dict):
            slots = segments[0].get("col")
            if isinstance(slots, list) and slots:
                slot = slots[0]
                if (
                    isinstance(slot, list)
                    and len(slot) >= 3
                    and all(is_number(c) for c in slot[:3])
                ):
                    self.set_color(slot)

        return s.bri != bri_before or s.col != col_before

    def state_messages(self, topic: str) -> list[tuple[str, str, bool]]:
        """(topic, payload, retain) messages for one state publish."""
        s = self.state
        messages = [
            (f"{topic}/g", str(s.bri), False),
            (f"{topic}/c", s.hex_color, False),
            (f"{topic}/status", "online", True),
        ]
        if s.bri > 0:
            s.bri_last = s.bri
        return messages


class WledSimulator:
    """
    A simulated WLED controller on an MQTT transport.

    The transport should be created with ``last_will(topic)`` so the broker
    marks the device offline if the simulator disappears.
    """

    def __init__(self, transport: Transport, topic: str, state: Optional[WledState] = None):
        self.transport = transport
        self.topic = topic
        self.machine = WledStateMachine(state)

    @staticmethod
    def last_will(topic: str) -> LastWill:
        return LastWill(topic=f"{topic}/status", payload="offline", qos=0, retain=True)

    @property
    def state(self) -> WledState:
        return self.machine.state

    @property
    def subscription_topics(self) -> list[str]:
        return [self.topic, f"{self.topic}/col", f"{self.topic}/api"]

    def set_brightness(self, value: int) -> None:
        """Change brightness locally (as from the device's own UI) and publish."""
        self.machine.set_brightness(value)
        self.publish_state()

    def set_color(self, rgb) -> None:
        """Change color locally and publish."""
        self.machine.set_color(rgb)
        self.publish_state()

    def publish_state(self) -> None:
        try:
            for topic, payload, retain in self.machine.state_messages(self.topic):
                self.transport.publish(topic, payload, retain=retain)
        except TransportUnavailable as e:
            logger.warning("State publish skipped: %s", e)

    def handle_event(self, event: TransportEvent) -> None:
        if isinstance(event, MessageReceived):
            self.handle_message(event.topic, event.payload)
        elif isinstance(event, Connected):
            logger.info("Simulated WLED %s online", self.topic)
            self.transport.subscribe(self.subscription_topics)
            self.publish_state()
        elif isinstance(event, TransportError):
            logger.error("MQTT error: %s", event.error)
        elif isinstance(event, ConnectionClosed):
            logger.warning("MQTT connection closed: %s", event.reason or "no reason given")

    def handle_message(self, topic: str, payload: bytes) -> None:
        if not topic.startswith(self.topic):
            return
        suffix = topic[len(self.topic):]
        text = payload.decode(errors="replace")

        if suffix == "":
            publish = self.machine.handle_brightness(text)
        elif suffix == "/col":
            publish = self.machine.handle_color(text)
        elif suffix == "/api":
            publish = self.machine.handle_api(text)
        else:
            return

        logger.info(
            "%s%s %r -> bri=%d col=%s",
            self.topic, suffix, text, self.state.bri, self.state.hex_color,
        )
        if publish:
            self.publish_state()

    async def run(self) -> None:
        """Consume transport events until the stream ends."""
        async for event in self.transport.events():
            self.handle_event(event)
