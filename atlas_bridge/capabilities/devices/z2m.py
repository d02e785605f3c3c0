"""
Zigbee2MQTT device adapter.

State arrives as a flat JSON object on ``<prefix>/<topic>``; commands go to
``<prefix>/<topic>/set`` in the same shape.
"""

import json
import logging
from typing import Any, Optional

from ..convert import clamp_color_temp, is_white
from ..protocols import BrightnessRounding, NormalizedState
from .base import DeviceAdapter, RawState, is_number

logger = logging.getLogger("atlas.bridge.devices.z2m")

STATE_CHANNEL = "state"


class Z2MAdapter(DeviceAdapter):
    """Adapter for Zigbee2MQTT lights (brightness 0-254, mireds, hue/sat)."""

    max_brightness = 254

    def __init__(
        self,
        topic_prefix: str = "zigbee2mqtt",
        rounding: BrightnessRounding = BrightnessRounding.ANCHORED,
    ):
        super().__init__(rounding)
        self.topic_prefix = topic_prefix

    def inbound_topics(self, device_topic: str) -> dict[str, str]:
        return {f"{self.topic_prefix}/{device_topic}": STATE_CHANNEL}

    def command_topic(self, device_topic: str) -> str:
        return f"{self.topic_prefix}/{device_topic}/set"

    def state_request(self, device_topic: str) -> Optional[tuple[str, dict[str, Any]]]:
        return f"{self.topic_prefix}/{device_topic}/get", {"state": ""}

    def parse_message(self, channel: str, payload: bytes) -> Optional[RawState]:
        if channel != STATE_CHANNEL:
            return None
        try:
            data = json.loads(payload)
        except (UnicodeDecodeError, ValueError):
            logger.debug("Dropping malformed JSON: %r", payload[:200])
            return None
        if not isinstance(data, dict):
            logger.debug("Dropping non-object state: %r", payload[:200])
            return None
        return data

    def to_normalized(self, raw: RawState) -> NormalizedState:
        fields: dict[str, Any] = {}

        state = raw.get("state")
        if isinstance(state, str):
            fields["on"] = state == "ON"

        if is_number(raw.get("brightness")):
            fields["brightness"] = self.brightness_to_homekit(raw["brightness"])

        if is_number(raw.get("color_temp")):
            fields["color_temp"] = clamp_color_temp(raw["color_temp"])

        color = raw.get("color")
        if isinstance(color, dict):
            if is_number(color.get("hue")):
                fields["hue"] = round(color["hue"]) % 360
            if is_number(color.get("saturation")):
                fields["saturation"] = max(0, min(100, round(color["saturation"])))

        return NormalizedState(**fields)

    def from_normalized(
        self,
        command: NormalizedState,
        cached: Optional[RawState] = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {}

        if command.on is not None:
            payload["state"] = "ON" if command.on else "OFF"

        if command.brightness is not None:
            payload["brightness"] = self.brightness_to_device(command.brightness)

        if command.color_temp is not None:
            payload["color_temp"] = command.color_temp

        if command.hue is not None or command.saturation is not None:
            cached_ct = (cached or {}).get("color_temp")
            if (
                command.hue is not None
                and command.saturation is not None
                and is_white(command.hue, command.saturation)
                and is_number(cached_ct)
            ):
                # HomeKit "white" means back to the last white point,
                # not saturation zero.
                payload.setdefault("color_temp", cached_ct)
            else:
                color = {}
                if command.hue is not None:
                    color["hue"] = command.hue
                if command.saturation is not None:
                    color["saturation"] = command.saturation
                payload["color"] = color

        return payload
