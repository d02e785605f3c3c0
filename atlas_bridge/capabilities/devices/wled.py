"""
WLED device adapter.

WLED reports brightness on ``<topic>/g`` (decimal, 0 = off) and color on
``<topic>/c`` (``#RRGGBB``, or ``#WWRRGGBB`` on RGBW strips). Commands are
sent to the JSON API topic ``<topic>/api``.
"""

import logging
import string
from typing import Any, Optional

from ..convert import hs_to_rgb, int_to_rgb, rgb_to_hs
from ..protocols import NormalizedState
from .base import DeviceAdapter, RawState, is_number

logger = logging.getLogger("atlas.bridge.devices.wled")

BRIGHTNESS_CHANNEL = "g"
COLOR_CHANNEL = "c"

# Used when only one of hue/saturation is commanded and no color is cached.
DEFAULT_HUE = 0
DEFAULT_SATURATION = 100


def parse_wled_hex_color(text: str) -> Optional[tuple[int, int, int]]:
    """
    Parse a WLED color string into RGB.

    Accepts 6 to 8 hex digits with an optional leading ``#``. The value is
    decomposed with the firmware's bit layout, so a white channel in the top
    byte is ignored.
    """
    digits = text[1:] if text.startswith("#") else text
    if not 6 <= len(digits) <= 8:
        return None
    if any(c not in string.hexdigits for c in digits):
        return None
    return int_to_rgb(int(digits, 16))


class WledAdapter(DeviceAdapter):
    """Adapter for WLED controllers (brightness 0-255, single RGB color)."""

    max_brightness = 255

    def inbound_topics(self, device_topic: str) -> dict[str, str]:
        return {
            f"{device_topic}/{BRIGHTNESS_CHANNEL}": BRIGHTNESS_CHANNEL,
            f"{device_topic}/{COLOR_CHANNEL}": COLOR_CHANNEL,
        }

    def command_topic(self, device_topic: str) -> str:
        return f"{device_topic}/api"

    def parse_message(self, channel: str, payload: bytes) -> Optional[RawState]:
        try:
            text = payload.decode().strip()
        except UnicodeDecodeError:
            return None

        if channel == BRIGHTNESS_CHANNEL:
            try:
                bri = int(text, 10)
            except ValueError:
                logger.debug("Dropping invalid brightness: %r", text[:50])
                return None
            return {"on": bri > 0, "bri": bri}

        if channel == COLOR_CHANNEL:
            rgb = parse_wled_hex_color(text)
            if rgb is None:
                logger.debug("Dropping invalid color: %r", text[:50])
                return None
            return {"col": list(rgb)}

        return None

    def to_normalized(self, raw: RawState) -> NormalizedState:
        fields: dict[str, Any] = {}

        if isinstance(raw.get("on"), bool):
            fields["on"] = raw["on"]

        if is_number(raw.get("bri")):
            fields["brightness"] = self.brightness_to_homekit(raw["bri"])

        rgb = self._cached_rgb(raw)
        if rgb is not None:
            fields["hue"], fields["saturation"] = rgb_to_hs(*rgb)

        return NormalizedState(**fields)

    def from_normalized(
        self,
        command: NormalizedState,
        cached: Optional[RawState] = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {}

        if command.on is not None:
            payload["on"] = command.on

        if command.brightness is not None:
            payload["bri"] = self.brightness_to_device(command.brightness)

        if command.hue is not None or command.saturation is not None:
            hue, saturation = command.hue, command.saturation
            if hue is None or saturation is None:
                # Fill the untouched component from the last reported color.
                # This round-trips through RGB, so it is lossy.
                rgb = self._cached_rgb(cached or {})
                cached_hue, cached_sat = (
                    rgb_to_hs(*rgb) if rgb is not None
                    else (DEFAULT_HUE, DEFAULT_SATURATION)
                )
                hue = cached_hue if hue is None else hue
                saturation = cached_sat if saturation is None else saturation
            payload["seg"] = [{"col": [list(hs_to_rgb(hue, saturation))]}]

        return payload

    @staticmethod
    def _cached_rgb(raw: RawState) -> Optional[tuple[int, int, int]]:
        col = raw.get("col")
        if not isinstance(col, (list, tuple)) or len(col) < 3:
            return None
        if not all(is_number(c) for c in col[:3]):
            return None
        return col[0], col[1], col[2]
