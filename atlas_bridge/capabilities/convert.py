"""
Numeric and color conversions between device ranges and HomeKit ranges.

All functions are pure. Brightness helpers take the device maximum so the
same code serves both device families (Zigbee2MQTT uses 0-254, WLED 0-255).
"""

import math
from numbers import Real

from .protocols import BrightnessRounding

# HAP ColorTemperature only accepts 140-500 mireds. Zigbee2MQTT devices report
# 0 or 65535 when they are not in color_temp mode.
COLOR_TEMP_MIN = 140
COLOR_TEMP_MAX = 500

HOMEKIT_BRIGHTNESS_MAX = 100


def _require_number(value, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, Real) or math.isnan(value):
        raise ValueError(f"{name} must be a number")
    return float(value)


def _round(value: float) -> int:
    """Round half away from zero (built-in round() is banker's rounding)."""
    return int(math.floor(value + 0.5)) if value >= 0 else -int(math.floor(-value + 0.5))


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _scale(value: float, src_max: int, dst_max: int, rounding: BrightnessRounding) -> int:
    value = _clamp(value, 0, src_max)
    if rounding is BrightnessRounding.ANCHORED:
        # 0 stays 0; [1, src_max] maps affinely onto [1, dst_max] so a lit
        # device never reads back as off.
        if value == 0:
            return 0
        if value < 1:
            return 1
        return _round(1 + (value - 1) * (dst_max - 1) / (src_max - 1))
    return _round(value / src_max * dst_max)


def device_brightness_to_homekit(
    value,
    device_max: int,
    rounding: BrightnessRounding = BrightnessRounding.ANCHORED,
) -> int:
    """
    Convert a device brightness (0..device_max) to HomeKit percent (0-100).

    Args:
        value: Device brightness; clamped to the device range first
        device_max: Top of the device range (254 for Zigbee2MQTT, 255 for WLED)
        rounding: Rounding strategy

    Raises:
        ValueError: If value is NaN or not a number
    """
    value = _require_number(value, "brightness")
    return _scale(value, device_max, HOMEKIT_BRIGHTNESS_MAX, rounding)


def homekit_brightness_to_device(
    value,
    device_max: int,
    rounding: BrightnessRounding = BrightnessRounding.ANCHORED,
) -> int:
    """Convert HomeKit percent (0-100) to a device brightness (0..device_max)."""
    value = _require_number(value, "brightness")
    return _scale(value, HOMEKIT_BRIGHTNESS_MAX, device_max, rounding)


def clamp_color_temp(mireds) -> int:
    """Clamp a mired value into the HAP-valid 140-500 range."""
    mireds = _require_number(mireds, "color_temp")
    return _round(_clamp(mireds, COLOR_TEMP_MIN, COLOR_TEMP_MAX))


def hs_to_rgb(hue, saturation) -> tuple[int, int, int]:
    """
    Convert hue (degrees) and saturation (percent) to RGB at full value.

    Hue wraps into [0, 360); saturation is clamped to 0-100.
    """
    hue = _require_number(hue, "hue") % 360
    s = _clamp(_require_number(saturation, "saturation"), 0, 100) / 100

    sector = int(hue // 60) % 6
    f = hue / 60 - math.floor(hue / 60)
    p = 1 - s
    q = 1 - s * f
    t = 1 - s * (1 - f)

    r, g, b = [
        (1, t, p),
        (q, 1, p),
        (p, 1, t),
        (p, q, 1),
        (t, p, 1),
        (1, p, q),
    ][sector]
    return _round(r * 255), _round(g * 255), _round(b * 255)


def rgb_to_hs(r, g, b) -> tuple[int, int]:
    """
    Convert an RGB triple (0-255 each) to (hue, saturation).

    Equal channels (white, grey, black) produce (0, 0).
    """
    r = _clamp(_require_number(r, "red"), 0, 255) / 255
    g = _clamp(_require_number(g, "green"), 0, 255) / 255
    b = _clamp(_require_number(b, "blue"), 0, 255) / 255

    high = max(r, g, b)
    low = min(r, g, b)
    delta = high - low
    if delta == 0:
        return 0, 0

    if high == r:
        hue = 60 * (((g - b) / delta) % 6)
    elif high == g:
        hue = 60 * ((b - r) / delta + 2)
    else:
        hue = 60 * ((r - g) / delta + 4)

    saturation = delta / high * 100
    return _round(hue) % 360, _round(saturation)


def is_white(hue, saturation) -> bool:
    """True for the (0, 0) hue/saturation pair HomeKit sends for white."""
    return hue == 0 and saturation == 0


def rgb_to_hex(r: int, g: int, b: int) -> str:
    """Format an RGB triple as ``#RRGGBB`` (uppercase, zero-padded)."""
    return "#%06X" % (((r & 0xFF) << 16) | ((g & 0xFF) << 8) | (b & 0xFF))


def int_to_rgb(value: int) -> tuple[int, int, int]:
    """
    Decompose a packed color integer into RGB.

    R is bits 23-16, G bits 15-8, B bits 7-0. A white channel in bits 31-24
    is ignored.
    """
    return (value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF
