"""
Device family adapters.

The set of families is closed: each DeviceFamily maps to exactly one
adapter class. Supporting a new family means adding a member and an
adapter here, nothing else.
"""

from ..protocols import BrightnessRounding, DeviceFamily
from .base import DeviceAdapter, RawState
from .wled import WledAdapter, parse_wled_hex_color
from .z2m import Z2MAdapter


def create_adapters(
    topic_prefix: str,
    rounding: BrightnessRounding = BrightnessRounding.ANCHORED,
) -> dict[DeviceFamily, DeviceAdapter]:
    """Build one adapter instance per device family."""
    return {
        DeviceFamily.Z2M: Z2MAdapter(topic_prefix=topic_prefix, rounding=rounding),
        DeviceFamily.WLED: WledAdapter(rounding=rounding),
    }


__all__ = [
    "DeviceAdapter",
    "RawState",
    "WledAdapter",
    "Z2MAdapter",
    "create_adapters",
    "parse_wled_hex_color",
]
