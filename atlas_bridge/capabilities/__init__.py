"""
Light synchronization core.

Normalized state, conversions, device adapters, write coalescing and
color echo suppression. Transport and HomeKit wiring live in the
``backends`` and ``homekit`` submodules.
"""

from .convert import (
    COLOR_TEMP_MAX,
    COLOR_TEMP_MIN,
    clamp_color_temp,
    device_brightness_to_homekit,
    homekit_brightness_to_device,
    hs_to_rgb,
    rgb_to_hs,
)
from .protocols import (
    BrightnessRounding,
    CharacteristicHandle,
    DeviceCapability,
    DeviceFamily,
    LightServiceHandle,
    NormalizedState,
)

__all__ = [
    "COLOR_TEMP_MAX",
    "COLOR_TEMP_MIN",
    "BrightnessRounding",
    "CharacteristicHandle",
    "DeviceCapability",
    "DeviceFamily",
    "LightServiceHandle",
    "NormalizedState",
    "clamp_color_temp",
    "device_brightness_to_homekit",
    "homekit_brightness_to_device",
    "hs_to_rgb",
    "rgb_to_hs",
]
