"""
Protocol definitions for the light synchronization core.

The normalized state is the adapter-independent representation shared by
the device adapters and the accessory layer. The accessory-side protocols
describe the small slice of the HomeKit library the core consumes, so the
core can be exercised without a running HAP server.
"""

from dataclasses import asdict, dataclass, fields, replace
from enum import Enum
from typing import Any, Callable, Optional, Protocol, runtime_checkable


class DeviceFamily(str, Enum):
    """Supported device wire protocols."""
    Z2M = "z2m"
    WLED = "wled"


class DeviceCapability(str, Enum):
    """Accessory features a device can declare."""
    ON_OFF = "on_off"
    BRIGHTNESS = "brightness"
    COLOR_TEMP = "color_temp"
    COLOR_HS = "color_hs"


class BrightnessRounding(str, Enum):
    """
    Brightness rounding between device and HomeKit ranges.

    PROPORTIONAL: round(x / max * 100)
    ANCHORED: 0 -> 0 and [1, max] -> [1, 100], so a lit device never
    reports 0%.
    """
    PROPORTIONAL = "proportional"
    ANCHORED = "anchored"


COLOR_FIELDS = ("hue", "saturation", "color_temp")


@dataclass(frozen=True)
class NormalizedState:
    """
    Device state in HomeKit units.

    Every field is optional: None means unknown or unchanged, never zero.
    Instances are built fresh per translation and never mutated.
    """
    on: Optional[bool] = None
    brightness: Optional[int] = None  # 0-100
    hue: Optional[int] = None  # 0-359
    saturation: Optional[int] = None  # 0-100
    color_temp: Optional[int] = None  # mireds, 140-500

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NormalizedState":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> dict[str, Any]:
        """Only the fields that are set."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    @property
    def has_color(self) -> bool:
        return any(getattr(self, name) is not None for name in COLOR_FIELDS)

    def without_color(self) -> "NormalizedState":
        return replace(self, hue=None, saturation=None, color_temp=None)

    @property
    def is_empty(self) -> bool:
        return not self.to_dict()


# Accessory-side protocols

GetHandler = Callable[[], Any]
SetHandler = Callable[[Any], None]


@runtime_checkable
class CharacteristicHandle(Protocol):
    """A single HomeKit characteristic (On, Brightness, Hue, ...)."""

    def on_get(self, handler: GetHandler) -> None:
        """Register the read handler. Raising from it signals a failure."""
        ...

    def on_set(self, handler: SetHandler) -> None:
        """Register the write handler. Raising from it fails the write."""
        ...

    def update_value(self, value: Any) -> None:
        """Push a value to subscribed controllers."""
        ...


@runtime_checkable
class LightServiceHandle(Protocol):
    """A Lightbulb service exposing its characteristics by HAP name."""

    def characteristic(self, name: str) -> CharacteristicHandle:
        ...


class AccessoryFactory(Protocol):
    """Creates one Lightbulb service per configured device."""

    def create_light(self, device: Any) -> LightServiceHandle:
        ...
