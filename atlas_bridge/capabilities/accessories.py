"""
HomeKit light accessory handlers.

Wires get/set handlers onto the characteristics of one Lightbulb service
and pushes inbound state to it. Writes are handed to the coalescer as
normalized partials; reads come from the bridge's state cache.
"""

import logging
from typing import Any, Callable, Optional

from ..exceptions import CommunicationFailure
from .protocols import DeviceCapability, LightServiceHandle, NormalizedState

logger = logging.getLogger("atlas.bridge.accessories")

CHAR_ON = "On"
CHAR_BRIGHTNESS = "Brightness"
CHAR_COLOR_TEMPERATURE = "ColorTemperature"
CHAR_HUE = "Hue"
CHAR_SATURATION = "Saturation"

# (characteristic, normalized field, value reported when the field was never seen)
_CHARACTERISTICS: dict[DeviceCapability, list[tuple[str, str, Any]]] = {
    DeviceCapability.ON_OFF: [(CHAR_ON, "on", False)],
    DeviceCapability.BRIGHTNESS: [(CHAR_BRIGHTNESS, "brightness", 0)],
    DeviceCapability.COLOR_TEMP: [(CHAR_COLOR_TEMPERATURE, "color_temp", 140)],
    DeviceCapability.COLOR_HS: [
        (CHAR_HUE, "hue", 0),
        (CHAR_SATURATION, "saturation", 0),
    ],
}

StateReader = Callable[[], Optional[NormalizedState]]
WriteScheduler = Callable[[dict[str, Any]], None]


def characteristics_for(capabilities: list[DeviceCapability]) -> list[tuple[str, str, Any]]:
    """Characteristics for a capability list. On is always included."""
    result = list(_CHARACTERISTICS[DeviceCapability.ON_OFF])
    for capability in capabilities:
        if capability is DeviceCapability.ON_OFF:
            continue
        result.extend(_CHARACTERISTICS[capability])
    return result


class LightAccessory:
    """
    Handlers for one light.

    Args:
        topic: Device topic (used in errors and logs)
        name: Display name
        capabilities: Declared capabilities
        service: Lightbulb service to register handlers on
        read_state: Returns the normalized cached state, None if unknown
        schedule_write: Queues a normalized partial for publishing
    """

    def __init__(
        self,
        topic: str,
        name: str,
        capabilities: list[DeviceCapability],
        service: LightServiceHandle,
        read_state: StateReader,
        schedule_write: WriteScheduler,
    ):
        self.topic = topic
        self.name = name
        self._service = service
        self._read_state = read_state
        self._schedule_write = schedule_write
        self._fields: dict[str, str] = {}

        for char_name, field_name, default in characteristics_for(capabilities):
            char = service.characteristic(char_name)
            char.on_get(self._make_getter(field_name, default))
            char.on_set(self._make_setter(field_name))
            self._fields[field_name] = char_name

    def apply_state(self, state: NormalizedState) -> None:
        """Push the fields present in ``state`` to HomeKit."""
        for field_name, value in state.to_dict().items():
            char_name = self._fields.get(field_name)
            if char_name is None:
                continue
            self._service.characteristic(char_name).update_value(value)

    def _make_getter(self, field_name: str, default: Any) -> Callable[[], Any]:
        def getter() -> Any:
            state = self._read_state()
            if state is None:
                raise CommunicationFailure(self.topic, "no state received yet")
            value = getattr(state, field_name)
            return default if value is None else value

        return getter

    def _make_setter(self, field_name: str) -> Callable[[Any], None]:
        def setter(value: Any) -> None:
            if field_name == "on":
                value = bool(value)
            else:
                value = int(round(value))
            logger.debug("%s: set %s=%s", self.name, field_name, value)
            self._schedule_write({field_name: value})

        return setter
