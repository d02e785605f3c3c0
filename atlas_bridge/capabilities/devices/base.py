"""
Base class for device family adapters.

An adapter translates between one device family's MQTT wire format and
the normalized state, and knows which topics that family uses.
"""

import math
from abc import ABC, abstractmethod
from numbers import Real
from typing import Any, Optional

from ..convert import device_brightness_to_homekit, homekit_brightness_to_device
from ..protocols import BrightnessRounding, NormalizedState

RawState = dict[str, Any]


def is_number(value: Any) -> bool:
    """True for finite real numbers (bools excluded)."""
    return (
        isinstance(value, Real)
        and not isinstance(value, bool)
        and not math.isnan(value)
        and not math.isinf(value)
    )


class DeviceAdapter(ABC):
    """
    Translation between raw device messages and NormalizedState.

    Subclasses set ``max_brightness``.
    """

    max_brightness: int

    def __init__(self, rounding: BrightnessRounding = BrightnessRounding.ANCHORED):
        self.rounding = rounding

    @abstractmethod
    def inbound_topics(self, device_topic: str) -> dict[str, str]:
        """
        Topics to subscribe to for a device.

        Returns:
            Mapping of full MQTT topic to the channel name passed to
            parse_message
        """
        ...

    @abstractmethod
    def command_topic(self, device_topic: str) -> str:
        """Topic that outbound commands are published to."""
        ...

    @abstractmethod
    def parse_message(self, channel: str, payload: bytes) -> Optional[RawState]:
        """
        Parse one inbound message into a raw partial state.

        Returns:
            The raw partial, or None when the payload is malformed
        """
        ...

    @abstractmethod
    def to_normalized(self, raw: RawState) -> NormalizedState:
        """
        Map the keys present in ``raw`` to normalized fields.

        Fields not present in ``raw`` stay None.
        """
        ...

    @abstractmethod
    def from_normalized(
        self,
        command: NormalizedState,
        cached: Optional[RawState] = None,
    ) -> dict[str, Any]:
        """Render a normalized command into the device's JSON payload."""
        ...

    def state_request(self, device_topic: str) -> Optional[tuple[str, dict[str, Any]]]:
        """(topic, payload) that asks the device to report its state, if any."""
        return None

    def brightness_to_homekit(self, value: Any) -> int:
        return device_brightness_to_homekit(value, self.max_brightness, self.rounding)

    def brightness_to_device(self, value: Any) -> int:
        return homekit_brightness_to_device(value, self.max_brightness, self.rounding)
