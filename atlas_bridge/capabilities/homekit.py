"""
HAP-python wiring for the light accessories.

HAP-python may call characteristic setters from an executor thread. All
bridge state lives on the event loop thread, so setter calls are handed
over to the loop and the calling thread waits for the result; an exception
raised by a handler therefore still fails the HomeKit write.
"""

import asyncio
import logging
import zlib
from pathlib import Path
from typing import Any, Optional

from pyhap.accessory import Accessory
from pyhap.accessory import Bridge as HapBridge
from pyhap.accessory_driver import AccessoryDriver
from pyhap.const import CATEGORY_LIGHTBULB

from .accessories import CHAR_ON, characteristics_for
from .protocols import GetHandler, SetHandler

logger = logging.getLogger("atlas.bridge.homekit")

MANUFACTURER = "Atlas"


def stable_aid(topic: str) -> int:
    """Accessory ID derived from the device topic, stable across restarts."""
    return (zlib.crc32(topic.encode()) & 0x7FFFFFFF) | 2


class HapCharacteristic:
    """CharacteristicHandle backed by a pyhap Characteristic."""

    def __init__(self, service: "HapLightService", char):
        self._service = service
        self._char = char

    @property
    def name(self) -> str:
        return self._char.display_name

    def on_get(self, handler: GetHandler) -> None:
        self._char.getter_callback = handler

    def on_set(self, handler: SetHandler) -> None:
        self._service.register_setter(self.name, handler)

    def update_value(self, value: Any) -> None:
        self._char.set_value(value)


class HapLightService:
    """
    LightServiceHandle backed by a pyhap Lightbulb service.

    A single service-level setter receives every characteristic written in
    one HomeKit request, so they reach the coalescer in the same loop pass.
    """

    def __init__(self, service, loop: asyncio.AbstractEventLoop):
        self._service = service
        self._loop = loop
        self._chars: dict[str, HapCharacteristic] = {}
        self._setters: dict[str, SetHandler] = {}
        service.setter_callback = self._set_chars

    def characteristic(self, name: str) -> HapCharacteristic:
        if name not in self._chars:
            self._chars[name] = HapCharacteristic(self, self._service.get_characteristic(name))
        return self._chars[name]

    def register_setter(self, name: str, handler: SetHandler) -> None:
        self._setters[name] = handler

    def _set_chars(self, char_values: dict[str, Any]) -> None:
        if self._on_loop_thread():
            self._apply(char_values)
            return
        future = asyncio.run_coroutine_threadsafe(self._async_apply(char_values), self._loop)
        future.result()

    async def _async_apply(self, char_values: dict[str, Any]) -> None:
        self._apply(char_values)

    def _apply(self, char_values: dict[str, Any]) -> None:
        for name, value in char_values.items():
            handler = self._setters.get(name)
            if handler is None:
                logger.debug("No setter for %s", name)
                continue
            handler(value)

    def _on_loop_thread(self) -> bool:
        try:
            return asyncio.get_running_loop() is self._loop
        except RuntimeError:
            return False


class HapLight(Accessory):
    """Bridged Lightbulb accessory."""

    category = CATEGORY_LIGHTBULB

    def __init__(
        self,
        driver: AccessoryDriver,
        display_name: str,
        chars: list[str],
        loop: asyncio.AbstractEventLoop,
        aid: Optional[int] = None,
    ):
        super().__init__(driver, display_name, aid=aid)
        serv_light = self.add_preload_service("Lightbulb", chars=chars)
        self.light_service = HapLightService(serv_light, loop)


class HomeKitAccessoryFactory:
    """AccessoryFactory that adds one HapLight per device to a HAP bridge."""

    def __init__(
        self,
        driver: AccessoryDriver,
        bridge: HapBridge,
        loop: asyncio.AbstractEventLoop,
        version: str,
    ):
        self.driver = driver
        self.bridge = bridge
        self.loop = loop
        self.version = version

    def create_light(self, device) -> HapLightService:
        chars = [
            char_name
            for char_name, _, _ in characteristics_for(device.capabilities)
            if char_name != CHAR_ON
        ]
        accessory = HapLight(
            self.driver,
            device.name,
            chars,
            self.loop,
            aid=stable_aid(device.topic),
        )
        accessory.set_info_service(
            firmware_revision=self.version,
            manufacturer=MANUFACTURER,
            model=f"{device.type.value} light",
            serial_number=device.topic,
        )
        self.bridge.add_accessory(accessory)
        logger.debug("Added HomeKit light %s (aid=%d)", device.name, accessory.aid)
        return accessory.light_service


def create_driver(hap_config, loop: asyncio.AbstractEventLoop) -> AccessoryDriver:
    """Build the HAP accessory driver on ``loop``."""
    persist_file = Path(hap_config.persist_file)
    persist_file.parent.mkdir(parents=True, exist_ok=True)
    return AccessoryDriver(
        loop=loop,
        address=hap_config.bind,
        port=hap_config.port,
        pincode=hap_config.pincode.encode(),
        persist_file=str(persist_file),
        mac=hap_config.mac,
    )


def create_bridge(driver: AccessoryDriver, name: str, mac: str, version: str) -> HapBridge:
    """Build the HAP bridge accessory and register it with the driver."""
    bridge = HapBridge(driver, name)
    bridge.set_info_service(
        firmware_revision=version,
        manufacturer=MANUFACTURER,
        model="MQTT Bridge",
        serial_number=mac,
    )
    driver.add_accessory(accessory=bridge)
    return bridge
