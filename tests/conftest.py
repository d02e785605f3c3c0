"""Shared fakes for bridge tests."""

import json
from typing import Any, Optional

import pytest

from atlas_bridge.capabilities.backends import TransportUnavailable
from atlas_bridge.config import DeviceConfig


class FakeTransport:
    """In-memory transport recording publishes and subscriptions."""

    backend_type = "fake"

    def __init__(self, connected: bool = True, events: Optional[list] = None):
        self.connected = connected
        self.closed = False
        self.published: list[tuple[str, Any, bool]] = []
        self.subscriptions: list[str] = []
        self._events = list(events or [])

    @property
    def is_connected(self) -> bool:
        return self.connected

    def publish(self, topic, payload, *, retain=False, qos=0):
        if not self.connected:
            raise TransportUnavailable("not connected")
        self.published.append((topic, payload, retain))

    def subscribe(self, topics):
        if not self.connected:
            raise TransportUnavailable("not connected")
        self.subscriptions.extend(topics)

    async def events(self):
        for event in self._events:
            yield event

    async def disconnect(self):
        self.connected = False
        self.closed = True

    def json_published(self, topic: str) -> list[dict]:
        return [json.loads(payload) for t, payload, _ in self.published if t == topic]


class FakeCharacteristic:
    def __init__(self, name: str):
        self.name = name
        self.getter = None
        self.setter = None
        self.updates: list[Any] = []

    def on_get(self, handler):
        self.getter = handler

    def on_set(self, handler):
        self.setter = handler

    def update_value(self, value):
        self.updates.append(value)

    def get(self):
        return self.getter()

    def set(self, value):
        self.setter(value)


class FakeLightService:
    def __init__(self):
        self.chars: dict[str, FakeCharacteristic] = {}

    def characteristic(self, name: str) -> FakeCharacteristic:
        if name not in self.chars:
            self.chars[name] = FakeCharacteristic(name)
        return self.chars[name]


class FakeAccessoryFactory:
    def __init__(self):
        self.services: dict[str, FakeLightService] = {}

    def create_light(self, device) -> FakeLightService:
        service = FakeLightService()
        self.services[device.topic] = service
        return service


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def z2m_device():
    return DeviceConfig(
        name="Desk Lamp",
        type="z2m",
        topic="desk",
        capabilities=["on_off", "brightness", "color_temp", "color_hs"],
    )


@pytest.fixture
def wled_device():
    return DeviceConfig(
        name="LED Strip",
        type="wled",
        topic="wled/strip",
        capabilities=["on_off", "brightness", "color_hs"],
    )


@pytest.fixture
def clock():
    return FakeClock()
