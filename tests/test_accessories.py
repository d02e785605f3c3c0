"""Tests for LightAccessory handler wiring."""

import pytest

from atlas_bridge.capabilities.accessories import LightAccessory, characteristics_for
from atlas_bridge.capabilities.protocols import DeviceCapability, NormalizedState
from atlas_bridge.exceptions import CommunicationFailure

from conftest import FakeLightService


def _accessory(capabilities, state=None, writes=None):
    service = FakeLightService()
    writes = writes if writes is not None else []
    accessory = LightAccessory(
        topic="desk",
        name="Desk Lamp",
        capabilities=[DeviceCapability(c) for c in capabilities],
        service=service,
        read_state=lambda: state,
        schedule_write=writes.append,
    )
    return accessory, service


class TestCharacteristicsFor:
    def test_on_always_present(self):
        names = [c for c, _, _ in characteristics_for([DeviceCapability.BRIGHTNESS])]
        assert names == ["On", "Brightness"]

    def test_color_hs_adds_two(self):
        names = [
            c for c, _, _ in characteristics_for(
                [DeviceCapability.ON_OFF, DeviceCapability.COLOR_HS]
            )
        ]
        assert names == ["On", "Hue", "Saturation"]


class TestGetters:
    def test_no_state_is_communication_failure(self):
        _, service = _accessory(["on_off", "brightness"])
        with pytest.raises(CommunicationFailure):
            service.chars["On"].get()

    def test_reads_cached_state(self):
        _, service = _accessory(
            ["on_off", "brightness", "color_hs"],
            state=NormalizedState(on=True, brightness=42, hue=200, saturation=30),
        )
        assert service.chars["On"].get() is True
        assert service.chars["Brightness"].get() == 42
        assert service.chars["Hue"].get() == 200
        assert service.chars["Saturation"].get() == 30

    def test_unreported_field_uses_default(self):
        _, service = _accessory(
            ["on_off", "brightness", "color_temp"], state=NormalizedState(on=True)
        )
        assert service.chars["Brightness"].get() == 0
        assert service.chars["ColorTemperature"].get() == 140


class TestSetters:
    def test_writes_normalized_partials(self):
        writes = []
        _, service = _accessory(["on_off", "brightness", "color_hs"], writes=writes)

        service.chars["On"].set(1)
        service.chars["Brightness"].set(49.6)
        service.chars["Hue"].set(120)

        assert writes == [{"on": True}, {"brightness": 50}, {"hue": 120}]

    def test_scheduler_failure_propagates(self):
        def fail(payload):
            raise CommunicationFailure("desk", "transport unavailable")

        service = FakeLightService()
        LightAccessory("desk", "Desk Lamp", [DeviceCapability.ON_OFF], service, lambda: None, fail)
        with pytest.raises(CommunicationFailure):
            service.chars["On"].set(True)


class TestApplyState:
    def test_pushes_exposed_fields_only(self):
        accessory, service = _accessory(["on_off", "brightness"])
        accessory.apply_state(NormalizedState(on=False, brightness=10, hue=5))

        assert service.chars["On"].updates == [False]
        assert service.chars["Brightness"].updates == [10]
        assert "Hue" not in service.chars
