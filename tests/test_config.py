"""Tests for settings and device configuration loading."""

import pytest
from pydantic import ValidationError

from atlas_bridge.capabilities.protocols import (
    BrightnessRounding,
    DeviceCapability,
    DeviceFamily,
)
from atlas_bridge.config import (
    DeviceConfig,
    HAPConfig,
    MQTTConfig,
    SyncConfig,
    load_devices,
    parse_devices,
)
from atlas_bridge.exceptions import ConfigError

DEVICES_YAML = """
devices:
  - name: Desk Lamp
    topic: desk
    capabilities: [on_off, brightness, color_temp]
  - name: LED Strip
    type: wled
    topic: wled/strip
    capabilities: [on_off, brightness, color_hs]
"""


class TestDeviceConfig:
    def test_defaults_to_z2m(self):
        device = DeviceConfig(name="Desk", topic="desk", capabilities=["on_off"])
        assert device.type is DeviceFamily.Z2M
        assert device.capabilities == [DeviceCapability.ON_OFF]

    @pytest.mark.parametrize("field", ["name", "topic"])
    def test_blank_fields_rejected(self, field):
        data = {"name": "Desk", "topic": "desk", "capabilities": ["on_off"], field: "  "}
        with pytest.raises(ValidationError):
            DeviceConfig(**data)

    @pytest.mark.parametrize("capabilities", [[], ["on_off", "on_off"], ["dimmer"]])
    def test_bad_capabilities_rejected(self, capabilities):
        with pytest.raises(ValidationError):
            DeviceConfig(name="Desk", topic="desk", capabilities=capabilities)

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            DeviceConfig(name="Desk", type="hue", topic="desk", capabilities=["on_off"])

    def test_wled_color_temp_rejected(self):
        with pytest.raises(ValidationError, match="color_temp"):
            DeviceConfig(
                name="Strip", type="wled", topic="wled/strip",
                capabilities=["on_off", "color_temp"],
            )


class TestParseDevices:
    def test_requires_a_device(self):
        with pytest.raises(ConfigError):
            parse_devices({"devices": []})

    def test_duplicate_topics(self):
        device = {"name": "Desk", "topic": "desk", "capabilities": ["on_off"]}
        with pytest.raises(ConfigError, match="duplicate device topic"):
            parse_devices({"devices": [device, dict(device, name="Desk 2")]})


class TestLoadDevices:
    def test_load(self, tmp_path):
        path = tmp_path / "devices.yaml"
        path.write_text(DEVICES_YAML)

        devices = load_devices(path)
        assert [d.topic for d in devices] == ["desk", "wled/strip"]
        assert devices[1].type is DeviceFamily.WLED

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_devices(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "devices.yaml"
        path.write_text("devices: [unclosed")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_devices(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "devices.yaml"
        path.write_text("- just a list\n")
        with pytest.raises(ConfigError):
            load_devices(path)


class TestSettings:
    def test_hap_mac_normalized(self):
        assert HAPConfig(mac="0e:a7:1a:5b:00:ff").mac == "0E:A7:1A:5B:00:FF"

    @pytest.mark.parametrize("mac", ["0E:A7:1A:5B:00", "not-a-mac"])
    def test_hap_bad_mac(self, mac):
        with pytest.raises(ValidationError):
            HAPConfig(mac=mac)

    @pytest.mark.parametrize("pincode", ["12345678", "123-456-78", "abc-de-fgh"])
    def test_hap_bad_pincode(self, pincode):
        with pytest.raises(ValidationError):
            HAPConfig(pincode=pincode)

    def test_hap_port_range(self):
        with pytest.raises(ValidationError):
            HAPConfig(port=70000)

    def test_sync_defaults(self):
        sync = SyncConfig()
        assert sync.suppression_window_ms == 500
        assert sync.suppression_window_seconds == 0.5
        assert sync.brightness_rounding is BrightnessRounding.ANCHORED

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("ATLAS_BRIDGE_SYNC_BRIGHTNESS_ROUNDING", "proportional")
        monkeypatch.setenv("ATLAS_BRIDGE_MQTT_TOPIC_PREFIX", "z2m")
        assert SyncConfig().brightness_rounding is BrightnessRounding.PROPORTIONAL
        assert MQTTConfig().topic_prefix == "z2m"
