"""Tests for the raw device state cache."""

from atlas_bridge.capabilities.state_cache import DeviceStateCache


class TestDeviceStateCache:
    def test_absent_until_first_message(self):
        cache = DeviceStateCache()
        assert cache.get("desk") is None
        assert cache.size == 0

    def test_shallow_merge(self):
        cache = DeviceStateCache()
        cache.merge("desk", {"state": "ON", "brightness": 100, "color": {"hue": 10}})
        merged = cache.merge("desk", {"brightness": 50, "color": {"saturation": 5}})

        assert merged == {"state": "ON", "brightness": 50, "color": {"saturation": 5}}
        assert cache.get("desk") == merged

    def test_get_returns_copy(self):
        cache = DeviceStateCache()
        cache.merge("desk", {"state": "ON"})
        cache.get("desk")["state"] = "OFF"
        assert cache.get("desk") == {"state": "ON"}

    def test_metadata(self):
        cache = DeviceStateCache()
        cache.merge("desk", {"state": "ON"})
        cache.merge("desk", {"state": "OFF"})
        cache.merge("strip", {"bri": 1})

        assert cache.size == 2
        entry = cache.get_all()["desk"]
        assert entry.message_count == 2
        assert entry.to_dict()["raw"] == {"state": "OFF"}

    def test_clear(self):
        cache = DeviceStateCache()
        cache.merge("desk", {"state": "ON"})
        cache.clear()
        assert cache.size == 0
