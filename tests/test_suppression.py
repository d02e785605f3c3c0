"""Tests for color echo suppression."""

from atlas_bridge.capabilities.suppression import ColorEchoSuppressor

from conftest import FakeClock


class TestColorEchoSuppressor:
    def test_not_suppressed_without_command(self):
        assert not ColorEchoSuppressor(clock=FakeClock()).is_suppressed("desk")

    def test_window(self):
        clock = FakeClock()
        suppressor = ColorEchoSuppressor(window_seconds=0.5, clock=clock)
        suppressor.record("desk")

        clock.advance(0.4)
        assert suppressor.is_suppressed("desk")
        clock.advance(0.2)
        assert not suppressor.is_suppressed("desk")

    def test_window_end_is_exclusive(self):
        clock = FakeClock()
        suppressor = ColorEchoSuppressor(window_seconds=0.5, clock=clock)
        suppressor.record("desk")
        clock.advance(0.5)
        assert not suppressor.is_suppressed("desk")

    def test_per_device(self):
        clock = FakeClock()
        suppressor = ColorEchoSuppressor(clock=clock)
        suppressor.record("desk")
        assert not suppressor.is_suppressed("strip")

    def test_second_command_restarts_window(self):
        clock = FakeClock()
        suppressor = ColorEchoSuppressor(window_seconds=0.5, clock=clock)
        suppressor.record("desk")
        clock.advance(0.4)
        suppressor.record("desk")
        clock.advance(0.4)
        assert suppressor.is_suppressed("desk")
