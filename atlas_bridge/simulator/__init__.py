"""WLED device simulator for demos and integration testing."""

from .wled import WledSimulator, WledState, WledStateMachine

__all__ = ["WledSimulator", "WledState", "WledStateMachine"]
