"""
Custom exceptions for the bridge.

Provides explicit error types for the accessory boundary and config layer.
"""


class BridgeError(Exception):
    """Base exception for all bridge errors."""

    pass


class CommunicationFailure(BridgeError):
    """
    Raised when an accessory operation cannot reach the device.

    HAP-python reports any exception raised from a characteristic getter or
    setter as SERVICE_COMMUNICATION_FAILURE, so raising this from a handler
    is how the bridge signals "no state" or "broker unavailable" to HomeKit.
    """

    def __init__(self, topic: str, reason: str = "device unavailable"):
        self.topic = topic
        self.reason = reason
        super().__init__(f"{topic}: {reason}")


class ConfigError(BridgeError):
    """Raised when the bridge configuration is invalid."""

    pass
