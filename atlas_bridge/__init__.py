"""
Atlas Bridge: MQTT lights as HomeKit accessories.

Bridges zigbee2mqtt and WLED lights to HomeKit, keeping state in sync in
both directions.
"""

__version__ = "0.1.0"
