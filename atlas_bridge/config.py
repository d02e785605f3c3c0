"""
Centralized configuration management using Pydantic Settings.

Runtime options are loaded from environment variables with sensible
defaults. The device list lives in a YAML file referenced by
``ATLAS_BRIDGE_DEVICES_FILE``.
"""

import re
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .capabilities.protocols import BrightnessRounding, DeviceCapability, DeviceFamily
from .exceptions import ConfigError

_MAC_RE = re.compile(r"^[0-9A-Fa-f]{2}(:[0-9A-Fa-f]{2}){5}$")
_PINCODE_RE = re.compile(r"^\d{3}-\d{2}-\d{3}$")


class MQTTConfig(BaseSettings):
    """MQTT broker configuration."""

    model_config = SettingsConfigDict(env_prefix="ATLAS_BRIDGE_MQTT_")

    url: str = Field(default="mqtt://localhost:1883", description="Broker URL, may include credentials")
    topic_prefix: str = Field(default="zigbee2mqtt", description="zigbee2mqtt base topic")
    client_id: Optional[str] = Field(default=None, description="MQTT client identifier")
    keepalive: int = Field(default=60, ge=1, description="Keepalive interval in seconds")
    reconnect_interval: float = Field(
        default=5.0, gt=0, description="Seconds between reconnection attempts"
    )


class HAPConfig(BaseSettings):
    """HomeKit Accessory Protocol server configuration."""

    model_config = SettingsConfigDict(env_prefix="ATLAS_BRIDGE_HAP_")

    name: str = Field(default="Atlas Bridge", description="Bridge name shown in the Home app")
    mac: str = Field(default="0E:A7:1A:5B:00:01", description="Bridge identifier (MAC format)")
    pincode: str = Field(default="031-45-154", description="Setup code")
    port: int = Field(default=51826, ge=1, le=65535, description="HAP server port")
    bind: Optional[str] = Field(default=None, description="Address to advertise and bind")
    persist_file: Path = Field(
        default=Path("data/accessory.state"), description="Pairing state file"
    )

    @field_validator("mac")
    @classmethod
    def validate_mac(cls, v: str) -> str:
        if not _MAC_RE.match(v):
            raise ValueError("mac must look like AA:BB:CC:DD:EE:FF")
        return v.upper()

    @field_validator("pincode")
    @classmethod
    def validate_pincode(cls, v: str) -> str:
        if not _PINCODE_RE.match(v):
            raise ValueError("pincode must look like 031-45-154")
        return v


class SyncConfig(BaseSettings):
    """State synchronization tuning."""

    model_config = SettingsConfigDict(env_prefix="ATLAS_BRIDGE_SYNC_")

    suppression_window_ms: int = Field(
        default=500, ge=0, description="Ignore inbound color for this long after a color write"
    )
    brightness_rounding: BrightnessRounding = Field(
        default=BrightnessRounding.ANCHORED,
        description="Brightness scaling strategy (anchored or proportional)",
    )

    @property
    def suppression_window_seconds(self) -> float:
        return self.suppression_window_ms / 1000.0


class Settings(BaseSettings):
    """Application-wide settings."""

    model_config = SettingsConfigDict(
        env_prefix="ATLAS_BRIDGE_",
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    log_level: str = Field(default="INFO", description="Logging level")
    devices_file: Path = Field(default=Path("devices.yaml"), description="Device list (YAML)")

    mqtt: MQTTConfig = Field(default_factory=MQTTConfig)
    hap: HAPConfig = Field(default_factory=HAPConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)


class DeviceConfig(BaseModel):
    """One light exposed to HomeKit."""

    name: str
    type: DeviceFamily = DeviceFamily.Z2M
    topic: str
    capabilities: list[DeviceCapability]

    @field_validator("name", "topic")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("capabilities")
    @classmethod
    def validate_capabilities(cls, v: list[DeviceCapability]) -> list[DeviceCapability]:
        if not v:
            raise ValueError("at least one capability is required")
        if len(set(v)) != len(v):
            raise ValueError("capabilities must not repeat")
        return v

    @model_validator(mode="after")
    def validate_family_capabilities(self) -> "DeviceConfig":
        if self.type is DeviceFamily.WLED and DeviceCapability.COLOR_TEMP in self.capabilities:
            raise ValueError("wled devices do not support color_temp")
        return self


class DevicesFile(BaseModel):
    """Top level of the devices YAML file."""

    devices: list[DeviceConfig]

    @field_validator("devices")
    @classmethod
    def validate_devices(cls, v: list[DeviceConfig]) -> list[DeviceConfig]:
        if not v:
            raise ValueError("at least one device is required")
        seen: set[str] = set()
        for device in v:
            if device.topic in seen:
                raise ValueError(f"duplicate device topic: {device.topic}")
            seen.add(device.topic)
        return v


def parse_devices(data: Any) -> list[DeviceConfig]:
    """Validate already-parsed device data (a mapping with a ``devices`` list)."""
    try:
        return DevicesFile.model_validate(data).devices
    except ValidationError as e:
        raise ConfigError(f"Invalid device configuration: {e}") from e


def load_devices(path: Union[str, Path]) -> list[DeviceConfig]:
    """Load and validate the device list from a YAML file."""
    path = Path(path)
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Devices file not found: {path}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping with a 'devices' list")
    return parse_devices(data)


# Singleton settings instance
settings = Settings()
