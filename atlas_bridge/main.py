"""
Atlas Bridge entry point.

Exposes MQTT lights as HomeKit accessories: loads settings and the device
list, starts the HAP server and the MQTT dispatcher, and shuts both down
on SIGINT/SIGTERM.
"""

# Load environment variables from .env before anything reads settings.
# .env.local overrides .env for machine-specific settings (pin code, broker).
from pathlib import Path
from dotenv import load_dotenv
_env_root = Path.cwd()
load_dotenv(_env_root / ".env", override=True)
load_dotenv(_env_root / ".env.local", override=True)

import asyncio
import logging
import signal
import sys

from . import __version__
from .bridge import Bridge
from .capabilities.backends.mqtt import MQTTBackend, sanitize_url
from .capabilities.homekit import HomeKitAccessoryFactory, create_bridge, create_driver
from .config import Settings, load_devices, settings
from .exceptions import ConfigError

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("atlas.bridge.main")


async def run(config: Settings) -> None:
    """Run the bridge until a termination signal arrives."""
    loop = asyncio.get_running_loop()
    devices = load_devices(config.devices_file)
    logger.info("Loaded %d device(s) from %s", len(devices), config.devices_file)

    driver = create_driver(config.hap, loop)
    hap_bridge = create_bridge(driver, config.hap.name, config.hap.mac, __version__)
    factory = HomeKitAccessoryFactory(driver, hap_bridge, loop, __version__)

    transport = MQTTBackend(
        config.mqtt.url,
        client_id=config.mqtt.client_id,
        keepalive=config.mqtt.keepalive,
        reconnect_interval=config.mqtt.reconnect_interval,
    )
    bridge = Bridge(
        transport,
        devices,
        factory,
        topic_prefix=config.mqtt.topic_prefix,
        suppression_window=config.sync.suppression_window_seconds,
        rounding=config.sync.brightness_rounding,
        loop=loop,
    )

    stop = asyncio.Event()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    logger.info("Starting Atlas Bridge %s (broker %s)", __version__, sanitize_url(config.mqtt.url))
    await driver.async_start()
    logger.info("HAP server listening on port %d, setup code %s", config.hap.port, config.hap.pincode)

    bridge_task = asyncio.create_task(bridge.run())
    try:
        await stop.wait()
    finally:
        logger.info("Shutting down")
        await driver.async_stop()
        logger.info("HAP server stopped")
        await bridge.shutdown()
        bridge_task.cancel()
        try:
            await bridge_task
        except asyncio.CancelledError:
            pass


def main():
    try:
        asyncio.run(run(settings))
    except ConfigError as e:
        logger.error("%s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
