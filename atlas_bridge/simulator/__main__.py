"""
Run a simulated WLED controller against an MQTT broker.

Usage:
    python -m atlas_bridge.simulator --topic wled/desk
    atlas-wled-sim --url mqtt://broker:1883 --topic wled/desk
"""

import argparse
import asyncio
import logging
import signal

from ..capabilities.backends.mqtt import MQTTBackend
from .wled import WledSimulator

logger = logging.getLogger("atlas.bridge.simulator")


async def run(url: str, topic: str) -> None:
    transport = MQTTBackend(url, will=WledSimulator.last_will(topic))
    simulator = WledSimulator(transport, topic)

    task = asyncio.create_task(simulator.run())
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    await stop.wait()
    logger.info("Stopping simulated WLED %s", topic)
    await transport.disconnect()
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


def main():
    parser = argparse.ArgumentParser(description="Simulate a WLED controller over MQTT")
    parser.add_argument("--url", default="mqtt://localhost:1883", help="Broker URL")
    parser.add_argument("--topic", default="wled/sim", help="Device base topic")
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    asyncio.run(run(args.url, args.topic))


if __name__ == "__main__":
    main()
