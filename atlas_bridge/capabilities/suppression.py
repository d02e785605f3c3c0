"""
Write-back suppression for color echoes.

Devices often echo an intermediate or stale color a few milliseconds after
accepting a new one. After the bridge sends a color command to a device,
inbound color fields from that device are ignored for a short window so
the accessory does not flicker back to the old color.
"""

import logging
import time
from typing import Callable

logger = logging.getLogger("atlas.bridge.suppression")

DEFAULT_WINDOW_SECONDS = 0.5


class ColorEchoSuppressor:
    """
    Per-device timestamp of the last locally-originated color command.

    Entries are overwritten on every color command and never deleted; a
    stale entry simply falls outside the window.
    """

    def __init__(
        self,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.window_seconds = window_seconds
        self._clock = clock
        self._last_command: dict[str, float] = {}

    def record(self, topic: str) -> None:
        """Mark that a color command was just sent to ``topic``."""
        self._last_command[topic] = self._clock()
        logger.debug(
            "Suppressing color echoes from %s for %.0f ms",
            topic, self.window_seconds * 1000,
        )

    def is_suppressed(self, topic: str) -> bool:
        """True while ``topic`` is inside its suppression window."""
        sent_at = self._last_command.get(topic)
        if sent_at is None:
            return False
        return self._clock() - sent_at < self.window_seconds
