"""
Raw device state cache.

Holds the last known wire-level state for each device topic. Inbound
messages are shallow-merged: keys in the update overwrite, keys absent
from the update persist. A topic has no entry until its first message.

All access happens on the event loop thread, so no locking is needed.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

logger = logging.getLogger("atlas.bridge.state_cache")


@dataclass
class CachedDeviceState:
    """Raw state for one device topic with metadata."""

    topic: str
    raw: dict[str, Any]
    message_count: int = 1
    last_updated: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "topic": self.topic,
            "raw": dict(self.raw),
            "message_count": self.message_count,
            "last_updated": self.last_updated.isoformat(),
        }


class DeviceStateCache:
    """
    Per-topic raw state cache.

    Features:
    - O(1) lookups by device topic
    - Shallow-merge updates
    """

    def __init__(self):
        self._cache: dict[str, CachedDeviceState] = {}

    def get(self, topic: str) -> Optional[dict[str, Any]]:
        """Return a copy of the cached raw state, None if nothing received yet."""
        cached = self._cache.get(topic)
        if cached is None:
            return None
        return dict(cached.raw)

    def merge(self, topic: str, update: dict[str, Any]) -> dict[str, Any]:
        """
        Shallow-merge a raw update into the cached entry.

        Returns:
            The merged raw state
        """
        cached = self._cache.get(topic)
        if cached is None:
            cached = CachedDeviceState(topic=topic, raw=dict(update))
            self._cache[topic] = cached
        else:
            cached.raw = {**cached.raw, **update}
            cached.message_count += 1
            cached.last_updated = datetime.now()

        return dict(cached.raw)

    def clear(self) -> None:
        self._cache.clear()
        logger.info("State cache cleared")

    def get_all(self) -> dict[str, CachedDeviceState]:
        """Snapshot of all cached entries (for debugging)."""
        return dict(self._cache)

    @property
    def size(self) -> int:
        """Number of cached devices."""
        return len(self._cache)
