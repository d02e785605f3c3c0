"""
Write coalescing for accessory writes.

HomeKit writes several characteristics of one light back to back (hue then
saturation, on then brightness). Each write lands here; writes for the same
device made before the event loop gets control again are merged into one
pending payload, and a single flush per device is scheduled on the next
loop iteration.
"""

import asyncio
import logging
from typing import Any, Callable, Optional

from ..exceptions import CommunicationFailure

logger = logging.getLogger("atlas.bridge.scheduler")

FlushCallback = Callable[[str, dict[str, Any]], None]


def merge_payload(pending: dict[str, Any], update: dict[str, Any]) -> dict[str, Any]:
    """
    Shallow-merge ``update`` into ``pending``.

    Nested dicts (e.g. a ``color`` object) are merged field by field so a
    hue write followed by a saturation write yields one combined object.
    """
    merged = dict(pending)
    for key, value in update.items():
        current = merged.get(key)
        if isinstance(value, dict) and isinstance(current, dict):
            merged[key] = {**current, **value}
        else:
            merged[key] = value
    return merged


class WriteCoalescer:
    """
    Per-device pending payloads with a one-shot deferred flush.

    ``schedule`` is synchronous: when the transport is down it raises
    CommunicationFailure to the caller immediately. The deferred flush
    swallows CommunicationFailure because the caller already saw it (or
    the transport dropped after the write was accepted).
    """

    def __init__(
        self,
        flush: FlushCallback,
        is_available: Callable[[], bool],
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self._flush_callback = flush
        self._is_available = is_available
        self._loop = loop
        self._pending: dict[str, dict[str, Any]] = {}
        self._handles: dict[str, asyncio.Handle] = {}
        self._total_writes = 0
        self._total_flushes = 0

    def schedule(self, key: str, payload: dict[str, Any]) -> None:
        """Merge a write into the pending payload for ``key``."""
        if not self._is_available():
            raise CommunicationFailure(key, "transport unavailable")

        self._total_writes += 1
        self._pending[key] = merge_payload(self._pending.get(key, {}), payload)

        if key not in self._handles:
            loop = self._loop or asyncio.get_running_loop()
            self._handles[key] = loop.call_soon(self._flush, key)

    def has_pending(self, key: str) -> bool:
        return key in self._pending

    def cancel_all(self) -> None:
        """Drop every pending payload without publishing."""
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()
        self._pending.clear()

    @property
    def stats(self) -> dict[str, int]:
        return {
            "pending": len(self._pending),
            "total_writes": self._total_writes,
            "total_flushes": self._total_flushes,
        }

    def _flush(self, key: str) -> None:
        self._handles.pop(key, None)
        payload = self._pending.pop(key, None)
        if not payload:
            return

        self._total_flushes += 1
        logger.debug("Flushing coalesced write for %s: %s", key, payload)
        try:
            self._flush_callback(key, payload)
        except CommunicationFailure as e:
            logger.debug("Dropped coalesced write for %s: %s", key, e)
