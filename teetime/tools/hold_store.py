"""
In-memory hold store.

In production, holds would live next to the reservation database (for
example a Redis hash per tee time with a lock per key) so every app
server sees the same holds.
"""

import asyncio
import logging
from typing import AsyncContextManager

from teetime.booking.holds import Hold, HoldKey
from teetime.tools.keyed_lock import KeyedLocks

logger = logging.getLogger(__name__)


class InMemoryHoldStore:
    """Holds keyed by HoldKey, with one lock per key while it is in use."""

    def __init__(self, latency_sec: float = 0.0) -> None:
        self._holds: dict[HoldKey, dict[str, Hold]] = {}
        self._locks = KeyedLocks()
        self._latency = latency_sec

    async def _io(self) -> None:
        await asyncio.sleep(self._latency)

    def lock(self, key: HoldKey) -> AsyncContextManager[None]:
        return self._locks.hold(key)

    async def get(self, key: HoldKey) -> dict[str, Hold]:
        await self._io()
        return dict(self._holds.get(key, {}))

    async def put(self, hold: Hold) -> None:
        await self._io()
        self._holds.setdefault(hold.hold_key, {})[hold.resource_id] = hold

    async def delete(self, key: HoldKey, resource_id: str) -> None:
        await self._io()
        holds = self._holds.get(key)
        if holds is None:
            return
        holds.pop(resource_id, None)
        if not holds:
            del self._holds[key]

    async def keys(self) -> list[HoldKey]:
        return list(self._holds.keys())
