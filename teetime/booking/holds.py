"""
Soft holds on scarce resources (caddies), scoped to a single tee time.

While a golfer is picking caddies, each pick is held under the draft's
HoldKey ``(date, time_slot, course_type)`` so a second draft looking at
the same tee time sees that caddy as taken. Holds are advisory: they cut
down commit-time conflicts but never replace the compare-and-commit in
the reservation store.

Holds belong to a holder token (one per draft). A token that stays
silent longer than the configured TTL loses its holds on the next sweep,
so an abandoned browser tab cannot starve a caddy forever.
Expired holds are also dropped lazily whenever a key is read, and a
full sweep runs at most once per TTL from ``acquire`` and ``list_free``.

Usage:
    manager = ResourceHoldManager(InMemoryHoldStore())
    key = HoldKey("2025-03-18", "07:30", CourseType.EIGHTEEN)
    status = await manager.acquire(key, "caddy-7", "draft-abc")
    free = await manager.list_free(key, ["caddy-7", "caddy-8"], "draft-xyz")
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Optional

from teetime.config import settings
from teetime.schemas.booking_schema import CourseType
from teetime.tools.protocols import HoldStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HoldKey:
    """Exclusivity domain for resource holds."""
    date: str
    time_slot: str
    course_type: CourseType

    def __str__(self) -> str:
        return f"{self.date}@{self.time_slot}/{self.course_type.value}"


@dataclass(frozen=True)
class Hold:
    """One resource held by one draft under one key."""
    hold_key: HoldKey
    resource_id: str
    holder_token: str
    acquired_at: float


class HoldStatus(str, Enum):
    """Outcome of an acquire attempt."""
    OK = "ok"
    CONFLICT = "conflict"


class ResourceHoldManager:
    """
    Grants and releases soft holds with first-come-first-served semantics.

    All mutations for a key run under that key's lock only; drafts on
    different tee times never wait on each other.
    """

    def __init__(
        self,
        store: HoldStore,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._ttl = ttl_seconds if ttl_seconds is not None else settings.holds.ttl_seconds
        self._clock = clock
        self._last_seen: dict[str, float] = {}
        self._last_sweep = clock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def touch(self, holder_token: str) -> None:
        """Record that a holder is still alive."""
        self._last_seen[holder_token] = self._clock()

    def _is_stale(self, hold: Hold, now: float) -> bool:
        last = max(self._last_seen.get(hold.holder_token, hold.acquired_at), hold.acquired_at)
        return now - last > self._ttl

    async def _maybe_sweep(self) -> None:
        if self._clock() - self._last_sweep >= self._ttl:
            await self.sweep()

    async def _live_holds(self, key: HoldKey) -> dict[str, Hold]:
        """Return live holds for a key, dropping expired ones. Caller holds the key lock."""
        holds = await self._store.get(key)
        now = self._clock()
        for resource_id, hold in list(holds.items()):
            if self._is_stale(hold, now):
                await self._store.delete(key, resource_id)
                del holds[resource_id]
                logger.info(
                    "Expired hold on %s under %s (holder %s silent > %.0fs)",
                    resource_id, key, hold.holder_token, self._ttl,
                )
        return holds

    async def acquire(self, key: HoldKey, resource_id: str, holder_token: str) -> HoldStatus:
        """
        Hold a resource for a draft.

        Re-acquiring a resource the token already holds succeeds.

        Returns:
            HoldStatus.OK, or HoldStatus.CONFLICT if another live token
            holds the resource under this key.
        """
        await self._maybe_sweep()
        self.touch(holder_token)
        async with self._store.lock(key):
            holds = await self._live_holds(key)
            current = holds.get(resource_id)
            if current is not None and current.holder_token != holder_token:
                logger.debug("Hold conflict on %s under %s", resource_id, key)
                return HoldStatus.CONFLICT
            if current is None:
                await self._store.put(Hold(key, resource_id, holder_token, self._clock()))
                self.touch(holder_token)
                logger.debug("Hold acquired on %s under %s by %s", resource_id, key, holder_token)
            return HoldStatus.OK

    async def release(self, key: HoldKey, resource_id: str, holder_token: str) -> None:
        """Release one hold. No-op if it is not held, or held by someone else."""
        self.touch(holder_token)
        async with self._store.lock(key):
            holds = await self._store.get(key)
            current = holds.get(resource_id)
            if current is not None and current.holder_token == holder_token:
                await self._store.delete(key, resource_id)
                logger.debug("Hold released on %s under %s", resource_id, key)

    async def release_all(self, key: HoldKey, holder_token: str) -> list[str]:
        """Release every hold the token owns under a key. Returns released ids."""
        async with self._store.lock(key):
            holds = await self._store.get(key)
            released = [rid for rid, h in holds.items() if h.holder_token == holder_token]
            for resource_id in released:
                await self._store.delete(key, resource_id)
        if released:
            logger.info("Released %d hold(s) under %s", len(released), key)
        return released

    async def release_holder(self, holder_token: str) -> int:
        """Release the token's holds under every key (draft terminated)."""
        count = 0
        for key in await self._store.keys():
            count += len(await self.release_all(key, holder_token))
        self._last_seen.pop(holder_token, None)
        return count

    async def list_free(
        self,
        key: HoldKey,
        candidates: Iterable[str],
        holder_token: Optional[str] = None,
    ) -> list[str]:
        """Candidates not held by another token, in the order given.

        The caller's own holds stay in the result so it can deselect them.
        """
        await self._maybe_sweep()
        if holder_token is not None:
            self.touch(holder_token)
        async with self._store.lock(key):
            holds = await self._live_holds(key)
        return [
            rid for rid in candidates
            if rid not in holds or holds[rid].holder_token == holder_token
        ]

    async def holds_for(self, key: HoldKey) -> list[Hold]:
        """Live holds under a key."""
        async with self._store.lock(key):
            holds = await self._live_holds(key)
        return sorted(holds.values(), key=lambda h: h.acquired_at)

    async def sweep(self) -> int:
        """
        Drop expired holds under every key. Returns how many were dropped.

        Heartbeats are forgotten for tokens that no longer hold anything;
        a returning token is tracked again on its next touch.
        """
        self._last_sweep = self._clock()
        dropped = 0
        holders: set[str] = set()
        for key in await self._store.keys():
            async with self._store.lock(key):
                before = len(await self._store.get(key))
                live = await self._live_holds(key)
            dropped += before - len(live)
            holders.update(h.holder_token for h in live.values())
        for token in [t for t in self._last_seen if t not in holders]:
            del self._last_seen[token]
        if dropped:
            logger.info("Sweep dropped %d expired hold(s)", dropped)
        return dropped
