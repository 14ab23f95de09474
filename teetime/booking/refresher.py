"""Bounded-interval refresh of the caddy list while the resource step is open."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from teetime.config import settings
from teetime.errors import BookingError
from teetime.schemas.booking_schema import ResourceListing

logger = logging.getLogger(__name__)


class ResourceRefresher:
    """
    Re-runs a resource listing on a fixed interval.

    Holds are soft and caddies can drop off the roster out of band, so the
    list the golfer sees is reloaded every ``interval_sec`` while the step
    is active, and immediately when the app returns to the foreground.
    ``stop()`` cancels the background task; nothing keeps polling after
    the step is left.
    """

    def __init__(
        self,
        loader: Callable[[], Awaitable[ResourceListing]],
        interval_sec: Optional[float] = None,
        on_update: Optional[Callable[[ResourceListing], None]] = None,
    ) -> None:
        self._loader = loader
        self._interval = interval_sec if interval_sec is not None else settings.holds.refresh_interval_sec
        self._on_update = on_update
        self._task: Optional[asyncio.Task] = None
        self.latest: Optional[ResourceListing] = None
        self.refresh_count = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start periodic refresh. Must be called from a running event loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.debug("Resource refresh started (every %.1fs)", self._interval)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.exception("Resource refresh task ended with an error")
        logger.debug("Resource refresh stopped after %d refresh(es)", self.refresh_count)

    async def refresh_now(self) -> ResourceListing:
        """Reload immediately, e.g. on return to the foreground."""
        listing = await self._loader()
        self.latest = listing
        self.refresh_count += 1
        if self._on_update is not None:
            self._on_update(listing)
        return listing

    async def _run(self) -> None:
        while True:
            try:
                await self.refresh_now()
            except BookingError as exc:
                logger.warning("Resource refresh failed: %s", exc)
            except Exception:
                logger.exception("Resource refresh failed unexpectedly")
            await asyncio.sleep(self._interval)
