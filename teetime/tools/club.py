"""
Wires the reservation core to the in-memory collaborators.

One ``InMemoryClub`` is one golf club: a shared reservation store, caddy
roster, hold store, and payment gateway. Every wizard created from it
competes for the same tee times and caddies, which is how concurrent
golfers are simulated in tests and the console demo.
"""

import logging
import uuid
from datetime import date
from typing import Callable, Iterable, Optional, Union

from teetime.booking.availability import AvailabilityResolver
from teetime.booking.holds import ResourceHoldManager
from teetime.booking.pricing import HolidayCalendar
from teetime.booking.reconciler import CheckoutReconciler
from teetime.booking.wizard import BookingWizard
from teetime.config import AppConfig, settings
from teetime.schemas.booking_schema import ResourceRecord
from teetime.tools.checkout import MockCheckoutGateway
from teetime.tools.draft_store import InMemoryDraftStore
from teetime.tools.hold_store import InMemoryHoldStore
from teetime.tools.reservations import ReservationStore, ResourceDirectory, default_roster

logger = logging.getLogger(__name__)


class InMemoryClub:
    """Shared collaborators plus a factory for booking wizards."""

    def __init__(
        self,
        config: AppConfig = settings,
        roster: Optional[Iterable[ResourceRecord]] = None,
        holidays: Iterable[date] = (),
        valid_tokens: Optional[Iterable[str]] = None,
        clock: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable] = None,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        self.config = config
        self.calendar = HolidayCalendar([*config.pricing.holiday_dates, *holidays])
        self.store = ReservationStore(pricing=config.pricing, is_holiday=self.calendar)
        self.directory = ResourceDirectory(
            self.store, roster if roster is not None else default_roster()
        )
        self.hold_store = InMemoryHoldStore()
        hold_kwargs = {"clock": clock} if clock is not None else {}
        self.holds = ResourceHoldManager(
            self.hold_store, ttl_seconds=config.holds.ttl_seconds, **hold_kwargs
        )
        self.drafts = InMemoryDraftStore()
        self.gateway = MockCheckoutGateway(
            self.store,
            base_url=config.checkout.payment_base_url,
            valid_tokens=valid_tokens,
        )
        reconciler_kwargs = {"sleep": sleep} if sleep is not None else {}
        self.reconciler = CheckoutReconciler(
            self.gateway,
            max_attempts=config.checkout.max_attempts,
            retry_delay_sec=config.checkout.retry_delay_sec,
            pricing=config.pricing,
            is_holiday=self.calendar,
            **reconciler_kwargs,
        )
        self.availability = AvailabilityResolver(self.store)
        self._today = today or date.today
        logger.debug("In-memory club ready for '%s'", config.club_name)

    def new_wizard(
        self,
        session_key: Optional[str] = None,
        refresh_interval_sec: Optional[float] = None,
    ) -> BookingWizard:
        """Start (or reattach to) a golfer's draft."""
        return BookingWizard(
            session_key or f"draft-{uuid.uuid4().hex[:8]}",
            availability=self.availability,
            holds=self.holds,
            resources=self.directory,
            drafts=self.drafts,
            reconciler=self.reconciler,
            pricing=self.config.pricing,
            is_holiday=self.calendar,
            refresh_interval_sec=(
                refresh_interval_sec
                if refresh_interval_sec is not None
                else self.config.holds.refresh_interval_sec
            ),
            today=self._today,
        )

    def is_holiday(self, day: Union[date, str]) -> bool:
        return self.calendar(day)
