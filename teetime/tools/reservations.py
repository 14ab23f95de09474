"""
In-memory reservation store and caddy roster.

In production, reservations live in the club's booking database and the
roster comes from the staff scheduling service. The store is the single
source of truth for committed allocations: ``commit`` is a
compare-and-commit under the tee time's lock, never a blind insert.
"""

import asyncio
import logging
import uuid
from datetime import date, datetime, timezone
from typing import Callable, Iterable, Optional, Union

from teetime.booking.holds import HoldKey
from teetime.booking.validation import validate_commit_payload
from teetime.config import PricingConfig
from teetime.errors import ConflictError, UpstreamError
from teetime.schemas.booking_schema import (
    BookingPayload,
    BusySlot,
    Reservation,
    ResourceRecord,
)
from teetime.tools.keyed_lock import KeyedLocks

logger = logging.getLogger(__name__)


class ReservationStore:
    """Committed reservations keyed by booking id."""

    def __init__(
        self,
        pricing: Optional[PricingConfig] = None,
        is_holiday: Optional[Callable[[Union[date, str]], bool]] = None,
    ) -> None:
        self._reservations: dict[str, Reservation] = {}
        self._locks = KeyedLocks()
        self._pricing = pricing
        self._is_holiday = is_holiday
        self.available = True

    def _check_available(self) -> None:
        if not self.available:
            raise UpstreamError("Reservation store is unavailable.")

    async def list_booked(self, date: str) -> list[Reservation]:
        """All reservations on a date, any status; callers filter on status."""
        self._check_available()
        await asyncio.sleep(0)
        return [r.model_copy() for r in self._reservations.values() if r.date == date]

    def add(self, reservation: Reservation) -> Reservation:
        """Insert a record directly, bypassing checks. Seeds fixtures and demos."""
        self._reservations[reservation.booking_id] = reservation
        return reservation

    async def commit(self, payload: BookingPayload, session_id: Optional[str] = None) -> Reservation:
        """
        Atomically check and write a booking.

        Raises:
            ValidationError: If the payload fails commit-time validation.
            ConflictError: If the tee time was booked since the draft last
                looked. Caddies are only ever committed with their tee time.
        """
        self._check_available()
        validate_commit_payload(payload, config=self._pricing, is_holiday=self._is_holiday)
        key = HoldKey(payload.date, payload.time_slot, payload.course_type)

        async with self._locks.hold(key):
            existing = [r for r in self._reservations.values() if self._on_key(r, key) and r.is_booked()]
            if existing:
                raise ConflictError(
                    f"Tee time {payload.time_slot} on {payload.date} is already booked.",
                    {"time_slot": payload.time_slot},
                )

            booking = Reservation(
                booking_id=f"BK-{uuid.uuid4().hex[:6].upper()}",
                date=payload.date,
                time_slot=payload.time_slot,
                course_type=payload.course_type.value,
                status="booked",
                players=payload.players,
                group_name=payload.group_name,
                resource_ids=list(payload.resource_ids),
                cart_qty=payload.cart_qty,
                bag_qty=payload.bag_qty,
                total_price=payload.total_price,
                session_id=session_id,
                created_at=datetime.now(timezone.utc),
            )
            self._reservations[booking.booking_id] = booking

        logger.info(
            "Booking committed: %s on %s at %s (%s holes)",
            booking.booking_id, booking.date, booking.time_slot, booking.course_type,
        )
        return booking

    def cancel(self, booking_id: str) -> bool:
        """Mark a booking cancelled so it stops blocking availability."""
        booking = self._reservations.get(booking_id)
        if booking is None:
            return False
        booking.status = "cancelled"
        logger.info("Booking cancelled: %s", booking_id)
        return True

    def get(self, booking_id: str) -> Optional[Reservation]:
        return self._reservations.get(booking_id)

    def find_by_session(self, session_id: str) -> Optional[Reservation]:
        for booking in self._reservations.values():
            if booking.session_id == session_id:
                return booking
        return None

    @staticmethod
    def _on_key(reservation: Reservation, key: HoldKey) -> bool:
        return (
            reservation.date == key.date
            and reservation.time_slot == key.time_slot
            and str(reservation.course_type) == key.course_type.value
        )


class ResourceDirectory:
    """Caddy roster. Busy slots are derived from booked reservations."""

    def __init__(self, store: ReservationStore, roster: Iterable[ResourceRecord] = ()) -> None:
        self._store = store
        self._roster: dict[str, ResourceRecord] = {r.resource_id: r for r in roster}
        self.available = True

    def set_status(self, resource_id: str, status: str) -> None:
        """Out-of-band schedule change, e.g. a caddy calls in sick."""
        self._roster[resource_id].status = status
        logger.info("Caddy %s status changed to %s", resource_id, status)

    async def list_available(self, date: str) -> list[ResourceRecord]:
        if not self.available:
            raise UpstreamError("Caddy roster is unavailable.")
        booked = await self._store.list_booked(date)
        results = []
        for record in self._roster.values():
            busy = [
                BusySlot(date=r.date, time_slot=r.time_slot, course_type=str(r.course_type))
                for r in booked
                if r.is_booked() and record.resource_id in r.resource_ids
            ]
            results.append(record.model_copy(update={"busy_slots": busy}))
        return results


def default_roster(count: int = 12) -> list[ResourceRecord]:
    """A roster of numbered caddies for demos and tests."""
    return [
        ResourceRecord(resource_id=f"caddy-{i:02d}", name=f"Caddy {i:02d}")
        for i in range(1, count + 1)
    ]
