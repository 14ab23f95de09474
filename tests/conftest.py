"""Shared test fixtures and helpers."""

from datetime import date
from typing import Optional

import pytest

from teetime.booking.holds import HoldKey, ResourceHoldManager
from teetime.schemas.booking_schema import BookingPayload, CourseType, Reservation
from teetime.tools.club import InMemoryClub
from teetime.tools.hold_store import InMemoryHoldStore

TODAY = date(2030, 1, 1)
WEEKDAY = "2030-01-15"   # Tuesday
SATURDAY = "2030-01-19"


class FakeClock:
    """Monotonic clock the test advances by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Stands in for asyncio.sleep; records delays and returns at once."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleeper():
    return RecordingSleep()


@pytest.fixture
def club(clock, sleeper):
    return InMemoryClub(clock=clock, sleep=sleeper, today=lambda: TODAY)


@pytest.fixture
def hold_manager(clock):
    return ResourceHoldManager(InMemoryHoldStore(), ttl_seconds=600, clock=clock)


@pytest.fixture
def hold_key():
    return HoldKey(WEEKDAY, "07:30", CourseType.EIGHTEEN)


def make_reservation(
    time_slot: str = "07:30",
    day: str = WEEKDAY,
    course_type: str = "18",
    status: str = "booked",
    resource_ids: Optional[list[str]] = None,
    booking_id: Optional[str] = None,
) -> Reservation:
    """Helper to create a committed Reservation."""
    return Reservation(
        booking_id=booking_id or f"BK-{day}-{time_slot}-{course_type}",
        date=day,
        time_slot=time_slot,
        course_type=course_type,
        status=status,
        resource_ids=resource_ids or [],
    )


def make_payload(
    players: int = 2,
    resource_ids: Optional[list[str]] = None,
    time_slot: str = "07:30",
    day: str = WEEKDAY,
    course_type: CourseType = CourseType.EIGHTEEN,
    cart_qty: int = 0,
    bag_qty: int = 0,
    total_price: Optional[int] = None,
) -> BookingPayload:
    """Helper to create a correctly priced BookingPayload with default rates."""
    resource_ids = resource_ids or []
    if total_price is None:
        rate = 2200 if course_type == CourseType.EIGHTEEN else 1500
        total_price = rate * players + 400 * len(resource_ids) + 600 * cart_qty + 300 * bag_qty
    return BookingPayload(
        course_type=course_type,
        date=day,
        time_slot=time_slot,
        players=players,
        resource_selection_enabled=bool(resource_ids),
        resource_ids=resource_ids,
        cart_qty=cart_qty,
        bag_qty=bag_qty,
        total_price=total_price,
    )


async def wizard_at_resources(club, session_key: str, players: int = 3, time_slot: str = "07:30"):
    """Drive a fresh wizard to the caddy step with selection on."""
    wizard = club.new_wizard(session_key, refresh_interval_sec=3600)
    await wizard.set_field("date", WEEKDAY)
    await wizard.set_field("time_slot", time_slot)
    await wizard.next()
    await wizard.set_field("players", players)
    await wizard.next()
    await wizard.set_field("resource_selection_enabled", True)
    return wizard
