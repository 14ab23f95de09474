"""Tests for tee-time ladders and availability resolution."""

import pytest

from teetime.booking.availability import (
    SLOT_LADDERS,
    AvailabilityResolver,
    course_ladder,
    time_slots,
)
from teetime.errors import UpstreamError
from teetime.schemas.booking_schema import CourseType
from teetime.tools.reservations import ReservationStore

from tests.conftest import WEEKDAY, make_reservation


@pytest.fixture
def store():
    return ReservationStore()


@pytest.fixture
def resolver(store):
    return AvailabilityResolver(store)


class TestLadders:
    def test_eighteen_hole_ladder(self):
        ladder = course_ladder("18")
        assert len(ladder) == 25
        assert ladder[0] == "06:00"
        assert ladder[-1] == "12:00"

    def test_nine_hole_ladder(self):
        ladder = course_ladder(CourseType.NINE)
        assert len(ladder) == 20
        assert ladder[0] == "12:15"
        assert ladder[-1] == "17:00"

    def test_ladders_are_disjoint(self):
        assert not set(SLOT_LADDERS[CourseType.NINE]) & set(SLOT_LADDERS[CourseType.EIGHTEEN])

    def test_ladders_ascend(self):
        for ladder in SLOT_LADDERS.values():
            assert list(ladder) == sorted(ladder)

    def test_time_slots_bound_to_course(self):
        slots = time_slots("9")
        assert all(s.course_type == CourseType.NINE for s in slots)
        assert slots[0].start == "12:15"


class TestAvailableSlots:
    @pytest.mark.asyncio
    async def test_everything_open_without_reservations(self, resolver):
        result = await resolver.available_slots(WEEKDAY, "18")
        assert result.open_slots == list(course_ladder("18"))
        assert result.closed_slots == []
        assert not result.degraded

    @pytest.mark.asyncio
    async def test_open_and_closed_partition_ladder(self, store, resolver):
        store.add(make_reservation("06:30"))
        store.add(make_reservation("09:00"))
        result = await resolver.available_slots(WEEKDAY, "18")
        assert not set(result.open_slots) & set(result.closed_slots)
        assert sorted(result.open_slots + result.closed_slots) == sorted(course_ladder("18"))
        assert result.closed_slots == ["06:30", "09:00"]

    @pytest.mark.asyncio
    async def test_booked_status_is_case_insensitive(self, store, resolver):
        store.add(make_reservation("07:00", status="BOOKED"))
        store.add(make_reservation("07:15", status=" Booked "))
        result = await resolver.available_slots(WEEKDAY, "18")
        assert result.closed_slots == ["07:00", "07:15"]

    @pytest.mark.asyncio
    async def test_cancelled_reservation_does_not_block(self, store, resolver):
        store.add(make_reservation("07:00", status="cancelled"))
        result = await resolver.available_slots(WEEKDAY, "18")
        assert "07:00" in result.open_slots

    @pytest.mark.asyncio
    async def test_other_course_type_does_not_block(self, store, resolver):
        store.add(make_reservation("12:15", course_type="9"))
        result = await resolver.available_slots(WEEKDAY, "18")
        assert result.closed_slots == []

    @pytest.mark.asyncio
    async def test_other_date_does_not_block(self, store, resolver):
        store.add(make_reservation("07:00", day="2030-01-16"))
        result = await resolver.available_slots(WEEKDAY, "18")
        assert "07:00" in result.open_slots

    @pytest.mark.asyncio
    async def test_custom_candidates(self, store, resolver):
        store.add(make_reservation("07:00"))
        result = await resolver.available_slots(WEEKDAY, "18", candidates=["06:45", "07:00"])
        assert result.open_slots == ["06:45"]
        assert result.closed_slots == ["07:00"]

    @pytest.mark.asyncio
    async def test_selected_slot_taken_is_invalidated(self, store, resolver):
        store.add(make_reservation("08:00"))
        result = await resolver.available_slots(WEEKDAY, "18", selected="08:00")
        assert result.invalidated_selection == "08:00"

    @pytest.mark.asyncio
    async def test_selected_slot_still_open_is_kept(self, resolver):
        result = await resolver.available_slots(WEEKDAY, "18", selected="08:00")
        assert result.invalidated_selection is None


class TestFailClosed:
    @pytest.mark.asyncio
    async def test_lookup_failure_reports_nothing_open(self, store, resolver):
        store.available = False
        result = await resolver.available_slots(WEEKDAY, "9")
        assert result.degraded
        assert result.open_slots == []
        assert result.closed_slots == list(course_ladder("9"))
        assert result.message

    @pytest.mark.asyncio
    async def test_is_open_raises_when_degraded(self, store, resolver):
        store.available = False
        with pytest.raises(UpstreamError):
            await resolver.is_open(WEEKDAY, "18", "07:00")

    @pytest.mark.asyncio
    async def test_is_open(self, store, resolver):
        store.add(make_reservation("07:00"))
        assert not await resolver.is_open(WEEKDAY, "18", "07:00")
        assert await resolver.is_open(WEEKDAY, "18", "07:15")
