"""Tests for commit validation, the reservation store, and the caddy roster."""

import asyncio

import pytest

from teetime.booking.validation import validate_commit_payload
from teetime.errors import ConflictError, UpstreamError, ValidationError
from teetime.schemas.booking_schema import CourseType
from teetime.tools.reservations import ReservationStore, ResourceDirectory, default_roster

from tests.conftest import WEEKDAY, make_payload, make_reservation


@pytest.fixture
def store():
    return ReservationStore()


@pytest.fixture
def directory(store):
    return ResourceDirectory(store, default_roster(4))


class TestCommitValidation:
    def test_valid_payload_returns_breakdown(self):
        breakdown = validate_commit_payload(make_payload(players=2, resource_ids=["caddy-01", "caddy-02"]))
        assert breakdown.total == 2 * 2200 + 2 * 400

    def test_tampered_total_rejected(self):
        payload = make_payload(players=2, total_price=100)
        with pytest.raises(ValidationError) as exc_info:
            validate_commit_payload(payload)
        assert exc_info.value.details == {"submitted": 100, "expected": 4400}

    def test_caddy_count_must_equal_players(self):
        payload = make_payload(players=3, resource_ids=["caddy-01", "caddy-02"])
        with pytest.raises(ValidationError, match="caddy count"):
            validate_commit_payload(payload)

    def test_duplicate_caddy_rejected(self):
        payload = make_payload(players=2, resource_ids=["caddy-01", "caddy-01"])
        with pytest.raises(ValidationError, match="twice"):
            validate_commit_payload(payload)

    def test_zero_players_rejected(self):
        with pytest.raises(ValidationError):
            validate_commit_payload(make_payload(players=0, total_price=0))

    def test_slot_from_other_ladder_rejected(self):
        payload = make_payload(time_slot="13:00", course_type=CourseType.EIGHTEEN)
        with pytest.raises(ValidationError, match="not offered"):
            validate_commit_payload(payload)

    def test_malformed_date_and_time_both_reported(self):
        payload = make_payload(day="2030-1-5", time_slot="7:30")
        with pytest.raises(ValidationError) as exc_info:
            validate_commit_payload(payload)
        assert len(exc_info.value.details["problems"]) == 2

    def test_selection_off_ignores_caddy_count(self):
        payload = make_payload(players=3)
        assert validate_commit_payload(payload).resource_fee == 0


class TestCompareAndCommit:
    @pytest.mark.asyncio
    async def test_commit_creates_booking(self, store):
        booking = await store.commit(make_payload(), session_id="cs_1")
        assert booking.booking_id.startswith("BK-")
        assert booking.is_booked()
        assert store.find_by_session("cs_1") == booking

    @pytest.mark.asyncio
    async def test_booked_slot_conflicts(self, store):
        store.add(make_reservation("07:30"))
        with pytest.raises(ConflictError):
            await store.commit(make_payload(time_slot="07:30"))

    @pytest.mark.asyncio
    async def test_cancelled_slot_can_be_rebooked(self, store):
        first = await store.commit(make_payload())
        assert store.cancel(first.booking_id)
        assert store.get(first.booking_id).status == "cancelled"
        second = await store.commit(make_payload())
        assert second.booking_id != first.booking_id

    @pytest.mark.asyncio
    async def test_concurrent_commits_on_one_slot_one_wins(self, store):
        results = await asyncio.gather(
            store.commit(make_payload()),
            store.commit(make_payload()),
            return_exceptions=True,
        )
        assert sum(isinstance(r, ConflictError) for r in results) == 1
        assert len(store._locks) == 0

    @pytest.mark.asyncio
    async def test_invalid_payload_never_written(self, store):
        with pytest.raises(ValidationError):
            await store.commit(make_payload(total_price=1))
        assert await store.list_booked(WEEKDAY) == []

    @pytest.mark.asyncio
    async def test_unavailable_store_raises_upstream(self, store):
        store.available = False
        with pytest.raises(UpstreamError):
            await store.list_booked(WEEKDAY)


class TestResourceDirectory:
    @pytest.mark.asyncio
    async def test_lists_whole_roster(self, directory):
        records = await directory.list_available(WEEKDAY)
        assert [r.resource_id for r in records] == ["caddy-01", "caddy-02", "caddy-03", "caddy-04"]

    @pytest.mark.asyncio
    async def test_busy_slots_derived_from_bookings(self, store, directory):
        store.add(make_reservation("07:30", resource_ids=["caddy-02"]))
        store.add(make_reservation("08:00", status="cancelled", resource_ids=["caddy-03"]))
        records = {r.resource_id: r for r in await directory.list_available(WEEKDAY)}
        assert [s.time_slot for s in records["caddy-02"].busy_slots] == ["07:30"]
        assert records["caddy-03"].busy_slots == []

    @pytest.mark.asyncio
    async def test_status_change(self, directory):
        directory.set_status("caddy-01", "off_duty")
        records = {r.resource_id: r for r in await directory.list_available(WEEKDAY)}
        assert records["caddy-01"].status == "off_duty"

    @pytest.mark.asyncio
    async def test_unavailable_roster_raises_upstream(self, directory):
        directory.available = False
        with pytest.raises(UpstreamError):
            await directory.list_available(WEEKDAY)
