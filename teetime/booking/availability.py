"""
Tee-time availability for a (date, course type) pair.

Each course type has a fixed, ascending ladder of start times. The two
ladders are disjoint: 18-hole rounds go out in the morning, 9-hole rounds
in the afternoon. A slot is closed when a reservation with status
"booked" already holds it; everything else on the ladder is open.

Lookup failures fail closed: nothing is reported open and the result is
flagged as degraded so the caller can say so.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional, Union

from teetime.errors import UpstreamError
from teetime.schemas.booking_schema import CourseType, SlotAvailability
from teetime.tools.protocols import ReservationQuery
from teetime.utils import normalize_date

logger = logging.getLogger(__name__)

SLOT_STEP_MINUTES = 15


@dataclass(frozen=True)
class TimeSlot:
    """A fixed start time bound to one course type."""
    start: str
    course_type: CourseType


def _ladder(first: str, last: str, step_minutes: int = SLOT_STEP_MINUTES) -> tuple[str, ...]:
    current = datetime.strptime(first, "%H:%M")
    end = datetime.strptime(last, "%H:%M")
    starts = []
    while current <= end:
        starts.append(current.strftime("%H:%M"))
        current += timedelta(minutes=step_minutes)
    return tuple(starts)


SLOT_LADDERS: dict[CourseType, tuple[str, ...]] = {
    CourseType.EIGHTEEN: _ladder("06:00", "12:00"),
    CourseType.NINE: _ladder("12:15", "17:00"),
}


def course_ladder(course_type: Union[CourseType, str]) -> tuple[str, ...]:
    """Return the ordered candidate start times for a course type."""
    return SLOT_LADDERS[CourseType(course_type)]


def time_slots(course_type: Union[CourseType, str]) -> list[TimeSlot]:
    ct = CourseType(course_type)
    return [TimeSlot(start=s, course_type=ct) for s in SLOT_LADDERS[ct]]


class AvailabilityResolver:
    """Removes committed slots from a course-type ladder."""

    def __init__(self, reservations: ReservationQuery) -> None:
        self._reservations = reservations

    async def available_slots(
        self,
        date: str,
        course_type: Union[CourseType, str],
        candidates: Optional[Iterable[str]] = None,
        selected: Optional[str] = None,
    ) -> SlotAvailability:
        """
        Partition the candidate ladder into open and closed slots.

        Args:
            date: Play date (YYYY-MM-DD).
            course_type: "9" or "18".
            candidates: Candidate start times; defaults to the course ladder.
            selected: The draft's currently selected slot, if any. When it
                turns out to be closed it is reported back in
                ``invalidated_selection`` so the caller clears it.
        """
        ct = CourseType(course_type)
        day = normalize_date(date)
        ladder = list(candidates) if candidates is not None else list(course_ladder(ct))

        try:
            reservations = await self._reservations.list_booked(day)
        except Exception as exc:
            logger.warning("Reservation lookup failed for %s/%s: %s", day, ct.value, exc)
            return SlotAvailability(
                date=day,
                course_type=ct,
                open_slots=[],
                closed_slots=ladder,
                degraded=True,
                message="Could not load booked tee times. Please try again.",
            )

        booked = {
            r.time_slot
            for r in reservations
            if _same_day(r.date, day) and str(r.course_type) == ct.value and r.is_booked()
        }
        open_slots = [s for s in ladder if s not in booked]
        closed_slots = [s for s in ladder if s in booked]

        invalidated = selected if selected and selected in booked else None
        if invalidated:
            logger.info("Selected slot %s on %s was booked by someone else", invalidated, day)

        return SlotAvailability(
            date=day,
            course_type=ct,
            open_slots=open_slots,
            closed_slots=closed_slots,
            invalidated_selection=invalidated,
            message=f"{len(open_slots)} of {len(ladder)} tee times open on {day}.",
        )

    async def is_open(self, date: str, course_type: Union[CourseType, str], time_slot: str) -> bool:
        """Check one slot right now.

        Raises:
            UpstreamError: If the lookup failed; availability is unknown.
        """
        result = await self.available_slots(date, course_type)
        if result.degraded:
            raise UpstreamError(result.message, {"date": result.date})
        return time_slot in result.open_slots


def _same_day(value: str, day: str) -> bool:
    try:
        return normalize_date(value) == day
    except ValueError:
        return False
