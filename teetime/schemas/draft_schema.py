"""Booking draft models and the persisted, versioned snapshot."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from teetime.schemas.booking_schema import CourseType


def _today() -> str:
    return datetime.now().date().isoformat()


class BookingDraft(BaseModel):
    """
    The golfer's in-progress booking.

    Only the booking wizard mutates a draft; every other component
    receives it read-only or as a copy.
    """
    course_type: CourseType = CourseType.EIGHTEEN
    date: str = Field(default_factory=_today)
    time_slot: str = ""
    players: int = 1
    group_name: str = ""
    resource_selection_enabled: bool = False
    resource_ids: list[str] = Field(default_factory=list)
    cart_qty: int = 0
    bag_qty: int = 0
    total_price: int = 0


class DraftSnapshot(BaseModel):
    """Recoverable record of a draft, overwritten after every mutation."""
    session_key: str
    version: int = 0
    step: str
    draft: BookingDraft
    saved_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
