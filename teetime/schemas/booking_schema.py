"""Reservation, resource, pricing, and checkout data models."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CourseType(str, Enum):
    """Number of holes played."""
    NINE = "9"
    EIGHTEEN = "18"


class Reservation(BaseModel):
    """Committed booking record owned by the reservation store."""
    booking_id: str
    date: str
    time_slot: str
    course_type: str
    status: str = "booked"
    players: int = 1
    group_name: str = ""
    resource_ids: list[str] = Field(default_factory=list)
    cart_qty: int = 0
    bag_qty: int = 0
    total_price: int = 0
    session_id: Optional[str] = None
    created_at: Optional[datetime] = None

    def is_booked(self) -> bool:
        return self.status.strip().lower() == "booked"


class BusySlot(BaseModel):
    """A slot a resource is already committed to."""
    date: str
    time_slot: str
    course_type: str


class ResourceRecord(BaseModel):
    """Caddy roster entry as returned by the resource directory."""
    resource_id: str
    name: str = ""
    status: str = "available"
    busy_slots: list[BusySlot] = Field(default_factory=list)


class PriceBreakdown(BaseModel):
    """Cost breakdown for a draft. Recomputed, never authoritative."""
    model_config = ConfigDict(frozen=True)

    green_fee: int
    resource_fee: int
    cart_fee: int
    bag_fee: int
    total: int


class BookingPayload(BaseModel):
    """Committed draft snapshot handed to the checkout gateway."""
    course_type: CourseType
    date: str
    time_slot: str
    players: int
    group_name: str = ""
    resource_selection_enabled: bool = False
    resource_ids: list[str] = Field(default_factory=list)
    cart_qty: int = 0
    bag_qty: int = 0
    total_price: int


class CheckoutSession(BaseModel):
    """Short-lived, single-use payment session."""
    session_id: str
    payload: BookingPayload
    payment_url: str


class BookingLookup(BaseModel):
    """Result of looking up a booking by checkout session."""
    session_id: str
    booking: Reservation


class SlotAvailability(BaseModel):
    """Open/closed partition of a course-type ladder for one date."""
    date: str
    course_type: CourseType
    open_slots: list[str] = Field(default_factory=list)
    closed_slots: list[str] = Field(default_factory=list)
    degraded: bool = False
    invalidated_selection: Optional[str] = None
    message: str = ""


class ResourceListing(BaseModel):
    """Resources selectable by one draft for its current hold key."""
    free: list[ResourceRecord] = Field(default_factory=list)
    degraded: bool = False
    message: str = ""
    fetched_at: Optional[datetime] = None

    @property
    def free_ids(self) -> list[str]:
        return [r.resource_id for r in self.free]
