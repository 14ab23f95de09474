"""
Deterministic price computation for a booking draft.

The same function prices the review step and validates a commit, so a
tampered client total can never survive the commit path. No caching, no
I/O: identical inputs always give an identical breakdown.
"""

import logging
from datetime import date
from typing import Callable, Iterable, Optional, Union

from teetime.config import PricingConfig, settings
from teetime.errors import ValidationError
from teetime.schemas.booking_schema import CourseType, PriceBreakdown

logger = logging.getLogger(__name__)

WEEKEND_DAYS = frozenset({5, 6})  # Saturday, Sunday


class HolidayCalendar:
    """Holiday predicate: weekends plus an explicit list of dates."""

    def __init__(self, holidays: Iterable[date] = ()) -> None:
        self._holidays = frozenset(holidays)

    def __call__(self, day: Union[date, str]) -> bool:
        return self.is_holiday(day)

    def is_holiday(self, day: Union[date, str]) -> bool:
        if isinstance(day, str):
            day = date.fromisoformat(day)
        return day.weekday() in WEEKEND_DAYS or day in self._holidays

    @classmethod
    def from_config(cls, config: PricingConfig) -> "HolidayCalendar":
        return cls(config.holiday_dates)


default_calendar = HolidayCalendar.from_config(settings.pricing)


def rate_table(config: Optional[PricingConfig] = None) -> dict[tuple[CourseType, bool], int]:
    """Per-player green fee keyed by (course_type, is_holiday)."""
    config = config or settings.pricing
    return {
        (CourseType.EIGHTEEN, False): config.green_fee_18_weekday,
        (CourseType.EIGHTEEN, True): config.green_fee_18_holiday,
        (CourseType.NINE, False): config.green_fee_9_weekday,
        (CourseType.NINE, True): config.green_fee_9_holiday,
    }


def green_fee_rate(
    course_type: Union[CourseType, str],
    day: Union[date, str],
    config: Optional[PricingConfig] = None,
    is_holiday: Optional[Callable[[Union[date, str]], bool]] = None,
) -> int:
    """Return the per-player green fee for a course type on a given day."""
    is_holiday = is_holiday or default_calendar
    return rate_table(config)[(CourseType(course_type), bool(is_holiday(day)))]


def compute_breakdown(
    course_type: Union[CourseType, str],
    players: int,
    resource_ids: Iterable[str],
    cart_qty: int,
    bag_qty: int,
    day: Union[date, str],
    *,
    config: Optional[PricingConfig] = None,
    is_holiday: Optional[Callable[[Union[date, str]], bool]] = None,
) -> PriceBreakdown:
    """
    Compute the cost breakdown for a booking.

    Args:
        course_type: "9" or "18".
        players: Number of golfers. Zero prices to a zero green fee;
            rejecting zero players is the caller's job.
        resource_ids: Selected caddies; each is charged the caddy fee.
        cart_qty: Golf carts.
        bag_qty: Golf bags.
        day: Play date, used for the holiday lookup.

    Raises:
        ValidationError: If any quantity is negative or the course type
            or date is not recognised.
    """
    config = config or settings.pricing
    resource_count = len(list(resource_ids))
    for name, qty in (("players", players), ("cart_qty", cart_qty), ("bag_qty", bag_qty)):
        if qty < 0:
            raise ValidationError(f"{name} cannot be negative", {name: qty})
    try:
        rate = green_fee_rate(course_type, day, config, is_holiday)
    except ValueError as exc:
        raise ValidationError(f"Cannot price booking: {exc}") from None

    green_fee = rate * players
    resource_fee = config.caddy_fee * resource_count
    cart_fee = config.cart_fee * cart_qty
    bag_fee = config.bag_fee * bag_qty
    return PriceBreakdown(
        green_fee=green_fee,
        resource_fee=resource_fee,
        cart_fee=cart_fee,
        bag_fee=bag_fee,
        total=green_fee + resource_fee + cart_fee + bag_fee,
    )
