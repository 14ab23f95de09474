"""
Commit-time re-validation of a booking payload.

Runs on both sides of the payment hand-off: before a checkout session is
created and again inside the reservation store's compare-and-commit.
Whatever the client believed, this check wins.
"""

import logging
import re
from datetime import date
from typing import Callable, Optional, Union

from teetime.booking.availability import course_ladder
from teetime.booking.pricing import compute_breakdown
from teetime.config import PricingConfig
from teetime.errors import ValidationError
from teetime.schemas.booking_schema import BookingPayload, PriceBreakdown
from teetime.utils import is_valid_time_slot

logger = logging.getLogger(__name__)

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _valid_date(value: str) -> bool:
    if not _DATE_RE.match(value or ""):
        return False
    try:
        date.fromisoformat(value)
        return True
    except ValueError:
        return False


def validate_commit_payload(
    payload: BookingPayload,
    *,
    config: Optional[PricingConfig] = None,
    is_holiday: Optional[Callable[[Union[date, str]], bool]] = None,
) -> PriceBreakdown:
    """
    Check every commit invariant and return the server-side price.

    Raises:
        ValidationError: Listing every problem found, with the details
            under ``details["problems"]``.
    """
    problems: list[str] = []

    if payload.players < 1:
        problems.append("at least one player is required")
    if payload.cart_qty < 0 or payload.bag_qty < 0:
        problems.append("equipment quantities cannot be negative")
    if not _valid_date(payload.date):
        problems.append(f"date '{payload.date}' is not YYYY-MM-DD")
    if not is_valid_time_slot(payload.time_slot):
        problems.append(f"time slot '{payload.time_slot}' is not HH:MM")
    elif payload.time_slot not in course_ladder(payload.course_type):
        problems.append(
            f"time slot {payload.time_slot} is not offered for {payload.course_type.value} holes"
        )
    if payload.resource_selection_enabled:
        if len(payload.resource_ids) != payload.players:
            problems.append(
                f"caddy count must equal players ({len(payload.resource_ids)} "
                f"selected for {payload.players})"
            )
        if len(set(payload.resource_ids)) != len(payload.resource_ids):
            problems.append("the same caddy was selected twice")

    if problems:
        raise ValidationError(
            "Booking cannot be committed: " + "; ".join(problems) + ".",
            {"problems": problems},
        )

    breakdown = compute_breakdown(
        payload.course_type,
        payload.players,
        payload.resource_ids,
        payload.cart_qty,
        payload.bag_qty,
        payload.date,
        config=config,
        is_holiday=is_holiday,
    )
    if breakdown.total <= 0:
        raise ValidationError("Total price must be greater than zero.", {"total": breakdown.total})
    if payload.total_price != breakdown.total:
        logger.warning(
            "Payload total %s does not match recomputed total %s",
            payload.total_price, breakdown.total,
        )
        raise ValidationError(
            "Total price does not match the current rates.",
            {"submitted": payload.total_price, "expected": breakdown.total},
        )
    return breakdown
