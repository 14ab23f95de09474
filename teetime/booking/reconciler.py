"""
Checkout hand-off and post-redirect reconciliation.

Phase A (submit) re-validates the payload and asks the payment gateway
for a checkout session. Phase B (reconcile) runs after the golfer is
redirected back: the provider's webhook that actually writes the
reservation may land after the redirect, so a lookup that finds nothing
is retried a bounded number of times before giving up.

Usage:
    reconciler = CheckoutReconciler(gateway)
    session = await reconciler.submit(payload)
    # ... golfer pays and comes back with session.session_id ...
    task = reconciler.start_reconcile(session.session_id, auth_token)
    lookup = await task          # or task.cancel() when the page is torn down
"""

import asyncio
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Awaitable, Callable, Optional, Union

from teetime.booking.validation import validate_commit_payload
from teetime.config import PricingConfig, settings
from teetime.errors import AuthError, NotYetAvailable, UpstreamError
from teetime.logging_context import get_session_logger
from teetime.schemas.booking_schema import BookingLookup, BookingPayload, CheckoutSession
from teetime.tools.protocols import CheckoutGateway

logger = get_session_logger(__name__)


class AttemptOutcome(str, Enum):
    """Result of one reconciliation lookup."""
    FOUND = "found"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    FAILED = "failed"


@dataclass
class ReconciliationAttempt:
    """One lookup during the post-redirect polling loop."""
    session_id: str
    attempt_number: int
    outcome: AttemptOutcome


class CheckoutReconciler:
    """Submits checkout sessions and confirms the resulting booking."""

    def __init__(
        self,
        gateway: CheckoutGateway,
        max_attempts: Optional[int] = None,
        retry_delay_sec: Optional[float] = None,
        pricing: Optional[PricingConfig] = None,
        is_holiday: Optional[Callable[[Union[date, str]], bool]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._gateway = gateway
        self.max_attempts = max_attempts if max_attempts is not None else settings.checkout.max_attempts
        self.retry_delay_sec = (
            retry_delay_sec if retry_delay_sec is not None else settings.checkout.retry_delay_sec
        )
        self._pricing = pricing
        self._is_holiday = is_holiday
        self._sleep = sleep
        self._active: dict[str, list[ReconciliationAttempt]] = {}

    # ------------------------------------------------------------------ #
    # Phase A: submit
    # ------------------------------------------------------------------ #

    async def submit(self, payload: BookingPayload) -> CheckoutSession:
        """
        Validate the payload and open a checkout session.

        Raises:
            ValidationError: If a commit invariant fails. The gateway is
                not called.
            AuthError: If the gateway rejects the caller's identity.
            UpstreamError: If the gateway fails or returns no payment URL.
        """
        validate_commit_payload(payload, config=self._pricing, is_holiday=self._is_holiday)
        try:
            session = await self._gateway.create_session(payload)
        except (AuthError, UpstreamError):
            raise
        except Exception as exc:
            logger.error("Checkout session creation failed: %s", exc)
            raise UpstreamError("Could not start payment. Please try again.") from exc

        if session is None or not session.payment_url:
            raise UpstreamError("Payment provider returned no payment link.")
        logger.info("Checkout session %s ready", session.session_id)
        return session

    # ------------------------------------------------------------------ #
    # Phase B: reconcile
    # ------------------------------------------------------------------ #

    async def reconcile(self, session_id: str, auth_token: Optional[str] = None) -> BookingLookup:
        """
        Poll for the booking created by the payment webhook.

        Raises:
            AuthError: Immediately, never retried.
            UpstreamError: When the booking is still missing after
                ``max_attempts`` lookups, or on any other lookup failure.
        """
        attempts: list[ReconciliationAttempt] = []
        self._active[session_id] = attempts
        try:
            for attempt in range(1, self.max_attempts + 1):
                try:
                    result = await self._gateway.lookup_by_session(session_id, auth_token)
                except AuthError:
                    attempts.append(ReconciliationAttempt(session_id, attempt, AttemptOutcome.UNAUTHORIZED))
                    logger.warning("Reconciliation for %s needs re-authentication", session_id)
                    raise
                except NotYetAvailable:
                    attempts.append(ReconciliationAttempt(session_id, attempt, AttemptOutcome.NOT_FOUND))
                    if attempt < self.max_attempts:
                        logger.debug(
                            "Booking for %s not found yet (attempt %d/%d)",
                            session_id, attempt, self.max_attempts,
                        )
                        await self._sleep(self.retry_delay_sec)
                        continue
                    logger.warning(
                        "Booking for %s still missing after %d attempts", session_id, attempt
                    )
                    raise UpstreamError(
                        "Your payment is still being confirmed. "
                        "Please check your bookings again in a few minutes.",
                        {"session_id": session_id, "attempts": attempt},
                    ) from None
                except UpstreamError:
                    attempts.append(ReconciliationAttempt(session_id, attempt, AttemptOutcome.FAILED))
                    raise
                except Exception as exc:
                    attempts.append(ReconciliationAttempt(session_id, attempt, AttemptOutcome.FAILED))
                    raise UpstreamError(
                        "Could not load your payment result.", {"session_id": session_id}
                    ) from exc

                attempts.append(ReconciliationAttempt(session_id, attempt, AttemptOutcome.FOUND))
                logger.info(
                    "Booking %s confirmed for %s on attempt %d",
                    result.booking.booking_id, session_id, attempt,
                )
                return result
            # only reached when max_attempts < 1
            raise UpstreamError("Reconciliation did not run.", {"session_id": session_id})
        finally:
            self._active.pop(session_id, None)

    def start_reconcile(self, session_id: str, auth_token: Optional[str] = None) -> "asyncio.Task[BookingLookup]":
        """Run ``reconcile`` as a task the caller can cancel on teardown."""
        return asyncio.create_task(
            self.reconcile(session_id, auth_token), name=f"reconcile-{session_id}"
        )

    def active_attempts(self, session_id: str) -> list[ReconciliationAttempt]:
        """Attempts so far for a reconciliation still in progress."""
        return list(self._active.get(session_id, []))
