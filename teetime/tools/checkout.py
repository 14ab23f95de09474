"""
Mock payment checkout gateway.

In production, this would wrap the payment provider's hosted checkout
(e.g. Stripe Checkout): ``create_session`` returns the hosted payment
page, and the provider's webhook writes the reservation some time after
the golfer pays. ``deliver_webhook`` simulates that delayed callback.
"""

import logging
import uuid
from typing import Iterable, Optional

from teetime.config import settings
from teetime.errors import AuthError, BookingNotFound, UpstreamError
from teetime.schemas.booking_schema import (
    BookingLookup,
    BookingPayload,
    CheckoutSession,
    Reservation,
)
from teetime.tools.reservations import ReservationStore

logger = logging.getLogger(__name__)


class MockCheckoutGateway:
    """Checkout sessions backed by the in-memory reservation store."""

    def __init__(
        self,
        store: ReservationStore,
        base_url: Optional[str] = None,
        valid_tokens: Optional[Iterable[str]] = None,
    ) -> None:
        self._store = store
        self._base_url = (base_url or settings.checkout.payment_base_url).rstrip("/")
        self._valid_tokens = set(valid_tokens) if valid_tokens is not None else None
        self._sessions: dict[str, CheckoutSession] = {}
        self.available = True

    async def create_session(self, payload: BookingPayload) -> CheckoutSession:
        if not self.available:
            raise UpstreamError("Payment provider is unavailable.")
        session_id = f"cs_{uuid.uuid4().hex[:16]}"
        session = CheckoutSession(
            session_id=session_id,
            payload=payload.model_copy(deep=True),
            payment_url=f"{self._base_url}/{session_id}",
        )
        self._sessions[session_id] = session
        logger.info("Checkout session created: %s (total %s)", session_id, payload.total_price)
        return session

    async def deliver_webhook(self, session_id: str) -> Reservation:
        """Simulate the provider confirming payment: commit the reservation."""
        session = self._sessions.pop(session_id, None)
        if session is None:
            raise BookingNotFound(f"No pending checkout session {session_id}.")
        return await self._store.commit(session.payload, session_id=session_id)

    def cancel_session(self, session_id: str) -> bool:
        """The golfer backed out on the payment page."""
        cancelled = self._sessions.pop(session_id, None) is not None
        if cancelled:
            logger.info("Checkout session cancelled: %s", session_id)
        return cancelled

    async def lookup_by_session(
        self, session_id: str, auth_token: Optional[str] = None
    ) -> BookingLookup:
        if self._valid_tokens is not None and auth_token not in self._valid_tokens:
            raise AuthError("Not signed in or session expired. Please sign in and try again.")
        if not self.available:
            raise UpstreamError("Payment provider is unavailable.")
        booking = self._store.find_by_session(session_id)
        if booking is None:
            raise BookingNotFound(f"No booking for checkout session {session_id} yet.")
        return BookingLookup(session_id=session_id, booking=booking)

    def pending_sessions(self) -> list[str]:
        return list(self._sessions)
