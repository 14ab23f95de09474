"""
Collaborator interfaces consumed by the reservation core.

Implementations live outside the core: a booking database, a caddy
roster service, a payment provider, a session store. The in-memory
versions in this package satisfy the same contracts for tests and the
offline demo.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, AsyncContextManager, Optional, Protocol

from teetime.schemas.booking_schema import (
    BookingLookup,
    BookingPayload,
    CheckoutSession,
    Reservation,
    ResourceRecord,
)
from teetime.schemas.draft_schema import DraftSnapshot

if TYPE_CHECKING:
    from teetime.booking.holds import Hold, HoldKey


class ReservationQuery(Protocol):
    """Read-only view of committed reservations."""

    async def list_booked(self, date: str) -> list[Reservation]:  # pragma: no cover - interface
        ...


class ResourceQuery(Protocol):
    """Caddy roster with per-slot busy markers."""

    async def list_available(self, date: str) -> list[ResourceRecord]:  # pragma: no cover - interface
        ...


class CheckoutGateway(Protocol):
    """Payment provider hand-off and post-payment booking lookup."""

    async def create_session(self, payload: BookingPayload) -> CheckoutSession:  # pragma: no cover - interface
        ...

    async def lookup_by_session(
        self, session_id: str, auth_token: Optional[str] = None
    ) -> BookingLookup:  # pragma: no cover - interface
        """Raise BookingNotFound until the webhook lands, AuthError without identity."""
        ...


class HoldStore(Protocol):
    """Key-scoped storage for soft holds."""

    def lock(self, key: HoldKey) -> AsyncContextManager[None]:  # pragma: no cover - interface
        """Exclusive access to one key. Must not be re-entered by the holder."""
        ...

    async def get(self, key: HoldKey) -> dict[str, Hold]:  # pragma: no cover - interface
        ...

    async def put(self, hold: Hold) -> None:  # pragma: no cover - interface
        ...

    async def delete(self, key: HoldKey, resource_id: str) -> None:  # pragma: no cover - interface
        ...

    async def keys(self) -> list[HoldKey]:  # pragma: no cover - interface
        ...


class DraftStore(Protocol):
    """One keyed snapshot per golfer session."""

    async def save(self, snapshot: DraftSnapshot) -> None:  # pragma: no cover - interface
        ...

    async def load(self, session_key: str) -> Optional[DraftSnapshot]:  # pragma: no cover - interface
        ...

    async def clear(self, session_key: str) -> None:  # pragma: no cover - interface
        ...
