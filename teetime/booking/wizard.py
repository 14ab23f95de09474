"""
Booking wizard: owns one golfer's draft from slot pick to payment.

The wizard is the only writer of a BookingDraft. Every edit is validated,
re-prices the draft when a priced field changed, bumps the snapshot
version, and persists the snapshot so the draft survives a crash or the
round trip through the payment page.

Steps:
    1. slot: date, course type, tee time (must be open right now)
    2. players: head count and group name
    3. resources: caddies (held softly per tee time), carts, bags
    4. review: price breakdown, then hand-off to checkout

Usage:
    wizard = BookingWizard("session-1", availability=..., holds=...,
                           resources=..., drafts=..., reconciler=...)
    await wizard.set_field("date", "2030-01-15")
    await wizard.set_field("time_slot", "07:30")
    await wizard.next()
"""

from datetime import date
from typing import Any, Callable, Optional, Union

from teetime.booking.availability import AvailabilityResolver, course_ladder
from teetime.booking.holds import HoldKey, HoldStatus, ResourceHoldManager
from teetime.booking.pricing import compute_breakdown
from teetime.booking.reconciler import CheckoutReconciler
from teetime.booking.refresher import ResourceRefresher
from teetime.booking.state_machine import DraftStateMachine, DraftStep, StepTrigger
from teetime.config import PricingConfig
from teetime.errors import BookingError, ConflictError, UpstreamError, ValidationError
from teetime.logging_context import get_session_logger, set_session_id
from teetime.schemas.booking_schema import (
    BookingPayload,
    CheckoutSession,
    CourseType,
    PriceBreakdown,
    Reservation,
    ResourceListing,
    ResourceRecord,
    SlotAvailability,
)
from teetime.schemas.draft_schema import BookingDraft, DraftSnapshot
from teetime.tools.protocols import DraftStore, ResourceQuery
from teetime.utils import is_valid_time_slot, normalize_date

logger = get_session_logger(__name__)

# Fields that change the HoldKey; editing one invalidates held caddies.
SLOT_FIELDS = frozenset({"date", "time_slot", "course_type"})
PRICED_FIELDS = frozenset({"course_type", "date", "players", "resource_ids", "cart_qty", "bag_qty"})
EDITABLE_FIELDS = frozenset({
    "course_type", "date", "time_slot", "players", "group_name",
    "cart_qty", "bag_qty", "resource_selection_enabled",
})
MAX_GROUP_NAME_LENGTH = 80


def _parse_int(name: str, value: Any, minimum: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a whole number, got {value!r}") from None
    if number < minimum:
        raise ValidationError(f"{name} must be at least {minimum}, got {number}")
    return number


def is_selectable(record: ResourceRecord, key: HoldKey) -> bool:
    """A caddy is selectable when on duty and not committed to this tee time."""
    if record.status.strip().lower() != "available":
        return False
    return not any(
        s.date == key.date and s.time_slot == key.time_slot and s.course_type == key.course_type.value
        for s in record.busy_slots
    )


class BookingWizard:
    """Four-step booking draft with soft caddy holds and checkout hand-off."""

    def __init__(
        self,
        session_key: str,
        *,
        availability: AvailabilityResolver,
        holds: ResourceHoldManager,
        resources: ResourceQuery,
        drafts: DraftStore,
        reconciler: CheckoutReconciler,
        pricing: Optional[PricingConfig] = None,
        is_holiday: Optional[Callable[[Union[date, str]], bool]] = None,
        refresh_interval_sec: Optional[float] = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.session_key = session_key
        self.holder_token = session_key
        self._availability = availability
        self._holds = holds
        self._resources = resources
        self._drafts = drafts
        self._reconciler = reconciler
        self._pricing = pricing
        self._is_holiday = is_holiday
        self._today = today

        self.draft = BookingDraft(date=today().isoformat())
        self.draft.total_price = self.breakdown().total
        self.version = 0
        self.notice = ""
        self.slot_availability: Optional[SlotAvailability] = None
        self.resource_listing: Optional[ResourceListing] = None
        self.checkout_session: Optional[CheckoutSession] = None
        self.booking: Optional[Reservation] = None

        self._sm = DraftStateMachine()
        self._refresher = ResourceRefresher(
            self.list_resources,
            interval_sec=refresh_interval_sec,
            on_update=self._on_listing,
        )

    # ------------------------------------------------------------------ #
    # Read-only views
    # ------------------------------------------------------------------ #

    @property
    def step(self) -> DraftStep:
        return self._sm.current_step

    @property
    def hold_key(self) -> Optional[HoldKey]:
        """The draft's current exclusivity domain, once a tee time is picked."""
        d = self.draft
        if not (d.date and d.time_slot and d.course_type):
            return None
        return HoldKey(d.date, d.time_slot, CourseType(d.course_type))

    @property
    def refreshing(self) -> bool:
        return self._refresher.running

    def breakdown(self) -> PriceBreakdown:
        d = self.draft
        return compute_breakdown(
            d.course_type, d.players, d.resource_ids, d.cart_qty, d.bag_qty, d.date,
            config=self._pricing, is_holiday=self._is_holiday,
        )

    def build_payload(self) -> BookingPayload:
        """Assemble the commit payload, pricing it afresh."""
        d = self.draft
        return BookingPayload(
            course_type=d.course_type,
            date=d.date,
            time_slot=d.time_slot,
            players=d.players,
            group_name=d.group_name,
            resource_selection_enabled=d.resource_selection_enabled,
            resource_ids=list(d.resource_ids),
            cart_qty=d.cart_qty,
            bag_qty=d.bag_qty,
            total_price=self.breakdown().total,
        )

    # ------------------------------------------------------------------ #
    # Field edits
    # ------------------------------------------------------------------ #

    def _ensure_editable(self) -> None:
        if self.step not in (DraftStep.SLOT, DraftStep.PLAYERS, DraftStep.RESOURCES, DraftStep.REVIEW):
            raise ValidationError(f"The booking can no longer be edited ({self.step.value}).")

    def _normalize(self, name: str, value: Any) -> Any:
        """Validate and normalize one field value."""
        if name == "course_type":
            try:
                return CourseType(value if isinstance(value, CourseType) else str(value))
            except ValueError:
                raise ValidationError(f"Unknown course type {value!r}; choose 9 or 18.") from None
        if name == "date":
            try:
                day = normalize_date(value)
            except ValueError:
                raise ValidationError(f"Date {value!r} is not a valid date.") from None
            if date.fromisoformat(day) < self._today():
                raise ValidationError(f"Date {day} is in the past.")
            return day
        if name == "time_slot":
            slot = str(value or "").strip()
            if not slot:
                return ""
            if not is_valid_time_slot(slot) or slot not in course_ladder(self.draft.course_type):
                raise ValidationError(
                    f"{slot} is not a tee time for {self.draft.course_type.value} holes."
                )
            if self.slot_availability and slot in self.slot_availability.closed_slots:
                raise ConflictError(f"Tee time {slot} is already booked.", {"time_slot": slot})
            return slot
        if name == "players":
            return _parse_int("players", value, 1)
        if name in ("cart_qty", "bag_qty"):
            return _parse_int(name, value, 0)
        if name == "group_name":
            text = str(value or "").strip()
            if len(text) > MAX_GROUP_NAME_LENGTH:
                raise ValidationError(f"Group name is longer than {MAX_GROUP_NAME_LENGTH} characters.")
            return text
        if name == "resource_selection_enabled":
            return bool(value)
        raise ValidationError(f"Unknown field '{name}'. Valid: {', '.join(sorted(EDITABLE_FIELDS))}.")

    async def set_field(self, name: str, value: Any) -> BookingDraft:
        """
        Apply one validated edit to the draft.

        Changing the date, tee time, or course type releases every caddy
        held under the old tee time and clears the caddy selection.

        Raises:
            ValidationError: If the value is invalid or the draft is locked.
            ConflictError: If the tee time is known to be booked.
        """
        set_session_id(self.session_key)
        self._ensure_editable()
        normalized = self._normalize(name, value)
        if getattr(self.draft, name) == normalized:
            return self.draft

        old_key = self.hold_key
        setattr(self.draft, name, normalized)
        if name == "course_type":
            # Ladders are disjoint, so the old tee time cannot carry over.
            self.draft.time_slot = ""
            self.slot_availability = None
        if name == "date":
            self.slot_availability = None

        if name in SLOT_FIELDS and old_key is not None and old_key != self.hold_key:
            await self._drop_resources(old_key)
        if name == "resource_selection_enabled" and not normalized:
            if old_key is not None:
                await self._drop_resources(old_key)
            await self._refresher.stop()
        elif name == "resource_selection_enabled" and self.step == DraftStep.RESOURCES:
            self._refresher.start()

        await self._mutated(priced=name in PRICED_FIELDS or name in SLOT_FIELDS)
        logger.debug("Draft field '%s' set to %r", name, normalized)
        return self.draft

    async def _drop_resources(self, key: HoldKey) -> None:
        released = await self._holds.release_all(key, self.holder_token)
        if self.draft.resource_ids or released:
            logger.info("Cleared %d caddy selection(s) held under %s", len(self.draft.resource_ids), key)
        self.draft.resource_ids = []
        self.resource_listing = None

    async def _mutated(self, priced: bool = True) -> None:
        if priced:
            self.draft.total_price = self.breakdown().total
        self.version += 1
        await self._persist()

    async def _persist(self) -> None:
        snapshot = DraftSnapshot(
            session_key=self.session_key,
            version=self.version,
            step=self.step.value,
            draft=self.draft.model_copy(deep=True),
        )
        await self._drafts.save(snapshot)

    # ------------------------------------------------------------------ #
    # Step 1: tee time availability
    # ------------------------------------------------------------------ #

    async def refresh_availability(self) -> SlotAvailability:
        """Reload open tee times; clears the selection if it was taken."""
        set_session_id(self.session_key)
        d = self.draft
        result = await self._availability.available_slots(d.date, d.course_type, selected=d.time_slot or None)
        self.slot_availability = result
        if result.invalidated_selection:
            old_key = self.hold_key
            self.draft.time_slot = ""
            if old_key is not None:
                await self._drop_resources(old_key)
            self.notice = f"Tee time {result.invalidated_selection} was just booked. Please pick another."
            await self._mutated()
        return result

    # ------------------------------------------------------------------ #
    # Step 3: caddies
    # ------------------------------------------------------------------ #

    async def list_resources(self, search: str = "") -> ResourceListing:
        """
        Caddies this draft may pick for its tee time. Fails closed.

        ``search`` narrows the free list by a case-insensitive match on the
        caddy name or id. Stale selections are dropped against the full
        roster, not the filtered one.
        """
        set_session_id(self.session_key)
        key = self.hold_key
        if key is None:
            return ResourceListing(message="Pick a tee time first.")
        try:
            records = await self._resources.list_available(key.date)
            candidates = [r for r in records if is_selectable(r, key)]
            free_ids = set(
                await self._holds.list_free(key, [r.resource_id for r in candidates], self.holder_token)
            )
        except Exception as exc:
            logger.warning("Caddy listing failed for %s: %s", key, exc)
            return ResourceListing(
                degraded=True,
                message="Could not load caddies. Please try again.",
            )

        free = [r for r in candidates if r.resource_id in free_ids]
        needle = search.strip().lower()
        if needle:
            free = [r for r in free if needle in r.name.lower() or needle in r.resource_id.lower()]
        listing = ResourceListing(free=free, message=f"{len(free)} caddies available.")
        await self._drop_unavailable_selections(key, {r.resource_id for r in candidates})
        return listing

    async def _drop_unavailable_selections(self, key: HoldKey, selectable: set[str]) -> None:
        gone = [rid for rid in self.draft.resource_ids if rid not in selectable]
        if not gone or key != self.hold_key:
            return
        for rid in gone:
            await self._holds.release(key, rid, self.holder_token)
        self.draft.resource_ids = [rid for rid in self.draft.resource_ids if rid not in gone]
        self.notice = f"Caddies no longer available: {', '.join(gone)}. Please choose again."
        await self._mutated()

    def _on_listing(self, listing: ResourceListing) -> None:
        self.resource_listing = listing

    async def select_resource(self, resource_id: str) -> BookingDraft:
        """
        Pick a caddy and hold it for this tee time.

        Raises:
            ValidationError: If caddy selection is off, no tee time is set,
                or the selection would exceed the number of players.
            ConflictError: If another draft holds the caddy or it is no
                longer on the roster for this tee time.
            UpstreamError: If the caddy list could not be loaded.
        """
        set_session_id(self.session_key)
        self._ensure_editable()
        key = self.hold_key
        if not self.draft.resource_selection_enabled:
            raise ValidationError("Turn on caddy selection first.")
        if key is None:
            raise ValidationError("Pick a tee time before choosing caddies.")
        if resource_id in self.draft.resource_ids:
            await self._holds.acquire(key, resource_id, self.holder_token)
            return self.draft
        self._check_room()

        listing = await self.list_resources()
        self.resource_listing = listing
        if listing.degraded:
            raise UpstreamError(listing.message)
        if resource_id not in listing.free_ids:
            raise ConflictError(f"Caddy {resource_id} is not available for this tee time.")

        status = await self._holds.acquire(key, resource_id, self.holder_token)
        if status == HoldStatus.CONFLICT:
            raise ConflictError(
                f"Caddy {resource_id} was just picked by another golfer.",
                {"resource_id": resource_id},
            )
        # The draft may have changed while the listing was awaited.
        if resource_id in self.draft.resource_ids and key == self.hold_key:
            return self.draft
        try:
            if key != self.hold_key:
                raise ConflictError("The tee time changed while the caddy was being picked.")
            self._check_room()
        except BookingError:
            await self._holds.release(key, resource_id, self.holder_token)
            raise
        self.draft.resource_ids = [*self.draft.resource_ids, resource_id]
        await self._mutated()
        return self.draft

    def _check_room(self) -> None:
        if len(self.draft.resource_ids) >= self.draft.players:
            raise ValidationError(
                f"Select exactly {self.draft.players} caddies, one per player.",
                {"selected": len(self.draft.resource_ids), "players": self.draft.players},
            )

    async def deselect_resource(self, resource_id: str) -> BookingDraft:
        set_session_id(self.session_key)
        self._ensure_editable()
        if resource_id not in self.draft.resource_ids:
            return self.draft
        key = self.hold_key
        if key is not None:
            await self._holds.release(key, resource_id, self.holder_token)
        self.draft.resource_ids = [rid for rid in self.draft.resource_ids if rid != resource_id]
        await self._mutated()
        return self.draft

    async def on_foreground(self) -> Optional[ResourceListing]:
        """App came back to the foreground: refresh caddies if that step is open."""
        set_session_id(self.session_key)
        self._holds.touch(self.holder_token)
        if self.step != DraftStep.RESOURCES or not self.draft.resource_selection_enabled:
            return None
        return await self._refresher.refresh_now()

    # ------------------------------------------------------------------ #
    # Step navigation
    # ------------------------------------------------------------------ #

    async def next(self) -> DraftStep:
        """
        Move forward one step if the current step's guard passes.

        Raises:
            ValidationError: Missing or inconsistent input.
            ConflictError: The tee time was booked meanwhile.
            UpstreamError: Availability could not be confirmed.
            InvalidTransitionError: No forward move from this step.
        """
        set_session_id(self.session_key)
        step = self.step
        if step == DraftStep.SLOT:
            await self._guard_slot_open()
        elif step == DraftStep.PLAYERS:
            if self.draft.players < 1:
                raise ValidationError("At least one player is required.")
        elif step == DraftStep.RESOURCES:
            self._guard_resource_count()

        self._sm.transition(StepTrigger.NEXT)
        await self._entered_step(step)
        return self.step

    async def back(self) -> DraftStep:
        set_session_id(self.session_key)
        step = self.step
        self._sm.transition(StepTrigger.BACK)
        await self._entered_step(step)
        return self.step

    async def _guard_slot_open(self) -> None:
        d = self.draft
        missing = [n for n, v in (("date", d.date), ("tee time", d.time_slot), ("course type", d.course_type)) if not v]
        if missing:
            raise ValidationError(f"Please choose: {', '.join(missing)}.", {"missing": missing})
        result = await self.refresh_availability()
        if result.degraded:
            raise UpstreamError(result.message)
        if result.invalidated_selection or d.time_slot not in result.open_slots:
            raise ConflictError(
                self.notice or f"Tee time {d.time_slot} is no longer available.",
                {"time_slot": result.invalidated_selection or d.time_slot},
            )

    def _guard_resource_count(self) -> None:
        d = self.draft
        if d.resource_selection_enabled and len(d.resource_ids) != d.players:
            raise ValidationError(
                f"Select exactly {d.players} caddies ({len(d.resource_ids)} selected).",
                {"selected": len(d.resource_ids), "players": d.players},
            )

    async def _entered_step(self, previous: DraftStep) -> None:
        if previous == DraftStep.RESOURCES and self.step != DraftStep.RESOURCES:
            await self._refresher.stop()
        if self.step == DraftStep.RESOURCES and self.draft.resource_selection_enabled:
            self._refresher.start()
        await self._mutated(priced=False)

    # ------------------------------------------------------------------ #
    # Step 4: checkout
    # ------------------------------------------------------------------ #

    async def checkout(self) -> CheckoutSession:
        """
        Re-validate and hand off to the payment page.

        Returns the checkout session; redirect the golfer to its
        ``payment_url``. The snapshot is saved first so a cancelled
        payment can restore the review step.
        """
        set_session_id(self.session_key)
        if self.step != DraftStep.REVIEW:
            raise ValidationError("Review the booking before paying.")
        self._guard_resource_count()
        if not await self._availability.is_open(self.draft.date, self.draft.course_type, self.draft.time_slot):
            await self.refresh_availability()
            raise ConflictError(
                self.notice or f"Tee time {self.draft.time_slot} is no longer available.",
                {"time_slot": self.draft.time_slot},
            )

        payload = self.build_payload()
        self.draft.total_price = payload.total_price
        await self._mutated(priced=False)
        session = await self._reconciler.submit(payload)
        self.checkout_session = session
        self._sm.transition(StepTrigger.CHECKOUT_STARTED)
        await self._mutated(priced=False)
        logger.info("Handing off to payment: %s", session.payment_url)
        return session

    async def resume_after_cancel(self) -> BookingDraft:
        """
        The payment page reported cancellation: restore the last snapshot
        and return to the review step.
        """
        set_session_id(self.session_key)
        restored = await self._load_snapshot()
        if restored is None:
            await self._refresher.stop()
            self._sm = DraftStateMachine()
            self.checkout_session = None
            self.notice = "Payment was cancelled."
            return self.draft
        if self.step in (DraftStep.AWAITING_PAYMENT, DraftStep.REVIEW):
            self._sm.transition(StepTrigger.PAYMENT_CANCELLED)
        self.checkout_session = None
        self.notice = "Payment was cancelled. Your booking details have been restored."
        await self._reacquire_holds()
        if self.step == DraftStep.RESOURCES and self.draft.resource_selection_enabled:
            self._refresher.start()
        await self._mutated(priced=True)
        return self.draft

    async def restore(self) -> bool:
        """Rebuild the draft from its snapshot after a crash or reload."""
        set_session_id(self.session_key)
        restored = await self._load_snapshot()
        if restored is None:
            return False
        await self._reacquire_holds()
        if self.step == DraftStep.RESOURCES and self.draft.resource_selection_enabled:
            self._refresher.start()
        return True

    async def _load_snapshot(self) -> Optional[DraftSnapshot]:
        snapshot = await self._drafts.load(self.session_key)
        if snapshot is None:
            return None
        self.draft = snapshot.draft
        self.version = snapshot.version
        self._sm = DraftStateMachine(initial=DraftStep(snapshot.step))
        logger.info("Draft restored at %s (version %d)", snapshot.step, snapshot.version)
        return snapshot

    async def _reacquire_holds(self) -> None:
        key = self.hold_key
        if key is None or not self.draft.resource_ids:
            return
        lost = []
        for rid in self.draft.resource_ids:
            if await self._holds.acquire(key, rid, self.holder_token) == HoldStatus.CONFLICT:
                lost.append(rid)
        if lost:
            self.draft.resource_ids = [rid for rid in self.draft.resource_ids if rid not in lost]
            self.notice = f"Caddies taken while you were away: {', '.join(lost)}. Please choose again."
            if self.step in (DraftStep.REVIEW, DraftStep.AWAITING_PAYMENT):
                self._sm = DraftStateMachine(initial=DraftStep.RESOURCES)

    async def confirm_payment(
        self, session_id: Optional[str] = None, auth_token: Optional[str] = None
    ) -> Reservation:
        """
        Golfer is back from the payment page: wait for the booking record.

        On success the draft is committed, holds are released, and the
        snapshot is destroyed. AuthError and UpstreamError propagate with
        the draft left awaiting payment.
        """
        set_session_id(self.session_key)
        if self.step != DraftStep.AWAITING_PAYMENT:
            raise ValidationError("No payment is in progress for this booking.")
        session_id = session_id or (self.checkout_session.session_id if self.checkout_session else None)
        if not session_id:
            raise ValidationError("Missing checkout session id.")

        lookup = await self._reconciler.reconcile(session_id, auth_token)
        self._sm.transition(StepTrigger.PAYMENT_CONFIRMED)
        self.booking = lookup.booking
        await self._terminate()
        logger.info("Booking %s committed", self.booking.booking_id)
        return self.booking

    async def abandon(self) -> None:
        """Golfer gave up: release everything and forget the draft."""
        set_session_id(self.session_key)
        self._sm.transition(StepTrigger.ABANDON)
        await self._terminate()
        logger.info("Draft abandoned")

    async def _terminate(self) -> None:
        await self._refresher.stop()
        await self._holds.release_holder(self.holder_token)
        await self._drafts.clear(self.session_key)

    async def close(self) -> None:
        """Tear down background work without changing the draft."""
        await self._refresher.stop()
