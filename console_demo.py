"""
Offline console demo: scripted tee-time bookings against the in-memory club.

Uses the real wizard, hold manager, availability resolver, and checkout
reconciler with in-memory collaborators. No database, no payment
provider, no network calls.

Usage:
    python console_demo.py
    python console_demo.py --scenario contention
    python console_demo.py --scenario cancel
    python console_demo.py --scenario webhook-delay
"""

import argparse
import asyncio
from datetime import date, timedelta

from teetime.booking.wizard import BookingWizard
from teetime.config import settings
from teetime.errors import BookingError
from teetime.tools.club import InMemoryClub

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"


def next_weekday(start: date) -> date:
    day = start + timedelta(days=1)
    while day.weekday() >= 5:
        day += timedelta(days=1)
    return day


class DemoSession:
    """Plays scripted golfers through the booking wizard."""

    def __init__(self, club: InMemoryClub) -> None:
        self.club = club
        self.play_date = next_weekday(date.today()).isoformat()

    def golfer_does(self, who: str, text: str) -> None:
        print(f"{BLUE}[{who}]{RESET} {text}")

    def club_says(self, text: str) -> None:
        print(f"{GREEN}{BOLD}[{settings.club_name}]{RESET} {GREEN}{text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def warn(self, error: BookingError) -> None:
        print(f"{YELLOW}  !! {error.code.value}: {error.message}{RESET}")

    async def _to_resources(self, who: str, players: int, time_slot: str) -> BookingWizard:
        wizard = self.club.new_wizard(f"draft-{who.lower()}")
        self.golfer_does(who, f"{self.play_date}, 18 holes, {time_slot}")
        await wizard.set_field("date", self.play_date)
        await wizard.set_field("time_slot", time_slot)
        await wizard.next()
        self.golfer_does(who, f"{players} players, caddies please")
        await wizard.set_field("players", players)
        await wizard.next()
        await wizard.set_field("resource_selection_enabled", True)
        listing = await wizard.list_resources()
        self.club_says(listing.message)
        self.system_log(f"Step: {wizard.step.value}")
        return wizard

    async def _pick(self, wizard: BookingWizard, who: str, caddies: list[str]) -> None:
        for caddy in caddies:
            self.golfer_does(who, f"pick {caddy}")
            try:
                await wizard.select_resource(caddy)
            except BookingError as exc:
                self.warn(exc)

    async def _review(self, wizard: BookingWizard) -> None:
        await wizard.next()
        b = wizard.breakdown()
        self.club_says(
            f"Green fee {b.green_fee}, caddies {b.resource_fee}, carts {b.cart_fee}, "
            f"bags {b.bag_fee}. Total {b.total} THB."
        )
        self.system_log(f"Step: {wizard.step.value} (snapshot v{wizard.version})")

    async def _pay(self, wizard: BookingWizard) -> str:
        session = await wizard.checkout()
        self.club_says(f"Redirecting to payment: {session.payment_url}")
        return session.session_id

    async def booking(self) -> None:
        wizard = await self._to_resources("Somchai", players=4, time_slot="07:30")
        await self._pick(wizard, "Somchai", ["caddy-01", "caddy-02", "caddy-03", "caddy-04"])
        self.golfer_does("Somchai", "2 carts, 1 bag")
        await wizard.set_field("cart_qty", 2)
        await wizard.set_field("bag_qty", 1)
        await self._review(wizard)
        session_id = await self._pay(wizard)
        await self.club.gateway.deliver_webhook(session_id)
        booking = await wizard.confirm_payment()
        self.club_says(f"Booking {booking.booking_id} confirmed for {booking.time_slot}.")
        self.system_log(f"Step: {wizard.step.value}")

    async def contention(self) -> None:
        first = await self._to_resources("Anong", players=2, time_slot="08:00")
        second = await self._to_resources("Ben", players=2, time_slot="08:00")
        results = await asyncio.gather(
            first.select_resource("caddy-07"),
            second.select_resource("caddy-07"),
            return_exceptions=True,
        )
        for who, result in zip(("Anong", "Ben"), results):
            self.golfer_does(who, "pick caddy-07")
            if isinstance(result, BookingError):
                self.warn(result)
            else:
                self.club_says(f"caddy-07 held for {who}.")
        listing = await second.list_resources()
        self.system_log(f"Ben now sees {len(listing.free)} caddies; caddy-07 hidden")

        self.golfer_does("Anong", "switch to 08:15")
        await first.set_field("time_slot", "08:15")
        listing = await second.list_resources()
        self.system_log(f"caddy-07 free for Ben again: {'caddy-07' in listing.free_ids}")
        await first.close()
        await second.close()

    async def cancel(self) -> None:
        wizard = await self._to_resources("Chai", players=2, time_slot="09:00")
        await self._pick(wizard, "Chai", ["caddy-05", "caddy-06"])
        await wizard.set_field("group_name", "Chai and friends")
        await self._review(wizard)
        session_id = await self._pay(wizard)
        self.golfer_does("Chai", "presses Back on the payment page")
        self.club.gateway.cancel_session(session_id)
        draft = await wizard.resume_after_cancel()
        self.club_says(wizard.notice)
        self.system_log(
            f"Step: {wizard.step.value}; group '{draft.group_name}', "
            f"caddies {draft.resource_ids}, total {draft.total_price}"
        )
        await wizard.abandon()
        self.system_log(f"Step: {wizard.step.value}")

    async def webhook_delay(self) -> None:
        waits = []

        async def slow_webhook(delay: float) -> None:
            waits.append(delay)
            self.system_log(f"Booking not found yet, retrying (attempt {len(waits)})")
            await asyncio.sleep(min(delay, 0.2))
            if len(waits) == 3:
                for session_id in self.club.gateway.pending_sessions():
                    await self.club.gateway.deliver_webhook(session_id)

        self.club = InMemoryClub(config=self.club.config, sleep=slow_webhook)
        wizard = await self._to_resources("Dao", players=1, time_slot="10:00")
        await self._pick(wizard, "Dao", ["caddy-09"])
        await self._review(wizard)
        await self._pay(wizard)
        try:
            booking = await wizard.confirm_payment()
        except BookingError as exc:
            self.warn(exc)
            return
        self.club_says(f"Booking {booking.booking_id} confirmed after {len(waits)} retries.")

    SCENARIOS = {
        "booking": booking,
        "contention": contention,
        "cancel": cancel,
        "webhook-delay": webhook_delay,
    }

    async def run_scenario(self, scenario: str) -> None:
        """Auto-play a pre-scripted scenario."""
        play = self.SCENARIOS.get(scenario)
        if play is None:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return

        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  TEE TIME RESERVATIONS - Scenario: {scenario}{RESET}")
        print(f"{BOLD}  Club: {settings.club_name}  Date: {self.play_date}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        print()

        try:
            await play(self)
        except BookingError as exc:
            self.warn(exc)

        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  Scenario '{scenario}' complete.{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline tee-time booking demo")
    parser.add_argument(
        "--scenario",
        choices=list(DemoSession.SCENARIOS),
        default="booking",
        help="Scripted scenario to play",
    )
    args = parser.parse_args()

    session = DemoSession(InMemoryClub())
    asyncio.run(session.run_scenario(args.scenario))


if __name__ == "__main__":
    main()
