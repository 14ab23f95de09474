"""
Finite state machine for the four-step booking wizard.

Defines the wizard steps and explicit transitions with triggers. The
machine only knows the graph; the guards that decide whether a forward
move is allowed (slot still open, caddy count equals players, commit
validation) run in the wizard before it fires a trigger.

Usage:
    sm = DraftStateMachine()
    sm.transition(StepTrigger.NEXT)
    assert sm.current_step == DraftStep.PLAYERS
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from teetime.errors import InvalidTransitionError

logger = logging.getLogger(__name__)


class DraftStep(str, Enum):
    """All steps in a booking draft's lifecycle."""
    SLOT = "step1_slot"
    PLAYERS = "step2_players"
    RESOURCES = "step3_resources"
    REVIEW = "step4_review"
    AWAITING_PAYMENT = "awaiting_payment"
    COMMITTED = "committed"
    ABANDONED = "abandoned"


class StepTrigger(str, Enum):
    """Events that cause step transitions."""
    NEXT = "next"
    BACK = "back"
    CHECKOUT_STARTED = "checkout_started"
    PAYMENT_CANCELLED = "payment_cancelled"
    PAYMENT_CONFIRMED = "payment_confirmed"
    ABANDON = "abandon"


@dataclass
class Transition:
    """A single valid step transition."""
    from_step: DraftStep
    to_step: DraftStep
    trigger: StepTrigger


@dataclass
class StepEntry:
    """Recorded history entry for a step visit."""
    step: DraftStep
    entered_at: datetime
    trigger: Optional[StepTrigger] = None


WIZARD_STEPS: tuple[DraftStep, ...] = (
    DraftStep.SLOT,
    DraftStep.PLAYERS,
    DraftStep.RESOURCES,
    DraftStep.REVIEW,
)

TERMINAL_STEPS = frozenset({DraftStep.COMMITTED, DraftStep.ABANDONED})


class DraftStateMachine:
    """
    Deterministic step graph for a booking draft.

    Backward moves between wizard steps are always allowed. Payment
    cancellation lands back on the review step, never on step 1.
    """

    TRANSITIONS: list[Transition] = [
        # --- Forward through the wizard ---
        Transition(DraftStep.SLOT, DraftStep.PLAYERS, StepTrigger.NEXT),
        Transition(DraftStep.PLAYERS, DraftStep.RESOURCES, StepTrigger.NEXT),
        Transition(DraftStep.RESOURCES, DraftStep.REVIEW, StepTrigger.NEXT),

        # --- Backward ---
        Transition(DraftStep.PLAYERS, DraftStep.SLOT, StepTrigger.BACK),
        Transition(DraftStep.RESOURCES, DraftStep.PLAYERS, StepTrigger.BACK),
        Transition(DraftStep.REVIEW, DraftStep.RESOURCES, StepTrigger.BACK),

        # --- Payment hand-off ---
        Transition(DraftStep.REVIEW, DraftStep.AWAITING_PAYMENT, StepTrigger.CHECKOUT_STARTED),
        Transition(DraftStep.AWAITING_PAYMENT, DraftStep.REVIEW, StepTrigger.PAYMENT_CANCELLED),
        Transition(DraftStep.REVIEW, DraftStep.REVIEW, StepTrigger.PAYMENT_CANCELLED),
        Transition(DraftStep.AWAITING_PAYMENT, DraftStep.COMMITTED, StepTrigger.PAYMENT_CONFIRMED),

        # --- Abandon from anywhere live ---
        *[
            Transition(step, DraftStep.ABANDONED, StepTrigger.ABANDON)
            for step in (*WIZARD_STEPS, DraftStep.AWAITING_PAYMENT)
        ],
    ]

    def __init__(self, initial: DraftStep = DraftStep.SLOT) -> None:
        self._current_step = initial
        self._history: list[StepEntry] = [
            StepEntry(step=initial, entered_at=datetime.now(timezone.utc))
        ]

    @property
    def current_step(self) -> DraftStep:
        return self._current_step

    def transition(self, trigger: StepTrigger) -> DraftStep:
        """
        Execute a step transition.

        Raises:
            InvalidTransitionError: If no valid transition exists.
        """
        for t in self.TRANSITIONS:
            if t.from_step == self._current_step and t.trigger == trigger:
                old_step = self._current_step
                self._current_step = t.to_step
                self._history.append(StepEntry(
                    step=self._current_step,
                    entered_at=datetime.now(timezone.utc),
                    trigger=trigger,
                ))
                logger.debug(
                    "Step transition: %s -> %s (trigger: %s)",
                    old_step.value, self._current_step.value, trigger.value,
                )
                return self._current_step

        valid = [t.value for t in self.get_valid_triggers()]
        raise InvalidTransitionError(
            f"No valid transition from '{self._current_step.value}' "
            f"with trigger '{trigger.value}'. Valid triggers: {valid}"
        )

    def get_valid_triggers(self) -> list[StepTrigger]:
        """Return all triggers valid from the current step."""
        return [t.trigger for t in self.TRANSITIONS if t.from_step == self._current_step]

    def get_history(self) -> list[StepEntry]:
        """Return the full step transition history."""
        return list(self._history)

    def get_step_trace(self) -> list[str]:
        """Return ordered list of step names visited."""
        return [entry.step.value for entry in self._history]

    def is_terminal(self) -> bool:
        return self._current_step in TERMINAL_STEPS
