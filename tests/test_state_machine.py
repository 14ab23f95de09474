"""Tests for the booking draft state machine."""

import pytest

from teetime.booking.state_machine import (
    DraftStateMachine,
    DraftStep,
    StepTrigger,
    WIZARD_STEPS,
)
from teetime.errors import InvalidTransitionError


@pytest.fixture
def state_machine():
    return DraftStateMachine()


def advance_to(sm: DraftStateMachine, step: DraftStep) -> None:
    while sm.current_step != step:
        sm.transition(StepTrigger.NEXT)


class TestInitialState:
    def test_starts_at_slot_step(self, state_machine):
        assert state_machine.current_step == DraftStep.SLOT

    def test_initial_history_has_one_entry(self, state_machine):
        assert len(state_machine.get_history()) == 1

    def test_not_terminal_at_start(self, state_machine):
        assert not state_machine.is_terminal()

    def test_can_start_elsewhere(self):
        assert DraftStateMachine(initial=DraftStep.REVIEW).current_step == DraftStep.REVIEW


class TestForward:
    def test_next_walks_the_wizard(self, state_machine):
        visited = [state_machine.current_step]
        for _ in range(3):
            visited.append(state_machine.transition(StepTrigger.NEXT))
        assert tuple(visited) == WIZARD_STEPS

    def test_no_next_from_review(self, state_machine):
        advance_to(state_machine, DraftStep.REVIEW)
        with pytest.raises(InvalidTransitionError):
            state_machine.transition(StepTrigger.NEXT)


class TestBackward:
    def test_back_from_review_to_resources(self, state_machine):
        advance_to(state_machine, DraftStep.REVIEW)
        assert state_machine.transition(StepTrigger.BACK) == DraftStep.RESOURCES

    def test_back_from_players_to_slot(self, state_machine):
        advance_to(state_machine, DraftStep.PLAYERS)
        assert state_machine.transition(StepTrigger.BACK) == DraftStep.SLOT

    def test_no_back_from_slot(self, state_machine):
        with pytest.raises(InvalidTransitionError):
            state_machine.transition(StepTrigger.BACK)


class TestPayment:
    def test_checkout_from_review(self, state_machine):
        advance_to(state_machine, DraftStep.REVIEW)
        assert state_machine.transition(StepTrigger.CHECKOUT_STARTED) == DraftStep.AWAITING_PAYMENT

    def test_checkout_only_from_review(self, state_machine):
        advance_to(state_machine, DraftStep.RESOURCES)
        with pytest.raises(InvalidTransitionError):
            state_machine.transition(StepTrigger.CHECKOUT_STARTED)

    def test_cancel_returns_to_review_not_slot(self, state_machine):
        advance_to(state_machine, DraftStep.REVIEW)
        state_machine.transition(StepTrigger.CHECKOUT_STARTED)
        assert state_machine.transition(StepTrigger.PAYMENT_CANCELLED) == DraftStep.REVIEW

    def test_confirmed_payment_is_terminal(self, state_machine):
        advance_to(state_machine, DraftStep.REVIEW)
        state_machine.transition(StepTrigger.CHECKOUT_STARTED)
        state_machine.transition(StepTrigger.PAYMENT_CONFIRMED)
        assert state_machine.current_step == DraftStep.COMMITTED
        assert state_machine.is_terminal()
        assert state_machine.get_valid_triggers() == []

    def test_cannot_confirm_without_checkout(self, state_machine):
        advance_to(state_machine, DraftStep.REVIEW)
        with pytest.raises(InvalidTransitionError):
            state_machine.transition(StepTrigger.PAYMENT_CONFIRMED)


class TestAbandon:
    @pytest.mark.parametrize("step", WIZARD_STEPS)
    def test_abandon_from_any_wizard_step(self, state_machine, step):
        advance_to(state_machine, step)
        assert state_machine.transition(StepTrigger.ABANDON) == DraftStep.ABANDONED
        assert state_machine.is_terminal()

    def test_abandoned_draft_cannot_move(self, state_machine):
        state_machine.transition(StepTrigger.ABANDON)
        with pytest.raises(InvalidTransitionError):
            state_machine.transition(StepTrigger.NEXT)


class TestHistory:
    def test_step_trace(self, state_machine):
        state_machine.transition(StepTrigger.NEXT)
        state_machine.transition(StepTrigger.BACK)
        assert state_machine.get_step_trace() == ["step1_slot", "step2_players", "step1_slot"]

    def test_history_records_trigger(self, state_machine):
        state_machine.transition(StepTrigger.NEXT)
        assert state_machine.get_history()[-1].trigger == StepTrigger.NEXT

    def test_error_lists_valid_triggers(self, state_machine):
        with pytest.raises(InvalidTransitionError, match="next"):
            state_machine.transition(StepTrigger.PAYMENT_CONFIRMED)
