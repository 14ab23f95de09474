from teetime.booking.availability import AvailabilityResolver, course_ladder
from teetime.booking.holds import HoldKey, HoldStatus, ResourceHoldManager
from teetime.booking.pricing import HolidayCalendar, compute_breakdown
from teetime.booking.reconciler import CheckoutReconciler
from teetime.booking.state_machine import DraftStateMachine, DraftStep, StepTrigger
from teetime.booking.wizard import BookingWizard

__all__ = [
    "AvailabilityResolver",
    "course_ladder",
    "HoldKey",
    "HoldStatus",
    "ResourceHoldManager",
    "HolidayCalendar",
    "compute_breakdown",
    "CheckoutReconciler",
    "DraftStateMachine",
    "DraftStep",
    "StepTrigger",
    "BookingWizard",
]
