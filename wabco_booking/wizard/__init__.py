from wabco_booking.wizard.state_machine import BookingWizard, Transition
from wabco_booking.wizard.states import WizardState, WizardTrigger
from wabco_booking.wizard.validators import (
    STEP_VALIDATORS,
    ValidationContext,
    validate_draft,
    validate_step,
)

__all__ = [
    "BookingWizard",
    "Transition",
    "WizardState",
    "WizardTrigger",
    "STEP_VALIDATORS",
    "ValidationContext",
    "validate_draft",
    "validate_step",
]
