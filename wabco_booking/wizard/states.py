"""Wizard states and the triggers that move between them."""

from enum import Enum


class WizardState(str, Enum):
    """Steps of the booking wizard, in display order."""
    SUBJECT_AND_VEHICLE = "subject_and_vehicle"
    BRANCH_SELECTION = "branch_selection"
    DATE_TIME = "date_time"
    CUSTOMER_INFO = "customer_info"
    SUBMITTED = "submitted"


class WizardTrigger(str, Enum):
    """Events that cause state transitions."""
    NEXT = "next"
    BACK = "back"
    SUBMIT = "submit"
