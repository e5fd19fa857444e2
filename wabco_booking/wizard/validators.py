"""
Per-step draft validation.

Each wizard step owns a pure function from the draft to a field-keyed
error map. An empty map means the step may be left. The same table is
used by the wizard, the ``/api/bookings/validate`` endpoint and the
submission service, so client and server agree on what a valid draft is.

Usage:
    errors = validate_step(WizardState.CUSTOMER_INFO, draft)
    if errors:
        # {"customer.email": "Please enter a valid email address"}
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Callable, Optional, Sequence

from wabco_booking.config import settings
from wabco_booking.schemas.draft_schema import BookingDraft, RequestType, SubjectKind
from wabco_booking.tools.availability import is_canonical_slot
from wabco_booking.utils import normalize_phone
from wabco_booking.wizard.states import WizardState

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")
PHONE_PATTERN = re.compile(r"^[\d\s+()\-]+$")
MIN_PHONE_DIGITS = 7
MAX_PHONE_DIGITS = 15

ErrorMap = dict[str, str]


@dataclass
class ValidationContext:
    """Inputs a validator needs beyond the draft itself."""

    available_slots: Optional[Sequence[str]] = None
    today: date = field(default_factory=date.today)
    horizon_days: int = settings.scheduling.booking_horizon_days


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def validate_subject_and_vehicle(draft: BookingDraft, ctx: ValidationContext) -> ErrorMap:
    errors: ErrorMap = {}
    if draft.subject_id is None or draft.subject_id < 1:
        errors["subject_id"] = "Please choose a tire or service"

    if draft.subject_kind == SubjectKind.SERVICE:
        if draft.quantity != 1:
            errors["quantity"] = "Service bookings are for a single vehicle"
    elif draft.quantity is None or draft.quantity < 1:
        errors["quantity"] = "Quantity must be at least 1"

    if _blank(draft.vehicle.year):
        errors["vehicle.year"] = "Car year is required"
    if _blank(draft.vehicle.make):
        errors["vehicle.make"] = "Car make is required"
    if _blank(draft.vehicle.model):
        errors["vehicle.model"] = "Car model is required"
    return errors


def validate_branch(draft: BookingDraft, ctx: ValidationContext) -> ErrorMap:
    if draft.branch_id is None or draft.branch_id < 1:
        return {"branch_id": "Please select a branch"}
    return {}


def validate_date_time(draft: BookingDraft, ctx: ValidationContext) -> ErrorMap:
    errors: ErrorMap = {}
    if draft.scheduled_date is None:
        errors["scheduled_date"] = "Please select a date"
    elif draft.scheduled_date < ctx.today:
        errors["scheduled_date"] = "Please select a date from today onwards"
    elif draft.scheduled_date > ctx.today + timedelta(days=ctx.horizon_days):
        errors["scheduled_date"] = f"Bookings can be made up to {ctx.horizon_days} days ahead"

    if _blank(draft.scheduled_time):
        errors["scheduled_time"] = "Please select a time"
    elif not is_canonical_slot(draft.scheduled_time):
        errors["scheduled_time"] = "Please select one of the offered times"
    elif ctx.available_slots is not None and draft.scheduled_time not in ctx.available_slots:
        errors["scheduled_time"] = "This time is no longer available"
    return errors


def validate_customer(draft: BookingDraft, ctx: ValidationContext) -> ErrorMap:
    errors: ErrorMap = {}
    customer = draft.customer
    if _blank(customer.name):
        errors["customer.name"] = "Name is required"

    if _blank(customer.email):
        errors["customer.email"] = "Email is required"
    elif not EMAIL_PATTERN.match(customer.email.strip()):
        errors["customer.email"] = "Please enter a valid email address"

    if _blank(customer.phone):
        errors["customer.phone"] = "Phone number is required"
    else:
        phone = customer.phone.strip()
        digits = len(normalize_phone(phone).lstrip("+"))
        if not PHONE_PATTERN.match(phone) or not MIN_PHONE_DIGITS <= digits <= MAX_PHONE_DIGITS:
            errors["customer.phone"] = "Please enter a valid phone number"
    return errors


STEP_VALIDATORS: dict[WizardState, Callable[[BookingDraft, ValidationContext], ErrorMap]] = {
    WizardState.SUBJECT_AND_VEHICLE: validate_subject_and_vehicle,
    WizardState.BRANCH_SELECTION: validate_branch,
    WizardState.DATE_TIME: validate_date_time,
    WizardState.CUSTOMER_INFO: validate_customer,
}

ROUTES: dict[RequestType, tuple[WizardState, ...]] = {
    RequestType.BOOKING: (
        WizardState.SUBJECT_AND_VEHICLE,
        WizardState.BRANCH_SELECTION,
        WizardState.DATE_TIME,
        WizardState.CUSTOMER_INFO,
    ),
    RequestType.QUOTATION: (
        WizardState.SUBJECT_AND_VEHICLE,
        WizardState.BRANCH_SELECTION,
        WizardState.CUSTOMER_INFO,
    ),
}


def validate_step(
    step: WizardState, draft: BookingDraft, ctx: Optional[ValidationContext] = None
) -> ErrorMap:
    """Run one step's validator. Steps without a validator always pass."""
    validator = STEP_VALIDATORS.get(step)
    if validator is None:
        return {}
    return validator(draft, ctx or ValidationContext())


def validate_draft(draft: BookingDraft, ctx: Optional[ValidationContext] = None) -> ErrorMap:
    """Merge the error maps of every step on the draft's route."""
    ctx = ctx or ValidationContext()
    errors: ErrorMap = {}
    for step in ROUTES[draft.request_type]:
        errors.update(validate_step(step, draft, ctx))

    if draft.is_quotation:
        if draft.scheduled_date is not None:
            errors["scheduled_date"] = "Quotations do not take a date"
        if draft.scheduled_time is not None:
            errors["scheduled_time"] = "Quotations do not take a time"

    if errors:
        logger.debug("Draft validation failed on fields: %s", sorted(errors))
    return errors
