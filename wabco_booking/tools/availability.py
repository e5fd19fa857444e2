"""
Branch slot availability.

Every branch offers the same fixed half-hour grid. A slot is taken when an
active appointment (request type ``booking``) exists for the exact branch,
date and time label. Quotations carry no date or time and never consume a
slot. Whether a date is bookable at all is decided by the caller.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Union, TypedDict

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from wabco_booking.config import settings
from wabco_booking.db import repository
from wabco_booking.db.repository import BookingFilter
from wabco_booking.errors import InvalidArgumentError, SlotLookupError
from wabco_booking.schemas.draft_schema import RequestType
from wabco_booking.utils import parse_iso_date

logger = logging.getLogger(__name__)


class SlotAvailability(TypedDict):
    """Partition of the day's slots for one branch."""

    all_slots: list[str]
    booked_slots: list[str]
    available_slots: list[str]


def generate_slots(
    start: str = settings.scheduling.day_start,
    end: str = settings.scheduling.day_end,
    step_minutes: int = settings.scheduling.slot_step_minutes,
) -> list[str]:
    """Build the ``HH:MM`` grid from ``start`` to ``end`` inclusive."""
    current = datetime.strptime(start, "%H:%M")
    last = datetime.strptime(end, "%H:%M")
    step = timedelta(minutes=step_minutes)
    slots: list[str] = []
    while current <= last:
        slots.append(current.strftime("%H:%M"))
        current += step
    return slots


ALL_SLOTS: tuple[str, ...] = tuple(generate_slots())


def is_canonical_slot(label: str) -> bool:
    return label in ALL_SLOTS


def parse_branch_id(value: Union[int, str, None]) -> int:
    """Coerce a branch id from a query string or JSON body.

    Raises:
        InvalidArgumentError: If the value is not a positive integer.
    """
    if isinstance(value, bool):
        raise InvalidArgumentError(f"Invalid branch id: {value!r}")
    try:
        branch_id = int(str(value).strip())
    except (TypeError, ValueError):
        raise InvalidArgumentError(f"Invalid branch id: {value!r}") from None
    if branch_id < 1:
        raise InvalidArgumentError(f"Invalid branch id: {value!r}")
    return branch_id


def parse_booking_date(value: Union[date, str, None]) -> date:
    """Raises InvalidArgumentError for anything that is not a calendar date."""
    if value is None:
        raise InvalidArgumentError("Booking date is required")
    try:
        return parse_iso_date(value)
    except ValueError:
        raise InvalidArgumentError(f"Invalid booking date: {value!r}") from None


def get_booked_slots(db: Session, branch_id: int, booking_date: date) -> list[str]:
    """Slot labels held by active appointments, in grid order."""
    bookings = repository.find_bookings(
        db,
        BookingFilter(
            branch_id=branch_id,
            booking_date=booking_date,
            request_type=RequestType.BOOKING,
            active_only=True,
        ),
    )
    taken = {b.booking_time for b in bookings if b.booking_time}
    return [slot for slot in ALL_SLOTS if slot in taken]


def get_available_slots(
    db: Session, branch_id: Union[int, str], booking_date: Union[date, str]
) -> SlotAvailability:
    """
    Compute all, booked and available slots for a branch on a date.

    Raises:
        InvalidArgumentError: For a malformed or unknown branch id, or an
            unparsable date.
        SlotLookupError: If the bookings could not be read.
    """
    branch_pk = parse_branch_id(branch_id)
    day = parse_booking_date(booking_date)

    try:
        branch = repository.find_branch(db, branch_pk)
        booked = get_booked_slots(db, branch_pk, day) if branch is not None else []
    except SQLAlchemyError as exc:
        logger.error("Slot lookup failed for branch %s on %s: %s", branch_pk, day, exc)
        raise SlotLookupError(str(exc)) from exc

    if branch is None:
        raise InvalidArgumentError(f"Unknown branch id: {branch_pk}")

    available = [slot for slot in ALL_SLOTS if slot not in booked]
    logger.debug(
        "Availability for branch %s on %s: %d booked, %d available",
        branch_pk, day.isoformat(), len(booked), len(available),
    )
    return {
        "all_slots": list(ALL_SLOTS),
        "booked_slots": booked,
        "available_slots": available,
    }
