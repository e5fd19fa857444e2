"""
Booking submission and administrative booking operations.

Submission re-validates the draft server-side, snapshots the branch name,
and inserts the row. Appointment slots are protected optimistically: a
pre-check inside the transaction plus a partial unique index on active
appointments, so the loser of a race gets SlotConflictError instead of a
silent double booking. Notifications are not sent from here; callers
dispatch them after the commit.
"""

import logging
import re
from datetime import date
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from wabco_booking.db import repository
from wabco_booking.db.models import REFERENCE_PREFIXES, Booking, format_reference_number
from wabco_booking.db.repository import BookingFilter
from wabco_booking.errors import (
    DraftValidationError,
    InvalidArgumentError,
    NotFoundError,
    PersistenceError,
    SlotConflictError,
)
from wabco_booking.schemas.draft_schema import BookingDraft, RequestType, SubjectKind
from wabco_booking.tools.availability import is_canonical_slot, parse_booking_date
from wabco_booking.wizard.validators import ValidationContext, validate_draft

logger = logging.getLogger(__name__)

__all__ = [
    "format_reference_number",
    "parse_reference_number",
    "submit_booking",
    "list_bookings",
    "get_booking",
    "get_booking_by_reference",
    "update_booking",
    "toggle_booking_status",
    "delete_booking",
]

_REFERENCE_RE = re.compile(r"^(?P<prefix>[A-Z]{2})-(?P<id>\d{6,})$")
_PREFIX_TYPES: dict[str, RequestType] = {prefix: rt for rt, prefix in REFERENCE_PREFIXES.items()}
_SLOT_INDEX_MARKERS = ("uq_bookings_active_slot", "bookings.branch_id, bookings.booking_date")

UPDATABLE_FIELDS = frozenset({
    "branch_id", "booking_date", "booking_time", "services", "quantity",
    "car_year", "car_make", "car_model",
    "customer_name", "customer_email", "customer_phone",
})


def parse_reference_number(reference: str) -> tuple[RequestType, int]:
    """Inverse of format_reference_number.

    Raises:
        InvalidArgumentError: If the reference is malformed or has an unknown prefix.
    """
    match = _REFERENCE_RE.match(reference.strip().upper())
    if not match or match.group("prefix") not in _PREFIX_TYPES:
        raise InvalidArgumentError(f"Invalid reference number: {reference!r}")
    return _PREFIX_TYPES[match.group("prefix")], int(match.group("id"))


def _is_slot_violation(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    return any(marker in message for marker in _SLOT_INDEX_MARKERS)


def _ensure_slot_free(
    db: Session, branch_id: int, booking_date: date, booking_time: str,
    exclude_id: Optional[int] = None,
) -> None:
    taken = repository.count_bookings(
        db,
        BookingFilter(
            branch_id=branch_id,
            booking_date=booking_date,
            booking_time=booking_time,
            request_type=RequestType.BOOKING,
            active_only=True,
            exclude_id=exclude_id,
        ),
    )
    if taken:
        raise SlotConflictError(branch_id, booking_date, booking_time)


def _commit(db: Session, booking: Booking, action: str) -> Booking:
    """Commit the pending change, translating database errors."""
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if _is_slot_violation(exc):
            raise SlotConflictError(
                booking.branch_id, booking.booking_date, booking.booking_time
            ) from exc
        logger.error("Integrity error while trying to %s booking: %s", action, exc.orig)
        raise PersistenceError(f"Failed to {action} booking", detail=str(exc.orig)) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Database error while trying to %s booking: %s", action, exc)
        raise PersistenceError(f"Failed to {action} booking", detail=str(exc)) from exc
    db.refresh(booking)
    return booking


def submit_booking(db: Session, draft: BookingDraft, today: Optional[date] = None) -> Booking:
    """
    Persist a finished draft.

    Raises:
        DraftValidationError: If any step validator rejects the draft.
        SlotConflictError: If the appointment slot is already held.
        PersistenceError: For a missing branch or any storage failure.
    """
    ctx = ValidationContext()
    if today is not None:
        ctx.today = today
    errors = validate_draft(draft, ctx)
    if errors:
        raise DraftValidationError(errors)

    is_booking = draft.request_type == RequestType.BOOKING
    try:
        branch = repository.find_branch(db, draft.branch_id)
        if branch is None:
            raise PersistenceError(
                "Failed to create booking", detail=f"Branch {draft.branch_id} does not exist"
            )
        if is_booking:
            _ensure_slot_free(db, branch.id, draft.scheduled_date, draft.scheduled_time)

        booking = repository.create_booking(db, {
            "car_year": draft.vehicle.year.strip(),
            "car_make": draft.vehicle.make.strip(),
            "car_model": draft.vehicle.model.strip(),
            "services": draft.services.strip(),
            "branch_id": branch.id,
            "branch_name": branch.name,
            "booking_date": draft.scheduled_date if is_booking else None,
            "booking_time": draft.scheduled_time if is_booking else None,
            "customer_name": draft.customer.name.strip(),
            "customer_email": draft.customer.email.strip(),
            "customer_phone": draft.customer.phone.strip(),
            "request_type": draft.request_type.value,
            "request_source": draft.request_source.value,
            "product_id": draft.subject_id if draft.subject_kind == SubjectKind.TIRE else None,
            "service_id": draft.subject_id if draft.subject_kind == SubjectKind.SERVICE else None,
            "quantity": draft.quantity,
            "is_active": True,
        })
    except SlotConflictError:
        db.rollback()
        logger.info(
            "Slot conflict for branch %s on %s at %s",
            draft.branch_id, draft.scheduled_date, draft.scheduled_time,
        )
        raise
    except PersistenceError:
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        if is_booking and _is_slot_violation(exc):
            raise SlotConflictError(
                draft.branch_id, draft.scheduled_date, draft.scheduled_time
            ) from exc
        raise PersistenceError("Failed to create booking", detail=str(exc.orig)) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Database error while creating booking: %s", exc)
        raise PersistenceError("Failed to create booking", detail=str(exc)) from exc

    booking = _commit(db, booking, "create")
    logger.info(
        "%s created: %s (branch %s, %s %s, source %s)",
        booking.request_type, booking.reference_number, booking.branch_id,
        booking.booking_date, booking.booking_time, booking.request_source,
    )
    return booking


def list_bookings(db: Session, criteria: BookingFilter) -> tuple[list[Booking], int]:
    """Return one page of bookings plus the total matching count."""
    return repository.find_bookings(db, criteria), repository.count_bookings(db, criteria)


def get_booking(db: Session, booking_id: int) -> Booking:
    booking = repository.find_booking(db, booking_id)
    if booking is None:
        raise NotFoundError(f"Booking {booking_id} not found")
    return booking


def get_booking_by_reference(db: Session, reference: str) -> Booking:
    request_type, booking_id = parse_reference_number(reference)
    booking = repository.find_booking(db, booking_id)
    if booking is None or booking.request_type != request_type.value:
        raise NotFoundError(f"Booking {reference} not found")
    return booking


def update_booking(db: Session, booking_id: int, patch: dict[str, Any]) -> Booking:
    """
    Apply an administrative patch.

    Changing the branch refreshes the branch-name snapshot. Moving an
    active appointment re-checks that the target slot is free.
    """
    booking = get_booking(db, booking_id)
    unknown = set(patch) - UPDATABLE_FIELDS
    if unknown:
        raise InvalidArgumentError(f"Fields cannot be updated: {sorted(unknown)}")

    changes = dict(patch)
    if "branch_id" in changes:
        branch = repository.find_branch(db, changes["branch_id"])
        if branch is None:
            raise InvalidArgumentError(f"Unknown branch id: {changes['branch_id']}")
        changes["branch_name"] = branch.name

    if booking.request_type == RequestType.QUOTATION.value and (
        changes.get("booking_date") is not None or changes.get("booking_time") is not None
    ):
        raise InvalidArgumentError("Quotations do not take a date or time")
    if changes.get("booking_date") is not None:
        changes["booking_date"] = parse_booking_date(changes["booking_date"])
    if changes.get("booking_time") is not None and not is_canonical_slot(changes["booking_time"]):
        raise InvalidArgumentError(f"Invalid booking time: {changes['booking_time']!r}")

    try:
        repository.update_booking(db, booking, changes)
        if booking.holds_slot and booking.booking_date and booking.booking_time:
            _ensure_slot_free(
                db, booking.branch_id, booking.booking_date, booking.booking_time,
                exclude_id=booking.id,
            )
    except SlotConflictError:
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        if _is_slot_violation(exc):
            raise SlotConflictError(
                booking.branch_id, booking.booking_date, booking.booking_time
            ) from exc
        raise PersistenceError("Failed to update booking", detail=str(exc.orig)) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise PersistenceError("Failed to update booking", detail=str(exc)) from exc

    booking = _commit(db, booking, "update")
    logger.info("Booking %s updated: %s", booking.reference_number, sorted(changes))
    return booking


def toggle_booking_status(db: Session, booking_id: int) -> Booking:
    """Flip is_active (soft cancel / reactivate)."""
    booking = get_booking(db, booking_id)
    reactivating = not booking.is_active
    if (
        reactivating
        and booking.request_type == RequestType.BOOKING.value
        and booking.booking_date
        and booking.booking_time
    ):
        _ensure_slot_free(
            db, booking.branch_id, booking.booking_date, booking.booking_time,
            exclude_id=booking.id,
        )

    booking.is_active = reactivating
    booking = _commit(db, booking, "toggle")
    logger.info(
        "Booking %s %s", booking.reference_number, "reactivated" if reactivating else "deactivated"
    )
    return booking


def delete_booking(db: Session, booking_id: int) -> None:
    booking = get_booking(db, booking_id)
    reference = booking.reference_number
    try:
        repository.delete_booking(db, booking)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise PersistenceError("Failed to delete booking", detail=str(exc)) from exc
    logger.info("Booking %s deleted", reference)
