"""
Persistence interface consumed by the booking tools.

Thin query helpers over the SQLAlchemy session. They never commit:
transaction boundaries belong to the caller so a submission can check
a slot and insert within one unit of work.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from wabco_booking.db.models import Booking, Branch
from wabco_booking.schemas.draft_schema import RequestType

logger = logging.getLogger(__name__)


@dataclass
class BookingFilter:
    """Criteria for booking lookups. Unset fields do not filter."""
    branch_id: Optional[int] = None
    booking_date: Optional[date] = None
    booking_time: Optional[str] = None
    request_type: Optional[RequestType] = None
    customer_email: Optional[str] = None
    active_only: bool = False
    exclude_id: Optional[int] = None
    page: int = 1
    limit: Optional[int] = None


def _apply_filter(query, criteria: BookingFilter):
    if criteria.branch_id is not None:
        query = query.filter(Booking.branch_id == criteria.branch_id)
    if criteria.booking_date is not None:
        query = query.filter(Booking.booking_date == criteria.booking_date)
    if criteria.booking_time is not None:
        query = query.filter(Booking.booking_time == criteria.booking_time)
    if criteria.request_type is not None:
        query = query.filter(Booking.request_type == RequestType(criteria.request_type).value)
    if criteria.customer_email:
        query = query.filter(Booking.customer_email.ilike(f"%{criteria.customer_email}%"))
    if criteria.active_only:
        query = query.filter(Booking.is_active.is_(True))
    if criteria.exclude_id is not None:
        query = query.filter(Booking.id != criteria.exclude_id)
    return query


def find_bookings(db: Session, criteria: BookingFilter) -> list[Booking]:
    """Bookings matching ``criteria``, newest first, paginated when a limit is set."""
    query = _apply_filter(db.query(Booking).options(joinedload(Booking.branch)), criteria)
    query = query.order_by(Booking.created_at.desc(), Booking.id.desc())
    if criteria.limit:
        query = query.offset((max(criteria.page, 1) - 1) * criteria.limit).limit(criteria.limit)
    return query.all()


def count_bookings(db: Session, criteria: BookingFilter) -> int:
    query = _apply_filter(db.query(func.count(Booking.id)), criteria)
    return query.scalar() or 0


def find_booking(db: Session, booking_id: int) -> Optional[Booking]:
    return (
        db.query(Booking)
        .options(joinedload(Booking.branch))
        .filter(Booking.id == booking_id)
        .first()
    )


def create_booking(db: Session, values: dict[str, Any]) -> Booking:
    booking = Booking(**values)
    db.add(booking)
    db.flush()
    logger.debug("Booking row flushed with id %s", booking.id)
    return booking


def update_booking(db: Session, booking: Booking, patch: dict[str, Any]) -> Booking:
    for key, value in patch.items():
        setattr(booking, key, value)
    db.flush()
    return booking


def delete_booking(db: Session, booking: Booking) -> None:
    db.delete(booking)
    db.flush()


def find_branch(db: Session, branch_id: int) -> Optional[Branch]:
    return db.query(Branch).filter(Branch.id == branch_id).first()


def list_branches(db: Session) -> list[Branch]:
    return db.query(Branch).order_by(Branch.name.asc(), Branch.id.asc()).all()
