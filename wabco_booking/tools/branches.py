"""
Branch (location) management and the nearest-branch finder.

Bookings keep their own branch-name snapshot, so renaming a branch never
rewrites history. A branch cannot be deleted while any booking, active or
not, still references it.
"""

import logging
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from wabco_booking.db import repository
from wabco_booking.db.models import Branch
from wabco_booking.db.repository import BookingFilter
from wabco_booking.errors import BranchInUseError, NotFoundError, PersistenceError
from wabco_booking.tools.distance import sort_by_distance

logger = logging.getLogger(__name__)


def list_branches(
    db: Session,
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    unit: str = "km",
) -> list[tuple[Branch, Optional[float]]]:
    """All branches, nearest first when a reference point is given."""
    branches = repository.list_branches(db)
    if lat is None or lng is None:
        return [(branch, None) for branch in branches]
    return sort_by_distance(branches, lat, lng, unit)


def get_branch(db: Session, branch_id: int) -> Branch:
    branch = repository.find_branch(db, branch_id)
    if branch is None:
        raise NotFoundError(f"Location {branch_id} not found")
    return branch


def _save(db: Session, branch: Branch, action: str) -> Branch:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Database error while trying to %s location: %s", action, exc)
        raise PersistenceError(f"Failed to {action} location", detail=str(exc)) from exc
    db.refresh(branch)
    return branch


def create_branch(db: Session, values: dict[str, Any]) -> Branch:
    branch = Branch(**values)
    db.add(branch)
    branch = _save(db, branch, "create")
    logger.info("Location created: %s (%s)", branch.id, branch.name)
    return branch


def update_branch(db: Session, branch_id: int, patch: dict[str, Any]) -> Branch:
    branch = get_branch(db, branch_id)
    for key, value in patch.items():
        setattr(branch, key, value)
    branch = _save(db, branch, "update")
    logger.info("Location %s updated: %s", branch.id, sorted(patch))
    return branch


def delete_branch(db: Session, branch_id: int) -> None:
    """
    Raises:
        NotFoundError: If the branch does not exist.
        BranchInUseError: If any booking still references it.
    """
    branch = get_branch(db, branch_id)
    booking_count = repository.count_bookings(db, BookingFilter(branch_id=branch_id))
    if booking_count > 0:
        logger.info("Refusing to delete location %s: %d booking(s)", branch_id, booking_count)
        raise BranchInUseError(branch_id, booking_count)

    try:
        db.delete(branch)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise PersistenceError("Failed to delete location", detail=str(exc)) from exc
    logger.info("Location %s deleted", branch_id)
