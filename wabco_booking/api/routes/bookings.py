import logging
import math
from datetime import date
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response
from sqlalchemy.orm import Session

from wabco_booking.api.dependencies import get_db, get_notification_dispatcher, require_admin
from wabco_booking.db.repository import BookingFilter
from wabco_booking.errors import InvalidArgumentError, SlotLookupError
from wabco_booking.schemas.booking_schema import (
    AvailableSlotsResponse,
    BookingCreate,
    BookingListResponse,
    BookingResponse,
    BookingUpdate,
    Pagination,
    StepValidationResponse,
)
from wabco_booking.schemas.draft_schema import RequestType
from wabco_booking.tools import booking as booking_tools
from wabco_booking.tools.availability import get_available_slots
from wabco_booking.tools.notifications import NotificationDispatcher, build_booking_notification
from wabco_booking.wizard.states import WizardState
from wabco_booking.wizard.validators import ValidationContext, validate_draft, validate_step

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bookings", tags=["Bookings"])

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

# Wire field names for the admin patch; the rest of the names match the ORM.
_PATCH_FIELD_MAP = {"scheduled_date": "booking_date", "scheduled_time": "booking_time"}


# --------------------------------------------------------------------------- #
# Public
# --------------------------------------------------------------------------- #

@router.get("/available-slots", response_model=AvailableSlotsResponse)
def available_slots(
    branch_id: Optional[str] = Query(default=None, alias="branchId"),
    booking_date: Optional[str] = Query(default=None, alias="bookingDate"),
    db: Session = Depends(get_db),
):
    try:
        result = get_available_slots(db, branch_id, booking_date)
    except InvalidArgumentError as exc:
        logger.info("Slot lookup rejected: %s", exc)
        raise SlotLookupError(str(exc)) from exc
    return AvailableSlotsResponse(**result)


@router.post("", response_model=BookingResponse, status_code=201)
def create_booking(
    payload: BookingCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """Submit a finished draft. Notifications go out after the response."""
    booking = booking_tools.submit_booking(db, payload.to_draft())
    response = BookingResponse.model_validate(booking)

    notification = build_booking_notification(booking)
    background_tasks.add_task(
        dispatcher.send_booking_notification, notification.request_source, notification
    )
    return response


@router.post("/validate", response_model=StepValidationResponse)
def validate_booking_step(
    payload: BookingCreate,
    step: Optional[WizardState] = Query(default=None),
    db: Session = Depends(get_db),
):
    """Run one step's validator, or the whole draft when no step is given."""
    draft = payload.to_draft()
    ctx = ValidationContext()
    checks_slot = step in (None, WizardState.DATE_TIME) and not draft.is_quotation
    if checks_slot and draft.branch_id and draft.scheduled_date:
        try:
            ctx.available_slots = get_available_slots(
                db, draft.branch_id, draft.scheduled_date
            )["available_slots"]
        except InvalidArgumentError:
            ctx.available_slots = None

    if step is None:
        errors = validate_draft(draft, ctx)
    else:
        errors = validate_step(step, draft, ctx)
    return StepValidationResponse(valid=not errors, errors=errors)


# --------------------------------------------------------------------------- #
# Administrative
# --------------------------------------------------------------------------- #

@router.get("", response_model=BookingListResponse, dependencies=[Depends(require_admin)])
def list_bookings(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    branch_id: Optional[int] = Query(default=None, alias="branchId"),
    booking_date: Optional[date] = Query(default=None, alias="bookingDate"),
    request_type: Optional[RequestType] = Query(default=None, alias="requestType"),
    customer_email: Optional[str] = Query(default=None, alias="customerEmail"),
    active_only: bool = Query(default=False, alias="activeOnly"),
    db: Session = Depends(get_db),
):
    criteria = BookingFilter(
        branch_id=branch_id,
        booking_date=booking_date,
        request_type=request_type,
        customer_email=customer_email,
        active_only=active_only,
        page=page,
        limit=limit,
    )
    bookings, total = booking_tools.list_bookings(db, criteria)
    return BookingListResponse(
        bookings=[BookingResponse.model_validate(b) for b in bookings],
        pagination=Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit)),
    )


@router.get(
    "/reference/{reference}",
    response_model=BookingResponse,
    dependencies=[Depends(require_admin)],
)
def get_booking_by_reference(reference: str, db: Session = Depends(get_db)):
    return BookingResponse.model_validate(booking_tools.get_booking_by_reference(db, reference))


@router.get("/{booking_id}", response_model=BookingResponse, dependencies=[Depends(require_admin)])
def get_booking(booking_id: int, db: Session = Depends(get_db)):
    return BookingResponse.model_validate(booking_tools.get_booking(db, booking_id))


@router.put("/{booking_id}", response_model=BookingResponse, dependencies=[Depends(require_admin)])
def update_booking(booking_id: int, payload: BookingUpdate, db: Session = Depends(get_db)):
    patch = {
        _PATCH_FIELD_MAP.get(key, key): value
        for key, value in payload.model_dump(exclude_unset=True, exclude_none=True).items()
    }
    booking = booking_tools.update_booking(db, booking_id, patch)
    return BookingResponse.model_validate(booking)


@router.patch(
    "/{booking_id}/toggle-status",
    response_model=BookingResponse,
    dependencies=[Depends(require_admin)],
)
def toggle_booking_status(booking_id: int, db: Session = Depends(get_db)):
    return BookingResponse.model_validate(booking_tools.toggle_booking_status(db, booking_id))


@router.delete("/{booking_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete_booking(booking_id: int, db: Session = Depends(get_db)):
    booking_tools.delete_booking(db, booking_id)
    return Response(status_code=204)
