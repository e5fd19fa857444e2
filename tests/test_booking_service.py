"""Tests for booking submission and the administrative booking operations."""

from datetime import timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from wabco_booking.db.repository import BookingFilter
from wabco_booking.errors import (
    DraftValidationError,
    InvalidArgumentError,
    NotFoundError,
    PersistenceError,
    SlotConflictError,
)
from wabco_booking.schemas.draft_schema import RequestSource, RequestType, SubjectKind
from wabco_booking.tools.booking import (
    delete_booking,
    format_reference_number,
    get_booking,
    get_booking_by_reference,
    list_bookings,
    parse_reference_number,
    submit_booking,
    toggle_booking_status,
    update_booking,
)

from tests.conftest import FUTURE_DATE, TODAY, make_draft


class TestReferenceNumbers:
    def test_booking_prefix(self):
        assert format_reference_number(RequestType.BOOKING, 7) == "WM-000007"

    def test_quotation_prefix(self):
        assert format_reference_number(RequestType.QUOTATION, 7) == "QT-000007"

    def test_wide_ids_not_truncated(self):
        assert format_reference_number(RequestType.BOOKING, 1234567) == "WM-1234567"

    def test_parse(self):
        assert parse_reference_number("qt-000042") == (RequestType.QUOTATION, 42)

    @pytest.mark.parametrize("reference", ["WM-12", "XX-000001", "000001", "WM_000001"])
    def test_parse_rejects_malformed(self, reference):
        with pytest.raises(InvalidArgumentError):
            parse_reference_number(reference)


class TestSubmitBooking:
    def test_persists_booking(self, db_session, branch):
        booking = submit_booking(db_session, make_draft(branch.id), today=TODAY)
        assert booking.id is not None
        assert booking.is_active is True
        assert booking.reference_number == f"WM-{booking.id:06d}"
        assert booking.booking_date == FUTURE_DATE
        assert booking.booking_time == "10:00"
        assert booking.service_id == 7
        assert booking.product_id is None
        assert booking.created_at is not None

    def test_branch_name_snapshot_comes_from_branch(self, db_session, branch):
        draft = make_draft(branch.id, branch_name="Stale name from the client")
        booking = submit_booking(db_session, draft, today=TODAY)
        assert booking.branch_name == branch.name

        branch.name = "Renamed Branch"
        db_session.commit()
        db_session.refresh(booking)
        assert booking.branch_name == "TirePro Auto Care"

    def test_tire_booking_stores_product_and_quantity(self, db_session, branch):
        draft = make_draft(
            branch.id,
            request_source=RequestSource.TIRE,
            subject_kind=SubjectKind.TIRE,
            subject_id=101,
            quantity=4,
        )
        booking = submit_booking(db_session, draft, today=TODAY)
        assert booking.product_id == 101
        assert booking.service_id is None
        assert booking.quantity == 4
        assert booking.request_source == "tire"

    def test_quotation_keeps_null_date_and_time(self, db_session, branch):
        draft = make_draft(branch.id, request_type=RequestType.QUOTATION)
        booking = submit_booking(db_session, draft, today=TODAY)
        assert booking.booking_date is None
        assert booking.booking_time is None
        assert booking.reference_number.startswith("QT-")

    def test_quotations_do_not_conflict(self, db_session, branch):
        first = submit_booking(db_session, make_draft(branch.id, request_type=RequestType.QUOTATION))
        second = submit_booking(db_session, make_draft(branch.id, request_type=RequestType.QUOTATION))
        assert first.id != second.id

    def test_invalid_draft_rejected_before_storage(self, db_session, branch):
        draft = make_draft(branch.id)
        draft.customer.email = "not-an-email"
        with pytest.raises(DraftValidationError) as exc_info:
            submit_booking(db_session, draft, today=TODAY)
        assert "customer.email" in exc_info.value.errors
        assert list_bookings(db_session, BookingFilter())[1] == 0

    def test_past_date_rejected(self, db_session, branch):
        draft = make_draft(branch.id, scheduled_date=TODAY - timedelta(days=1))
        with pytest.raises(DraftValidationError):
            submit_booking(db_session, draft, today=TODAY)

    def test_missing_branch_is_persistence_failure(self, db_session):
        with pytest.raises(PersistenceError) as exc_info:
            submit_booking(db_session, make_draft(999), today=TODAY)
        assert "999" in exc_info.value.detail

    def test_taken_slot_conflicts(self, db_session, branch, make_booking):
        make_booking(branch, booking_time="10:00")
        with pytest.raises(SlotConflictError) as exc_info:
            submit_booking(db_session, make_draft(branch.id), today=TODAY)
        assert exc_info.value.booking_time == "10:00"
        assert list_bookings(db_session, BookingFilter())[1] == 1

    def test_cancelled_booking_frees_slot(self, db_session, branch, make_booking):
        make_booking(branch, booking_time="10:00", is_active=False)
        booking = submit_booking(db_session, make_draft(branch.id), today=TODAY)
        assert booking.is_active

    def test_unique_index_catches_race(self, db_session, branch, make_booking):
        make_booking(branch, booking_time="10:00")
        # Simulate the competing insert landing after the pre-check.
        with patch("wabco_booking.tools.booking._ensure_slot_free"):
            with pytest.raises(SlotConflictError):
                submit_booking(db_session, make_draft(branch.id), today=TODAY)
        assert list_bookings(db_session, BookingFilter())[1] == 1

    def test_database_failure_is_persistence_error(self, db_session, branch):
        failure = OperationalError("INSERT INTO bookings", {}, Exception("disk I/O error"))
        with patch("wabco_booking.db.repository.create_booking", side_effect=failure):
            with pytest.raises(PersistenceError, match="Failed to create booking"):
                submit_booking(db_session, make_draft(branch.id), today=TODAY)


class TestQueries:
    def test_get_booking_not_found(self, db_session):
        with pytest.raises(NotFoundError):
            get_booking(db_session, 42)

    def test_get_by_reference(self, db_session, branch, make_booking):
        booking = make_booking(branch)
        assert get_booking_by_reference(db_session, booking.reference_number).id == booking.id

    def test_reference_with_wrong_prefix_not_found(self, db_session, branch, make_booking):
        booking = make_booking(branch)
        with pytest.raises(NotFoundError):
            get_booking_by_reference(db_session, f"QT-{booking.id:06d}")

    def test_list_paginates_and_counts(self, db_session, branch, make_booking):
        for slot in ("09:00", "09:30", "10:00"):
            make_booking(branch, booking_time=slot)
        bookings, total = list_bookings(db_session, BookingFilter(page=2, limit=2))
        assert total == 3
        assert len(bookings) == 1

    def test_list_filters_active_only(self, db_session, branch, make_booking):
        make_booking(branch, booking_time="09:00")
        make_booking(branch, booking_time="09:30", is_active=False)
        _, total = list_bookings(db_session, BookingFilter(active_only=True))
        assert total == 1


class TestUpdateBooking:
    def test_reschedule(self, db_session, branch, make_booking):
        booking = make_booking(branch)
        updated = update_booking(db_session, booking.id, {"booking_time": "15:00"})
        assert updated.booking_time == "15:00"

    def test_reschedule_into_taken_slot(self, db_session, branch, make_booking):
        make_booking(branch, booking_time="15:00")
        booking = make_booking(branch, booking_time="10:00")
        with pytest.raises(SlotConflictError):
            update_booking(db_session, booking.id, {"booking_time": "15:00"})
        db_session.refresh(booking)
        assert booking.booking_time == "10:00"

    def test_branch_change_refreshes_snapshot(self, db_session, make_branch, make_booking):
        first = make_branch()
        second = make_branch(name="Wabco Main Branch")
        booking = make_booking(first)
        updated = update_booking(db_session, booking.id, {"branch_id": second.id})
        assert updated.branch_name == "Wabco Main Branch"

    def test_unknown_branch_rejected(self, db_session, branch, make_booking):
        booking = make_booking(branch)
        with pytest.raises(InvalidArgumentError):
            update_booking(db_session, booking.id, {"branch_id": 999})

    def test_non_canonical_time_rejected(self, db_session, branch, make_booking):
        booking = make_booking(branch)
        with pytest.raises(InvalidArgumentError):
            update_booking(db_session, booking.id, {"booking_time": "10:10"})

    def test_quotation_cannot_get_a_slot(self, db_session, branch, make_booking):
        quote = make_booking(
            branch, request_type=RequestType.QUOTATION.value, booking_date=None, booking_time=None
        )
        with pytest.raises(InvalidArgumentError):
            update_booking(db_session, quote.id, {"booking_time": "10:00"})

    def test_unknown_field_rejected(self, db_session, branch, make_booking):
        booking = make_booking(branch)
        with pytest.raises(InvalidArgumentError):
            update_booking(db_session, booking.id, {"is_active": False})


class TestToggleAndDelete:
    def test_toggle_round_trip(self, db_session, branch, make_booking):
        booking = make_booking(branch)
        assert toggle_booking_status(db_session, booking.id).is_active is False
        assert toggle_booking_status(db_session, booking.id).is_active is True

    def test_reactivation_into_taken_slot_conflicts(self, db_session, branch, make_booking):
        cancelled = make_booking(branch, booking_time="10:00", is_active=False)
        make_booking(branch, booking_time="10:00")
        with pytest.raises(SlotConflictError):
            toggle_booking_status(db_session, cancelled.id)

    def test_delete(self, db_session, branch, make_booking):
        booking = make_booking(branch)
        delete_booking(db_session, booking.id)
        with pytest.raises(NotFoundError):
            get_booking(db_session, booking.id)
