"""Tests for import chains and module integrity.

Ensures all public modules can be imported without errors and
that re-exports from __init__.py files work correctly.
"""


class TestSchemaImports:
    def test_import_draft_schema(self):
        from wabco_booking.schemas.draft_schema import BookingDraft, RequestSource, RequestType
        assert RequestType.BOOKING == "booking"
        assert RequestSource.TIRE == "tire"
        assert BookingDraft().is_quotation is False

    def test_import_booking_schema(self):
        from wabco_booking.schemas.booking_schema import BookingCreate, BookingResponse
        assert BookingCreate is not None
        assert BookingResponse is not None

    def test_camel_case_aliases(self):
        from wabco_booking.schemas.booking_schema import BookingCreate
        model = BookingCreate.model_validate({"requestType": "quotation", "branchId": 2})
        assert model.branch_id == 2
        assert model.to_draft().is_quotation


class TestWizardImports:
    def test_package_reexports(self):
        from wabco_booking.wizard import BookingWizard, WizardState, validate_draft
        assert callable(validate_draft)
        assert BookingWizard.TRANSITIONS
        assert WizardState.SUBMITTED == "submitted"


class TestToolImports:
    def test_import_availability(self):
        from wabco_booking.tools.availability import get_available_slots
        assert callable(get_available_slots)

    def test_import_booking(self):
        from wabco_booking.tools.booking import submit_booking
        assert callable(submit_booking)

    def test_import_notifications(self):
        from wabco_booking.tools.notifications import NotificationDispatcher
        assert NotificationDispatcher is not None


class TestAppImports:
    def test_routes_registered(self):
        from wabco_booking.api.app import app
        paths = set(app.openapi()["paths"])
        assert "/api/bookings/available-slots" in paths
        assert "/api/locations/{branch_id}" in paths
        assert "/health" in paths

    def test_errors_share_base(self):
        from wabco_booking.errors import BookingError, SlotConflictError, SlotLookupError
        assert issubclass(SlotConflictError, BookingError)
        assert issubclass(SlotLookupError, BookingError)
