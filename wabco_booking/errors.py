"""Exception taxonomy shared by the wizard, tools and API layers."""

from typing import Optional


class BookingError(Exception):
    """Base class for all booking-core errors."""


class DraftValidationError(BookingError):
    """One or more draft fields failed their step validator.

    ``errors`` maps a field path (e.g. ``"customer.email"``) to a message
    so the UI can highlight each offending field.
    """

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = dict(errors)
        fields = ", ".join(sorted(self.errors))
        super().__init__(f"Invalid fields: {fields}")


class InvalidArgumentError(BookingError):
    """Malformed branch id or date passed to a lookup."""


class SlotLookupError(BookingError):
    """Available times could not be loaded for the chosen branch and date."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__("could not load available times")


class PersistenceError(BookingError):
    """A booking could not be stored. Retryable; the draft is kept."""

    def __init__(self, message: str, detail: Optional[str] = None) -> None:
        self.detail = detail
        super().__init__(message)


class SlotConflictError(BookingError):
    """The requested slot was taken by another active booking."""

    def __init__(self, branch_id: int, booking_date: object, booking_time: str) -> None:
        self.branch_id = branch_id
        self.booking_date = booking_date
        self.booking_time = booking_time
        super().__init__(
            f"Slot {booking_time} on {booking_date} at branch {branch_id} is no longer available"
        )


class NotFoundError(BookingError):
    """A booking or branch id does not exist."""


class BranchInUseError(BookingError):
    """A branch cannot be deleted while bookings reference it."""

    def __init__(self, branch_id: int, booking_count: int) -> None:
        self.branch_id = branch_id
        self.booking_count = booking_count
        super().__init__(
            f"Cannot delete location. There are {booking_count} booking(s) associated "
            f"with this location. Please delete or reassign the bookings first."
        )


class InvalidTransitionError(BookingError):
    """Raised when a wizard action is not valid from the current state."""
