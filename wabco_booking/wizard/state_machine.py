"""
Finite state machine for the multi-step booking and quotation wizard.

Bookings walk four steps (subject & vehicle -> branch -> date & time ->
customer info); quotations skip the date & time step. Forward moves are
guarded by the step validators, backward moves are always allowed and
keep everything already entered. Leaving the last step is the submission
itself, not another local transition.

Usage:
    wizard = BookingWizard(draft, slot_lookup=lookup, submitter=submit)
    wizard.set_vehicle("2021", "Toyota", "Corolla")
    wizard.advance()
    assert wizard.current_state == WizardState.BRANCH_SELECTION
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable, Mapping, Optional, Sequence, Union

from wabco_booking.errors import (
    DraftValidationError,
    InvalidTransitionError,
    PersistenceError,
    SlotConflictError,
    SlotLookupError,
)
from wabco_booking.schemas.draft_schema import BookingDraft, CustomerInfo, RequestType, Vehicle
from wabco_booking.utils import parse_iso_date
from wabco_booking.wizard.states import WizardState, WizardTrigger
from wabco_booking.wizard.validators import (
    ROUTES,
    ValidationContext,
    validate_draft,
    validate_step,
)

logger = logging.getLogger(__name__)

SlotLookup = Callable[[int, date], Mapping[str, Sequence[str]]]
Submitter = Callable[[BookingDraft], Any]


@dataclass
class Transition:
    """A single valid state transition, optionally limited to one request type."""
    from_state: WizardState
    to_state: WizardState
    trigger: WizardTrigger
    request_type: Optional[RequestType] = None


@dataclass
class StateEntry:
    """Recorded history entry for a state visit."""
    state: WizardState
    entered_at: datetime
    trigger: Optional[WizardTrigger] = None


class BookingWizard:
    """
    Reversible, linear wizard with per-step memory.

    Each mutator belongs to one step and is rejected outside it, so the
    step responsible for a field is the only writer of that field. The
    available-slot snapshot is fetched when a date is chosen (or the date
    step is re-entered) and is not refreshed again before submission.
    """

    TRANSITIONS: list[Transition] = [
        # --- Forward ---
        Transition(WizardState.SUBJECT_AND_VEHICLE, WizardState.BRANCH_SELECTION,
                   WizardTrigger.NEXT),
        Transition(WizardState.BRANCH_SELECTION, WizardState.DATE_TIME,
                   WizardTrigger.NEXT, RequestType.BOOKING),
        Transition(WizardState.BRANCH_SELECTION, WizardState.CUSTOMER_INFO,
                   WizardTrigger.NEXT, RequestType.QUOTATION),
        Transition(WizardState.DATE_TIME, WizardState.CUSTOMER_INFO,
                   WizardTrigger.NEXT, RequestType.BOOKING),

        # --- Backward ---
        Transition(WizardState.BRANCH_SELECTION, WizardState.SUBJECT_AND_VEHICLE,
                   WizardTrigger.BACK),
        Transition(WizardState.DATE_TIME, WizardState.BRANCH_SELECTION,
                   WizardTrigger.BACK, RequestType.BOOKING),
        Transition(WizardState.CUSTOMER_INFO, WizardState.DATE_TIME,
                   WizardTrigger.BACK, RequestType.BOOKING),
        Transition(WizardState.CUSTOMER_INFO, WizardState.BRANCH_SELECTION,
                   WizardTrigger.BACK, RequestType.QUOTATION),

        # --- Submission ---
        Transition(WizardState.CUSTOMER_INFO, WizardState.SUBMITTED,
                   WizardTrigger.SUBMIT),
    ]

    def __init__(
        self,
        draft: BookingDraft,
        slot_lookup: Optional[SlotLookup] = None,
        submitter: Optional[Submitter] = None,
        today: Optional[date] = None,
    ) -> None:
        self.draft = draft
        self._slot_lookup = slot_lookup
        self._submitter = submitter
        self._today = today
        self._current_state = WizardState.SUBJECT_AND_VEHICLE
        self._history: list[StateEntry] = [
            StateEntry(state=self._current_state, entered_at=datetime.now(timezone.utc))
        ]
        self._available_slots: Optional[list[str]] = None
        self.result: Any = None
        if draft.is_quotation:
            draft.scheduled_date = None
            draft.scheduled_time = None

    # ------------------------------------------------------------------ #
    # State inspection
    # ------------------------------------------------------------------ #

    @property
    def current_state(self) -> WizardState:
        return self._current_state

    @property
    def steps(self) -> tuple[WizardState, ...]:
        """Ordered steps for this draft's request type."""
        return ROUTES[self.draft.request_type]

    @property
    def step_number(self) -> int:
        """1-based position of the current step; len(steps) + 1 once submitted."""
        if self._current_state == WizardState.SUBMITTED:
            return len(self.steps) + 1
        return self.steps.index(self._current_state) + 1

    @property
    def available_slots(self) -> Optional[list[str]]:
        """Slots from the last lookup, or None if none has been made."""
        return list(self._available_slots) if self._available_slots is not None else None

    def get_valid_triggers(self) -> list[WizardTrigger]:
        return [t.trigger for t in self._candidates()]

    def get_history(self) -> list[StateEntry]:
        return list(self._history)

    def get_state_trace(self) -> list[str]:
        return [entry.state.value for entry in self._history]

    def is_terminal(self) -> bool:
        return self._current_state == WizardState.SUBMITTED

    def current_errors(self) -> dict[str, str]:
        """Errors that would block leaving the current step right now."""
        return validate_step(self._current_state, self.draft, self._context())

    # ------------------------------------------------------------------ #
    # Step-owned mutators
    # ------------------------------------------------------------------ #

    def set_vehicle(self, year: str, make: str, model: str) -> None:
        self._require_state(WizardState.SUBJECT_AND_VEHICLE, "vehicle")
        self.draft.vehicle = Vehicle(year=year.strip(), make=make.strip(), model=model.strip())

    def set_quantity(self, quantity: int) -> None:
        self._require_state(WizardState.SUBJECT_AND_VEHICLE, "quantity")
        self.draft.quantity = quantity

    def select_branch(self, branch_id: int, branch_name: str) -> None:
        """Choose a branch, keeping its display name on the draft."""
        self._require_state(WizardState.BRANCH_SELECTION, "branch")
        if branch_id != self.draft.branch_id:
            self._available_slots = None
        self.draft.branch_id = branch_id
        self.draft.branch_name = branch_name

    def select_date(self, day: Union[date, str]) -> list[str]:
        """
        Choose a date and load its available slots.

        A previously chosen time that is not offered on the new date is
        cleared.

        Raises:
            SlotLookupError: If availability could not be loaded. The
                draft and the slot snapshot are left unchanged.
        """
        self._require_state(WizardState.DATE_TIME, "date")
        try:
            chosen = parse_iso_date(day)
        except ValueError:
            raise SlotLookupError(f"Invalid date: {day!r}") from None

        available = self._load_slots(chosen)
        self.draft.scheduled_date = chosen
        if self.draft.scheduled_time and self.draft.scheduled_time not in available:
            self.draft.scheduled_time = None
        return list(available)

    def select_time(self, slot: str) -> None:
        self._require_state(WizardState.DATE_TIME, "time")
        if self._available_slots is None:
            raise InvalidTransitionError("Choose a date before choosing a time")
        self.draft.scheduled_time = slot

    def set_customer(self, name: str, email: str, phone: str) -> None:
        self._require_state(WizardState.CUSTOMER_INFO, "customer details")
        self.draft.customer = CustomerInfo(
            name=name.strip(), email=email.strip(), phone=phone.strip()
        )

    # ------------------------------------------------------------------ #
    # Navigation
    # ------------------------------------------------------------------ #

    def advance(self) -> WizardState:
        """
        Leave the current step if its fields are valid.

        Raises:
            DraftValidationError: With a per-field error map.
            InvalidTransitionError: From the last step (use submit()).
            SlotLookupError: If re-entering the date step could not reload
                its slots; the wizard stays on the current step.
        """
        if not any(t.trigger == WizardTrigger.NEXT for t in self._candidates()):
            raise self._invalid(WizardTrigger.NEXT)

        errors = self.current_errors()
        if errors:
            raise DraftValidationError(errors)

        target = self._target(WizardTrigger.NEXT)
        if target == WizardState.DATE_TIME and self.draft.scheduled_date is not None:
            # Re-entering the date step refreshes its snapshot; a failed
            # lookup leaves the wizard where it was.
            self._load_slots(self.draft.scheduled_date)
        return self._transition(WizardTrigger.NEXT)

    def back(self) -> WizardState:
        """Return to the previous step without clearing anything."""
        return self._transition(WizardTrigger.BACK)

    def submit(self) -> Any:
        """
        Validate the whole draft and hand it to the submitter.

        On a persistence failure or slot conflict the wizard stays on the
        customer step with the draft intact so the customer can retry.
        """
        if not any(t.trigger == WizardTrigger.SUBMIT for t in self._candidates()):
            raise self._invalid(WizardTrigger.SUBMIT)
        if self._submitter is None:
            raise InvalidTransitionError("No submitter configured for this wizard")

        errors = validate_draft(self.draft, self._context())
        if errors:
            raise DraftValidationError(errors)

        try:
            result = self._submitter(self.draft)
        except SlotConflictError:
            if self._available_slots is not None and self.draft.scheduled_time in self._available_slots:
                self._available_slots.remove(self.draft.scheduled_time)
            logger.info("Submission lost slot %s; draft kept for retry", self.draft.scheduled_time)
            raise
        except PersistenceError:
            logger.warning("Submission failed; draft kept for retry")
            raise

        self.result = result
        self._transition(WizardTrigger.SUBMIT)
        return result

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _context(self) -> ValidationContext:
        ctx = ValidationContext(available_slots=self._available_slots or [])
        if self._today is not None:
            ctx.today = self._today
        return ctx

    def _load_slots(self, day: date) -> list[str]:
        if self._slot_lookup is None:
            raise SlotLookupError("No slot lookup configured")
        if self.draft.branch_id is None:
            raise SlotLookupError("No branch selected")
        try:
            result = self._slot_lookup(self.draft.branch_id, day)
        except Exception as exc:
            logger.warning(
                "Slot lookup failed for branch %s on %s: %s", self.draft.branch_id, day, exc
            )
            raise SlotLookupError(getattr(exc, "detail", None) or str(exc)) from exc
        self._available_slots = list(result["available_slots"])
        return self._available_slots

    def _require_state(self, state: WizardState, what: str) -> None:
        if self._current_state != state:
            raise InvalidTransitionError(
                f"The {what} can only be changed on the '{state.value}' step; "
                f"current step is '{self._current_state.value}'"
            )

    def _candidates(self) -> list[Transition]:
        return [
            t for t in self.TRANSITIONS
            if t.from_state == self._current_state
            and (t.request_type is None or t.request_type == self.draft.request_type)
        ]

    def _invalid(self, trigger: WizardTrigger) -> InvalidTransitionError:
        valid = [t.value for t in self.get_valid_triggers()]
        return InvalidTransitionError(
            f"No valid transition from '{self._current_state.value}' "
            f"with trigger '{trigger.value}'. Valid triggers: {valid}"
        )

    def _target(self, trigger: WizardTrigger) -> Optional[WizardState]:
        for t in self._candidates():
            if t.trigger == trigger:
                return t.to_state
        return None

    def _transition(self, trigger: WizardTrigger) -> WizardState:
        for t in self._candidates():
            if t.trigger != trigger:
                continue
            old_state = self._current_state
            self._current_state = t.to_state
            self._history.append(StateEntry(
                state=self._current_state,
                entered_at=datetime.now(timezone.utc),
                trigger=trigger,
            ))
            logger.debug(
                "Wizard transition: %s -> %s (trigger: %s)",
                old_state.value, self._current_state.value, trigger.value,
            )
            return self._current_state
        raise self._invalid(trigger)
