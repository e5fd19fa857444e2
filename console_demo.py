"""
Offline console demo: walks the booking wizard end to end without a server.

Uses the real wizard, validators, slot calculator and submission service
against a throwaway in-memory SQLite database. No mail is sent; the
customer e-mail that would go out is summarised instead.

Usage:
    python console_demo.py
    python console_demo.py --scenario quotation
"""

import argparse
from datetime import date, timedelta

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from wabco_booking.config import settings
from wabco_booking.db.database import init_db
from wabco_booking.db.models import Booking, Branch
from wabco_booking.errors import DraftValidationError
from wabco_booking.schemas.draft_schema import BookingDraft, RequestSource, RequestType, SubjectKind
from wabco_booking.tools.availability import get_available_slots
from wabco_booking.tools.booking import submit_booking
from wabco_booking.tools.branches import list_branches
from wabco_booking.tools.email_templates import build_customer_email
from wabco_booking.tools.notifications import build_booking_notification
from wabco_booking.wizard import BookingWizard

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

# Dubai, roughly the Al Quoz side of Sheikh Zayed Road
CUSTOMER_LOCATION = (25.1380, 55.2260)

DEMO_BRANCHES = [
    {
        "name": "TirePro Auto Care",
        "address": "Al Quoz Industrial Area 3, Dubai, UAE",
        "phone": "+971 04 746 8773",
        "working_hours": "Mon-Sat 09:00-18:00",
        "lat": 25.1320,
        "lng": 55.2350,
    },
    {
        "name": "Wabco Main Branch",
        "address": "Sheikh Zayed Road, Dubai, UAE",
        "phone": "+971 04 123 4567",
        "working_hours": "Mon-Sat 09:00-18:00",
        "lat": 25.2048,
        "lng": 55.2708,
    },
]


class ConsoleSession:
    """Drives one scripted wizard run and narrates each step."""

    def __init__(self) -> None:
        engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        init_db(bind=engine)
        self.db = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
        self.today = date.today()
        self.branches = [Branch(**values) for values in DEMO_BRANCHES]
        self.db.add_all(self.branches)
        self.db.commit()

    def say(self, text: str) -> None:
        print(f"{GREEN}{text}{RESET}")

    def customer(self, text: str) -> None:
        print(f"\n{BLUE}[Customer] {RESET}{text}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def _wizard(self, draft: BookingDraft) -> BookingWizard:
        return BookingWizard(
            draft,
            slot_lookup=lambda branch_id, day: get_available_slots(self.db, branch_id, day),
            submitter=lambda d: submit_booking(self.db, d, today=self.today),
            today=self.today,
        )

    def _seed_taken_slot(self, branch: Branch, day: date, slot: str) -> None:
        """Another customer already holds this slot."""
        self.db.add(Booking(
            car_year="2019", car_make="Nissan", car_model="Patrol", services="Alignment",
            branch_id=branch.id, branch_name=branch.name, booking_date=day, booking_time=slot,
            customer_name="Earlier Customer", customer_email="earlier@example.com",
            customer_phone="+971 50 000 0000", request_type=RequestType.BOOKING.value,
            request_source=RequestSource.SERVICE.value, service_id=7, is_active=True,
        ))
        self.db.commit()

    def _banner(self, title: str) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  {settings.business.name.upper()} BOOKING WIZARD - {title}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

    def _choose_nearest_branch(self, wizard: BookingWizard) -> Branch:
        self.customer("Which branch is closest to me?")
        ranked = list_branches(self.db, *CUSTOMER_LOCATION)
        for branch, distance in ranked:
            self.say(f"  {branch.name} - {distance} km ({branch.address})")
        nearest = ranked[0][0]
        wizard.select_branch(nearest.id, nearest.name)
        self.system_log(f"Branch selected: {nearest.name}")
        return nearest

    def _advance(self, wizard: BookingWizard) -> bool:
        try:
            wizard.advance()
        except DraftValidationError as exc:
            for path, message in exc.errors.items():
                print(f"{RED}  ! {path}: {message}{RESET}")
            return False
        self.system_log(f"Step {wizard.step_number}/{len(wizard.steps)}: {wizard.current_state.value}")
        return True

    def _finish(self, wizard: BookingWizard) -> None:
        self.customer("Submit")
        booking = wizard.submit()
        self.say(f"Thank you! Your reference number is {BOLD}{booking.reference_number}{RESET}")

        message = build_customer_email(build_booking_notification(booking), settings.business)
        self.system_log(f"Customer e-mail queued: '{message.subject}' -> {booking.customer_email}")

        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{DIM}  State trace: {' -> '.join(wizard.get_state_trace())}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

    def run_booking(self) -> None:
        self._banner("Tire booking")
        wizard = self._wizard(BookingDraft(
            request_type=RequestType.BOOKING,
            request_source=RequestSource.TIRE,
            subject_kind=SubjectKind.TIRE,
            subject_id=101,
            services="Michelin Pilot Sport 4 225/45R17",
        ))

        self.customer("Four Michelin Pilot Sport 4 for my 2021 Toyota Camry")
        wizard.set_vehicle("2021", "Toyota", "Camry")
        wizard.set_quantity(4)
        self._advance(wizard)

        branch = self._choose_nearest_branch(wizard)
        self._advance(wizard)

        day = self.today + timedelta(days=3)
        self._seed_taken_slot(branch, day, "10:00")
        self.customer(f"{day.isoformat()}, please")
        slots = wizard.select_date(day)
        self.say(f"Available times: {', '.join(slots)}")

        self.customer("10:00")
        if "10:00" not in slots:
            self.say(f"{YELLOW}Sorry, 10:00 is already taken on that day.{RESET}")
            self.customer("10:30 then")
            wizard.select_time("10:30")
        self._advance(wizard)

        self.customer("Amira Haddad, amira@example.com, +971 50 123 4567")
        wizard.set_customer("Amira Haddad", "amira@example.com", "+971 50 123 4567")
        self._finish(wizard)

    def run_quotation(self) -> None:
        self._banner("Service quotation")
        wizard = self._wizard(BookingDraft(
            request_type=RequestType.QUOTATION,
            request_source=RequestSource.SERVICE,
            subject_kind=SubjectKind.SERVICE,
            subject_id=12,
            services="Brake pad replacement",
        ))

        self.customer("How much for new brake pads on a 2018 Ford Ranger?")
        wizard.set_vehicle("2018", "Ford", "Ranger")
        self._advance(wizard)

        self._choose_nearest_branch(wizard)
        self._advance(wizard)

        self.customer("Omar Khan, omar@example")
        wizard.set_customer("Omar Khan", "omar@example", "+971 55 765 4321")
        if not self._advance_past_customer(wizard):
            self.customer("Sorry, omar@example.com")
            wizard.set_customer("Omar Khan", "omar@example.com", "+971 55 765 4321")
        self._finish(wizard)

    def _advance_past_customer(self, wizard: BookingWizard) -> bool:
        errors = wizard.current_errors()
        for path, message in errors.items():
            print(f"{RED}  ! {path}: {message}{RESET}")
        return not errors

    def run_scenario(self, scenario: str) -> None:
        if scenario == "quotation":
            self.run_quotation()
        else:
            self.run_booking()
        self.db.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline booking wizard demo")
    parser.add_argument(
        "--scenario",
        choices=["booking", "quotation"],
        default="booking",
        help="Which scripted walkthrough to play",
    )
    args = parser.parse_args()
    ConsoleSession().run_scenario(args.scenario)


if __name__ == "__main__":
    main()
