"""Smoke tests for the scripted console walkthroughs."""

from console_demo import ConsoleSession
from wabco_booking.db.models import Booking


class TestConsoleScenarios:
    def test_booking_scenario_moves_off_taken_slot(self, capsys):
        session = ConsoleSession()
        session.run_booking()
        out = capsys.readouterr().out

        assert "WM-" in out
        assert "10:00 is already taken" in out
        assert "submitted" in out

        booking = session.db.query(Booking).filter(Booking.customer_name == "Amira Haddad").one()
        assert booking.booking_time == "10:30"
        assert booking.branch_name == "TirePro Auto Care"
        assert booking.quantity == 4
        session.db.close()

    def test_quotation_scenario_recovers_from_bad_email(self, capsys):
        ConsoleSession().run_scenario("quotation")
        out = capsys.readouterr().out

        assert "QT-" in out
        assert "customer.email: Please enter a valid email address" in out
        assert "Quotation Request has been submitted" in out
