"""HTML e-mail bodies for booking and quotation notifications."""

from dataclasses import dataclass
from html import escape
from typing import Optional

from wabco_booking.config import BusinessConfig
from wabco_booking.schemas.draft_schema import RequestSource, RequestType

THEME = {
    "primary": "#0a1c58",
    "muted": "#666",
    "panel": "#f8f9fa",
    "info": "#e8f4fd",
    "warning_bg": "#fff3cd",
    "warning_fg": "#856404",
}


@dataclass
class EmailMessage:
    subject: str
    html: str


@dataclass
class BookingNotification:
    """Everything the templates need; built from a persisted booking."""
    reference_number: str
    request_type: RequestType
    request_source: RequestSource
    customer_name: str
    customer_email: str
    subject_label: str
    vehicle: str
    branch_name: str
    branch_address: str = ""
    branch_phone: str = ""
    quantity: Optional[int] = None
    booking_date: Optional[str] = None
    booking_time: Optional[str] = None

    @property
    def is_booking(self) -> bool:
        return self.request_type == RequestType.BOOKING


def _noun(source: RequestSource) -> str:
    return "Tire" if source == RequestSource.TIRE else "Service"


def _rows(pairs: list[tuple[str, Optional[str]]]) -> str:
    cells = []
    for label, value in pairs:
        if value in (None, ""):
            continue
        cells.append(
            f'<tr><td style="padding: 8px 0; font-weight: bold; color: #555;">{escape(label)}:</td>'
            f'<td style="padding: 8px 0; color: #333;">{escape(str(value))}</td></tr>'
        )
    return "".join(cells)


def _detail_rows(n: BookingNotification) -> list[tuple[str, Optional[str]]]:
    if n.request_source == RequestSource.TIRE:
        rows = [("Tire", n.subject_label), ("Quantity", str(n.quantity or 1))]
    else:
        rows = [("Services", n.subject_label)]
    rows.append(("Vehicle", n.vehicle))
    rows.append(("Branch", n.branch_name))
    if n.is_booking and n.booking_date and n.booking_time:
        rows.append(("Date & Time", f"{n.booking_date} at {n.booking_time}"))
    return rows


def _layout(title: str, header_note: str, inner: str, business: BusinessConfig) -> str:
    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{escape(title)}</title></head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
  <div style="background-color: {THEME['panel']}; padding: 30px; border-radius: 8px;">
    <div style="text-align: center; margin-bottom: 30px;">
      <h1 style="color: {THEME['primary']}; margin: 0; font-size: 24px;">{escape(business.name)}</h1>
      <p style="color: {THEME['muted']}; margin: 10px 0 0 0;">{escape(header_note)}</p>
    </div>
    <div style="background-color: white; padding: 25px; border-radius: 6px;">
      {inner}
    </div>
  </div>
</body>
</html>"""


def build_customer_email(n: BookingNotification, business: BusinessConfig) -> EmailMessage:
    noun = _noun(n.request_source)
    if n.is_booking:
        subject = f"Your {noun} Booking is Confirmed"
        intro = f"Your {noun.lower()} booking has been confirmed successfully."
        closing = (
            "Please arrive 10 minutes before your scheduled appointment time. "
            "Our team will be ready to assist you."
        )
    else:
        subject = f"Your {noun} Quotation Request has been submitted"
        intro = (
            f"Thank you for your {noun.lower()} quotation request. "
            "We have received your inquiry and will process it promptly."
        )
        closing = (
            "Our team will review your request and contact you within 24 hours "
            "with detailed pricing and availability information."
        )

    rows = [("Reference Number", n.reference_number)] + _detail_rows(n) + [
        ("Address", n.branch_address),
        ("Phone", n.branch_phone),
    ]
    inner = f"""
      <h2 style="color: {THEME['primary']}; margin-top: 0;">Dear {escape(n.customer_name)},</h2>
      <p style="font-size: 16px;">{escape(intro)}</p>
      <table style="width: 100%; border-collapse: collapse;">{_rows(rows)}</table>
      <p style="font-size: 16px;">{escape(closing)}</p>
      <div style="background-color: {THEME['info']}; padding: 20px; border-radius: 6px;">
        <p style="margin: 5px 0;"><strong>Phone:</strong> {escape(business.contact_phone)}</p>
        <p style="margin: 5px 0;"><strong>Email:</strong> {escape(business.contact_email)}</p>
        <p style="margin: 5px 0;"><strong>Website:</strong> {escape(business.website)}</p>
      </div>
      <p>Best regards,<br><strong>The {escape(business.name)} Team</strong></p>"""
    return EmailMessage(subject=subject, html=_layout(subject, business.tagline, inner, business))


def build_admin_email(n: BookingNotification, business: BusinessConfig) -> EmailMessage:
    noun = _noun(n.request_source)
    if n.is_booking:
        subject = f"New {noun} Booking Received"
        action = (
            "Please prepare for the customer appointment and ensure all necessary "
            "equipment is available."
        )
    else:
        subject = f"New {noun} Quotation Request Received"
        action = (
            "Please review the quotation request and contact the customer within "
            "24 hours with pricing details."
        )

    rows = [
        ("Reference Number", n.reference_number),
        ("Customer Name", n.customer_name),
        ("Customer Email", n.customer_email),
    ] + _detail_rows(n)
    inner = f"""
      <h2 style="color: {THEME['primary']}; margin-top: 0;">{escape(subject)}</h2>
      <table style="width: 100%; border-collapse: collapse;">{_rows(rows)}</table>
      <div style="background-color: {THEME['warning_bg']}; padding: 20px; border-radius: 6px;">
        <h4 style="color: {THEME['warning_fg']}; margin-top: 0;">Action Required</h4>
        <p style="color: {THEME['warning_fg']};">{escape(action)}</p>
      </div>"""
    return EmailMessage(subject=subject, html=_layout(subject, "System Notification", inner, business))
