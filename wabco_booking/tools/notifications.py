"""
Customer and admin notifications for new bookings and quotations.

Mail is sent through Microsoft Graph with an app-only (client
credentials) token. Delivery is best effort: the booking is already
committed when this runs, so failures are logged and reported in the
result, never raised.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Optional

import httpx

from wabco_booking.config import BusinessConfig, EmailConfig, settings
from wabco_booking.db.models import Booking
from wabco_booking.schemas.draft_schema import RequestSource, RequestType, Vehicle
from wabco_booking.tools.email_templates import (
    BookingNotification,
    EmailMessage,
    build_admin_email,
    build_customer_email,
)

logger = logging.getLogger(__name__)

TOKEN_URL = "https://login.microsoftonline.com/{tenant_id}/oauth2/v2.0/token"
SEND_MAIL_URL = "https://graph.microsoft.com/v1.0/users/{sender}/sendMail"
GRAPH_SCOPE = "https://graph.microsoft.com/.default"

# Refresh the token a little before Graph says it expires.
TOKEN_EXPIRY_MARGIN_SEC = 60


@dataclass
class NotificationResult:
    customer_sent: bool
    admin_sent: bool

    @property
    def all_sent(self) -> bool:
        return self.customer_sent and self.admin_sent


def build_booking_notification(booking: Booking) -> BookingNotification:
    """Collect the template fields from a persisted booking and its branch."""
    source = RequestSource(booking.request_source)
    if source == RequestSource.TIRE:
        label = booking.services or f"Tire #{booking.product_id}"
    else:
        label = booking.services or f"Service #{booking.service_id}"

    branch = booking.branch
    return BookingNotification(
        reference_number=booking.reference_number,
        request_type=RequestType(booking.request_type),
        request_source=source,
        customer_name=booking.customer_name,
        customer_email=booking.customer_email,
        subject_label=label,
        vehicle=Vehicle(booking.car_year, booking.car_make, booking.car_model).describe(),
        branch_name=booking.branch_name,
        branch_address=branch.address if branch is not None else "",
        branch_phone=branch.phone if branch is not None else "",
        quantity=booking.quantity,
        booking_date=booking.booking_date.isoformat() if booking.booking_date else None,
        booking_time=booking.booking_time,
    )


class NotificationDispatcher:
    """
    Sends the customer confirmation and the admin alert concurrently.

    Each message is retried independently with a linear backoff, so one
    recipient failing does not hold back or resend the other.
    """

    def __init__(
        self,
        config: EmailConfig = settings.email,
        business: BusinessConfig = settings.business,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config
        self.business = business
        self._transport = transport
        self._token: Optional[str] = None
        self._token_expires_at = 0.0
        self._token_lock = asyncio.Lock()

    async def send_booking_notification(
        self, kind: RequestSource, payload: BookingNotification
    ) -> NotificationResult:
        if not self.config.enabled:
            logger.warning(
                "E-mail not configured; skipping notifications for %s", payload.reference_number
            )
            return NotificationResult(customer_sent=False, admin_sent=False)

        payload.request_source = RequestSource(kind)
        customer_message = build_customer_email(payload, self.business)
        admin_message = build_admin_email(payload, self.business)

        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self.config.timeout_sec
            ) as client:
                customer_sent, admin_sent = await asyncio.gather(
                    self._deliver(client, payload.customer_email, customer_message, "customer"),
                    self._deliver(client, self.config.admin_address, admin_message, "admin"),
                )
        except Exception:
            logger.exception("Notification dispatch failed for %s", payload.reference_number)
            return NotificationResult(customer_sent=False, admin_sent=False)

        result = NotificationResult(customer_sent=customer_sent, admin_sent=admin_sent)
        if result.all_sent:
            logger.info("Notifications sent for %s", payload.reference_number)
        else:
            logger.error(
                "Notifications incomplete for %s: customer=%s admin=%s",
                payload.reference_number, customer_sent, admin_sent,
            )
        return result

    async def _deliver(
        self, client: httpx.AsyncClient, recipient: str, message: EmailMessage, role: str
    ) -> bool:
        attempts = self.config.max_attempts
        for attempt in range(1, attempts + 1):
            try:
                await self._send_mail(client, recipient, message)
                return True
            except (httpx.HTTPError, KeyError, ValueError) as exc:
                logger.warning(
                    "Sending %s e-mail failed (attempt %d/%d): %s", role, attempt, attempts, exc
                )
                if isinstance(exc, httpx.HTTPStatusError) and exc.response.status_code == 401:
                    self._token = None
                if attempt < attempts:
                    await asyncio.sleep(self.config.retry_backoff_sec * attempt)
        return False

    async def _send_mail(
        self, client: httpx.AsyncClient, recipient: str, message: EmailMessage
    ) -> None:
        token = await self._access_token(client)
        body = {
            "message": {
                "subject": message.subject,
                "body": {"contentType": "HTML", "content": message.html},
                "toRecipients": [{"emailAddress": {"address": recipient}}],
            },
            "saveToSentItems": True,
        }
        response = await client.post(
            SEND_MAIL_URL.format(sender=self.config.sender_email),
            json=body,
            headers={"Authorization": f"Bearer {token}"},
        )
        response.raise_for_status()

    async def _access_token(self, client: httpx.AsyncClient) -> str:
        async with self._token_lock:
            if self._token and time.monotonic() < self._token_expires_at:
                return self._token

            response = await client.post(
                TOKEN_URL.format(tenant_id=self.config.tenant_id),
                data={
                    "client_id": self.config.client_id,
                    "client_secret": self.config.client_secret,
                    "scope": GRAPH_SCOPE,
                    "grant_type": "client_credentials",
                },
            )
            response.raise_for_status()
            data = response.json()
            self._token = data["access_token"]
            expires_in = float(data.get("expires_in", 3600))
            self._token_expires_at = (
                time.monotonic() + max(expires_in - TOKEN_EXPIRY_MARGIN_SEC, 0.0)
            )
            return self._token
