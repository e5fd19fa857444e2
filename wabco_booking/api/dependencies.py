"""FastAPI dependencies shared by the routers."""

import hmac
import logging
from functools import lru_cache
from typing import Optional

from fastapi import Header, HTTPException, Request

from wabco_booking.db.database import get_db
from wabco_booking.tools.notifications import NotificationDispatcher

logger = logging.getLogger(__name__)

__all__ = ["get_db", "get_notification_dispatcher", "require_admin"]


@lru_cache(maxsize=1)
def get_notification_dispatcher() -> NotificationDispatcher:
    # One dispatcher per process so the Graph token cache is shared.
    return NotificationDispatcher()


def require_admin(
    request: Request,
    x_admin_key: Optional[str] = Header(default=None, alias="X-Admin-Key"),
) -> None:
    """Guard administrative routes when an admin key is configured."""
    expected = request.app.state.admin_api_key
    if not expected:
        return
    if not x_admin_key or not hmac.compare_digest(x_admin_key, expected):
        logger.warning("Rejected admin request to %s", request.url.path)
        raise HTTPException(status_code=401, detail="Invalid or missing admin key")
