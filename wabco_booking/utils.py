"""Shared utilities used across the booking core."""

import re
from datetime import date, datetime
from typing import Union


def normalize_phone(value: str) -> str:
    """Normalize a phone number by stripping everything except digits and a leading +.

    Examples:
        >>> normalize_phone("050 123 4567")
        '0501234567'
        >>> normalize_phone("+971 (4) 746-8773")
        '+97147468773'
    """
    value = value.strip()
    if value.startswith("+"):
        return "+" + re.sub(r"[^\d]", "", value[1:])
    return re.sub(r"[^\d]", "", value)


def parse_iso_date(value: Union[str, date]) -> date:
    """Parse a ``YYYY-MM-DD`` string (or pass a date through).

    Raises:
        ValueError: If the value is not a calendar date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(str(value).strip(), "%Y-%m-%d").date()
