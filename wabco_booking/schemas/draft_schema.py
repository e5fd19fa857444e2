"""Booking draft data models and request discriminators."""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional


class RequestType(str, Enum):
    """Which entry route the customer took."""
    BOOKING = "booking"
    QUOTATION = "quotation"


class RequestSource(str, Enum):
    """Selects the notification template and admin grouping."""
    TIRE = "tire"
    SERVICE = "service"


class SubjectKind(str, Enum):
    """What the draft's subject_id refers to."""
    TIRE = "tire"
    SERVICE = "service"


@dataclass
class Vehicle:
    year: str = ""
    make: str = ""
    model: str = ""

    def describe(self) -> str:
        return " ".join(part.strip() for part in (self.year, self.make, self.model) if part.strip())


@dataclass
class CustomerInfo:
    name: str = ""
    email: str = ""
    phone: str = ""


@dataclass
class BookingDraft:
    """
    Client-held booking data accumulated across the wizard steps.

    Nothing here is persisted until submission. Each wizard step owns a
    subset of these fields and is the only place that writes them.
    """
    request_type: RequestType = RequestType.BOOKING
    request_source: RequestSource = RequestSource.SERVICE
    subject_kind: SubjectKind = SubjectKind.SERVICE
    subject_id: Optional[int] = None
    quantity: int = 1
    services: str = ""
    vehicle: Vehicle = field(default_factory=Vehicle)
    branch_id: Optional[int] = None
    branch_name: Optional[str] = None
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[str] = None
    customer: CustomerInfo = field(default_factory=CustomerInfo)

    @property
    def is_quotation(self) -> bool:
        return self.request_type == RequestType.QUOTATION
