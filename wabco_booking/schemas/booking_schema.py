"""Booking and availability wire models (camelCase JSON, snake_case Python)."""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from wabco_booking.schemas.branch_schema import BranchResponse
from wabco_booking.schemas.draft_schema import (
    BookingDraft,
    CustomerInfo,
    RequestSource,
    RequestType,
    SubjectKind,
    Vehicle,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class VehicleIn(CamelModel):
    year: str = ""
    make: str = ""
    model: str = ""


class CustomerIn(CamelModel):
    name: str = ""
    email: str = ""
    phone: str = ""


class BookingCreate(CamelModel):
    """A finished draft as submitted by the storefront."""
    request_type: RequestType
    request_source: RequestSource = RequestSource.SERVICE
    subject_kind: Optional[SubjectKind] = None
    subject_id: Optional[int] = None
    quantity: int = 1
    services: str = ""
    vehicle: VehicleIn = Field(default_factory=VehicleIn)
    branch_id: Optional[int] = None
    branch_name: Optional[str] = None
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[str] = None
    customer: CustomerIn = Field(default_factory=CustomerIn)

    def to_draft(self) -> BookingDraft:
        kind = self.subject_kind or SubjectKind(self.request_source.value)
        return BookingDraft(
            request_type=self.request_type,
            request_source=self.request_source,
            subject_kind=kind,
            subject_id=self.subject_id,
            quantity=self.quantity,
            services=self.services,
            vehicle=Vehicle(**self.vehicle.model_dump()),
            branch_id=self.branch_id,
            branch_name=self.branch_name,
            scheduled_date=self.scheduled_date,
            scheduled_time=self.scheduled_time,
            customer=CustomerInfo(**self.customer.model_dump()),
        )


class BookingUpdate(CamelModel):
    """Administrative patch. Only fields that were sent are applied."""
    branch_id: Optional[int] = None
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[str] = None
    services: Optional[str] = None
    quantity: Optional[int] = Field(default=None, ge=1)
    car_year: Optional[str] = None
    car_make: Optional[str] = None
    car_model: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None


class BookingResponse(CamelModel):
    """Persisted booking as returned to the storefront and admin UI."""
    id: int
    reference_number: str
    request_type: RequestType
    request_source: RequestSource
    product_id: Optional[int] = None
    service_id: Optional[int] = None
    quantity: Optional[int] = None
    services: str = ""
    car_year: str
    car_make: str
    car_model: str
    branch_id: int
    branch_name: str
    scheduled_date: Optional[date] = Field(
        default=None, validation_alias="booking_date", serialization_alias="scheduledDate"
    )
    scheduled_time: Optional[str] = Field(
        default=None, validation_alias="booking_time", serialization_alias="scheduledTime"
    )
    customer_name: str
    customer_email: str
    customer_phone: str
    is_active: bool
    created_at: datetime
    updated_at: datetime
    branch: Optional[BranchResponse] = None


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int


class BookingListResponse(CamelModel):
    bookings: list[BookingResponse]
    pagination: Pagination


class AvailableSlotsResponse(CamelModel):
    """Slot partition for one branch and date."""
    all_slots: list[str]
    booked_slots: list[str]
    available_slots: list[str]


class StepValidationResponse(CamelModel):
    valid: bool
    errors: dict[str, str] = Field(default_factory=dict)
