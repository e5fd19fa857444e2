from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from wabco_booking.db.database import Base
from wabco_booking.schemas.draft_schema import RequestType

REFERENCE_PREFIXES: dict[RequestType, str] = {
    RequestType.BOOKING: "WM",
    RequestType.QUOTATION: "QT",
}
REFERENCE_DIGITS = 6


def format_reference_number(request_type: RequestType, booking_id: int) -> str:
    """Human reference: ``WM-000123`` for bookings, ``QT-000123`` for quotations."""
    prefix = REFERENCE_PREFIXES[RequestType(request_type)]
    return f"{prefix}-{booking_id:0{REFERENCE_DIGITS}d}"


class Branch(Base):
    __tablename__ = "branches"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    address = Column(Text, nullable=False)
    phone = Column(String(50), nullable=False)
    working_hours = Column(String(255), nullable=False, default="")
    lat = Column(Float, nullable=True)
    lng = Column(Float, nullable=True)
    subdomain = Column(String(100), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    bookings = relationship("Booking", back_populates="branch", passive_deletes="all")

    def __repr__(self) -> str:
        return f"<Branch id={self.id} name={self.name!r}>"


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        # One active appointment per branch/date/slot; quotations and
        # soft-deleted rows never hold a slot.
        Index(
            "uq_bookings_active_slot",
            "branch_id",
            "booking_date",
            "booking_time",
            unique=True,
            sqlite_where=text("is_active = 1 AND request_type = 'booking'"),
            postgresql_where=text("is_active AND request_type = 'booking'"),
        ),
        Index("ix_bookings_branch_date", "branch_id", "booking_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    car_year = Column(String(10), nullable=False)
    car_make = Column(String(100), nullable=False)
    car_model = Column(String(100), nullable=False)
    services = Column(Text, nullable=False, default="")
    branch_id = Column(
        Integer, ForeignKey("branches.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    branch_name = Column(String(255), nullable=False)  # snapshot taken at creation
    booking_date = Column(Date, nullable=True)
    booking_time = Column(String(5), nullable=True)  # HH:MM, null for quotations
    customer_name = Column(String(255), nullable=False)
    customer_email = Column(String(255), nullable=False, index=True)
    customer_phone = Column(String(50), nullable=False)
    request_type = Column(String(20), nullable=False, default=RequestType.BOOKING.value)
    request_source = Column(String(20), nullable=False, default="service")
    product_id = Column(Integer, nullable=True)
    service_id = Column(Integer, nullable=True)
    quantity = Column(Integer, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    branch = relationship("Branch", back_populates="bookings")

    @property
    def reference_number(self) -> str:
        return format_reference_number(RequestType(self.request_type), self.id)

    @property
    def holds_slot(self) -> bool:
        return bool(self.is_active) and self.request_type == RequestType.BOOKING.value

    def __repr__(self) -> str:
        return f"<Booking id={self.id} {self.request_type} branch={self.branch_id}>"
