"""Booking models."""

from __future__ import annotations

from pydantic import Field

from bookingsync.models._base import RowDate, SyncBaseModel, SyncEnum, Timestamp


class BookingStatus(SyncEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"


class PaymentStatus(SyncEnum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"
    UNKNOWN = "unknown"


class ServiceRef(SyncBaseModel):
    """Denormalized service columns joined onto a booking."""

    id: str | None = None
    name: str = ""
    duration_minutes: int | None = None
    description: str | None = None
    image_url: str | None = None


class Counterparty(SyncBaseModel):
    """The other side of a booking: the customer (provider view) or the provider (customer view)."""

    id: str | None = None
    full_name: str = ""
    phone: str | None = None
    email: str = ""
    business_name: str | None = None
    user_id: str | None = Field(default=None, exclude=True)
    """Internal user reference used to resolve ``email``; never exposed."""


class Booking(SyncBaseModel):
    """A scheduled service engagement as seen by one identity."""

    id: str
    booking_date: RowDate
    booking_time: str
    total_amount: float = 0.0
    status: BookingStatus = BookingStatus.PENDING
    payment_status: PaymentStatus | None = None
    customer_notes: str | None = None
    provider_notes: str | None = None
    customer_address: str = ""
    created_at: Timestamp = None
    updated_at: Timestamp = None
    service_id: str | None = None
    provider_id: str | None = None
    customer_id: str | None = None
    service: ServiceRef = Field(default_factory=ServiceRef)
    counterparty: Counterparty = Field(default_factory=Counterparty)
