"""Pydantic request models for mutation entrypoints.

These models provide a consistent "validate → normalize → execute" flow and
reject malformed input before any gateway call is issued.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from bookingsync.models.booking import BookingStatus


class BookingIdRequest(BaseModel):
    """Request containing a booking id."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
        str_strip_whitespace=True,
    )

    booking_id: str

    @field_validator("booking_id")
    @classmethod
    def _id_non_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("booking_id must be non-empty")
        return value


class BookingPatch(BaseModel):
    """Partial update of a booking.

    The set of updatable fields is closed; any other key is rejected.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    status: BookingStatus
    provider_notes: str | None = None

    @field_validator("status", mode="before")
    @classmethod
    def _known_status(cls, value: Any) -> Any:
        if BookingStatus(value) is BookingStatus.UNKNOWN:
            raise ValueError(f"unsupported booking status {value!r}")
        return value

    @field_validator("provider_notes")
    @classmethod
    def _blank_notes_to_none(cls, value: str | None) -> str | None:
        return value or None

    def to_row(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class BookingDraft(BaseModel):
    """Customer-supplied fields for a new booking."""

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    service_id: str = Field(min_length=1)
    provider_id: str = Field(min_length=1)
    booking_date: date
    booking_time: str = Field(min_length=1)
    total_amount: float = Field(ge=0)
    customer_address: str = Field(min_length=1)
    customer_notes: str | None = None

    def to_row(self, *, customer_id: str) -> dict[str, Any]:
        row = self.model_dump(mode="json")
        row.update(
            customer_id=customer_id,
            status=BookingStatus.PENDING.value,
            payment_status="pending",
        )
        return row
