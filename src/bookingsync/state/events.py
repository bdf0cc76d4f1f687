"""Normalized change events.

Push channels convert incoming notifications into these events. The payload
is kept only for diagnostics; every event is treated as "something changed"
and triggers a full refetch.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ChangeType(StrEnum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    UNKNOWN = "UNKNOWN"


class ChangeEvent(BaseModel):
    """A row-change notification delivered on a subscribed channel."""

    model_config = ConfigDict(frozen=True)

    channel_key: str
    relation: str
    change_type: ChangeType = ChangeType.UNKNOWN
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    raw: dict[str, Any] = Field(default_factory=dict, description="Original payload (as received)")

    @field_validator("change_type", mode="before")
    @classmethod
    def _coerce_type(cls, value: Any) -> ChangeType:
        if isinstance(value, ChangeType):
            return value
        try:
            return ChangeType(str(value).upper())
        except ValueError:
            return ChangeType.UNKNOWN
