"""Base model and enum for gateway rows.

Every row model inherits from :class:`SyncBaseModel` which provides:

* A ``model_validator(mode="before")`` that drops ``None`` and blank
  strings so the field default is used.
* A ``raw`` dict that captures the original row.

Status enums inherit from :class:`SyncEnum` which requires an ``UNKNOWN``
member and a ``_missing_`` hook that returns ``UNKNOWN`` for any value the
remote schema sends without a mapped member.
"""

from __future__ import annotations

import enum
from datetime import UTC, date, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator


def parse_timestamp(value: Any) -> datetime | None:
    """Coerce an ISO-8601 string (``Z`` suffix allowed) to an aware datetime."""
    if value is None or isinstance(value, datetime):
        if isinstance(value, datetime) and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value
    text = str(value).strip()
    if not text:
        return None
    parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def parse_date(value: Any) -> date | None:
    """Coerce ``YYYY-MM-DD`` (or a full timestamp) to a :class:`date`."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    return date.fromisoformat(text[:10])


Timestamp = Annotated[datetime | None, BeforeValidator(parse_timestamp)]
"""Annotated type that coerces ISO strings to UTC-aware datetimes."""

RowDate = Annotated[date, BeforeValidator(parse_date)]


class SyncEnum(enum.StrEnum):
    """Base for remote status enums.

    Every subclass **must** define ``UNKNOWN = "unknown"``.
    """

    @classmethod
    def _missing_(cls, value: object) -> SyncEnum:
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value == lowered:
                    return member
        unknown: SyncEnum = cls.UNKNOWN  # type: ignore[attr-defined]
        return unknown


class SyncBaseModel(BaseModel):
    """Base for models parsed from gateway rows."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    raw: dict[str, Any] = Field(default_factory=dict, exclude=True, repr=False)
    """Original gateway row."""

    @model_validator(mode="before")
    @classmethod
    def _clean_row(cls, values: Any) -> Any:
        """Drop empty values and stash the raw row."""
        if not isinstance(values, dict):
            return values
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, str) and not value.strip():
                continue
            cleaned[key] = value
        # Keep the caller's raw when constructing with kwargs.
        if "raw" not in values:
            cleaned["raw"] = dict(values)
        return cleaned
