"""Provider statistics models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from bookingsync.models._base import SyncBaseModel


class MonthlyCounters(BaseModel):
    """Current-calendar-month aggregate computed client-side."""

    model_config = ConfigDict(frozen=True)

    monthly_bookings: int = 0
    monthly_earnings: float = 0.0


class ProviderStats(SyncBaseModel):
    """All-time aggregates from the precomputed stats row merged with monthly counters."""

    total_services: int = 0
    total_bookings: int = 0
    completed_bookings: int = 0
    total_earnings: float = 0.0
    average_rating: float = 0.0
    total_reviews: int = 0
    monthly_earnings: float = 0.0
    monthly_bookings: int = 0

    def with_monthly(self, counters: MonthlyCounters) -> ProviderStats:
        """Return a copy whose monthly fields are overwritten by *counters*."""
        return self.model_copy(update=counters.model_dump())
