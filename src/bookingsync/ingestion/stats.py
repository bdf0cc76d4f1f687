"""Provider statistics ingestion.

All-time figures come from the precomputed ``provider_stats`` row; the
current-month figures are always recomputed from this month's bookings.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date
from typing import Any

from bookingsync._constants import BOOKINGS, PROVIDER_COLUMN, PROVIDER_STATS
from bookingsync.exceptions import GatewayError
from bookingsync.gateway import Condition, Gateway, eq
from bookingsync.identity import Identity
from bookingsync.ingestion.normalize import parse_row, safe_float
from bookingsync.models._base import parse_date
from bookingsync.models.booking import BookingStatus
from bookingsync.models.stats import MonthlyCounters, ProviderStats


def month_bounds(today: date) -> tuple[date, date]:
    """First day of *today*'s month and first day of the following month."""
    first = today.replace(day=1)
    if first.month == 12:
        return first, first.replace(year=first.year + 1, month=1)
    return first, first.replace(month=first.month + 1)


def reduce_monthly(rows: Iterable[Mapping[str, Any]], today: date) -> MonthlyCounters:
    """Count every in-month booking; only completed ones add to earnings."""
    start, end = month_bounds(today)
    bookings = 0
    earnings = 0.0
    for row in rows:
        try:
            booked_on = parse_date(row.get("booking_date"))
        except ValueError:
            continue
        if booked_on is None or not start <= booked_on < end:
            continue
        bookings += 1
        if BookingStatus(row.get("status") or "unknown") is BookingStatus.COMPLETED:
            earnings += safe_float(row.get("total_amount")) or 0.0
    return MonthlyCounters(monthly_bookings=bookings, monthly_earnings=earnings)


async def fetch_provider_stats(gateway: Gateway, identity: Identity, *, today: date) -> ProviderStats:
    rows = await gateway.query(PROVIDER_STATS, [eq("id", identity.profile_id)])
    if not rows:
        raise GatewayError(
            f"No stats row for provider {identity.profile_id}",
            relation=PROVIDER_STATS,
            code="PGRST116",
        )
    base = parse_row(ProviderStats, rows[0], relation=PROVIDER_STATS)

    start, end = month_bounds(today)
    monthly_rows = await gateway.query(
        BOOKINGS,
        [
            eq(PROVIDER_COLUMN, identity.profile_id),
            Condition("booking_date", start, op="gte"),
            Condition("booking_date", end, op="lt"),
        ],
        columns=("total_amount", "status", "booking_date"),
    )
    return base.with_monthly(reduce_monthly(monthly_rows, today))
