"""Booking list ingestion + parsing."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from bookingsync._constants import BOOKINGS, CUSTOMER_COLUMN, PROFILES, PROVIDER_COLUMN, SERVICES
from bookingsync.exceptions import GatewayError
from bookingsync.gateway import Gateway, Join, Order, eq
from bookingsync.identity import Identity
from bookingsync.ingestion.normalize import embedded, parse_row, safe_str
from bookingsync.models.booking import Booking

_logger = logging.getLogger(__name__)

PROVIDER_VIEW_JOINS: tuple[Join, ...] = (
    Join(SERVICES, ("id", "name", "duration_minutes"), alias="service"),
    Join(PROFILES, ("id", "full_name", "phone", "user_id"), alias="customer", hint="bookings_customer_id_fkey"),
)

CUSTOMER_VIEW_JOINS: tuple[Join, ...] = (
    Join(SERVICES, ("name", "description", "image_url"), alias="service"),
    Join(PROFILES, ("full_name", "phone", "business_name"), alias="provider", hint=PROVIDER_COLUMN),
)


def booking_from_row(row: Mapping[str, Any], *, counterparty_key: str, email: str = "") -> Booking:
    """Flatten a joined booking row into a :class:`Booking`."""
    counterparty = embedded(row, counterparty_key)
    counterparty["email"] = email or safe_str(counterparty.get("email")) or ""
    flattened = {key: value for key, value in row.items() if key not in ("service", counterparty_key)}
    flattened["service"] = embedded(row, "service")
    flattened["counterparty"] = counterparty
    return parse_row(Booking, flattened, relation=BOOKINGS)


async def resolve_email(gateway: Gateway, user_ref: str | None) -> str:
    """Look up the email for *user_ref*; any gateway failure yields ``""``."""
    if not user_ref:
        return ""
    try:
        record = await gateway.lookup_identity_record(user_ref)
    except GatewayError:
        _logger.debug("Identity lookup failed user_ref=%s", user_ref, exc_info=True)
        return ""
    email = record.get("email")
    return email if isinstance(email, str) else ""


async def fetch_provider_bookings(gateway: Gateway, identity: Identity) -> list[Booking]:
    """Bookings where *identity* is the provider, earliest date first, with customer emails."""
    rows = await gateway.query(
        BOOKINGS,
        [eq(PROVIDER_COLUMN, identity.profile_id)],
        joins=PROVIDER_VIEW_JOINS,
        order=Order("booking_date", ascending=True),
    )
    emails = await asyncio.gather(
        *(resolve_email(gateway, safe_str(embedded(row, "customer").get("user_id"))) for row in rows)
    )
    return [
        booking_from_row(row, counterparty_key="customer", email=email)
        for row, email in zip(rows, emails, strict=True)
    ]


async def fetch_customer_bookings(gateway: Gateway, identity: Identity) -> list[Booking]:
    """Bookings where *identity* is the customer, newest first."""
    rows = await gateway.query(
        BOOKINGS,
        [eq(CUSTOMER_COLUMN, identity.profile_id)],
        joins=CUSTOMER_VIEW_JOINS,
        order=Order("created_at", ascending=False),
    )
    return [booking_from_row(row, counterparty_key="provider") for row in rows]
