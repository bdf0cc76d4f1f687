"""Synchronized domain views: provider bookings, customer bookings, provider stats."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import date
from typing import Any

from bookingsync._client import commands as _commands
from bookingsync._client.sync import DomainSync
from bookingsync._constants import (
    BOOKINGS,
    CUSTOMER_BOOKINGS_CHANNEL,
    CUSTOMER_COLUMN,
    FETCH_BOOKINGS_FAILED,
    FETCH_STATS_FAILED,
    PROVIDER_BOOKINGS_CHANNEL,
    PROVIDER_COLUMN,
    PROVIDER_STATS_CHANNEL,
)
from bookingsync.gateway import Gateway
from bookingsync.guard import Notifier
from bookingsync.identity import Identity
from bookingsync.ingestion.bookings import fetch_customer_bookings, fetch_provider_bookings
from bookingsync.ingestion.stats import fetch_provider_stats
from bookingsync.models.booking import Booking, BookingStatus
from bookingsync.models.requests import BookingDraft, BookingPatch
from bookingsync.models.stats import ProviderStats


class ProviderBookings(DomainSync[list[Booking]]):
    """Bookings received by the current provider, earliest date first."""

    channel_name = PROVIDER_BOOKINGS_CHANNEL
    relation = BOOKINGS
    scope_column = PROVIDER_COLUMN
    fetch_error = FETCH_BOOKINGS_FAILED

    def __init__(
        self,
        gateway: Gateway,
        *,
        realtime_enabled: bool = True,
        notifier: Notifier | None = None,
    ) -> None:
        super().__init__(gateway, initial=[], realtime_enabled=realtime_enabled, notifier=notifier)

    async def _load(self, identity: Identity) -> list[Booking]:
        return await fetch_provider_bookings(self._gateway, identity)

    async def update_status(self, booking_id: str, status: BookingStatus | str, notes: str | None = None) -> None:
        """Set the status (and optionally provider notes) of one of this provider's bookings."""
        await _commands.update_booking_status(
            self, booking_id=booking_id, status=status, notes=notes, owner_column=PROVIDER_COLUMN
        )

    async def update(self, booking_id: str, patch: BookingPatch | Mapping[str, Any]) -> None:
        await _commands.update_booking(self, booking_id=booking_id, patch=patch, owner_column=PROVIDER_COLUMN)


class CustomerBookings(DomainSync[list[Booking]]):
    """Bookings made by the current customer, newest first."""

    channel_name = CUSTOMER_BOOKINGS_CHANNEL
    relation = BOOKINGS
    scope_column = CUSTOMER_COLUMN
    fetch_error = FETCH_BOOKINGS_FAILED

    def __init__(
        self,
        gateway: Gateway,
        *,
        realtime_enabled: bool = True,
        notifier: Notifier | None = None,
    ) -> None:
        super().__init__(gateway, initial=[], realtime_enabled=realtime_enabled, notifier=notifier)

    async def _load(self, identity: Identity) -> list[Booking]:
        return await fetch_customer_bookings(self._gateway, identity)

    async def create(self, draft: BookingDraft | Mapping[str, Any]) -> dict[str, Any]:
        """Insert a pending booking for the current customer and refetch.

        Raises
        ------
        AuthenticationError
            No identity is bound; nothing is sent to the gateway.
        WriteRejectedError
            The gateway refused the insert; the cache is untouched.
        """
        return await _commands.create_booking(self, draft)

    async def update_status(self, booking_id: str, status: BookingStatus | str, notes: str | None = None) -> None:
        await _commands.update_booking_status(
            self, booking_id=booking_id, status=status, notes=notes, owner_column=CUSTOMER_COLUMN
        )

    async def update(self, booking_id: str, patch: BookingPatch | Mapping[str, Any]) -> None:
        await _commands.update_booking(self, booking_id=booking_id, patch=patch, owner_column=CUSTOMER_COLUMN)

    async def cancel(self, booking_id: str, reason: str | None = None) -> None:
        await _commands.cancel_booking(self, booking_id=booking_id, reason=reason, owner_column=CUSTOMER_COLUMN)


class ProviderStatsSync(DomainSync[ProviderStats]):
    """All-time and current-month figures for the current provider.

    Refreshes whenever one of the provider's bookings changes.
    """

    channel_name = PROVIDER_STATS_CHANNEL
    relation = BOOKINGS
    scope_column = PROVIDER_COLUMN
    fetch_error = FETCH_STATS_FAILED

    def __init__(
        self,
        gateway: Gateway,
        *,
        realtime_enabled: bool = True,
        notifier: Notifier | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        super().__init__(gateway, initial=ProviderStats(), realtime_enabled=realtime_enabled, notifier=notifier)
        self._today = today

    async def _load(self, identity: Identity) -> ProviderStats:
        return await fetch_provider_stats(self._gateway, identity, today=self._today())
