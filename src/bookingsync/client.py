"""High-level async client wiring the booking domains to one gateway."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import date
from typing import Any

import aiohttp

from bookingsync._realtime import RealtimeRuntime
from bookingsync._transport import RestTransport
from bookingsync.config import SyncConfig
from bookingsync.domains import CustomerBookings, ProviderBookings, ProviderStatsSync
from bookingsync.exceptions import BookingSyncError
from bookingsync.gateway import Gateway, RemoteGateway
from bookingsync.guard import AccessDecision, AccessGuard, Notifier
from bookingsync.identity import Identity, IdentityProvider, IdentityState
from bookingsync.state.cart import Cart

_logger = logging.getLogger(__name__)


class BookingSyncClient:
    """Async client keeping booking views in sync with the remote store.

    Usage::

        async with BookingSyncClient(config, identity_provider=auth) as client:
            client.provider_bookings.data
            await client.customer_bookings.create(draft)

    Every domain follows the identity supplied by *identity_provider*: a
    sign-in subscribes and fetches, a sign-out or account switch tears
    down the old channels and discards cached data.
    """

    def __init__(
        self,
        config: SyncConfig,
        *,
        identity_provider: IdentityProvider | None = None,
        gateway: Gateway | None = None,
        notifier: Notifier | None = None,
        http_session: aiohttp.ClientSession | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._config = config
        self._identity_provider = identity_provider or IdentityProvider(loading=False)
        self._notifier = notifier
        self._external_session = http_session is not None
        self._http_session = http_session
        self._injected_gateway = gateway
        self._gateway: Gateway | None = gateway
        self._realtime: RealtimeRuntime | None = None
        self._unwatch: Callable[[], None] | None = None
        self._today = today

        self.cart = Cart()
        self.guard = AccessGuard(notifier)
        self.provider_bookings: ProviderBookings | None = None
        self.customer_bookings: CustomerBookings | None = None
        self.provider_stats: ProviderStatsSync | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> BookingSyncClient:
        if self._injected_gateway is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            transport = RestTransport(self._config, self._http_session)
            if self._config.realtime_enabled:
                self._realtime = RealtimeRuntime(self._config, self._http_session, logger=_logger)
            self._gateway = RemoteGateway(transport, self._realtime)

        gateway = self._require_gateway()
        options: dict[str, Any] = {"realtime_enabled": self._config.realtime_enabled, "notifier": self._notifier}
        self.provider_bookings = ProviderBookings(gateway, **options)
        self.customer_bookings = CustomerBookings(gateway, **options)
        self.provider_stats = ProviderStatsSync(gateway, today=self._today, **options)

        self._unwatch = self._identity_provider.watch(self._on_identity)
        await self._bind_all(self._identity_provider.identity)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if self._unwatch is not None:
            self._unwatch()
            self._unwatch = None
        results = await asyncio.gather(
            *(domain.close() for domain in self._domains()),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, Exception):
                _logger.warning("Domain close failed: %s", result)
        if self._realtime is not None:
            await self._realtime.stop()
            self._realtime = None
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        if self._injected_gateway is None:
            self._gateway = None

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    @property
    def identity_provider(self) -> IdentityProvider:
        return self._identity_provider

    @property
    def identity(self) -> Identity | None:
        return self._identity_provider.identity

    def check_access(self, required_role: str | None = None) -> AccessDecision:
        return self.guard.check(self._identity_provider.state, required_role)

    async def refresh_all(self) -> None:
        """Refetch every domain for the current identity."""
        await asyncio.gather(*(domain.refetch() for domain in self._domains()))

    async def _on_identity(self, state: IdentityState) -> None:
        await self._bind_all(state.identity)

    async def _bind_all(self, identity: Identity | None) -> None:
        domains = self._domains()
        results = await asyncio.gather(*(domain.bind(identity) for domain in domains), return_exceptions=True)
        for domain, result in zip(domains, results, strict=True):
            if isinstance(result, Exception):
                _logger.warning("Binding %s failed: %s", type(domain).__name__, result)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _domains(self) -> list[ProviderBookings | CustomerBookings | ProviderStatsSync]:
        return [d for d in (self.provider_bookings, self.customer_bookings, self.provider_stats) if d is not None]

    def _require_gateway(self) -> Gateway:
        if self._gateway is None:
            raise BookingSyncError("Client not initialized. Use 'async with BookingSyncClient(...) as client:'")
        return self._gateway
