"""Shared fetch/subscribe lifecycle for remote-backed domains."""

from __future__ import annotations

import asyncio
import logging
from typing import ClassVar, Generic, TypeVar

from bookingsync._client.listener import ChangeListener, ListenerState
from bookingsync.exceptions import AuthenticationError, GatewayError
from bookingsync.gateway import Gateway
from bookingsync.guard import AUTH_REQUIRED, Notifier, emit
from bookingsync.identity import Identity
from bookingsync.state.store import CacheSnapshot, CacheStore

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class DomainSync(Generic[T]):
    """A read-through cache of one domain kept in sync with the gateway.

    Subclasses provide :meth:`_load` plus the channel/relation/scope the
    change listener subscribes to.
    """

    channel_name: ClassVar[str]
    relation: ClassVar[str]
    scope_column: ClassVar[str]
    fetch_error: ClassVar[str] = "Failed to fetch data"

    def __init__(
        self,
        gateway: Gateway,
        *,
        initial: T,
        realtime_enabled: bool = True,
        notifier: Notifier | None = None,
    ) -> None:
        self._gateway = gateway
        self._notifier = notifier
        self._identity: Identity | None = None
        self._transition_lock = asyncio.Lock()
        self.store: CacheStore[T] = CacheStore(initial)
        self.listener = ChangeListener(
            gateway,
            channel_name=self.channel_name,
            relation=self.relation,
            scope_column=self.scope_column,
            refresh=self._fetch_for,
            realtime_enabled=realtime_enabled,
        )

    @property
    def identity(self) -> Identity | None:
        return self._identity

    @property
    def data(self) -> T:
        return self.store.data

    @property
    def loading(self) -> bool:
        return self.store.loading

    @property
    def error(self) -> str | None:
        return self.store.error

    def snapshot(self) -> CacheSnapshot[T]:
        return self.store.snapshot()

    async def _load(self, identity: Identity) -> T:
        raise NotImplementedError

    async def _fetch_for(self, identity: Identity | None) -> None:
        """Run one fetch cycle scoped to *identity* and commit it to the store."""
        if identity is None:
            return
        self.store.begin_fetch()
        try:
            data = await self._load(identity)
        except GatewayError as exc:
            _logger.warning("%s fetch failed: %s", type(self).__name__, exc)
            if identity == self._identity:
                self.store.fail(str(exc) or self.fetch_error)
            else:
                self.store.discard()
            return
        except asyncio.CancelledError:
            self.store.discard()
            raise
        except Exception:
            self.store.fail(self.fetch_error)
            raise
        if identity == self._identity:
            self.store.commit(data)
        else:
            _logger.debug("%s dropping result for superseded identity", type(self).__name__)
            self.store.discard()

    async def refetch(self) -> None:
        """Manually re-run the fetch cycle for the current identity (no-op without one)."""
        await self._fetch_for(self._identity)

    async def bind(self, identity: Identity | None) -> None:
        """Follow an identity change: tear down the old channel, subscribe for the new identity.

        Transitions run one at a time in call order, so overlapping binds
        always settle on the most recently requested identity.
        """
        async with self._transition_lock:
            if identity == self._identity and (identity is None) == (
                self.listener.state is ListenerState.UNSUBSCRIBED
            ):
                return
            await self.listener.unsubscribe()
            if identity != self._identity:
                self._identity = identity
                self.store.reset()
            if identity is not None:
                await self.listener.subscribe(identity)

    async def close(self) -> None:
        """Component teardown: unsubscribe and discard cached data."""
        async with self._transition_lock:
            await self.listener.unsubscribe()
            self._identity = None
            self.store.reset()
        await self.listener.wait_closed()

    def _require_identity(self) -> Identity:
        identity = self._identity
        if identity is None:
            emit(self._notifier, AUTH_REQUIRED)
            raise AuthenticationError("User not authenticated")
        return identity
