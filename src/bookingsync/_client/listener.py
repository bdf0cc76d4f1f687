"""Internal change-listener lifecycle for a single domain.

Owns:
- the push channel for one (domain, identity) pair
- a refresh worker that turns change events into fetch cycles
- teardown on identity change or close
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import StrEnum

from bookingsync.gateway import ChannelHandle, Gateway, eq
from bookingsync.identity import Identity
from bookingsync.state.events import ChangeEvent

_logger = logging.getLogger(__name__)

Refresh = Callable[[Identity], Awaitable[None]]


class ListenerState(StrEnum):
    UNSUBSCRIBED = "unsubscribed"
    SUBSCRIBED = "subscribed"


@dataclass(eq=False)
class _Subscription:
    identity: Identity
    channel_key: str
    wake: asyncio.Event = field(default_factory=asyncio.Event)
    active: bool = True
    handle: ChannelHandle | None = None
    events: int = 0


class ChangeListener:
    """Subscribes to row changes scoped to an identity and re-triggers fetches.

    Every subscription starts with one fetch. Change events set a wake flag
    consumed by a single worker: events arriving while a fetch is in flight
    are never dropped, they coalesce into one follow-up fetch once the
    current one completes.
    """

    def __init__(
        self,
        gateway: Gateway,
        *,
        channel_name: str,
        relation: str,
        scope_column: str,
        refresh: Refresh,
        realtime_enabled: bool = True,
    ) -> None:
        self._gateway = gateway
        self._channel_name = channel_name
        self._relation = relation
        self._scope_column = scope_column
        self._refresh = refresh
        self._realtime_enabled = realtime_enabled
        self._current: _Subscription | None = None
        self._workers: set[asyncio.Task[None]] = set()

    @property
    def state(self) -> ListenerState:
        return ListenerState.SUBSCRIBED if self._current is not None else ListenerState.UNSUBSCRIBED

    @property
    def identity(self) -> Identity | None:
        return self._current.identity if self._current is not None else None

    @property
    def handle(self) -> ChannelHandle | None:
        return self._current.handle if self._current is not None else None

    def channel_key(self, identity: Identity) -> str:
        return f"{self._channel_name}:{identity.profile_id}"

    async def subscribe(self, identity: Identity) -> None:
        """Enter ``SUBSCRIBED`` for *identity*, replacing any previous subscription."""
        await self.unsubscribe()

        sub = _Subscription(identity=identity, channel_key=self.channel_key(identity))
        self._current = sub
        sub.wake.set()
        worker = asyncio.create_task(self._run(sub), name=f"refresh:{sub.channel_key}")
        self._workers.add(worker)
        worker.add_done_callback(self._workers.discard)

        if not self._realtime_enabled:
            return
        try:
            handle = await self._gateway.subscribe(
                sub.channel_key,
                self._relation,
                eq(self._scope_column, identity.profile_id),
                lambda event: self._on_event(sub, event),
            )
        except Exception:
            # The initial fetch still runs; the view just won't auto-refresh.
            _logger.warning("Channel setup failed key=%s", sub.channel_key, exc_info=True)
            return

        if sub.active:
            sub.handle = handle
            _logger.debug("Subscribed key=%s", sub.channel_key)
            return
        # Superseded while the channel was being set up.
        await self._release(handle)

    async def unsubscribe(self) -> None:
        """Return to ``UNSUBSCRIBED``, tearing down the channel.

        An in-flight fetch is not cancelled; the worker exits once it completes.
        """
        sub = self._current
        self._current = None
        if sub is None:
            return
        sub.active = False
        sub.wake.set()
        if sub.handle is not None:
            await self._release(sub.handle)
            sub.handle = None
        _logger.debug("Unsubscribed key=%s events=%d", sub.channel_key, sub.events)

    async def _release(self, handle: ChannelHandle) -> None:
        try:
            await self._gateway.unsubscribe(handle)
        except Exception:
            _logger.debug("Channel teardown failed key=%s", handle.channel_key, exc_info=True)

    async def wait_closed(self) -> None:
        """Wait for retired workers to finish their in-flight fetch."""
        workers = [task for task in self._workers if task is not asyncio.current_task()]
        if workers:
            await asyncio.gather(*workers, return_exceptions=True)

    def _on_event(self, sub: _Subscription, event: ChangeEvent) -> None:
        if not sub.active:
            _logger.debug("Dropping event on stale channel key=%s type=%s", sub.channel_key, event.change_type)
            return
        sub.events += 1
        sub.wake.set()

    async def _run(self, sub: _Subscription) -> None:
        while True:
            await sub.wake.wait()
            if not sub.active:
                return
            sub.wake.clear()
            try:
                await self._refresh(sub.identity)
            except Exception:
                _logger.warning("Refresh failed key=%s", sub.channel_key, exc_info=True)
