"""Identity values and the reactive identity provider.

The identity is threaded explicitly into every domain; its lifecycle
(absent → present → changed → absent) drives subscribe/unsubscribe.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from pydantic import BaseModel, ConfigDict, field_validator

_logger = logging.getLogger(__name__)

IdentityWatcher = Callable[["IdentityState"], Awaitable[None]]


class Identity(BaseModel):
    """Profile reference scoping which remote rows are visible and mutable."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
    )

    profile_id: str
    user_id: str | None = None
    role: str | None = None

    @field_validator("profile_id")
    @classmethod
    def _profile_non_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("profile_id must be non-empty")
        return value


class IdentityState(BaseModel):
    model_config = ConfigDict(frozen=True)

    identity: Identity | None = None
    loading: bool = True


class IdentityProvider:
    """Reactive ``{identity, loading}`` value supplied by the authentication layer.

    Watchers are awaited in registration order, and only when ``identity``
    itself changes. A failing watcher is logged and never stops the rest.
    """

    def __init__(self, identity: Identity | None = None, *, loading: bool = True) -> None:
        self._state = IdentityState(identity=identity, loading=loading)
        self._watchers: list[IdentityWatcher] = []

    @property
    def state(self) -> IdentityState:
        return self._state

    @property
    def identity(self) -> Identity | None:
        return self._state.identity

    def watch(self, watcher: IdentityWatcher) -> Callable[[], None]:
        self._watchers.append(watcher)

        def _unwatch() -> None:
            if watcher in self._watchers:
                self._watchers.remove(watcher)

        return _unwatch

    async def update(self, *, identity: Identity | None, loading: bool = False) -> None:
        previous = self._state.identity
        self._state = IdentityState(identity=identity, loading=loading)
        if identity == previous:
            return
        _logger.debug(
            "Identity changed %s -> %s",
            previous.profile_id if previous else None,
            identity.profile_id if identity else None,
        )
        for watcher in list(self._watchers):
            try:
                await watcher(self._state)
            except Exception:
                _logger.warning("identity watcher failed", exc_info=True)

    async def sign_out(self) -> None:
        await self.update(identity=None, loading=False)
