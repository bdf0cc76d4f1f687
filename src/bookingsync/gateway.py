"""Remote data gateway contract.

Domains talk to the remote relational store exclusively through the
:class:`Gateway` protocol, which makes it easy to pass test doubles while
keeping the production implementation (:class:`RemoteGateway`) concrete.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal, Protocol

from bookingsync.exceptions import GatewayError
from bookingsync.state.events import ChangeEvent

if TYPE_CHECKING:
    from bookingsync._realtime import RealtimeRuntime
    from bookingsync._transport import RestTransport

Operator = Literal["eq", "neq", "gt", "gte", "lt", "lte"]


@dataclass(frozen=True)
class Condition:
    """A single ``column <op> value`` filter."""

    column: str
    value: Any
    op: Operator = "eq"


@dataclass(frozen=True)
class Join:
    """An embedded relation selected alongside the base rows.

    ``alias`` names the key the joined record appears under; ``hint`` is
    the foreign key (or column) that disambiguates the relationship.
    """

    relation: str
    columns: tuple[str, ...]
    alias: str | None = None
    hint: str | None = None

    @property
    def key(self) -> str:
        return self.alias or self.relation


@dataclass(frozen=True)
class Order:
    column: str
    ascending: bool = True


@dataclass(frozen=True)
class ChannelHandle:
    """Opaque handle returned by :meth:`Gateway.subscribe`."""

    channel_key: str
    relation: str
    ref: str


ChangeCallback = Callable[[ChangeEvent], None]


def eq(column: str, value: Any) -> Condition:
    return Condition(column=column, value=value)


class Gateway(Protocol):
    """Structural gateway interface used by the domain coordinators."""

    async def query(
        self,
        relation: str,
        filters: Sequence[Condition],
        *,
        columns: Sequence[str] = ("*",),
        joins: Sequence[Join] = (),
        order: Order | None = None,
    ) -> list[dict[str, Any]]: ...

    async def insert(self, relation: str, row: Mapping[str, Any]) -> dict[str, Any]: ...

    async def update(self, relation: str, patch: Mapping[str, Any], filters: Sequence[Condition]) -> None: ...

    async def subscribe(
        self,
        channel_key: str,
        relation: str,
        event_filter: Condition,
        on_event: ChangeCallback,
    ) -> ChannelHandle: ...

    async def unsubscribe(self, handle: ChannelHandle) -> None: ...

    async def lookup_identity_record(self, user_ref: str) -> dict[str, Any]: ...


class RemoteGateway:
    """Gateway backed by the REST transport and the realtime runtime."""

    def __init__(self, transport: RestTransport, realtime: RealtimeRuntime | None) -> None:
        self._transport = transport
        self._realtime = realtime

    async def query(
        self,
        relation: str,
        filters: Sequence[Condition],
        *,
        columns: Sequence[str] = ("*",),
        joins: Sequence[Join] = (),
        order: Order | None = None,
    ) -> list[dict[str, Any]]:
        return await self._transport.select(relation, filters, columns=columns, joins=joins, order=order)

    async def insert(self, relation: str, row: Mapping[str, Any]) -> dict[str, Any]:
        return await self._transport.insert(relation, row)

    async def update(self, relation: str, patch: Mapping[str, Any], filters: Sequence[Condition]) -> None:
        await self._transport.update(relation, patch, filters)

    async def subscribe(
        self,
        channel_key: str,
        relation: str,
        event_filter: Condition,
        on_event: ChangeCallback,
    ) -> ChannelHandle:
        if self._realtime is None:
            raise GatewayError("realtime is disabled for this gateway", relation=relation)
        return await self._realtime.join(channel_key, relation, event_filter, on_event)

    async def unsubscribe(self, handle: ChannelHandle) -> None:
        if self._realtime is None:
            return
        await self._realtime.leave(handle)

    async def lookup_identity_record(self, user_ref: str) -> dict[str, Any]:
        return await self._transport.get_identity_record(user_ref)
