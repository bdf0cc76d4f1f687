from __future__ import annotations

import asyncio

import pytest

from bookingsync._client.listener import ListenerState
from bookingsync.domains import CustomerBookings, ProviderBookings, ProviderStatsSync
from bookingsync.gateway import eq
from bookingsync.identity import Identity
from bookingsync.state.events import ChangeEvent, ChangeType
from fakes import FakeGateway, customer_booking_row, provider_booking_row, settle, wait_until

PROVIDER = Identity(profile_id="prov-1")
OTHER_PROVIDER = Identity(profile_id="prov-2")


def _gateway() -> FakeGateway:
    return FakeGateway(
        relations={
            "bookings": [
                provider_booking_row("b1"),
                provider_booking_row("b2", provider_id="prov-2", customer_id="cust-9"),
            ]
        },
        identity_records={"user-cust-1": {"email": "ada@example.com"}},
    )


@pytest.mark.asyncio
async def test_bind_subscribes_and_runs_initial_fetch() -> None:
    gateway = _gateway()
    domain = ProviderBookings(gateway)

    await domain.bind(PROVIDER)
    await wait_until(lambda: not domain.loading)

    assert domain.listener.state is ListenerState.SUBSCRIBED
    assert "provider-bookings:prov-1" in gateway.subscriptions
    assert [b.id for b in domain.data] == ["b1"]
    assert gateway.query_count("bookings") == 1

    await domain.close()


@pytest.mark.asyncio
async def test_subscription_scoped_to_identity_column() -> None:
    gateway = _gateway()
    domain = CustomerBookings(gateway)
    captured: list[object] = []
    original = gateway.subscribe

    async def _spy(channel_key, relation, event_filter, on_event):  # type: ignore[no-untyped-def]
        captured.append((channel_key, relation, event_filter))
        return await original(channel_key, relation, event_filter, on_event)

    gateway.subscribe = _spy  # type: ignore[method-assign]

    await domain.bind(Identity(profile_id="cust-1"))
    await wait_until(lambda: not domain.loading)

    assert captured == [("bookings-changes:cust-1", "bookings", eq("customer_id", "cust-1"))]
    await domain.close()


@pytest.mark.asyncio
async def test_change_event_triggers_refetch() -> None:
    gateway = _gateway()
    domain = ProviderBookings(gateway)
    await domain.bind(PROVIDER)
    await wait_until(lambda: not domain.loading)

    gateway.relations["bookings"].append(provider_booking_row("b3", booking_date="2026-10-25"))
    gateway.emit("provider-bookings:prov-1", "INSERT")
    await wait_until(lambda: gateway.query_count("bookings") == 2 and not domain.loading)

    assert [b.id for b in domain.data] == ["b1", "b3"]
    await domain.close()


@pytest.mark.asyncio
async def test_events_during_fetch_coalesce_into_one_followup() -> None:
    gateway = _gateway()
    gateway.query_gate = asyncio.Event()
    domain = ProviderBookings(gateway)

    await domain.bind(PROVIDER)
    await wait_until(lambda: gateway.query_count("bookings") == 1)

    gateway.emit("provider-bookings:prov-1")
    gateway.emit("provider-bookings:prov-1", "DELETE")
    gateway.query_gate.set()

    await wait_until(lambda: gateway.query_count("bookings") == 2 and not domain.loading)
    await settle()

    assert gateway.query_count("bookings") == 2
    assert [b.id for b in domain.data] == ["b1"]
    await domain.close()


@pytest.mark.asyncio
async def test_identity_change_ignores_stale_channel() -> None:
    gateway = _gateway()
    domain = ProviderBookings(gateway)
    await domain.bind(PROVIDER)
    await wait_until(lambda: not domain.loading)
    stale_callback = gateway.subscriptions["provider-bookings:prov-1"][1]

    await domain.bind(OTHER_PROVIDER)
    await wait_until(lambda: not domain.loading)
    fetches = gateway.query_count("bookings")

    stale_callback(ChangeEvent(channel_key="provider-bookings:prov-1", relation="bookings", change_type=ChangeType.UPDATE))
    await settle()

    assert gateway.unsubscribed == ["provider-bookings:prov-1"]
    assert gateway.query_count("bookings") == fetches
    assert [b.id for b in domain.data] == ["b2"]
    assert domain.listener.identity == OTHER_PROVIDER
    await domain.close()


@pytest.mark.asyncio
async def test_identity_change_discards_previous_data() -> None:
    gateway = _gateway()
    domain = ProviderBookings(gateway)
    await domain.bind(PROVIDER)
    await wait_until(lambda: not domain.loading)

    gateway.query_gate = asyncio.Event()
    await domain.bind(OTHER_PROVIDER)

    assert domain.data == []
    assert domain.loading is True

    gateway.query_gate.set()
    await wait_until(lambda: not domain.loading)
    assert [b.id for b in domain.data] == ["b2"]
    await domain.close()


@pytest.mark.asyncio
async def test_result_for_superseded_identity_is_discarded() -> None:
    gateway = _gateway()
    gateway.query_gate = asyncio.Event()
    domain = ProviderBookings(gateway)

    await domain.bind(PROVIDER)
    await wait_until(lambda: gateway.query_count("bookings") == 1)
    await domain.bind(None)
    gateway.query_gate.set()
    await domain.listener.wait_closed()

    assert domain.data == []
    assert domain.identity is None


@pytest.mark.asyncio
async def test_overlapping_binds_settle_on_latest_identity() -> None:
    gateway = _gateway()
    gateway.channel_delay = 0.01
    domain = ProviderBookings(gateway)
    await domain.bind(Identity(profile_id="prov-0"))

    first = asyncio.create_task(domain.bind(PROVIDER))
    await asyncio.sleep(0)
    second = asyncio.create_task(domain.bind(OTHER_PROVIDER))
    await asyncio.gather(first, second)
    await wait_until(lambda: not domain.loading)

    assert domain.identity == OTHER_PROVIDER
    assert domain.listener.identity == OTHER_PROVIDER
    assert list(gateway.subscriptions) == ["provider-bookings:prov-2"]
    assert [b.id for b in domain.data] == ["b2"]
    await domain.close()


@pytest.mark.asyncio
async def test_rebinding_same_identity_is_noop() -> None:
    gateway = _gateway()
    domain = ProviderBookings(gateway)
    await domain.bind(PROVIDER)
    await wait_until(lambda: not domain.loading)

    await domain.bind(PROVIDER)
    await settle()

    assert gateway.calls["subscribe"] == 1
    assert gateway.query_count("bookings") == 1
    await domain.close()


@pytest.mark.asyncio
async def test_close_unsubscribes_and_resets() -> None:
    gateway = _gateway()
    domain = ProviderBookings(gateway)
    await domain.bind(PROVIDER)
    await wait_until(lambda: not domain.loading)

    await domain.close()

    assert gateway.unsubscribed == ["provider-bookings:prov-1"]
    assert gateway.subscriptions == {}
    assert domain.listener.state is ListenerState.UNSUBSCRIBED
    assert domain.data == []
    assert domain.identity is None


@pytest.mark.asyncio
async def test_subscribe_failure_still_fetches_once() -> None:
    gateway = _gateway()
    gateway.subscribe_error = RuntimeError("socket refused")
    domain = ProviderBookings(gateway)

    await domain.bind(PROVIDER)
    await wait_until(lambda: not domain.loading)

    assert [b.id for b in domain.data] == ["b1"]
    assert domain.listener.handle is None
    assert domain.listener.state is ListenerState.SUBSCRIBED
    await domain.close()
    assert gateway.unsubscribed == []


@pytest.mark.asyncio
async def test_realtime_disabled_skips_channel() -> None:
    gateway = _gateway()
    domain = ProviderBookings(gateway, realtime_enabled=False)

    await domain.bind(PROVIDER)
    await wait_until(lambda: not domain.loading)

    assert "subscribe" not in gateway.calls
    assert [b.id for b in domain.data] == ["b1"]
    await domain.close()


@pytest.mark.asyncio
async def test_stats_domain_listens_to_provider_bookings() -> None:
    gateway = _gateway()
    gateway.relations["provider_stats"] = [{"id": "prov-1", "total_bookings": 3}]
    domain = ProviderStatsSync(gateway)

    await domain.bind(PROVIDER)
    await wait_until(lambda: not domain.loading)
    handle = gateway.subscriptions["provider-stats:prov-1"][0]

    assert handle.relation == "bookings"
    assert domain.data.total_bookings == 3

    gateway.emit("provider-stats:prov-1")
    await wait_until(lambda: gateway.query_count("provider_stats") == 2 and not domain.loading)
    await domain.close()


@pytest.mark.asyncio
async def test_customer_channel_name() -> None:
    gateway = FakeGateway(relations={"bookings": [customer_booking_row("c1")]})
    domain = CustomerBookings(gateway)

    await domain.bind(Identity(profile_id="cust-1"))
    await wait_until(lambda: not domain.loading)

    assert list(gateway.subscriptions) == ["bookings-changes:cust-1"]
    await domain.close()
