from __future__ import annotations

import pytest
from pydantic import ValidationError

from bookingsync.domains import CustomerBookings, ProviderBookings
from bookingsync.exceptions import AuthenticationError, RejectionReason, WriteRejectedError
from bookingsync.gateway import eq
from bookingsync.guard import AUTH_REQUIRED
from bookingsync.identity import Identity
from bookingsync.models.booking import BookingStatus
from bookingsync.models.notification import UserNotification
from fakes import FakeGateway, customer_booking_row, provider_booking_row

PROVIDER = Identity(profile_id="prov-1")
CUSTOMER = Identity(profile_id="cust-1")

_DRAFT = {
    "service_id": "svc-1",
    "provider_id": "prov-1",
    "booking_date": "2026-11-02",
    "booking_time": "09:30",
    "total_amount": 75,
    "customer_address": "1 Main St",
    "customer_notes": "Ring twice",
}


async def _loaded(domain: ProviderBookings | CustomerBookings, identity: Identity) -> None:
    domain._identity = identity
    await domain.refetch()


@pytest.mark.asyncio
async def test_create_without_identity_issues_no_gateway_call() -> None:
    gateway = FakeGateway()
    notifications: list[UserNotification] = []
    domain = CustomerBookings(gateway, realtime_enabled=False, notifier=notifications.append)

    with pytest.raises(AuthenticationError, match="User not authenticated"):
        await domain.create(_DRAFT)

    assert gateway.calls == {}
    assert notifications == [AUTH_REQUIRED]


@pytest.mark.asyncio
async def test_update_without_identity_raises() -> None:
    gateway = FakeGateway()
    domain = ProviderBookings(gateway, realtime_enabled=False)

    with pytest.raises(AuthenticationError):
        await domain.update_status("b1", "confirmed")

    assert gateway.calls == {}


@pytest.mark.asyncio
async def test_create_inserts_pending_booking_and_refetches() -> None:
    gateway = FakeGateway(relations={"bookings": [customer_booking_row("c1")]})
    domain = CustomerBookings(gateway, realtime_enabled=False)
    await _loaded(domain, CUSTOMER)

    created = await domain.create(_DRAFT)

    relation, row = gateway.inserts[0]
    assert relation == "bookings"
    assert row["customer_id"] == "cust-1"
    assert row["status"] == "pending"
    assert row["payment_status"] == "pending"
    assert row["booking_date"] == "2026-11-02"
    assert created["id"] == "new-1"
    assert gateway.query_count("bookings") == 2
    assert {b.id for b in domain.data} == {"c1", "new-1"}


@pytest.mark.asyncio
async def test_invalid_draft_rejected_before_gateway() -> None:
    gateway = FakeGateway()
    domain = CustomerBookings(gateway, realtime_enabled=False)
    domain._identity = CUSTOMER

    with pytest.raises(ValidationError):
        await domain.create({**_DRAFT, "total_amount": -5})

    assert "insert:bookings" not in gateway.calls


@pytest.mark.asyncio
async def test_update_status_scopes_by_owner_and_refetches() -> None:
    gateway = FakeGateway(relations={"bookings": [provider_booking_row("b1")]})
    domain = ProviderBookings(gateway, realtime_enabled=False)
    await _loaded(domain, PROVIDER)

    await domain.update_status("b1", BookingStatus.CONFIRMED, notes="See you then")

    relation, patch, filters = gateway.updates[0]
    assert relation == "bookings"
    assert patch == {"status": "confirmed", "provider_notes": "See you then"}
    assert filters == [eq("id", "b1"), eq("provider_id", "prov-1")]
    assert gateway.query_count("bookings") == 2
    assert domain.data[0].status is BookingStatus.CONFIRMED


@pytest.mark.asyncio
async def test_update_status_omits_empty_notes() -> None:
    gateway = FakeGateway(relations={"bookings": [provider_booking_row("b1")]})
    domain = ProviderBookings(gateway, realtime_enabled=False)
    await _loaded(domain, PROVIDER)

    await domain.update_status("b1", "completed", notes="")

    assert gateway.updates[0][1] == {"status": "completed"}


@pytest.mark.asyncio
async def test_rejected_write_leaves_store_untouched() -> None:
    gateway = FakeGateway(relations={"bookings": [provider_booking_row("b1")]})
    domain = ProviderBookings(gateway, realtime_enabled=False)
    await _loaded(domain, PROVIDER)
    before = domain.snapshot()

    gateway.write_error = WriteRejectedError(
        "permission denied for table bookings",
        reason=RejectionReason.PERMISSION,
        relation="bookings",
        code="42501",
        status_code=403,
    )
    with pytest.raises(WriteRejectedError) as excinfo:
        await domain.update_status("b1", "confirmed")

    assert excinfo.value.reason is RejectionReason.PERMISSION
    assert domain.snapshot() == before
    assert gateway.query_count("bookings") == 1


@pytest.mark.asyncio
async def test_unknown_patch_field_is_rejected() -> None:
    gateway = FakeGateway(relations={"bookings": [provider_booking_row("b1")]})
    domain = ProviderBookings(gateway, realtime_enabled=False)
    await _loaded(domain, PROVIDER)

    with pytest.raises(ValidationError):
        await domain.update("b1", {"status": "confirmed", "total_amount": 0})

    assert "update:bookings" not in gateway.calls


@pytest.mark.asyncio
async def test_unknown_status_is_rejected() -> None:
    gateway = FakeGateway()
    domain = ProviderBookings(gateway, realtime_enabled=False)
    domain._identity = PROVIDER

    with pytest.raises(ValidationError):
        await domain.update_status("b1", "teleported")

    assert gateway.calls == {}


@pytest.mark.asyncio
async def test_cancel_uses_default_reason() -> None:
    gateway = FakeGateway(relations={"bookings": [customer_booking_row("c1")]})
    domain = CustomerBookings(gateway, realtime_enabled=False)
    await _loaded(domain, CUSTOMER)

    await domain.cancel("c1")

    _relation, patch, filters = gateway.updates[0]
    assert patch == {"status": "cancelled", "provider_notes": "Cancelled by customer"}
    assert filters == [eq("id", "c1"), eq("customer_id", "cust-1")]
    assert domain.data[0].status is BookingStatus.CANCELLED


@pytest.mark.asyncio
async def test_cancel_with_reason() -> None:
    gateway = FakeGateway(relations={"bookings": [customer_booking_row("c1")]})
    domain = CustomerBookings(gateway, realtime_enabled=False)
    await _loaded(domain, CUSTOMER)

    await domain.cancel("c1", reason="Plans changed")

    assert gateway.updates[0][1]["provider_notes"] == "Plans changed"
