"""Internal mutation operations for the booking domains.

Every write is scoped by an ownership filter and followed by a full fetch
cycle instead of patching the cache locally, so the cache never shows a
write the gateway rejected.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from bookingsync._constants import BOOKINGS, DEFAULT_CANCEL_REASON
from bookingsync.gateway import eq
from bookingsync.models.booking import BookingStatus
from bookingsync.models.requests import BookingDraft, BookingIdRequest, BookingPatch

if TYPE_CHECKING:
    from bookingsync._client.sync import DomainSync

_logger = logging.getLogger(__name__)


async def create_booking(domain: DomainSync[Any], draft: BookingDraft | Mapping[str, Any]) -> dict[str, Any]:
    identity = domain._require_identity()
    request = draft if isinstance(draft, BookingDraft) else BookingDraft.model_validate(dict(draft))

    created = await domain._gateway.insert(BOOKINGS, request.to_row(customer_id=identity.profile_id))
    _logger.debug("Booking created id=%s customer=%s", created.get("id"), identity.profile_id)

    await domain._fetch_for(identity)
    return created


async def update_booking(
    domain: DomainSync[Any],
    *,
    booking_id: str,
    patch: BookingPatch | Mapping[str, Any],
    owner_column: str,
) -> None:
    identity = domain._require_identity()
    request = BookingIdRequest(booking_id=booking_id)
    validated = patch if isinstance(patch, BookingPatch) else BookingPatch.model_validate(dict(patch))

    await domain._gateway.update(
        BOOKINGS,
        validated.to_row(),
        [eq("id", request.booking_id), eq(owner_column, identity.profile_id)],
    )
    _logger.debug("Booking updated id=%s status=%s", request.booking_id, validated.status)

    await domain._fetch_for(identity)


async def update_booking_status(
    domain: DomainSync[Any],
    *,
    booking_id: str,
    status: BookingStatus | str,
    notes: str | None,
    owner_column: str,
) -> None:
    await update_booking(
        domain,
        booking_id=booking_id,
        patch=BookingPatch(status=status, provider_notes=notes),
        owner_column=owner_column,
    )


async def cancel_booking(
    domain: DomainSync[Any],
    *,
    booking_id: str,
    reason: str | None,
    owner_column: str,
) -> None:
    await update_booking(
        domain,
        booking_id=booking_id,
        patch=BookingPatch(status=BookingStatus.CANCELLED, provider_notes=reason or DEFAULT_CANCEL_REASON),
        owner_column=owner_column,
    )
