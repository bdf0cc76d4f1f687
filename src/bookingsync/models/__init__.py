"""Pydantic models for bookingsync domain data."""

from bookingsync.models.booking import Booking, BookingStatus, Counterparty, PaymentStatus, ServiceRef
from bookingsync.models.cart import CartItem, CartState
from bookingsync.models.notification import UserNotification
from bookingsync.models.requests import BookingDraft, BookingIdRequest, BookingPatch
from bookingsync.models.stats import MonthlyCounters, ProviderStats

__all__ = [
    "Booking",
    "BookingDraft",
    "BookingIdRequest",
    "BookingPatch",
    "BookingStatus",
    "CartItem",
    "CartState",
    "Counterparty",
    "MonthlyCounters",
    "PaymentStatus",
    "ProviderStats",
    "ServiceRef",
    "UserNotification",
]
