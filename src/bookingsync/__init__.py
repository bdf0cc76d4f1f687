"""bookingsync - Async synchronization of booking views with a remote relational store."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("bookingsync")
except PackageNotFoundError:
    __version__ = "0+local"
from bookingsync.client import BookingSyncClient
from bookingsync.config import SyncConfig
from bookingsync.domains import CustomerBookings, ProviderBookings, ProviderStatsSync
from bookingsync.exceptions import (
    AuthenticationError,
    BookingSyncError,
    ConfigError,
    GatewayError,
    IdentityLookupError,
    RejectionReason,
    TransientGatewayError,
    WriteRejectedError,
)
from bookingsync.gateway import ChannelHandle, Condition, Gateway, Join, Order, RemoteGateway
from bookingsync.guard import AccessDecision, AccessGuard
from bookingsync.identity import Identity, IdentityProvider, IdentityState
from bookingsync.models import (
    Booking,
    BookingDraft,
    BookingPatch,
    BookingStatus,
    CartItem,
    CartState,
    PaymentStatus,
    ProviderStats,
    UserNotification,
)
from bookingsync.state.cart import Cart
from bookingsync.state.events import ChangeEvent, ChangeType
from bookingsync.state.store import CacheSnapshot, CacheStore

__all__ = [
    "__version__",
    "AccessDecision",
    "AccessGuard",
    "AuthenticationError",
    "Booking",
    "BookingDraft",
    "BookingPatch",
    "BookingStatus",
    "BookingSyncClient",
    "BookingSyncError",
    "CacheSnapshot",
    "CacheStore",
    "Cart",
    "CartItem",
    "CartState",
    "ChangeEvent",
    "ChangeType",
    "ChannelHandle",
    "Condition",
    "ConfigError",
    "CustomerBookings",
    "Gateway",
    "GatewayError",
    "Identity",
    "IdentityLookupError",
    "IdentityProvider",
    "IdentityState",
    "Join",
    "Order",
    "PaymentStatus",
    "ProviderBookings",
    "ProviderStats",
    "ProviderStatsSync",
    "RejectionReason",
    "RemoteGateway",
    "SyncConfig",
    "TransientGatewayError",
    "UserNotification",
    "WriteRejectedError",
]
