"""Custom exception hierarchy for bookingsync."""

from __future__ import annotations

from enum import StrEnum


class BookingSyncError(Exception):
    """Base exception for all bookingsync errors."""


class ConfigError(BookingSyncError):
    """Invalid or missing configuration."""


class AuthenticationError(BookingSyncError):
    """A mutation was attempted without an Identity.

    Raised before any gateway call is issued.
    """


class GatewayError(BookingSyncError):
    """The remote gateway failed or refused a request."""

    def __init__(
        self,
        message: str,
        *,
        relation: str = "",
        code: str = "",
        status_code: int | None = None,
    ) -> None:
        self.relation = relation
        self.code = code
        self.status_code = status_code
        super().__init__(message)


class TransientGatewayError(GatewayError):
    """Network-level or server-side failure (timeouts, 5xx, invalid JSON)."""


class RejectionReason(StrEnum):
    CONSTRAINT = "constraint"
    NOT_FOUND = "not_found"
    PERMISSION = "permission"
    INVALID = "invalid"


class WriteRejectedError(GatewayError):
    """An insert or update was refused by the gateway.

    The cache store of the issuing domain is left untouched; callers are
    responsible for their own error display.
    """

    def __init__(
        self,
        message: str,
        *,
        reason: RejectionReason,
        relation: str = "",
        code: str = "",
        status_code: int | None = None,
    ) -> None:
        self.reason = reason
        super().__init__(message, relation=relation, code=code, status_code=status_code)


class IdentityLookupError(GatewayError):
    """Secondary identity-record lookup failed for a single row."""
