"""Thin access-policy check for consumer surfaces.

Real enforcement lives in the remote store; this only decides what to show
and emits a user-facing notification when access is refused.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import StrEnum

from bookingsync.identity import IdentityState
from bookingsync.models.notification import UserNotification

_logger = logging.getLogger(__name__)

Notifier = Callable[[UserNotification], None]

AUTH_REQUIRED = UserNotification(
    title="Authentication Required",
    description="Please sign in to continue.",
)


class AccessDecision(StrEnum):
    PENDING = "pending"
    GRANTED = "granted"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"


def emit(notifier: Notifier | None, notification: UserNotification) -> None:
    """Deliver *notification*; a failing notifier never breaks the caller."""
    if notifier is None:
        return
    try:
        notifier(notification)
    except Exception:
        _logger.debug("notifier failed", exc_info=True)


class AccessGuard:
    def __init__(self, notifier: Notifier | None = None) -> None:
        self._notifier = notifier

    def check(self, state: IdentityState, required_role: str | None = None) -> AccessDecision:
        if state.loading:
            return AccessDecision.PENDING
        identity = state.identity
        if identity is None:
            emit(self._notifier, AUTH_REQUIRED)
            return AccessDecision.UNAUTHENTICATED
        if required_role is not None and identity.role != required_role:
            emit(
                self._notifier,
                UserNotification(
                    title="Access Denied",
                    description=f"You don't have permission to access the {required_role} area.",
                ),
            )
            return AccessDecision.FORBIDDEN
        return AccessDecision.GRANTED
