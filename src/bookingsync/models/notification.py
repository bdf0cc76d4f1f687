"""User-facing notification events."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class UserNotification(BaseModel):
    """A discrete notification for the UI layer; rendering is up to the consumer."""

    model_config = ConfigDict(frozen=True)

    title: str
    description: str
