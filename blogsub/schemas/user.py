"""Schemas describing users and their subscription state."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from blogsub.models import SubscriptionStatus, User, UserRole
from blogsub.services.subscriptions import effective_status


class UserRead(BaseModel):
    id: int
    name: str
    email: str
    role: UserRole
    subscription_status: SubscriptionStatus
    subscription_expiry: datetime | None
    effective_subscription_status: SubscriptionStatus
    created_at: datetime | None

    @classmethod
    def from_user(cls, user: User, now: datetime | None = None) -> "UserRead":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            subscription_status=user.subscription_status,
            subscription_expiry=user.subscription_expiry,
            effective_subscription_status=effective_status(user, now),
            created_at=user.created_at,
        )


__all__ = ["UserRead"]
