"""User subscription state: lazy expiry checks and the user-side store."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

from sqlalchemy import case, func, select, update
from sqlalchemy.orm import Session

from blogsub.db.guard import storage_guard
from blogsub.models import SubscriptionStatus, User
from blogsub.services.errors import UserNotFoundError


def as_utc(moment: datetime) -> datetime:
    """Treat naive timestamps (SQLite round-trips) as UTC."""

    return moment.replace(tzinfo=UTC) if moment.tzinfo is None else moment


def effective_status(user: User, now: datetime | None = None) -> SubscriptionStatus:
    """Return the status access checks should see.

    There is no expiry sweep, so an ``active`` row whose expiry has passed is
    reported as ``expired`` here.
    """

    if user.subscription_status != SubscriptionStatus.ACTIVE:
        return user.subscription_status
    if user.subscription_expiry is None:
        return SubscriptionStatus.EXPIRED
    current = now or datetime.now(UTC)
    if as_utc(user.subscription_expiry) <= as_utc(current):
        return SubscriptionStatus.EXPIRED
    return SubscriptionStatus.ACTIVE


@dataclass(slots=True, frozen=True)
class UserStats:
    total_users: int
    active_subscribers: int
    expired_subscribers: int
    free_users: int


class UserSubscriptionStore(Protocol):
    """User-management capability the billing workflow depends on."""

    def get(self, user_id: int) -> User | None:
        """Return the user or ``None``."""

    def update_subscription(
        self, user_id: int, status: SubscriptionStatus, expiry: datetime | None
    ) -> None:
        """Set both subscription fields; raise ``UserNotFoundError`` if no row matched."""

    def list_users(
        self, *, subscription_status: SubscriptionStatus | None = None, limit: int | None = 20, offset: int = 0
    ) -> list[User]:
        """Return users newest first."""

    def stats(self) -> UserStats:
        """Return subscriber counts by stored status."""


class SQLAlchemyUserSubscriptionStore:
    """``UserSubscriptionStore`` backed by the ``users`` table."""

    def __init__(self, session: Session) -> None:
        self._session = session

    @storage_guard
    def get(self, user_id: int) -> User | None:
        return self._session.get(User, user_id)

    @storage_guard
    def update_subscription(
        self, user_id: int, status: SubscriptionStatus, expiry: datetime | None
    ) -> None:
        result = self._session.execute(
            update(User)
            .where(User.id == user_id)
            .values(subscription_status=status, subscription_expiry=expiry)
            .execution_options(synchronize_session="fetch")
        )
        if not result.rowcount:
            raise UserNotFoundError(f"User '{user_id}' was not found")

    @storage_guard
    def list_users(
        self, *, subscription_status: SubscriptionStatus | None = None, limit: int | None = 20, offset: int = 0
    ) -> list[User]:
        statement = select(User)
        if subscription_status is not None:
            statement = statement.where(User.subscription_status == subscription_status)
        statement = statement.order_by(User.created_at.desc(), User.id.desc()).limit(limit).offset(offset)
        return list(self._session.scalars(statement))

    @storage_guard
    def stats(self) -> UserStats:
        def _count(status: SubscriptionStatus):
            return func.coalesce(func.sum(case((User.subscription_status == status, 1), else_=0)), 0)

        row = self._session.execute(
            select(
                func.count(User.id),
                _count(SubscriptionStatus.ACTIVE),
                _count(SubscriptionStatus.EXPIRED),
                _count(SubscriptionStatus.FREE),
            )
        ).one()
        return UserStats(
            total_users=int(row[0]),
            active_subscribers=int(row[1]),
            expired_subscribers=int(row[2]),
            free_users=int(row[3]),
        )


__all__ = [
    "SQLAlchemyUserSubscriptionStore",
    "UserStats",
    "UserSubscriptionStore",
    "as_utc",
    "effective_status",
]
