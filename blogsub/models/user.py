"""User ORM model."""
from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from blogsub.models.base import Base, TimestampMixin, value_enum


class UserRole(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"


class SubscriptionStatus(str, enum.Enum):
    FREE = "free"
    ACTIVE = "active"
    EXPIRED = "expired"


class User(TimestampMixin, Base):
    """A reader account and its subscription state."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        value_enum(UserRole, "user_role"), nullable=False, default=UserRole.USER
    )
    subscription_status: Mapped[SubscriptionStatus] = mapped_column(
        value_enum(SubscriptionStatus, "subscription_status"),
        nullable=False,
        default=SubscriptionStatus.FREE,
    )
    # Only meaningful while subscription_status is ACTIVE.
    subscription_expiry: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    transactions = relationship("Transaction", back_populates="user", cascade="all, delete-orphan")
    audit_logs = relationship("AuditLog", back_populates="actor")


__all__ = ["SubscriptionStatus", "User", "UserRole"]
