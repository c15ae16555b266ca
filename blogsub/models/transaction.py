"""Subscription payment transaction ORM model."""
from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Index, Integer, JSON, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from blogsub.models.base import Base, TimestampMixin, value_enum


class PlanType(str, enum.Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"
    LIFETIME = "lifetime"


class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class TransactionKind(str, enum.Enum):
    PAYMENT = "payment"
    OVERRIDE = "override"


class Transaction(TimestampMixin, Base):
    """A user's claimed payment, keyed by the externally supplied ``trx_id``."""

    __tablename__ = "transactions"
    __table_args__ = (
        Index("ix_transactions_user_id", "user_id"),
        Index("ix_transactions_status", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    trx_id: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    # Null only on override ledger rows.
    plan_type: Mapped[PlanType | None] = mapped_column(value_enum(PlanType, "plan_type"), nullable=True)
    status: Mapped[TransactionStatus] = mapped_column(
        value_enum(TransactionStatus, "transaction_status"),
        nullable=False,
        default=TransactionStatus.PENDING,
    )
    kind: Mapped[TransactionKind] = mapped_column(
        value_enum(TransactionKind, "transaction_kind"),
        nullable=False,
        default=TransactionKind.PAYMENT,
    )
    payment_method: Mapped[str] = mapped_column(String(50), nullable=False, default="bkash")
    details: Mapped[dict | None] = mapped_column(JSON)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="transactions")

    def __repr__(self) -> str:
        return f"<Transaction {self.trx_id} {self.status.value if self.status else None}>"


__all__ = ["PlanType", "Transaction", "TransactionKind", "TransactionStatus"]
