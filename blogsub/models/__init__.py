"""ORM models package."""
from .audit_log import AuditLog
from .base import Base, TimestampMixin
from .transaction import PlanType, Transaction, TransactionKind, TransactionStatus
from .user import SubscriptionStatus, User, UserRole

__all__ = [
    "AuditLog",
    "Base",
    "PlanType",
    "SubscriptionStatus",
    "TimestampMixin",
    "Transaction",
    "TransactionKind",
    "TransactionStatus",
    "User",
    "UserRole",
]
