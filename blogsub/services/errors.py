"""Error taxonomy shared by the billing services and the HTTP layer."""
from __future__ import annotations

from decimal import Decimal


class BillingError(RuntimeError):
    """Base class for billing workflow errors."""


class BillingValidationError(BillingError):
    """Raised for malformed or out-of-range input."""

    def __init__(self, message: str, *, expected_amount: Decimal | None = None) -> None:
        super().__init__(message)
        self.expected_amount = expected_amount


class DuplicateTransactionError(BillingError):
    """Raised when a transaction id has already been submitted."""


class RecordNotFoundError(BillingError):
    """Base class for lookups that matched nothing."""


class TransactionNotFoundError(RecordNotFoundError):
    """Raised when no pending transaction matches the supplied id."""


class UserNotFoundError(RecordNotFoundError):
    """Raised when the target user does not exist."""


class BillingStorageError(BillingError):
    """Raised when the underlying store fails unexpectedly."""


__all__ = [
    "BillingError",
    "BillingStorageError",
    "BillingValidationError",
    "DuplicateTransactionError",
    "RecordNotFoundError",
    "TransactionNotFoundError",
    "UserNotFoundError",
]
