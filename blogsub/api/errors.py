"""Mapping of billing errors onto HTTP responses."""
from __future__ import annotations

from fastapi import HTTPException, status

from blogsub.models import Transaction
from blogsub.services.errors import (
    BillingError,
    BillingStorageError,
    BillingValidationError,
    DuplicateTransactionError,
    RecordNotFoundError,
)
from blogsub.services.transactions import WorkflowResult

_STATUS_BY_ERROR: tuple[tuple[type[BillingError], int], ...] = (
    (BillingValidationError, status.HTTP_400_BAD_REQUEST),
    (DuplicateTransactionError, status.HTTP_409_CONFLICT),
    (RecordNotFoundError, status.HTTP_404_NOT_FOUND),
)


def http_error_for(error: BillingError) -> HTTPException:
    """Translate ``error`` into an ``HTTPException``; storage details never leak."""

    if isinstance(error, BillingStorageError):
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        )
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=str(error))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


def unwrap_or_raise(result: WorkflowResult) -> Transaction:
    """Return the result's transaction or raise the matching ``HTTPException``."""

    if result.error is not None:
        raise http_error_for(result.error) from result.error
    return result.unwrap()


__all__ = ["http_error_for", "unwrap_or_raise"]
