"""Translation of SQLAlchemy failures into billing storage errors."""
from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import ParamSpec, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from blogsub.services.errors import BillingStorageError

P = ParamSpec("P")
R = TypeVar("R")


def storage_guard(method: Callable[P, R]) -> Callable[P, R]:
    """Re-raise any ``SQLAlchemyError`` from ``method`` as ``BillingStorageError``."""

    @wraps(method)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return method(*args, **kwargs)
        except SQLAlchemyError as exc:
            raise BillingStorageError(f"{method.__qualname__} failed: {exc.__class__.__name__}") from exc

    return wrapper


__all__ = ["storage_guard"]
