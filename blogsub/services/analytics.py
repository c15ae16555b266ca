"""Read-only projections for the admin dashboard."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Literal

from sqlalchemy import func, literal_column
from sqlalchemy.sql.elements import ColumnElement

from blogsub.models import PlanType

RevenuePeriod = Literal["day", "month", "year"]

_PERIOD_FORMATS: dict[str, str] = {
    "day": "%Y-%m-%d",
    "month": "%Y-%m",
    "year": "%Y",
}
_POSTGRES_PERIOD_FORMATS: dict[str, str] = {
    "day": "YYYY-MM-DD",
    "month": "YYYY-MM",
    "year": "YYYY",
}
MAX_REVENUE_BUCKETS = 12


@dataclass(slots=True, frozen=True)
class TransactionStats:
    total_transactions: int
    pending_transactions: int
    approved_transactions: int
    rejected_transactions: int
    total_revenue: Decimal


@dataclass(slots=True, frozen=True)
class RevenueBucket:
    period: str
    plan_type: PlanType
    transaction_count: int
    total_revenue: Decimal


def period_label(column: ColumnElement, period: RevenuePeriod, dialect_name: str) -> ColumnElement:
    """SQL expression rendering ``column`` as a ``day | month | year`` bucket key.

    The format is inlined as a literal so PostgreSQL sees the same expression in
    the select list and the ``GROUP BY``.
    """

    if period not in _PERIOD_FORMATS:
        raise ValueError(f"Unsupported revenue period '{period}'")
    if dialect_name == "postgresql":
        return func.to_char(column, literal_column(f"'{_POSTGRES_PERIOD_FORMATS[period]}'"))
    return func.strftime(literal_column(f"'{_PERIOD_FORMATS[period]}'"), column)


__all__ = [
    "MAX_REVENUE_BUCKETS",
    "RevenueBucket",
    "RevenuePeriod",
    "TransactionStats",
    "period_label",
]
