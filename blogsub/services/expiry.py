"""Subscription expiry arithmetic."""
from __future__ import annotations

import calendar
from datetime import UTC, datetime

from blogsub.models import PlanType

PLAN_DURATION_MONTHS: dict[PlanType, int] = {
    PlanType.MONTHLY: 1,
    PlanType.QUARTERLY: 3,
    PlanType.YEARLY: 12,
    # "Forever" is a far-future date rather than a sentinel value.
    PlanType.LIFETIME: 1200,
}


class UnknownPlanTypeError(ValueError):
    """Raised when an expiry is requested for a plan type outside the catalogue."""


def add_months(moment: datetime, months: int) -> datetime:
    """Add calendar months, clamping the day to the end of the target month.

    Jan 31 + 1 month is Feb 28 (or 29), and Feb 29 + 12 months is Feb 28.
    """

    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def calculate_expiry(plan_type: PlanType | str, start: datetime | None = None) -> datetime:
    """Return the expiry timestamp of a subscription bought at ``start``."""

    try:
        plan = PlanType(plan_type)
    except ValueError as exc:
        raise UnknownPlanTypeError(f"Unknown plan type '{plan_type}'") from exc
    return add_months(start or datetime.now(UTC), PLAN_DURATION_MONTHS[plan])


__all__ = ["PLAN_DURATION_MONTHS", "UnknownPlanTypeError", "add_months", "calculate_expiry"]
