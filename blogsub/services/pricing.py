"""Canonical plan prices used to validate submitted payments."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from blogsub.models import PlanType

PRICE_TOLERANCE = Decimal("0.01")


@dataclass(frozen=True, slots=True)
class PlanOffer:
    plan_type: PlanType
    price: Decimal
    duration: str
    description: str


PLAN_CATALOG: dict[PlanType, PlanOffer] = {
    PlanType.MONTHLY: PlanOffer(PlanType.MONTHLY, Decimal("199.00"), "1 month", "Monthly subscription"),
    PlanType.QUARTERLY: PlanOffer(
        PlanType.QUARTERLY, Decimal("499.00"), "3 months", "Quarterly subscription (save 17%)"
    ),
    PlanType.YEARLY: PlanOffer(
        PlanType.YEARLY, Decimal("1599.00"), "12 months", "Yearly subscription (save 33%)"
    ),
    PlanType.LIFETIME: PlanOffer(PlanType.LIFETIME, Decimal("30.00"), "Lifetime", "Lifetime access"),
}


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """Convert user supplied amounts without binary float artefacts."""

    return value if isinstance(value, Decimal) else Decimal(str(value))


def canonical_price(plan_type: PlanType | str) -> Decimal:
    """Return the fixed price for ``plan_type``; raises ``ValueError`` for unknown plans."""

    return PLAN_CATALOG[PlanType(plan_type)].price


def amounts_match(expected: Decimal | int | float | str, claimed: Decimal | int | float | str) -> bool:
    return abs(to_decimal(expected) - to_decimal(claimed)) <= PRICE_TOLERANCE


def price_matches(plan_type: PlanType | str, amount: Decimal | int | float | str) -> bool:
    return amounts_match(canonical_price(plan_type), amount)


def plan_prices() -> dict[str, Decimal]:
    return {offer.plan_type.value: offer.price for offer in PLAN_CATALOG.values()}


__all__ = [
    "PLAN_CATALOG",
    "PRICE_TOLERANCE",
    "PlanOffer",
    "amounts_match",
    "canonical_price",
    "plan_prices",
    "price_matches",
    "to_decimal",
]
