from __future__ import annotations

from decimal import Decimal

import pytest

from blogsub.models import PlanType
from blogsub.services.pricing import (
    PLAN_CATALOG,
    amounts_match,
    canonical_price,
    plan_prices,
    price_matches,
)


@pytest.mark.parametrize(
    ("plan", "price"),
    [
        (PlanType.MONTHLY, Decimal("199.00")),
        (PlanType.QUARTERLY, Decimal("499.00")),
        (PlanType.YEARLY, Decimal("1599.00")),
        (PlanType.LIFETIME, Decimal("30.00")),
    ],
)
def test_canonical_prices(plan: PlanType, price: Decimal) -> None:
    assert canonical_price(plan) == price
    assert canonical_price(plan.value) == price


def test_price_tolerance_is_one_paisa() -> None:
    assert price_matches("monthly", "199.01")
    assert price_matches("monthly", 198.99)
    assert not price_matches("monthly", "199.02")
    assert not price_matches("yearly", "1598")


def test_amounts_match_avoids_float_artefacts() -> None:
    assert amounts_match(Decimal("30.00"), 30.01)
    assert not amounts_match(Decimal("30.00"), 30.011)


def test_unknown_plan_is_rejected() -> None:
    with pytest.raises(ValueError):
        canonical_price("weekly")


def test_plan_prices_cover_catalogue() -> None:
    prices = plan_prices()
    assert set(prices) == {plan.value for plan in PLAN_CATALOG}
    assert prices["lifetime"] == Decimal("30.00")
