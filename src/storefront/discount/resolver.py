"""Pick the one discount that applies to a product.

Product-scoped rules beat category-scoped rules, which beat global rules.
Inside a tier the most recently created rule wins; equal creation times
fall back to the larger per-unit reduction and then to the rule id so the
choice never depends on storage order.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime

from storefront.discount.rules import (
    SCOPE_PRECEDENCE,
    DiscountRule,
    applies_to,
    discount_amount,
    is_active,
)
from storefront.utils.clock import as_utc
from storefront.utils.money import round_money

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


@dataclass(frozen=True)
class ResolvedDiscount:
    rule: DiscountRule | None
    unit_price: float
    discount_per_unit: float

    @property
    def final_unit_price(self) -> float:
        return round_money(self.unit_price - self.discount_per_unit)

    @property
    def has_discount(self) -> bool:
        return self.rule is not None and self.discount_per_unit > 0


def _rank(rule: DiscountRule, unit_price: float):
    created = as_utc(rule.created_at) or _EPOCH
    # sorted() ascending: negate what should win when larger
    return (
        SCOPE_PRECEDENCE[rule.scope],
        -created.timestamp(),
        -discount_amount(rule, unit_price),
        str(rule.discount_id),
    )


def resolve_discount(
    product_id: str,
    category: str | None,
    unit_price: float,
    rules: Iterable[DiscountRule],
    now: datetime,
) -> ResolvedDiscount:
    candidates = [rule for rule in rules if is_active(rule, now) and applies_to(rule, product_id, category)]
    if not candidates:
        return ResolvedDiscount(rule=None, unit_price=round_money(unit_price), discount_per_unit=0.0)

    winner = min(candidates, key=lambda rule: _rank(rule, unit_price))
    return ResolvedDiscount(
        rule=winner,
        unit_price=round_money(unit_price),
        discount_per_unit=discount_amount(winner, unit_price),
    )
