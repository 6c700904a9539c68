"""Discount rule snapshots.

A ``DiscountRule`` is an immutable copy of a Discount aggregate's pricing
terms, taken once per request so the price of every line in a cart is
computed against the same view of the rule set.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from storefront.utils.clock import within_window
from storefront.utils.money import percent_of, round_money


class DiscountScope(Enum):
    GLOBAL = "global"
    CATEGORY = "category"
    PRODUCT = "product"


class DiscountKind(Enum):
    PERCENTAGE = "percentage"
    FLAT = "flat"


# Lower rank wins
SCOPE_PRECEDENCE = {
    DiscountScope.PRODUCT: 0,
    DiscountScope.CATEGORY: 1,
    DiscountScope.GLOBAL: 2,
}


@dataclass(frozen=True)
class DiscountRule:
    discount_id: str
    name: str
    scope: DiscountScope
    kind: DiscountKind
    value: float
    category: str | None = None
    product_id: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    active: bool = True
    created_at: datetime | None = None


def is_active(rule: DiscountRule, now: datetime) -> bool:
    """A rule applies when it is switched on and `now` is inside its date window."""
    return rule.active and within_window(now, rule.start_date, rule.end_date)


def applies_to(rule: DiscountRule, product_id: str, category: str | None) -> bool:
    if rule.scope == DiscountScope.PRODUCT:
        return rule.product_id is not None and str(rule.product_id) == str(product_id)
    if rule.scope == DiscountScope.CATEGORY:
        return category is not None and rule.category == category
    return True


def discount_amount(rule: DiscountRule, unit_price: float) -> float:
    """Per-unit reduction, never more than the unit price itself."""
    if rule.kind == DiscountKind.PERCENTAGE:
        amount = percent_of(unit_price, rule.value)
    else:
        amount = rule.value
    return round_money(min(amount, unit_price))
