"""Coupon validation.

``validate_coupon`` is pure: it reads a ``CouponTerms`` snapshot and a cart,
and answers whether the coupon applies and for how much. It never touches
the usage counter; redemption is a separate, atomic step
(see ``CouponRepository.redeem``).

Checks run in a fixed order and stop at the first failure:
existence, active flag, start date, end date, usage limit, categories,
minimum purchase.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from storefront.coupon.terms import CouponKind, CouponTerms
from storefront.exceptions import RuleCode, RuleViolation
from storefront.utils.clock import as_utc
from storefront.utils.money import percent_of, round_money


class CouponLine(Protocol):
    """What the validator needs from a cart line: its category and its post-discount total."""

    category: str | None
    line_total: float


@dataclass(frozen=True)
class SummaryLine:
    category: str | None
    line_total: float


def summary_lines(total: float, categories: Iterable[str]) -> list[SummaryLine]:
    """Stand-in lines for a cart described only by its total and the categories in it."""
    lines = [SummaryLine(category=category, line_total=0.0) for category in categories]
    lines.append(SummaryLine(category=None, line_total=total))
    return lines


@dataclass(frozen=True)
class CouponResult:
    valid: bool
    discount_amount: float = 0.0
    reason: RuleCode | None = None
    message: str | None = None
    terms: CouponTerms | None = None

    @classmethod
    def ok(cls, terms: CouponTerms, amount: float) -> "CouponResult":
        return cls(valid=True, discount_amount=amount, terms=terms)

    @classmethod
    def rejected(cls, reason: RuleCode, message: str, terms: CouponTerms | None = None) -> "CouponResult":
        return cls(valid=False, reason=reason, message=message, terms=terms)

    def raise_if_rejected(self) -> None:
        if not self.valid:
            raise RuleViolation(self.reason, self.message, field="coupon_code")


def coupon_amount(terms: CouponTerms, cart_total: float) -> float:
    if terms.kind == CouponKind.PERCENTAGE:
        amount = percent_of(cart_total, terms.value)
    else:
        amount = terms.value
    return round_money(max(0.0, min(amount, cart_total)))


def cart_total(lines: Iterable[CouponLine]) -> float:
    return round_money(sum(line.line_total for line in lines))


def validate_coupon(terms: CouponTerms | None, lines: Sequence[CouponLine], now: datetime) -> CouponResult:
    if terms is None:
        return CouponResult.rejected(RuleCode.NOT_FOUND, "Invalid coupon code")

    if not terms.active:
        return CouponResult.rejected(RuleCode.INACTIVE, "This coupon is no longer active", terms)

    now = as_utc(now)
    if terms.start_date is not None and now < as_utc(terms.start_date):
        return CouponResult.rejected(RuleCode.NOT_YET_STARTED, "This coupon is not yet valid", terms)
    if terms.end_date is not None and now > as_utc(terms.end_date):
        return CouponResult.rejected(RuleCode.EXPIRED, "This coupon has expired", terms)

    if terms.exhausted:
        return CouponResult.rejected(RuleCode.USAGE_LIMIT_REACHED, "This coupon has reached its usage limit", terms)

    if terms.applicable_categories and not any(line.category in terms.applicable_categories for line in lines):
        return CouponResult.rejected(
            RuleCode.CATEGORY_MISMATCH, "This coupon is not applicable to items in your cart", terms
        )

    total = cart_total(lines)
    if total < terms.min_purchase:
        return CouponResult.rejected(
            RuleCode.BELOW_MINIMUM_PURCHASE,
            f"Minimum purchase of {terms.min_purchase:.2f} required for this coupon",
            terms,
        )

    return CouponResult.ok(terms, coupon_amount(terms, total))
