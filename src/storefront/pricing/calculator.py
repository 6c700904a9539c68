"""Price a cart.

``compute_price`` composes the discount resolver and the coupon validator:

1. each line is resolved against the discount snapshot;
2. subtotal, product-discount total and the post-discount subtotal are
   accumulated from the rounded per-unit figures;
3. the coupon, if any, is validated against the post-discount subtotal and
   its amount subtracted;
4. the final amount is clamped at zero.

A rejected coupon does not fail the computation. The breakdown carries the
rejection and the final amount is the post-discount subtotal; callers that
must not proceed without the coupon (order placement) check ``coupon``
themselves. Read-only and idempotent.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime

from protean.exceptions import ValidationError

from storefront.coupon.terms import CouponTerms, normalize_code
from storefront.coupon.validator import CouponResult, validate_coupon
from storefront.discount.resolver import resolve_discount
from storefront.discount.rules import DiscountRule
from storefront.utils.money import round_money


@dataclass(frozen=True)
class CartLine:
    product_id: str
    unit_price: float
    quantity: int
    category: str | None = None
    name: str | None = None
    image: str | None = None


@dataclass(frozen=True)
class PricedLine:
    product_id: str
    name: str | None
    category: str | None
    image: str | None
    unit_price: float
    quantity: int
    discount_per_unit: float
    final_unit_price: float
    discount_id: str | None = None
    discount_name: str | None = None

    @property
    def line_subtotal(self) -> float:
        return round_money(self.unit_price * self.quantity)

    @property
    def line_discount(self) -> float:
        return round_money(self.discount_per_unit * self.quantity)

    @property
    def line_total(self) -> float:
        return round_money(self.final_unit_price * self.quantity)


@dataclass(frozen=True)
class PriceBreakdown:
    lines: tuple[PricedLine, ...]
    subtotal: float
    product_discount_total: float
    subtotal_after_product_discounts: float
    coupon_code: str | None
    coupon: CouponResult | None
    coupon_discount_total: float
    final_amount: float

    @property
    def coupon_applied(self) -> bool:
        return self.coupon is not None and self.coupon.valid


def price_line(line: CartLine, rules: Iterable[DiscountRule], now: datetime) -> PricedLine:
    if line.quantity < 1:
        raise ValidationError({"quantity": [f"Quantity for {line.product_id} must be at least 1"]})
    if line.unit_price < 0:
        raise ValidationError({"unit_price": [f"Unit price for {line.product_id} cannot be negative"]})

    resolved = resolve_discount(str(line.product_id), line.category, line.unit_price, rules, now)
    return PricedLine(
        product_id=str(line.product_id),
        name=line.name,
        category=line.category,
        image=line.image,
        unit_price=resolved.unit_price,
        quantity=line.quantity,
        discount_per_unit=resolved.discount_per_unit,
        final_unit_price=resolved.final_unit_price,
        discount_id=resolved.rule.discount_id if resolved.has_discount else None,
        discount_name=resolved.rule.name if resolved.has_discount else None,
    )


def compute_price(
    lines: Sequence[CartLine],
    rules: Sequence[DiscountRule],
    now: datetime,
    coupon_code: str | None = None,
    coupon_terms: CouponTerms | None = None,
) -> PriceBreakdown:
    priced = tuple(price_line(line, rules, now) for line in lines)

    subtotal = round_money(sum(line.line_subtotal for line in priced))
    product_discount_total = round_money(sum(line.line_discount for line in priced))
    after_discounts = round_money(sum(line.line_total for line in priced))

    code = normalize_code(coupon_code) or None
    coupon_result = None
    coupon_discount = 0.0
    if code:
        coupon_result = validate_coupon(coupon_terms, priced, now)
        if coupon_result.valid:
            coupon_discount = coupon_result.discount_amount

    final_amount = round_money(max(0.0, after_discounts - coupon_discount))
    return PriceBreakdown(
        lines=priced,
        subtotal=subtotal,
        product_discount_total=product_discount_total,
        subtotal_after_product_discounts=after_discounts,
        coupon_code=code,
        coupon=coupon_result,
        coupon_discount_total=coupon_discount,
        final_amount=final_amount,
    )
