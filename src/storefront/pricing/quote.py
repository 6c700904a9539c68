"""Load fresh snapshots and price a cart against them."""

from collections.abc import Sequence

from storefront.coupon.management import load_coupon_terms
from storefront.discount.management import load_discount_rules
from storefront.pricing.calculator import CartLine, PriceBreakdown, compute_price
from storefront.utils.clock import utc_now


def quote(lines: Sequence[CartLine], coupon_code: str | None = None, now=None) -> PriceBreakdown:
    now = now or utc_now()
    rules = load_discount_rules()
    terms = load_coupon_terms(coupon_code) if coupon_code else None
    return compute_price(lines, rules, now, coupon_code=coupon_code, coupon_terms=terms)
