"""Domain events for the Coupon aggregate."""

from protean.fields import Float, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Coupon")
class CouponCreated:
    """An admin issued a new coupon code."""

    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    kind = String(required=True)
    value = Float(required=True)
    usage_limit = Integer()


@storefront.event(part_of="Coupon")
class CouponUpdated:
    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    changed_fields = String()
