"""Domain events for the Order aggregate."""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text

from storefront.domain import storefront


@storefront.event(part_of="Order")
class OrderPlaced:
    """A customer placed an order at a server-computed price."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    payment_method = String(required=True)
    order_status = String(required=True)
    payment_status = String(required=True)
    item_count = Integer(required=True)
    subtotal = Float(required=True)
    product_discount_total = Float(default=0.0)
    coupon_code = String()
    coupon_discount_total = Float(default=0.0)
    final_amount = Float(required=True)
    placed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderStatusChanged:
    """An admin moved the order along (or, under the permissive policy, back along) its lifecycle."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    tracking_number = String()
    changed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderCancelled:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    previous_status = String(required=True)
    cancelled_by = String(required=True)
    reason = String(required=True)
    custom_reason = Text()
    payment_status = String(required=True)
    final_amount = Float(required=True)
    cancelled_at = DateTime(required=True)


@storefront.event(part_of="Order")
class PaymentConfirmed:
    __version__ = 1

    order_id = Identifier(required=True)
    payment_reference = String()
    order_status = String(required=True)
    confirmed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class PaymentFailed:
    __version__ = 1

    order_id = Identifier(required=True)
    reason = String()
    failed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class CouponRedeemed:
    """The coupon on an order consumed one of its uses."""

    __version__ = 1

    order_id = Identifier(required=True)
    coupon_code = String(required=True)


@storefront.event(part_of="Order")
class RefundInitiated:
    __version__ = 1

    order_id = Identifier(required=True)
    refund_id = String()
    amount = Float(required=True)
    reason = String()
    manual_processing = Boolean(default=False)
    initiated_at = DateTime(required=True)


@storefront.event(part_of="Order")
class RefundStatusChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    payment_status = String(required=True)
    changed_at = DateTime(required=True)
