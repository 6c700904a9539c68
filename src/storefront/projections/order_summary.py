"""Order summary: one row per order for admin listings."""

from protean.core.projector import on
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.order.events import (
    CouponRedeemed,
    OrderCancelled,
    OrderPlaced,
    OrderStatusChanged,
    PaymentConfirmed,
    PaymentFailed,
    RefundInitiated,
    RefundStatusChanged,
)
from storefront.order.order import Order
from storefront.order.states import OrderStatus, PaymentStatus, RefundStatus


@storefront.projection
class OrderSummary:
    order_id = Identifier(identifier=True, required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    order_status = String(required=True)
    payment_status = String(required=True)
    payment_method = String(required=True)
    refund_status = String(default=RefundStatus.NONE.value)
    item_count = Integer(default=0)
    final_amount = Float()
    coupon_code = String()
    coupon_redeemed = Boolean(default=False)
    created_at = DateTime()
    updated_at = DateTime()


def _update(order_id, changed_at, **changes):
    repo = current_domain.repository_for(OrderSummary)
    summary = repo.get(str(order_id))
    for field, value in changes.items():
        setattr(summary, field, value)
    summary.updated_at = changed_at
    repo.add(summary)


@storefront.projector(projector_for=OrderSummary, aggregates=[Order])
class OrderSummaryProjector:
    @on(OrderPlaced)
    def on_order_placed(self, event):
        current_domain.repository_for(OrderSummary).add(
            OrderSummary(
                order_id=event.order_id,
                order_number=event.order_number,
                customer_id=event.customer_id,
                order_status=event.order_status,
                payment_status=event.payment_status,
                payment_method=event.payment_method,
                item_count=event.item_count,
                final_amount=event.final_amount,
                coupon_code=event.coupon_code,
                created_at=event.placed_at,
                updated_at=event.placed_at,
            )
        )

    @on(OrderStatusChanged)
    def on_status_changed(self, event):
        _update(event.order_id, event.changed_at, order_status=event.new_status)

    @on(OrderCancelled)
    def on_order_cancelled(self, event):
        _update(event.order_id, event.cancelled_at, order_status=OrderStatus.CANCELLED.value)

    @on(PaymentConfirmed)
    def on_payment_confirmed(self, event):
        _update(
            event.order_id,
            event.confirmed_at,
            payment_status=PaymentStatus.SUCCESS.value,
            order_status=event.order_status,
        )

    @on(PaymentFailed)
    def on_payment_failed(self, event):
        _update(event.order_id, event.failed_at, payment_status=PaymentStatus.FAILED.value)

    @on(CouponRedeemed)
    def on_coupon_redeemed(self, event):
        repo = current_domain.repository_for(OrderSummary)
        summary = repo.get(str(event.order_id))
        summary.coupon_redeemed = True
        repo.add(summary)

    @on(RefundInitiated)
    def on_refund_initiated(self, event):
        _update(event.order_id, event.initiated_at, refund_status=RefundStatus.REQUESTED.value)

    @on(RefundStatusChanged)
    def on_refund_status_changed(self, event):
        _update(
            event.order_id,
            event.changed_at,
            refund_status=event.new_status,
            payment_status=event.payment_status,
        )


def order_summaries(order_status=None) -> list[OrderSummary]:
    query = current_domain.repository_for(OrderSummary)._dao.query
    if order_status:
        query = query.filter(order_status=order_status)
    return sorted(query.limit(None).all().items, key=lambda summary: summary.created_at, reverse=True)
