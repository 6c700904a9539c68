"""Pending refunds: cancelled orders whose payment went through and still need money back.

Cancelling a paid order does not refund it. The order lands here instead, and
leaves once an admin initiates the refund.
"""

from protean.core.projector import on
from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Float, Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.order.events import OrderCancelled, PaymentConfirmed, RefundInitiated
from storefront.order.order import Order
from storefront.order.states import OrderStatus, PaymentStatus


@storefront.projection
class PendingRefund:
    order_id = Identifier(identifier=True, required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    final_amount = Float(required=True)
    cancelled_by = String()
    cancel_reason = String()
    cancelled_at = DateTime()


@storefront.projector(projector_for=PendingRefund, aggregates=[Order])
class PendingRefundProjector:
    @on(OrderCancelled)
    def on_order_cancelled(self, event):
        if event.payment_status != PaymentStatus.SUCCESS.value:
            return
        current_domain.repository_for(PendingRefund).add(
            PendingRefund(
                order_id=event.order_id,
                order_number=event.order_number,
                customer_id=event.customer_id,
                final_amount=event.final_amount,
                cancelled_by=event.cancelled_by,
                cancel_reason=event.reason,
                cancelled_at=event.cancelled_at,
            )
        )

    @on(PaymentConfirmed)
    def on_payment_confirmed(self, event):
        """A payment that lands after the order was cancelled needs returning too."""
        if event.order_status != OrderStatus.CANCELLED.value:
            return
        order = current_domain.repository_for(Order).get(str(event.order_id))
        current_domain.repository_for(PendingRefund).add(
            PendingRefund(
                order_id=str(order.id),
                order_number=order.order_number,
                customer_id=order.customer_id,
                final_amount=order.final_amount,
                cancelled_by=order.cancelled_by,
                cancel_reason=order.cancel_reason,
                cancelled_at=order.cancelled_at,
            )
        )

    @on(RefundInitiated)
    def on_refund_initiated(self, event):
        repo = current_domain.repository_for(PendingRefund)
        try:
            record = repo.get(str(event.order_id))
            repo._dao.delete(record)
        except ObjectNotFoundError:
            pass


def pending_refunds() -> list[PendingRefund]:
    records = current_domain.repository_for(PendingRefund)._dao.query.limit(None).all().items
    return sorted(records, key=lambda record: record.cancelled_at or record.order_number)
