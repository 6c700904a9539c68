"""Refund initiation and refund status updates."""

from protean import handle
from protean.fields import Boolean, Float, Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import logger, storefront
from storefront.gateway import get_gateway
from storefront.order.order import Order
from storefront.order.states import RefundStatus


@storefront.command(part_of="Order")
class InitiateRefund:
    order_id = Identifier(required=True)
    amount = Float()
    reason = String(max_length=500)
    expected_refund_status = String(choices=RefundStatus)


@storefront.command(part_of="Order")
class UpdateRefundStatus:
    order_id = Identifier(required=True)
    refund_status = String(required=True, choices=RefundStatus)
    expected_refund_status = String(choices=RefundStatus)
    confirm_undo = Boolean(default=False)


@storefront.command_handler(part_of=Order)
class RefundHandler:
    @handle(InitiateRefund)
    def initiate_refund(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        amount = order.refund_amount_for(command.amount, command.expected_refund_status)

        refund_id = None
        manual = False
        try:
            result = get_gateway().create_refund(order.payment_reference, amount, command.reason)
        except Exception:
            logger.exception("refund_gateway_error", order_id=str(order.id), amount=amount)
            manual = True
        else:
            if result.success:
                refund_id = result.refund_id
            else:
                logger.warning("refund_gateway_declined", order_id=str(order.id), reason=result.failure_reason)
                manual = True

        order.initiate_refund(
            amount,
            reason=command.reason,
            refund_id=refund_id,
            manual_processing=manual,
            expected_refund_status=command.expected_refund_status,
        )
        repo.add(order)
        logger.info("refund_initiated", order_id=str(order.id), amount=amount, refund_id=refund_id, manual=manual)
        return refund_id

    @handle(UpdateRefundStatus)
    def update_refund_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        previous = order.refund_status.value
        order.update_refund_status(
            command.refund_status,
            expected_refund_status=command.expected_refund_status,
            confirm_undo=bool(command.confirm_undo),
        )
        repo.add(order)
        logger.info(
            "refund_status_updated",
            order_id=str(order.id),
            previous=previous,
            current=order.refund_status.value,
            payment_status=order.payment_status,
        )
