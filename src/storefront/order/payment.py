"""Payment outcomes reported by the checkout widget.

A successful online payment is the point at which the order's coupon is
consumed. If the coupon ran out between checkout and payment, the order
still goes through at the price the customer was shown; the miss is noted
on the timeline and the counter is left alone.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.coupon.coupon import Coupon
from storefront.domain import logger, storefront
from storefront.exceptions import RuleViolation
from storefront.order.order import Order


@storefront.command(part_of="Order")
class RecordPaymentSuccess:
    order_id = Identifier(required=True)
    payment_reference = String(max_length=255)


@storefront.command(part_of="Order")
class RecordPaymentFailure:
    order_id = Identifier(required=True)
    reason = String(max_length=500)


@storefront.command_handler(part_of=Order)
class PaymentOutcomeHandler:
    @handle(RecordPaymentSuccess)
    def payment_succeeded(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.record_payment_success(command.payment_reference)

        if order.coupon_code and not order.coupon_redeemed:
            try:
                current_domain.repository_for(Coupon).redeem(order.coupon_code)
            except RuleViolation as exc:
                logger.warning(
                    "coupon_not_redeemed",
                    order_id=str(order.id),
                    coupon_code=order.coupon_code,
                    code=exc.code.value,
                )
                order.note_coupon_not_redeemed(exc.message)
            else:
                order.mark_coupon_redeemed()

        repo.add(order)
        logger.info("payment_succeeded", order_id=str(order.id), order_status=order.order_status)

    @handle(RecordPaymentFailure)
    def payment_failed(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.record_payment_failure(command.reason)
        repo.add(order)
        logger.info("payment_failed", order_id=str(order.id), reason=command.reason)
