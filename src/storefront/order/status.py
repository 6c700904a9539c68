"""Admin status updates and cancellation."""

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.domain import logger, storefront
from storefront.order.order import Order
from storefront.order.states import CancelledBy, OrderStatus


@storefront.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, choices=OrderStatus)
    expected_status = String(choices=OrderStatus)
    tracking_number = String(max_length=255)
    reason = String(max_length=255)


@storefront.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    cancelled_by = String(required=True, choices=CancelledBy)
    reason = String(max_length=255)
    custom_reason = Text()
    expected_status = String(choices=OrderStatus)


@storefront.command_handler(part_of=Order)
class OrderStatusHandler:
    @handle(UpdateOrderStatus)
    def update_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        previous = order.order_status
        order.update_status(
            command.status,
            expected_status=command.expected_status,
            tracking_number=command.tracking_number,
            reason=command.reason,
        )
        repo.add(order)
        logger.info("order_status_updated", order_id=str(order.id), previous=previous, current=order.order_status)

    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.cancel(
            command.cancelled_by,
            command.reason,
            custom_reason=command.custom_reason,
            expected_status=command.expected_status,
        )
        repo.add(order)
        logger.info(
            "order_cancelled",
            order_id=str(order.id),
            cancelled_by=order.cancelled_by,
            reason=order.cancel_reason,
            payment_status=order.payment_status,
        )
