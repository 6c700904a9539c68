"""Stale payment cleanup: cancel online orders whose payment never arrived.

Meant to be triggered periodically by an external scheduler (cron, K8s
CronJob) through the maintenance endpoint or ``manage.py cancel-stale``.
Orders still awaiting online payment past the threshold have their payment
marked failed and are cancelled by the system. Cash-on-delivery orders are
left alone: their payment is collected on delivery.

The sweep runs as one unit of work. Each order is checked before it is
touched, so an order that no longer qualifies is skipped without leaving a
partial change behind. A payment landing mid-sweep shows up as a version
conflict, and Protean re-runs the sweep against fresh state.
"""

from datetime import UTC, datetime, timedelta

from protean import handle
from protean.fields import DateTime, Integer
from protean.utils.globals import current_domain

from storefront.domain import logger, storefront
from storefront.exceptions import RuleViolation
from storefront.order.order import Order
from storefront.order.states import OrderStatus, PaymentMethod, PaymentStatus
from storefront.utils.clock import as_utc
from storefront.utils.settings import stale_payment_hours


@storefront.command(part_of="Order")
class CancelStalePendingOrders:
    """Cancel online orders still awaiting payment after `older_than_hours`."""

    older_than_hours = Integer(min_value=1)  # defaults to STALE_PAYMENT_HOURS
    as_of = DateTime()  # defaults to now


def stale_payment_reason(hours: int) -> str:
    return f"Automatically cancelled - payment not received within {hours} hours"


@storefront.command_handler(part_of=Order)
class StalePaymentHandler:
    @handle(CancelStalePendingOrders)
    def cancel_stale_pending_orders(self, command):
        as_of = as_utc(command.as_of) or datetime.now(UTC)
        hours = command.older_than_hours or stale_payment_hours()
        cutoff = as_of - timedelta(hours=hours)
        reason = stale_payment_reason(hours)

        logger.info("stale_payment_sweep_started", cutoff=cutoff.isoformat(), threshold_hours=hours)

        repo = current_domain.repository_for(Order)
        awaiting_payment = (
            repo._dao.query.filter(
                payment_method=PaymentMethod.ONLINE.value,
                payment_status=PaymentStatus.PENDING.value,
            )
            .limit(None)
            .all()
            .items
        )
        stale = [
            order
            for order in awaiting_payment
            if order.status != OrderStatus.CANCELLED and order.created_at and as_utc(order.created_at) <= cutoff
        ]

        if not stale:
            logger.info("stale_payment_sweep_found_nothing")
            return 0

        cancelled = 0
        for order in stale:
            try:
                order.expire_unpaid(reason, now=as_of)
            except RuleViolation as exc:
                logger.warning("stale_order_skipped", order_id=str(order.id), error=exc.message)
                continue
            repo.add(order)
            cancelled += 1
            logger.info(
                "stale_order_cancelled",
                order_id=str(order.id),
                order_number=order.order_number,
                placed_at=order.created_at.isoformat(),
            )

        logger.info("stale_payment_sweep_complete", cancelled=cancelled, found=len(stale))
        return cancelled
