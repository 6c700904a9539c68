"""Order aggregate root.

An Order is created from a server-computed ``PriceBreakdown`` and is then
driven by customer and admin actions through two independent machines,
order status and refund status, coupled only through payment status (see
``storefront.order.states``). Every change appends to the timeline; entries
are never removed.

Every mutating method accepts the state the caller last saw
(``expected_status`` / ``expected_refund_status``). If the stored state has
moved on, the method raises ``ConcurrencyConflict`` before touching anything.
"""

import secrets
import string
from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from storefront.domain import storefront
from storefront.exceptions import ConcurrencyConflict, RuleCode, RuleViolation
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
from storefront.order.states import (
    CancelledBy,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    RefundStatus,
    check_admin_transition,
    check_cancel_reason,
    check_payment_transition,
    check_refund_transition,
    customer_can_cancel,
    is_refund_undo,
)
from storefront.utils.money import round_money
from storefront.utils.settings import admin_transition_policy, cancellation_window_hours

_ORDER_NUMBER_ALPHABET = string.ascii_uppercase + string.digits
_REFUND_FIELDS = ("status", "refund_id", "amount", "reason", "initiated_at", "completed_at", "manual_processing")


def generate_order_number() -> str:
    return "ORD-" + "".join(secrets.choice(_ORDER_NUMBER_ALPHABET) for _ in range(8))


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@storefront.value_object(part_of="Order")
class RefundState:
    """Where the order's refund stands. Replaced wholesale on every change."""

    status = String(choices=RefundStatus, default=RefundStatus.NONE.value)
    refund_id = String(max_length=255)
    amount = Float(min_value=0.0)
    reason = Text()
    initiated_at = DateTime()
    completed_at = DateTime()
    manual_processing = Boolean(default=False)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@storefront.entity(part_of="Order")
class OrderItem:
    """A priced line, frozen at placement. ``discount_id`` records which discount was applied."""

    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    category = String(max_length=100)
    image = String(max_length=500)
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    discount_per_unit = Float(default=0.0, min_value=0.0)
    final_unit_price = Float(required=True, min_value=0.0)
    discount_id = Identifier()
    discount_name = String(max_length=200)


@storefront.entity(part_of="Order")
class TimelineEntry:
    event = String(required=True, max_length=100)
    date = DateTime(required=True)
    description = Text()


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class Order:
    order_number = String(required=True, max_length=20, unique=True)
    customer_id = Identifier(required=True)
    items = HasMany(OrderItem)

    # Pricing, frozen at placement
    subtotal = Float(required=True, min_value=0.0)
    product_discount_total = Float(default=0.0, min_value=0.0)
    coupon_code = String(max_length=50)
    coupon_discount_total = Float(default=0.0, min_value=0.0)
    final_amount = Float(required=True, min_value=0.0)
    coupon_redeemed = Boolean(default=False)

    # Payment
    payment_method = String(choices=PaymentMethod, required=True)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_reference = String(max_length=255)

    # Lifecycle
    order_status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    tracking_number = String(max_length=255)
    shipped_at = DateTime()
    delivered_at = DateTime()
    cancelled_by = String(choices=CancelledBy)
    cancel_reason = String(max_length=255)
    custom_cancel_reason = Text()
    cancelled_at = DateTime()

    refund = ValueObject(RefundState)
    timeline = HasMany(TimelineEntry)

    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------
    @invariant.post
    def final_amount_matches_breakdown(self):
        if self.subtotal is None or self.final_amount is None:
            return
        expected = round_money(
            max(0.0, self.subtotal - (self.product_discount_total or 0.0) - (self.coupon_discount_total or 0.0))
        )
        if abs(expected - self.final_amount) > 0.005:
            raise ValidationError({"final_amount": ["Final amount does not match the price breakdown"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(cls, customer_id, breakdown, payment_method, order_number=None):
        """Create an order from a ``PriceBreakdown``.

        Cash-on-delivery orders are confirmed straight away with payment
        pending until collection. Online orders wait for the gateway.
        """
        method = PaymentMethod(payment_method)
        now = datetime.now(UTC)
        status = OrderStatus.CONFIRMED if method == PaymentMethod.COD else OrderStatus.PENDING

        items = [
            OrderItem(
                product_id=line.product_id,
                name=line.name or str(line.product_id),
                category=line.category,
                image=line.image,
                unit_price=line.unit_price,
                quantity=line.quantity,
                discount_per_unit=line.discount_per_unit,
                final_unit_price=line.final_unit_price,
                discount_id=line.discount_id,
                discount_name=line.discount_name,
            )
            for line in breakdown.lines
        ]
        coupon_code = breakdown.coupon_code if breakdown.coupon_applied else None

        timeline = [TimelineEntry(event="Order Placed", date=now, description=f"Order placed with {method.value} payment")]
        if status == OrderStatus.CONFIRMED:
            timeline.append(
                TimelineEntry(event="Order Confirmed", date=now, description="Cash on delivery order confirmed")
            )

        order = cls(
            order_number=order_number or generate_order_number(),
            customer_id=customer_id,
            items=items,
            subtotal=breakdown.subtotal,
            product_discount_total=breakdown.product_discount_total,
            coupon_code=coupon_code,
            coupon_discount_total=breakdown.coupon_discount_total,
            final_amount=breakdown.final_amount,
            payment_method=method.value,
            payment_status=PaymentStatus.PENDING.value,
            order_status=status.value,
            refund=RefundState(status=RefundStatus.NONE.value),
            timeline=timeline,
            created_at=now,
            updated_at=now,
        )
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order.order_number,
                customer_id=str(customer_id),
                payment_method=order.payment_method,
                order_status=order.order_status,
                payment_status=order.payment_status,
                item_count=sum(item.quantity for item in items),
                subtotal=order.subtotal,
                product_discount_total=order.product_discount_total,
                coupon_code=order.coupon_code,
                coupon_discount_total=order.coupon_discount_total,
                final_amount=order.final_amount,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    @property
    def status(self) -> OrderStatus:
        return OrderStatus(self.order_status)

    @property
    def payment(self) -> PaymentStatus:
        return PaymentStatus(self.payment_status)

    @property
    def refund_status(self) -> RefundStatus:
        return RefundStatus(self.refund.status) if self.refund else RefundStatus.NONE

    def _record(self, event, description=None, now=None):
        now = now or datetime.now(UTC)
        self.add_timeline(TimelineEntry(event=event, date=now, description=description))
        self.updated_at = now

    def _assert_expected_status(self, expected_status):
        if expected_status is not None and OrderStatus(expected_status) != self.status:
            raise ConcurrencyConflict(
                f"Order is {self.order_status}, not {expected_status}; reload and retry",
                expected=expected_status,
                actual=self.order_status,
            )

    def _assert_expected_refund_status(self, expected_refund_status):
        if expected_refund_status is not None and RefundStatus(expected_refund_status) != self.refund_status:
            raise ConcurrencyConflict(
                f"Refund is {self.refund_status.value}, not {expected_refund_status}; reload and retry",
                expected=expected_refund_status,
                actual=self.refund_status.value,
            )

    def _replace_refund(self, **changes):
        values = {name: getattr(self.refund, name) for name in _REFUND_FIELDS} if self.refund else {}
        values.update(changes)
        self.refund = RefundState(**values)

    # -------------------------------------------------------------------
    # Order status
    # -------------------------------------------------------------------
    def can_cancel(self, now=None) -> bool:
        """Whether the customer may still cancel."""
        return customer_can_cancel(
            self.status,
            self.payment,
            self.created_at,
            now or datetime.now(UTC),
            cancellation_window_hours(),
        )

    def update_status(self, new_status, expected_status=None, tracking_number=None, reason=None):
        """Admin status update, subject to the configured transition policy."""
        target = OrderStatus(new_status)
        self._assert_expected_status(expected_status)
        check_admin_transition(self.status, target, admin_transition_policy())

        if target == OrderStatus.CANCELLED:
            self.cancel(CancelledBy.ADMIN.value, reason or "Cancelled by admin")
            return

        now = datetime.now(UTC)
        previous = self.order_status
        self.order_status = target.value
        if target == OrderStatus.SHIPPED:
            self.shipped_at = now
            if tracking_number:
                self.tracking_number = tracking_number
        elif target == OrderStatus.DELIVERED:
            self.delivered_at = now

        description = f"Order status changed from {previous} to {target.value}"
        if target == OrderStatus.SHIPPED and self.tracking_number:
            description += f" (tracking {self.tracking_number})"
        self._record("Status Updated", description, now)

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=previous,
                new_status=target.value,
                tracking_number=self.tracking_number,
                changed_at=now,
            )
        )

    def cancel(self, cancelled_by, reason, custom_reason=None, expected_status=None, now=None):
        actor = CancelledBy(cancelled_by)
        self._assert_expected_status(expected_status)
        check_cancel_reason(actor, reason, custom_reason)

        now = now or datetime.now(UTC)
        if self.status == OrderStatus.CANCELLED:
            raise RuleViolation(RuleCode.CANCELLATION_NOT_ALLOWED, "Order is already cancelled")
        if actor == CancelledBy.CUSTOMER and not self.can_cancel(now):
            raise RuleViolation(RuleCode.CANCELLATION_NOT_ALLOWED, "This order can no longer be cancelled")

        previous = self.order_status
        self.order_status = OrderStatus.CANCELLED.value
        self.cancelled_by = actor.value
        self.cancel_reason = reason.strip()
        self.custom_cancel_reason = custom_reason.strip() if custom_reason else None
        self.cancelled_at = now

        description = f"Cancelled by {actor.value}: {self.cancel_reason}"
        if self.custom_cancel_reason:
            description += f" ({self.custom_cancel_reason})"
        self._record("Order Cancelled", description, now)

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                order_number=self.order_number,
                customer_id=str(self.customer_id),
                previous_status=previous,
                cancelled_by=actor.value,
                reason=self.cancel_reason,
                custom_reason=self.custom_cancel_reason,
                payment_status=self.payment_status,
                final_amount=self.final_amount,
                cancelled_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def record_payment_success(self, payment_reference=None):
        if self.payment == PaymentStatus.REFUNDED:
            raise RuleViolation(
                RuleCode.ILLEGAL_TRANSITION, "A refunded payment is restored only by undoing the refund", "payment_status"
            )
        check_payment_transition(self.payment, PaymentStatus.SUCCESS)

        now = datetime.now(UTC)
        self.payment_status = PaymentStatus.SUCCESS.value
        if payment_reference:
            self.payment_reference = payment_reference
        self._record("Payment Successful", f"Payment reference {self.payment_reference or 'n/a'}", now)

        if self.payment_method == PaymentMethod.ONLINE.value and self.status == OrderStatus.PENDING:
            self.order_status = OrderStatus.CONFIRMED.value
            self._record("Order Confirmed", "Order confirmed after successful payment", now)

        self.raise_(
            PaymentConfirmed(
                order_id=str(self.id),
                payment_reference=self.payment_reference,
                order_status=self.order_status,
                confirmed_at=now,
            )
        )

    def record_payment_failure(self, reason=None, now=None):
        check_payment_transition(self.payment, PaymentStatus.FAILED)
        now = now or datetime.now(UTC)
        self.payment_status = PaymentStatus.FAILED.value
        self._record("Payment Failed", reason or "Payment was not completed", now)
        self.raise_(PaymentFailed(order_id=str(self.id), reason=reason, failed_at=now))

    def expire_unpaid(self, reason, now=None):
        """System cancellation of an online order whose payment never arrived.

        Payment is marked failed first, so the cancellation carries no
        successful payment and nothing lands in the refund queue.
        """
        if self.payment_method != PaymentMethod.ONLINE.value or self.payment != PaymentStatus.PENDING:
            raise RuleViolation(
                RuleCode.CANCELLATION_NOT_ALLOWED, "Only online orders still awaiting payment can expire", "payment_status"
            )
        if self.status == OrderStatus.CANCELLED:
            raise RuleViolation(RuleCode.CANCELLATION_NOT_ALLOWED, "Order is already cancelled")

        now = now or datetime.now(UTC)
        self.record_payment_failure(reason, now=now)
        self.cancel(CancelledBy.SYSTEM.value, reason, now=now)

    # -------------------------------------------------------------------
    # Coupon usage
    # -------------------------------------------------------------------
    def mark_coupon_redeemed(self):
        if not self.coupon_code or self.coupon_redeemed:
            return
        self.coupon_redeemed = True
        self._record("Coupon Redeemed", f"Coupon {self.coupon_code} applied")
        self.raise_(CouponRedeemed(order_id=str(self.id), coupon_code=self.coupon_code))

    def note_coupon_not_redeemed(self, message):
        self._record("Coupon Not Redeemed", f"Coupon {self.coupon_code}: {message}")

    # -------------------------------------------------------------------
    # Refunds
    # -------------------------------------------------------------------
    def refund_amount_for(self, amount=None, expected_refund_status=None) -> float:
        """Check that a refund may start and return the amount it would be for."""
        self._assert_expected_refund_status(expected_refund_status)
        if self.payment_method == PaymentMethod.COD.value:
            raise RuleViolation(
                RuleCode.REFUND_NOT_SUPPORTED, "Cash on delivery orders cannot be refunded online", "refund_status"
            )
        if self.payment != PaymentStatus.SUCCESS:
            raise RuleViolation(
                RuleCode.PAYMENT_NOT_SUCCESSFUL, "Only orders with a successful payment can be refunded", "refund_status"
            )
        if self.refund_status != RefundStatus.NONE:
            raise RuleViolation(
                RuleCode.REFUND_ALREADY_INITIATED, "A refund has already been initiated for this order", "refund_status"
            )

        amount = self.final_amount if amount is None else round_money(amount)
        if amount <= 0 or amount > self.final_amount:
            raise RuleViolation(
                RuleCode.INVALID_REFUND_AMOUNT,
                f"Refund amount must be greater than 0 and at most {self.final_amount:.2f}",
                "amount",
            )
        return amount

    def initiate_refund(self, amount, reason=None, refund_id=None, manual_processing=False, expected_refund_status=None):
        """Record a refund request. A refund the gateway did not accept is still requested, for manual handling."""
        amount = self.refund_amount_for(amount, expected_refund_status)

        now = datetime.now(UTC)
        self.refund = RefundState(
            status=RefundStatus.REQUESTED.value,
            refund_id=refund_id,
            amount=amount,
            reason=reason,
            initiated_at=now,
            manual_processing=manual_processing,
        )

        description = f"Refund of {amount:.2f} requested"
        if refund_id:
            description += f" (refund {refund_id})"
        if manual_processing:
            description += "; gateway refund failed, manual processing required"
        self._record("Refund Initiated", description, now)

        self.raise_(
            RefundInitiated(
                order_id=str(self.id),
                refund_id=refund_id,
                amount=amount,
                reason=reason,
                manual_processing=manual_processing,
                initiated_at=now,
            )
        )

    def update_refund_status(self, new_status, expected_refund_status=None, confirm_undo=False):
        target = RefundStatus(new_status)
        self._assert_expected_refund_status(expected_refund_status)
        current = self.refund_status
        check_refund_transition(current, target)

        now = datetime.now(UTC)
        if is_refund_undo(current, target):
            if not confirm_undo:
                raise RuleViolation(
                    RuleCode.UNDO_NOT_CONFIRMED, "Reopening a completed refund must be confirmed", "confirm_undo"
                )
            self.payment_status = PaymentStatus.SUCCESS.value
            self._replace_refund(status=target.value, completed_at=None)
            self._record("Refund Reopened", "Completed refund moved back to processing; payment restored", now)
        else:
            if self.payment != PaymentStatus.SUCCESS:
                raise RuleViolation(
                    RuleCode.PAYMENT_NOT_SUCCESSFUL, "Refunds only progress while the payment is successful", "refund_status"
                )
            if target == RefundStatus.COMPLETED:
                self.payment_status = PaymentStatus.REFUNDED.value
                self._replace_refund(status=target.value, completed_at=now)
            else:
                self._replace_refund(status=target.value)
            self._record(f"Refund {target.value.capitalize()}", f"Refund moved from {current.value} to {target.value}", now)

        self.raise_(
            RefundStatusChanged(
                order_id=str(self.id),
                previous_status=current.value,
                new_status=target.value,
                payment_status=self.payment_status,
                changed_at=now,
            )
        )
