"""Order, payment and refund state machines.

Order status and refund status are independent machines; they meet only
through payment status. Everything here is pure: functions take the current
state and return or raise, and the Order aggregate applies the result.

Order status:
    pending -> confirmed -> processing -> shipped -> delivered
    cancelled is reachable from every state except itself and never left.

Payment status:
    pending -> success | failed
    failed  -> success                  (a later successful attempt)
    success -> refunded                 (refund completion only)
    refunded -> success                 (refund undo only)

Refund status:
    none -> requested -> processing -> completed
    requested | processing -> rejected
    completed -> processing             (explicitly confirmed undo)
"""

from datetime import datetime, timedelta
from enum import Enum

from protean.exceptions import ValidationError

from storefront.exceptions import RuleCode, RuleViolation
from storefront.utils.clock import as_utc
from storefront.utils.settings import AdminTransitionPolicy


class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(Enum):
    ONLINE = "online"
    COD = "cod"


class RefundStatus(Enum):
    NONE = "none"
    REQUESTED = "requested"
    PROCESSING = "processing"
    COMPLETED = "completed"
    REJECTED = "rejected"


class CancelledBy(Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"
    SYSTEM = "system"


OTHER_REASON = "Other"
CUSTOMER_CANCEL_REASONS = (
    "Ordered by mistake",
    "Found cheaper elsewhere",
    "Delivery taking too long",
    "Changed my mind",
    OTHER_REASON,
)

# Position along the happy path; cancelled sits outside it
_ORDER_RANK = {
    OrderStatus.PENDING: 0,
    OrderStatus.CONFIRMED: 1,
    OrderStatus.PROCESSING: 2,
    OrderStatus.SHIPPED: 3,
    OrderStatus.DELIVERED: 4,
}

_NOT_CUSTOMER_CANCELLABLE = {OrderStatus.SHIPPED, OrderStatus.DELIVERED, OrderStatus.CANCELLED}

_PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.SUCCESS, PaymentStatus.FAILED},
    PaymentStatus.FAILED: {PaymentStatus.SUCCESS},
    PaymentStatus.SUCCESS: {PaymentStatus.REFUNDED},
    PaymentStatus.REFUNDED: {PaymentStatus.SUCCESS},
}

_REFUND_TRANSITIONS = {
    RefundStatus.NONE: set(),  # leaves only through initiation
    RefundStatus.REQUESTED: {RefundStatus.PROCESSING, RefundStatus.REJECTED},
    RefundStatus.PROCESSING: {RefundStatus.COMPLETED, RefundStatus.REJECTED},
    RefundStatus.COMPLETED: {RefundStatus.PROCESSING},  # undo
    RefundStatus.REJECTED: set(),
}


def _illegal(message: str, field: str = "status") -> RuleViolation:
    return RuleViolation(RuleCode.ILLEGAL_TRANSITION, message, field=field)


# ---------------------------------------------------------------------------
# Order status
# ---------------------------------------------------------------------------
def check_admin_transition(current: OrderStatus, target: OrderStatus, policy: AdminTransitionPolicy) -> None:
    if current == target:
        raise _illegal(f"Order is already {current.value}")
    if current == OrderStatus.CANCELLED:
        raise _illegal("A cancelled order cannot change status")
    if target == OrderStatus.CANCELLED:
        return
    if current == OrderStatus.DELIVERED:
        raise _illegal("A delivered order can only be cancelled")
    if policy == AdminTransitionPolicy.FORWARD_ONLY and _ORDER_RANK[target] < _ORDER_RANK[current]:
        raise _illegal(f"Cannot move order back from {current.value} to {target.value}")


def within_cancellation_window(created_at: datetime | None, now: datetime, window_hours: int) -> bool:
    if window_hours <= 0 or created_at is None:
        return True
    return as_utc(now) - as_utc(created_at) <= timedelta(hours=window_hours)


def customer_can_cancel(
    order_status: OrderStatus,
    payment_status: PaymentStatus,
    created_at: datetime | None,
    now: datetime,
    window_hours: int,
) -> bool:
    return (
        order_status not in _NOT_CUSTOMER_CANCELLABLE
        and payment_status != PaymentStatus.REFUNDED
        and within_cancellation_window(created_at, now, window_hours)
    )


def check_cancel_reason(cancelled_by: CancelledBy, reason: str | None, custom_reason: str | None) -> None:
    """Reject a missing reason, or a customer reason outside the fixed set."""
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError({"reason": ["Cancellation reason is required"]})

    if cancelled_by != CancelledBy.CUSTOMER:
        return

    if reason not in CUSTOMER_CANCEL_REASONS:
        raise ValidationError({"reason": [f"Reason must be one of: {', '.join(CUSTOMER_CANCEL_REASONS)}"]})
    if reason == OTHER_REASON and not (custom_reason or "").strip():
        raise ValidationError({"custom_reason": ["Please describe the reason for cancelling"]})


# ---------------------------------------------------------------------------
# Payment status
# ---------------------------------------------------------------------------
def check_payment_transition(current: PaymentStatus, target: PaymentStatus) -> None:
    if target not in _PAYMENT_TRANSITIONS.get(current, set()):
        raise _illegal(f"Payment cannot move from {current.value} to {target.value}", field="payment_status")


# ---------------------------------------------------------------------------
# Refund status
# ---------------------------------------------------------------------------
def is_refund_undo(current: RefundStatus, target: RefundStatus) -> bool:
    return current == RefundStatus.COMPLETED and target == RefundStatus.PROCESSING


def check_refund_transition(current: RefundStatus, target: RefundStatus) -> None:
    if target not in _REFUND_TRANSITIONS.get(current, set()):
        raise _illegal(f"Refund cannot move from {current.value} to {target.value}", field="refund_status")
