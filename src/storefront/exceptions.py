"""Storefront error taxonomy.

Malformed input raises Protean's ``ValidationError`` directly. Business-rule
rejections raise ``RuleViolation``, a ``ValidationError`` that also carries a
machine-readable ``code``. Stale compare-and-set attempts raise
``ConcurrencyConflict``; callers retry with fresh state.
"""

from enum import Enum

from protean.exceptions import InvalidOperationError, ValidationError


class RuleCode(Enum):
    # Coupon rejections, in the order the validator checks them
    NOT_FOUND = "NotFound"
    INACTIVE = "Inactive"
    NOT_YET_STARTED = "NotYetStarted"
    EXPIRED = "Expired"
    USAGE_LIMIT_REACHED = "UsageLimitReached"
    CATEGORY_MISMATCH = "CategoryMismatch"
    BELOW_MINIMUM_PURCHASE = "BelowMinimumPurchase"

    # Order and refund lifecycle
    ILLEGAL_TRANSITION = "IllegalTransition"
    CANCELLATION_NOT_ALLOWED = "CancellationNotAllowed"
    PAYMENT_NOT_SUCCESSFUL = "PaymentNotSuccessful"
    REFUND_ALREADY_INITIATED = "RefundAlreadyInitiated"
    REFUND_NOT_SUPPORTED = "RefundNotSupported"
    UNDO_NOT_CONFIRMED = "UndoNotConfirmed"
    INVALID_REFUND_AMOUNT = "InvalidRefundAmount"

    # Checkout and administration
    PRICE_MISMATCH = "PriceMismatch"
    UNKNOWN_PRODUCT = "UnknownProduct"
    DUPLICATE_CODE = "DuplicateCode"


class RuleViolation(ValidationError):
    """A well-formed request that a business rule rejects."""

    def __init__(self, code: RuleCode, message: str, field: str = "status"):
        self.code = code
        super().__init__({field: [message]})

    @property
    def message(self) -> str:
        return next(iter(self.messages.values()))[0]


class ConcurrencyConflict(InvalidOperationError):
    """The stored state no longer matches the state the caller acted on."""

    def __init__(self, message: str, expected=None, actual=None):
        self.message = message
        self.expected = expected
        self.actual = actual
        super().__init__(message)
