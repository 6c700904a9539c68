"""Pydantic request/response schemas for the storefront API.

These are the external contracts, kept separate from the Protean commands
they are translated into.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class StatusResponse(BaseModel):
    status: str


# ---------------------------------------------------------------------------
# Discounts
# ---------------------------------------------------------------------------
class CreateDiscountRequest(BaseModel):
    name: str
    scope: str  # global, category, product
    kind: str  # percentage, flat
    value: float = Field(ge=0)
    category: str | None = None
    product_id: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    active: bool = True
    description: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "name": "Ring season",
                    "scope": "category",
                    "category": "rings",
                    "kind": "percentage",
                    "value": 10,
                }
            ]
        }
    }


class UpdateDiscountRequest(BaseModel):
    name: str | None = None
    scope: str | None = None
    kind: str | None = None
    value: float | None = Field(default=None, ge=0)
    category: str | None = None
    product_id: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    active: bool | None = None
    description: str | None = None
    clear_fields: list[str] = Field(default_factory=list)


class DiscountIdResponse(BaseModel):
    discount_id: str


class DiscountResponse(BaseModel):
    discount_id: str
    name: str
    scope: str
    kind: str
    value: float
    category: str | None = None
    product_id: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    active: bool
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


# ---------------------------------------------------------------------------
# Coupons
# ---------------------------------------------------------------------------
class CreateCouponRequest(BaseModel):
    code: str
    kind: str  # percentage, flat
    value: float = Field(gt=0)
    min_purchase: float = Field(default=0.0, ge=0)
    start_date: datetime | None = None
    end_date: datetime | None = None
    active: bool = True
    usage_limit: int | None = Field(default=None, ge=1)
    applicable_categories: list[str] = Field(default_factory=list)
    description: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "code": "FLAT500",
                    "kind": "flat",
                    "value": 500,
                    "min_purchase": 1000,
                    "usage_limit": 100,
                }
            ]
        }
    }


class UpdateCouponRequest(BaseModel):
    kind: str | None = None
    value: float | None = Field(default=None, gt=0)
    min_purchase: float | None = Field(default=None, ge=0)
    start_date: datetime | None = None
    end_date: datetime | None = None
    active: bool | None = None
    usage_limit: int | None = Field(default=None, ge=1)
    applicable_categories: list[str] | None = None
    description: str | None = None
    clear_fields: list[str] = Field(default_factory=list)


class CouponIdResponse(BaseModel):
    coupon_id: str


class CouponResponse(BaseModel):
    coupon_id: str
    code: str
    kind: str
    value: float
    min_purchase: float
    start_date: datetime | None = None
    end_date: datetime | None = None
    active: bool
    usage_limit: int | None = None
    used_count: int
    applicable_categories: list[str]
    description: str | None = None


class CouponCartItem(BaseModel):
    """A cart line as the storefront shows it: price already net of product discounts."""

    product_id: str | None = None
    price: float = Field(ge=0)
    quantity: int = Field(default=1, ge=1)
    category: str | None = None


class ValidateCouponRequest(BaseModel):
    """Either `cart_items`, or a `cart_total` with the `cart_categories` it covers. Items win when both are sent."""

    code: str
    cart_items: list[CouponCartItem] = Field(default_factory=list)
    cart_total: float | None = Field(default=None, ge=0)
    cart_categories: list[str] = Field(default_factory=list)


class CouponDetails(BaseModel):
    code: str
    kind: str
    value: float
    min_purchase: float
    description: str | None = None


class ValidateCouponResponse(BaseModel):
    valid: bool
    discount_amount: float = 0.0
    coupon_details: CouponDetails | None = None
    reason: str | None = None
    message: str | None = None


class ConfirmCouponUsageRequest(BaseModel):
    code: str


class ConfirmCouponUsageResponse(BaseModel):
    code: str
    used_count: int


# ---------------------------------------------------------------------------
# Pricing
# ---------------------------------------------------------------------------
class CartItemRequest(BaseModel):
    product_id: str
    quantity: int = Field(default=1, ge=1)


class QuoteRequest(BaseModel):
    items: list[CartItemRequest] = Field(min_length=1)
    coupon_code: str | None = None


class PricedLineResponse(BaseModel):
    product_id: str
    name: str | None = None
    category: str | None = None
    image: str | None = None
    unit_price: float
    quantity: int
    discount_per_unit: float
    final_unit_price: float
    line_total: float
    discount_id: str | None = None
    discount_name: str | None = None


class QuoteResponse(BaseModel):
    lines: list[PricedLineResponse]
    subtotal: float
    product_discount_total: float
    subtotal_after_product_discounts: float
    coupon_code: str | None = None
    coupon_valid: bool | None = None
    coupon_reason: str | None = None
    coupon_message: str | None = None
    coupon_discount_total: float
    final_amount: float


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class PlaceOrderRequest(BaseModel):
    customer_id: str
    items: list[CartItemRequest] = Field(min_length=1)
    payment_method: str  # online, cod
    coupon_code: str | None = None
    expected_final_amount: float | None = Field(default=None, ge=0)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "customer_id": "cust-001",
                    "items": [{"product_id": "ring-001", "quantity": 2}],
                    "payment_method": "online",
                    "coupon_code": "FLAT500",
                    "expected_final_amount": 1300.0,
                }
            ]
        }
    }


class OrderIdResponse(BaseModel):
    order_id: str


class UpdateOrderStatusRequest(BaseModel):
    status: str
    expected_status: str | None = None
    tracking_number: str | None = None
    reason: str | None = None


class CancelOrderRequest(BaseModel):
    reason: str | None = None
    custom_reason: str | None = None
    cancelled_by: str = "customer"
    expected_status: str | None = None


class PaymentSuccessRequest(BaseModel):
    payment_reference: str | None = None


class PaymentFailureRequest(BaseModel):
    reason: str | None = None


class InitiateRefundRequest(BaseModel):
    amount: float | None = Field(default=None, gt=0)
    reason: str | None = None
    expected_refund_status: str | None = None


class CancelStaleOrdersRequest(BaseModel):
    older_than_hours: int | None = Field(default=None, ge=1)


class CancelStaleOrdersResponse(BaseModel):
    cancelled: int


class RefundIdResponse(BaseModel):
    refund_id: str | None = None
    status: str


class UpdateRefundStatusRequest(BaseModel):
    refund_status: str
    expected_refund_status: str | None = None
    confirm_undo: bool = False


class OrderItemResponse(BaseModel):
    product_id: str
    name: str
    category: str | None = None
    image: str | None = None
    unit_price: float
    quantity: int
    discount_per_unit: float
    final_unit_price: float
    discount_id: str | None = None
    discount_name: str | None = None


class TimelineEntryResponse(BaseModel):
    event: str
    date: datetime
    description: str | None = None


class RefundResponse(BaseModel):
    status: str
    refund_id: str | None = None
    amount: float | None = None
    reason: str | None = None
    initiated_at: datetime | None = None
    completed_at: datetime | None = None
    manual_processing: bool = False


class OrderResponse(BaseModel):
    order_id: str
    order_number: str
    customer_id: str
    items: list[OrderItemResponse]
    subtotal: float
    product_discount_total: float
    coupon_code: str | None = None
    coupon_discount_total: float
    final_amount: float
    coupon_redeemed: bool
    payment_method: str
    payment_status: str
    payment_reference: str | None = None
    order_status: str
    can_cancel: bool
    tracking_number: str | None = None
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None
    cancelled_by: str | None = None
    cancel_reason: str | None = None
    custom_cancel_reason: str | None = None
    cancelled_at: datetime | None = None
    refund: RefundResponse
    timeline: list[TimelineEntryResponse]
    created_at: datetime | None = None
    updated_at: datetime | None = None


class PendingRefundResponse(BaseModel):
    order_id: str
    order_number: str
    customer_id: str
    final_amount: float
    cancelled_by: str | None = None
    cancel_reason: str | None = None
    cancelled_at: datetime | None = None


class OrderSummaryResponse(BaseModel):
    order_id: str
    order_number: str
    customer_id: str
    order_status: str
    payment_status: str
    payment_method: str
    refund_status: str
    item_count: int
    final_amount: float | None = None
    coupon_code: str | None = None
    coupon_redeemed: bool = False
