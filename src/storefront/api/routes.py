"""FastAPI endpoints for discounts, coupons, pricing and orders."""

import json

from fastapi import APIRouter
from protean.utils.globals import current_domain

from storefront.api.schemas import (
    CancelOrderRequest,
    CancelStaleOrdersRequest,
    CancelStaleOrdersResponse,
    ConfirmCouponUsageRequest,
    ConfirmCouponUsageResponse,
    CouponDetails,
    CouponIdResponse,
    CouponResponse,
    CreateCouponRequest,
    CreateDiscountRequest,
    DiscountIdResponse,
    DiscountResponse,
    InitiateRefundRequest,
    OrderIdResponse,
    OrderItemResponse,
    OrderResponse,
    OrderSummaryResponse,
    PaymentFailureRequest,
    PaymentSuccessRequest,
    PendingRefundResponse,
    PlaceOrderRequest,
    PricedLineResponse,
    QuoteRequest,
    QuoteResponse,
    RefundIdResponse,
    RefundResponse,
    StatusResponse,
    TimelineEntryResponse,
    UpdateCouponRequest,
    UpdateDiscountRequest,
    UpdateOrderStatusRequest,
    UpdateRefundStatusRequest,
    ValidateCouponRequest,
    ValidateCouponResponse,
)
from storefront.coupon.coupon import Coupon
from storefront.coupon.management import (
    CreateCoupon,
    DeleteCoupon,
    UpdateCoupon,
    all_coupons,
    load_coupon_terms,
    usable_coupons,
)
from storefront.coupon.usage import ConfirmCouponUsage
from storefront.coupon.validator import summary_lines, validate_coupon
from storefront.discount.discount import Discount
from storefront.discount.management import (
    CreateDiscount,
    DeleteDiscount,
    UpdateDiscount,
    active_discounts,
    all_discounts,
)
from storefront.order.expiry import CancelStalePendingOrders
from storefront.order.order import Order
from storefront.order.payment import RecordPaymentFailure, RecordPaymentSuccess
from storefront.order.placement import PlaceOrder, catalogue_lines, parse_cart
from storefront.order.refund import InitiateRefund, UpdateRefundStatus
from storefront.order.status import CancelOrder, UpdateOrderStatus
from storefront.pricing.calculator import CartLine, price_line
from storefront.pricing.quote import quote
from storefront.projections.order_summary import order_summaries
from storefront.projections.pending_refunds import pending_refunds
from storefront.utils.clock import utc_now

discount_router = APIRouter(prefix="/discounts", tags=["discounts"])
coupon_router = APIRouter(prefix="/coupons", tags=["coupons"])
pricing_router = APIRouter(prefix="/pricing", tags=["pricing"])
order_router = APIRouter(prefix="/orders", tags=["orders"])


# ---------------------------------------------------------------------------
# Serializers
# ---------------------------------------------------------------------------
def _discount_response(discount) -> DiscountResponse:
    return DiscountResponse(
        discount_id=str(discount.id),
        name=discount.name,
        scope=discount.scope,
        kind=discount.kind,
        value=discount.value,
        category=discount.category,
        product_id=str(discount.product_id) if discount.product_id else None,
        start_date=discount.start_date,
        end_date=discount.end_date,
        active=bool(discount.active),
        description=discount.description,
        created_at=discount.created_at,
        updated_at=discount.updated_at,
    )


def _coupon_response(coupon) -> CouponResponse:
    return CouponResponse(
        coupon_id=str(coupon.id),
        code=coupon.code,
        kind=coupon.kind,
        value=coupon.value,
        min_purchase=coupon.min_purchase or 0.0,
        start_date=coupon.start_date,
        end_date=coupon.end_date,
        active=bool(coupon.active),
        usage_limit=coupon.usage_limit,
        used_count=coupon.used_count or 0,
        applicable_categories=coupon.categories,
        description=coupon.description,
    )


def _order_response(order) -> OrderResponse:
    refund = order.refund
    return OrderResponse(
        order_id=str(order.id),
        order_number=order.order_number,
        customer_id=str(order.customer_id),
        items=[
            OrderItemResponse(
                product_id=str(item.product_id),
                name=item.name,
                category=item.category,
                image=item.image,
                unit_price=item.unit_price,
                quantity=item.quantity,
                discount_per_unit=item.discount_per_unit or 0.0,
                final_unit_price=item.final_unit_price,
                discount_id=str(item.discount_id) if item.discount_id else None,
                discount_name=item.discount_name,
            )
            for item in order.items
        ],
        subtotal=order.subtotal,
        product_discount_total=order.product_discount_total or 0.0,
        coupon_code=order.coupon_code,
        coupon_discount_total=order.coupon_discount_total or 0.0,
        final_amount=order.final_amount,
        coupon_redeemed=bool(order.coupon_redeemed),
        payment_method=order.payment_method,
        payment_status=order.payment_status,
        payment_reference=order.payment_reference,
        order_status=order.order_status,
        can_cancel=order.can_cancel(),
        tracking_number=order.tracking_number,
        shipped_at=order.shipped_at,
        delivered_at=order.delivered_at,
        cancelled_by=order.cancelled_by,
        cancel_reason=order.cancel_reason,
        custom_cancel_reason=order.custom_cancel_reason,
        cancelled_at=order.cancelled_at,
        refund=RefundResponse(
            status=order.refund_status.value,
            refund_id=refund.refund_id if refund else None,
            amount=refund.amount if refund else None,
            reason=refund.reason if refund else None,
            initiated_at=refund.initiated_at if refund else None,
            completed_at=refund.completed_at if refund else None,
            manual_processing=bool(refund.manual_processing) if refund else False,
        ),
        timeline=[
            TimelineEntryResponse(event=entry.event, date=entry.date, description=entry.description)
            for entry in sorted(order.timeline, key=lambda entry: entry.date)
        ],
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


# ---------------------------------------------------------------------------
# Discounts
# ---------------------------------------------------------------------------
@discount_router.post("", status_code=201, response_model=DiscountIdResponse)
async def create_discount(body: CreateDiscountRequest) -> DiscountIdResponse:
    command = CreateDiscount(**body.model_dump())
    result = current_domain.process(command, asynchronous=False)
    return DiscountIdResponse(discount_id=result)


@discount_router.get("", response_model=list[DiscountResponse])
async def list_discounts() -> list[DiscountResponse]:
    return [_discount_response(discount) for discount in all_discounts()]


@discount_router.get("/active", response_model=list[DiscountResponse])
async def list_active_discounts() -> list[DiscountResponse]:
    """Discounts live right now, evaluated at read time."""
    return [_discount_response(discount) for discount in active_discounts(utc_now())]


@discount_router.get("/{discount_id}", response_model=DiscountResponse)
async def get_discount(discount_id: str) -> DiscountResponse:
    return _discount_response(current_domain.repository_for(Discount).get(discount_id))


@discount_router.put("/{discount_id}", response_model=StatusResponse)
async def update_discount(discount_id: str, body: UpdateDiscountRequest) -> StatusResponse:
    data = body.model_dump(exclude_none=True)
    data["clear_fields"] = json.dumps(data["clear_fields"]) if data["clear_fields"] else None
    command = UpdateDiscount(discount_id=discount_id, **data)
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="ok")


@discount_router.delete("/{discount_id}", response_model=StatusResponse)
async def delete_discount(discount_id: str) -> StatusResponse:
    current_domain.process(DeleteDiscount(discount_id=discount_id), asynchronous=False)
    return StatusResponse(status="deleted")


# ---------------------------------------------------------------------------
# Coupons
# ---------------------------------------------------------------------------
@coupon_router.post("", status_code=201, response_model=CouponIdResponse)
async def create_coupon(body: CreateCouponRequest) -> CouponIdResponse:
    data = body.model_dump()
    data["applicable_categories"] = json.dumps(data["applicable_categories"])
    result = current_domain.process(CreateCoupon(**data), asynchronous=False)
    return CouponIdResponse(coupon_id=result)


@coupon_router.get("", response_model=list[CouponResponse])
async def list_coupons() -> list[CouponResponse]:
    return [_coupon_response(coupon) for coupon in all_coupons()]


@coupon_router.get("/active", response_model=list[CouponResponse])
async def list_active_coupons() -> list[CouponResponse]:
    return [_coupon_response(coupon) for coupon in usable_coupons(utc_now())]


@coupon_router.post("/validate", response_model=ValidateCouponResponse)
async def validate(body: ValidateCouponRequest) -> ValidateCouponResponse:
    """Advisory check of a code against a cart. Never consumes a use."""
    now = utc_now()
    if body.cart_items or body.cart_total is None:
        lines = [
            price_line(
                CartLine(
                    product_id=item.product_id or "", unit_price=item.price, quantity=item.quantity, category=item.category
                ),
                [],
                now,
            )
            for item in body.cart_items
        ]
    else:
        lines = summary_lines(body.cart_total, body.cart_categories)
    result = validate_coupon(load_coupon_terms(body.code), lines, now)
    if not result.valid:
        return ValidateCouponResponse(valid=False, reason=result.reason.value, message=result.message)

    terms = result.terms
    return ValidateCouponResponse(
        valid=True,
        discount_amount=result.discount_amount,
        coupon_details=CouponDetails(
            code=terms.code,
            kind=terms.kind.value,
            value=terms.value,
            min_purchase=terms.min_purchase,
            description=terms.description,
        ),
    )


@coupon_router.post("/confirm-usage", response_model=ConfirmCouponUsageResponse)
async def confirm_usage(body: ConfirmCouponUsageRequest) -> ConfirmCouponUsageResponse:
    used_count = current_domain.process(ConfirmCouponUsage(code=body.code), asynchronous=False)
    coupon = current_domain.repository_for(Coupon).get_by_code(body.code)
    return ConfirmCouponUsageResponse(code=coupon.code, used_count=used_count)


@coupon_router.get("/{coupon_id}", response_model=CouponResponse)
async def get_coupon(coupon_id: str) -> CouponResponse:
    return _coupon_response(current_domain.repository_for(Coupon).get(coupon_id))


@coupon_router.put("/{coupon_id}", response_model=StatusResponse)
async def update_coupon(coupon_id: str, body: UpdateCouponRequest) -> StatusResponse:
    data = body.model_dump(exclude_none=True)
    if "applicable_categories" in data:
        data["applicable_categories"] = json.dumps(data["applicable_categories"])
    data["clear_fields"] = json.dumps(data["clear_fields"]) if data["clear_fields"] else None
    current_domain.process(UpdateCoupon(coupon_id=coupon_id, **data), asynchronous=False)
    return StatusResponse(status="ok")


@coupon_router.delete("/{coupon_id}", response_model=StatusResponse)
async def delete_coupon(coupon_id: str) -> StatusResponse:
    current_domain.process(DeleteCoupon(coupon_id=coupon_id), asynchronous=False)
    return StatusResponse(status="deleted")


# ---------------------------------------------------------------------------
# Pricing
# ---------------------------------------------------------------------------
@pricing_router.post("/quote", response_model=QuoteResponse)
async def price_quote(body: QuoteRequest) -> QuoteResponse:
    """Read-only price breakdown at catalogue prices. Nothing is reserved or consumed."""
    cart = parse_cart([item.model_dump() for item in body.items])
    breakdown = quote(catalogue_lines(cart), body.coupon_code)
    coupon = breakdown.coupon
    return QuoteResponse(
        lines=[
            PricedLineResponse(
                product_id=line.product_id,
                name=line.name,
                category=line.category,
                image=line.image,
                unit_price=line.unit_price,
                quantity=line.quantity,
                discount_per_unit=line.discount_per_unit,
                final_unit_price=line.final_unit_price,
                line_total=line.line_total,
                discount_id=line.discount_id,
                discount_name=line.discount_name,
            )
            for line in breakdown.lines
        ],
        subtotal=breakdown.subtotal,
        product_discount_total=breakdown.product_discount_total,
        subtotal_after_product_discounts=breakdown.subtotal_after_product_discounts,
        coupon_code=breakdown.coupon_code,
        coupon_valid=coupon.valid if coupon else None,
        coupon_reason=coupon.reason.value if coupon and coupon.reason else None,
        coupon_message=coupon.message if coupon else None,
        coupon_discount_total=breakdown.coupon_discount_total,
        final_amount=breakdown.final_amount,
    )


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
@order_router.post("", status_code=201, response_model=OrderIdResponse)
async def place_order(body: PlaceOrderRequest) -> OrderIdResponse:
    command = PlaceOrder(
        customer_id=body.customer_id,
        items=json.dumps([item.model_dump() for item in body.items]),
        payment_method=body.payment_method,
        coupon_code=body.coupon_code,
        expected_final_amount=body.expected_final_amount,
    )
    result = current_domain.process(command, asynchronous=False)
    return OrderIdResponse(order_id=result)


@order_router.get("", response_model=list[OrderSummaryResponse])
async def list_orders(status: str | None = None) -> list[OrderSummaryResponse]:
    return [
        OrderSummaryResponse(
            order_id=str(summary.order_id),
            order_number=summary.order_number,
            customer_id=str(summary.customer_id),
            order_status=summary.order_status,
            payment_status=summary.payment_status,
            payment_method=summary.payment_method,
            refund_status=summary.refund_status,
            item_count=summary.item_count or 0,
            final_amount=summary.final_amount,
            coupon_code=summary.coupon_code,
            coupon_redeemed=bool(summary.coupon_redeemed),
        )
        for summary in order_summaries(status)
    ]


@order_router.get("/pending-refunds", response_model=list[PendingRefundResponse])
async def list_pending_refunds() -> list[PendingRefundResponse]:
    """Cancelled orders that were paid and still await a refund."""
    return [
        PendingRefundResponse(
            order_id=str(record.order_id),
            order_number=record.order_number,
            customer_id=str(record.customer_id),
            final_amount=record.final_amount,
            cancelled_by=record.cancelled_by,
            cancel_reason=record.cancel_reason,
            cancelled_at=record.cancelled_at,
        )
        for record in pending_refunds()
    ]


@order_router.post("/maintenance/cancel-stale", response_model=CancelStaleOrdersResponse)
async def cancel_stale_orders(body: CancelStaleOrdersRequest) -> CancelStaleOrdersResponse:
    """Cancel online orders still awaiting payment. Called by an external scheduler."""
    cancelled = current_domain.process(
        CancelStalePendingOrders(older_than_hours=body.older_than_hours), asynchronous=False
    )
    return CancelStaleOrdersResponse(cancelled=cancelled or 0)


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str) -> OrderResponse:
    return _order_response(current_domain.repository_for(Order).get(order_id))


@order_router.put("/{order_id}/status", response_model=StatusResponse)
async def update_order_status(order_id: str, body: UpdateOrderStatusRequest) -> StatusResponse:
    command = UpdateOrderStatus(
        order_id=order_id,
        status=body.status,
        expected_status=body.expected_status,
        tracking_number=body.tracking_number,
        reason=body.reason,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status=body.status)


@order_router.post("/{order_id}/cancel", response_model=StatusResponse)
async def cancel_order(order_id: str, body: CancelOrderRequest) -> StatusResponse:
    command = CancelOrder(
        order_id=order_id,
        cancelled_by=body.cancelled_by,
        reason=body.reason,
        custom_reason=body.custom_reason,
        expected_status=body.expected_status,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="cancelled")


@order_router.post("/{order_id}/payment/success", response_model=StatusResponse)
async def payment_success(order_id: str, body: PaymentSuccessRequest) -> StatusResponse:
    command = RecordPaymentSuccess(order_id=order_id, payment_reference=body.payment_reference)
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="success")


@order_router.post("/{order_id}/payment/failure", response_model=StatusResponse)
async def payment_failure(order_id: str, body: PaymentFailureRequest) -> StatusResponse:
    command = RecordPaymentFailure(order_id=order_id, reason=body.reason)
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="failed")


@order_router.post("/{order_id}/refund", response_model=RefundIdResponse)
async def initiate_refund(order_id: str, body: InitiateRefundRequest) -> RefundIdResponse:
    command = InitiateRefund(
        order_id=order_id,
        amount=body.amount,
        reason=body.reason,
        expected_refund_status=body.expected_refund_status,
    )
    refund_id = current_domain.process(command, asynchronous=False)
    return RefundIdResponse(refund_id=refund_id, status="requested")


@order_router.put("/{order_id}/refund-status", response_model=StatusResponse)
async def update_refund_status(order_id: str, body: UpdateRefundStatusRequest) -> StatusResponse:
    command = UpdateRefundStatus(
        order_id=order_id,
        refund_status=body.refund_status,
        expected_refund_status=body.expected_refund_status,
        confirm_undo=body.confirm_undo,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status=body.refund_status)
