"""PlaceOrder: price a cart on the server and persist it as an Order.

Prices come from the catalogue, discounts and the coupon are loaded fresh,
and the client's own total is only ever compared, never charged. A coupon
the customer asked for but that no longer applies rejects the order.
"""

import json

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.catalogue import get_catalogue
from storefront.coupon.coupon import Coupon
from storefront.domain import logger, storefront
from storefront.exceptions import RuleCode, RuleViolation
from storefront.order.order import Order
from storefront.order.states import PaymentMethod
from storefront.pricing.calculator import CartLine
from storefront.pricing.quote import quote
from storefront.utils.money import round_money


@storefront.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON array of {product_id, quantity}
    payment_method = String(required=True, choices=PaymentMethod)
    coupon_code = String(max_length=50)
    expected_final_amount = Float()


def parse_cart(raw_items) -> list[tuple[str, int]]:
    try:
        entries = json.loads(raw_items) if isinstance(raw_items, str) else raw_items
    except json.JSONDecodeError:
        raise ValidationError({"items": ["Items must be a JSON array"]}) from None

    if not entries:
        raise ValidationError({"items": ["An order needs at least one item"]})

    cart = []
    for entry in entries:
        product_id = entry.get("product_id")
        quantity = entry.get("quantity", 1)
        if not product_id:
            raise ValidationError({"items": ["Every item needs a product_id"]})
        if not isinstance(quantity, int) or quantity < 1:
            raise ValidationError({"items": [f"Quantity for {product_id} must be a whole number of at least 1"]})
        cart.append((str(product_id), quantity))
    return cart


def catalogue_lines(cart: list[tuple[str, int]]) -> list[CartLine]:
    records = get_catalogue().lookup([product_id for product_id, _ in cart])
    missing = sorted({product_id for product_id, _ in cart if product_id not in records})
    if missing:
        raise RuleViolation(RuleCode.UNKNOWN_PRODUCT, f"Unknown product(s): {', '.join(missing)}", field="items")

    return [
        CartLine(
            product_id=product_id,
            unit_price=records[product_id].price,
            quantity=quantity,
            category=records[product_id].category,
            name=records[product_id].name,
            image=records[product_id].image,
        )
        for product_id, quantity in cart
    ]


@storefront.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        method = PaymentMethod(command.payment_method)
        breakdown = quote(catalogue_lines(parse_cart(command.items)), command.coupon_code)

        if breakdown.coupon is not None:
            breakdown.coupon.raise_if_rejected()

        if command.expected_final_amount is not None:
            expected = round_money(command.expected_final_amount)
            if expected != breakdown.final_amount:
                logger.warning(
                    "order_price_mismatch",
                    customer_id=str(command.customer_id),
                    expected=expected,
                    computed=breakdown.final_amount,
                )
                raise RuleViolation(
                    RuleCode.PRICE_MISMATCH,
                    f"Prices have changed: the order total is now {breakdown.final_amount:.2f}",
                    field="expected_final_amount",
                )

        order = Order.place(command.customer_id, breakdown, method.value)
        orders = current_domain.repository_for(Order)
        orders.add(order)

        # Cash orders are confirmed at placement, so their coupon is consumed now.
        # A failed redemption rolls back the order added above with it.
        if method == PaymentMethod.COD and order.coupon_code:
            current_domain.repository_for(Coupon).redeem(order.coupon_code)
            order.mark_coupon_redeemed()
            orders.add(order)

        logger.info(
            "order_placed",
            order_id=str(order.id),
            order_number=order.order_number,
            payment_method=order.payment_method,
            final_amount=order.final_amount,
            coupon_code=order.coupon_code,
        )
        return str(order.id)
