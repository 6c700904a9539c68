"""Storefront bounded context: discounts, coupons, pricing, and orders.

Holds the pricing engine (discount resolution, coupon validation, price
breakdown) and the order lifecycle (order status, payment status, refunds).
"""

from protean.domain import Domain

from storefront.utils.logging import configure_logging, get_logger

# Configure logging for the application
configure_logging()

logger = get_logger(__name__)

# Domain Composition Root
storefront = Domain(name="storefront")
