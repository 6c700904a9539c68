"""Storefront API package."""

from storefront.api.errors import register_error_handlers
from storefront.api.routes import coupon_router, discount_router, order_router, pricing_router

__all__ = ["coupon_router", "discount_router", "order_router", "pricing_router", "register_error_handlers"]
