"""Refund gateway factory.

Provides get_gateway() / set_gateway() / reset_gateway(). Defaults to
FakeRefundGateway.
"""

from storefront.gateway.fake_adapter import FakeRefundGateway
from storefront.gateway.port import RefundGateway

_current_gateway: RefundGateway | None = None


def get_gateway() -> RefundGateway:
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = FakeRefundGateway()
    return _current_gateway


def set_gateway(gateway: RefundGateway) -> None:
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    global _current_gateway
    _current_gateway = None
