"""Configurable fake refund gateway for development and testing.

Succeeds by default. ``configure(should_succeed=False)`` makes every refund
fail, and ``raise_error`` simulates the gateway being unreachable. Every call
is recorded in ``calls``.
"""

from uuid import uuid4

from storefront.gateway.port import RefundGateway, RefundResult


class GatewayUnavailable(Exception):
    pass


class FakeRefundGateway(RefundGateway):
    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.raise_error: bool = False
        self.failure_reason: str = "Refund declined"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool = True, failure_reason: str = "Refund declined", raise_error: bool = False) -> None:
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.raise_error = raise_error

    def create_refund(self, payment_reference: str | None, amount: float, reason: str | None) -> RefundResult:
        self.calls.append(
            {
                "method": "create_refund",
                "payment_reference": payment_reference,
                "amount": amount,
                "reason": reason,
            }
        )

        if self.raise_error:
            raise GatewayUnavailable("Refund gateway unreachable")

        if self.should_succeed:
            return RefundResult(
                success=True,
                refund_id=f"fake_rfnd_{uuid4().hex[:12]}",
                gateway_status="pending",
            )
        return RefundResult(success=False, gateway_status="failed", failure_reason=self.failure_reason)
