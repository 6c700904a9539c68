"""Refund gateway port.

Charging happens in the checkout widget, outside this service; refunds are
pushed back to the gateway through this interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RefundResult:
    success: bool
    refund_id: str | None = None
    gateway_status: str | None = None
    failure_reason: str | None = None


class RefundGateway(ABC):
    @abstractmethod
    def create_refund(self, payment_reference: str | None, amount: float, reason: str | None) -> RefundResult:
        """Ask the gateway to return `amount` of the charge identified by `payment_reference`."""
        ...
