"""Coupon snapshots and code normalisation."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class CouponKind(Enum):
    PERCENTAGE = "percentage"
    FLAT = "flat"


def normalize_code(code: str | None) -> str:
    return (code or "").strip().upper()


@dataclass(frozen=True)
class CouponTerms:
    """An immutable view of a coupon, taken once per request."""

    coupon_id: str
    code: str
    kind: CouponKind
    value: float
    min_purchase: float = 0.0
    start_date: datetime | None = None
    end_date: datetime | None = None
    active: bool = True
    usage_limit: int | None = None
    used_count: int = 0
    applicable_categories: frozenset[str] = field(default_factory=frozenset)
    description: str | None = None

    @property
    def exhausted(self) -> bool:
        return self.usage_limit is not None and self.used_count >= self.usage_limit
