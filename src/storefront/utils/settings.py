"""Runtime knobs read from the environment.

Values are read on every call so tests (and operators) can change them
without re-importing the domain.
"""

import os
from enum import Enum


class AdminTransitionPolicy(Enum):
    FORWARD_ONLY = "forward_only"
    PERMISSIVE = "permissive"


DEFAULT_CANCELLATION_WINDOW_HOURS = 24
DEFAULT_COUPON_REDEEM_MAX_ATTEMPTS = 5
DEFAULT_STALE_PAYMENT_HOURS = 48


def admin_transition_policy() -> AdminTransitionPolicy:
    raw = os.getenv("ADMIN_TRANSITION_POLICY", AdminTransitionPolicy.FORWARD_ONLY.value).strip().lower()
    try:
        return AdminTransitionPolicy(raw)
    except ValueError:
        raise ValueError(
            f"Unknown ADMIN_TRANSITION_POLICY '{raw}'. "
            f"Expected one of: {', '.join(p.value for p in AdminTransitionPolicy)}"
        ) from None


def cancellation_window_hours() -> int:
    """Hours after placement during which a customer may cancel. 0 disables the window."""
    return int(os.getenv("CANCELLATION_WINDOW_HOURS", str(DEFAULT_CANCELLATION_WINDOW_HOURS)))


def coupon_redeem_max_attempts() -> int:
    return max(1, int(os.getenv("COUPON_REDEEM_MAX_ATTEMPTS", str(DEFAULT_COUPON_REDEEM_MAX_ATTEMPTS))))


def stale_payment_hours() -> int:
    """Age after which an online order still awaiting payment is cancelled by the system."""
    return max(1, int(os.getenv("STALE_PAYMENT_HOURS", str(DEFAULT_STALE_PAYMENT_HOURS))))
