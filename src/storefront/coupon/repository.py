"""Repository for the Coupon aggregate.

Redemption never reads then writes. Each attempt is a conditional update at
the store, ``WHERE code = C AND used_count = observed AND _version = v``,
issued only while ``observed < usage_limit``. The update also advances
``_version``, so an aggregate loaded before the redemption (an admin edit in
flight) fails Protean's optimistic version check instead of writing the old
count back. Losing the race means the row no longer matches; the attempt
re-reads and tries again, a bounded number of times.
"""

from protean.utils.query import Q

from storefront.coupon.coupon import Coupon
from storefront.coupon.terms import normalize_code
from storefront.domain import logger, storefront
from storefront.exceptions import ConcurrencyConflict, RuleCode, RuleViolation
from storefront.utils.settings import coupon_redeem_max_attempts


@storefront.repository(part_of=Coupon)
class CouponRepository:
    def get_by_code(self, code: str) -> Coupon | None:
        normalized = normalize_code(code)
        if not normalized:
            return None
        return self._dao.query.filter(code=normalized).all().first

    def code_taken(self, code: str) -> bool:
        return self.get_by_code(code) is not None

    def compare_and_increment(self, observed: Coupon) -> bool:
        """Advance ``used_count`` by one only if the stored row is still the one observed."""
        used_count = observed.used_count or 0
        matched = self._dao._update_all(
            Q(code=observed.code, used_count=used_count, _version=observed._version),
            {"used_count": used_count + 1, "_version": observed._version + 1},
        )
        return matched == 1

    def redeem(self, code: str) -> int:
        """Consume one use of the coupon and return the new ``used_count``.

        Raises ``RuleViolation`` when the coupon is unknown or already
        exhausted, and ``ConcurrencyConflict`` if every attempt lost its race.
        """
        attempts = coupon_redeem_max_attempts()
        for attempt in range(1, attempts + 1):
            coupon = self.get_by_code(code)
            if coupon is None:
                raise RuleViolation(RuleCode.NOT_FOUND, "Invalid coupon code", field="code")

            observed = coupon.used_count or 0
            if coupon.usage_limit is not None and observed >= coupon.usage_limit:
                raise RuleViolation(
                    RuleCode.USAGE_LIMIT_REACHED, "This coupon has reached its usage limit", field="code"
                )

            if self.compare_and_increment(coupon):
                logger.info("coupon_redeemed", code=coupon.code, used_count=observed + 1, attempt=attempt)
                return observed + 1

            logger.info("coupon_redeem_conflict", code=coupon.code, observed=observed, attempt=attempt)

        logger.warning("coupon_redeem_gave_up", code=normalize_code(code), attempts=attempts)
        raise ConcurrencyConflict(f"Coupon {normalize_code(code)} is being redeemed concurrently, please retry")
