"""Coupon aggregate root.

Coupons are addressed by code. Codes are stored trimmed and uppercased, and
every lookup normalises the same way, so ``save10`` and `` SAVE10 `` name the
same coupon. ``used_count`` is only ever advanced through the repository's
compare-and-set, never by loading and saving the aggregate.
"""

import json
from datetime import UTC, datetime

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Integer, String, Text

from storefront.coupon.terms import CouponKind, CouponTerms, normalize_code
from storefront.domain import storefront
from storefront.utils.clock import as_utc
from storefront.utils.edits import check_clear

_EDITABLE = (
    "kind",
    "value",
    "min_purchase",
    "start_date",
    "end_date",
    "active",
    "usage_limit",
    "applicable_categories",
    "description",
)
_CLEARABLE = ("start_date", "end_date", "usage_limit", "description")


@storefront.aggregate
class Coupon:
    code = String(required=True, max_length=50, unique=True)
    kind = String(required=True, choices=CouponKind)
    value = Float(required=True)
    min_purchase = Float(default=0.0, min_value=0.0)
    start_date = DateTime()
    end_date = DateTime()
    active = Boolean(default=True)
    usage_limit = Integer(min_value=1)
    used_count = Integer(default=0, min_value=0)
    applicable_categories = Text()  # JSON array of category names; empty means all
    description = Text()
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------
    @invariant.post
    def code_must_not_be_blank(self):
        if not normalize_code(self.code):
            raise ValidationError({"code": ["Coupon code cannot be empty"]})

    @invariant.post
    def value_within_bounds(self):
        if self.value is None:
            return
        if self.value <= 0:
            raise ValidationError({"value": ["Coupon value must be greater than zero"]})
        if self.kind == CouponKind.PERCENTAGE.value and self.value > 100:
            raise ValidationError({"value": ["Percentage coupon cannot exceed 100"]})

    @invariant.post
    def usage_within_limit(self):
        if self.usage_limit is not None and (self.used_count or 0) > self.usage_limit:
            raise ValidationError({"usage_limit": ["Usage limit cannot be below the number of times already used"]})

    @invariant.post
    def end_date_after_start_date(self):
        if self.start_date and self.end_date and as_utc(self.end_date) <= as_utc(self.start_date):
            raise ValidationError({"end_date": ["End date must be after start date"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        code,
        kind,
        value,
        min_purchase=0.0,
        start_date=None,
        end_date=None,
        active=True,
        usage_limit=None,
        applicable_categories=None,
        description=None,
    ):
        from storefront.coupon.events import CouponCreated

        now = datetime.now(UTC)
        coupon = cls(
            code=normalize_code(code),
            kind=kind,
            value=value,
            min_purchase=min_purchase or 0.0,
            start_date=start_date,
            end_date=end_date,
            active=active,
            usage_limit=usage_limit,
            used_count=0,
            applicable_categories=_dump_categories(applicable_categories),
            description=description,
            created_at=now,
            updated_at=now,
        )
        coupon.raise_(
            CouponCreated(
                coupon_id=str(coupon.id),
                code=coupon.code,
                kind=coupon.kind,
                value=coupon.value,
                usage_limit=coupon.usage_limit,
            )
        )
        return coupon

    # -------------------------------------------------------------------
    # Behaviour
    # -------------------------------------------------------------------
    def update(self, clear=(), **changes):
        """Apply a partial edit. None leaves a field as is; names in `clear` are emptied."""
        from storefront.coupon.events import CouponUpdated

        unknown = set(changes) - set(_EDITABLE)
        if unknown:
            raise ValidationError({field: ["Field cannot be edited"] for field in sorted(unknown)})
        check_clear(clear, changes, _CLEARABLE)

        changed = sorted({field for field, value in changes.items() if value is not None} | set(clear))
        with atomic_change(self):
            for field in changed:
                value = changes.get(field)
                if field == "applicable_categories":
                    value = _dump_categories(value)
                setattr(self, field, value)
            self.updated_at = datetime.now(UTC)

        self.raise_(CouponUpdated(coupon_id=str(self.id), code=self.code, changed_fields=",".join(changed)))

    @property
    def categories(self) -> list[str]:
        return json.loads(self.applicable_categories) if self.applicable_categories else []

    def to_terms(self) -> CouponTerms:
        return CouponTerms(
            coupon_id=str(self.id),
            code=self.code,
            kind=CouponKind(self.kind),
            value=self.value,
            min_purchase=self.min_purchase or 0.0,
            start_date=self.start_date,
            end_date=self.end_date,
            active=bool(self.active),
            usage_limit=self.usage_limit,
            used_count=self.used_count or 0,
            applicable_categories=frozenset(self.categories),
            description=self.description,
        )


def _dump_categories(categories) -> str:
    cleaned = sorted({c.strip() for c in categories or [] if c and c.strip()})
    return json.dumps(cleaned)
