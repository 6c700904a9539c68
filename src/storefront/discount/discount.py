"""Discount aggregate root.

A discount is an admin-managed price reduction scoped to every product, to a
category, or to a single product. Pricing never reads the aggregate
directly; it reads a ``DiscountRule`` snapshot produced by ``to_rule``.
"""

from datetime import UTC, datetime

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, String, Text

from storefront.discount.rules import DiscountKind, DiscountRule, DiscountScope
from storefront.domain import storefront
from storefront.utils.clock import as_utc
from storefront.utils.edits import check_clear

_EDITABLE = ("name", "scope", "category", "product_id", "kind", "value", "start_date", "end_date", "active", "description")
_CLEARABLE = ("start_date", "end_date", "description")


@storefront.aggregate
class Discount:
    name = String(required=True, max_length=200)
    scope = String(required=True, choices=DiscountScope)
    category = String(max_length=100)
    product_id = Identifier()
    kind = String(required=True, choices=DiscountKind)
    value = Float(required=True, min_value=0.0)
    start_date = DateTime()
    end_date = DateTime()
    active = Boolean(default=True)
    description = Text()
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------
    @invariant.post
    def scope_payload_matches_scope(self):
        scope = DiscountScope(self.scope)
        if scope == DiscountScope.CATEGORY:
            if not self.category or self.product_id:
                raise ValidationError({"category": ["A category discount names a category and no product"]})
        elif scope == DiscountScope.PRODUCT:
            if not self.product_id or self.category:
                raise ValidationError({"product_id": ["A product discount names a product and no category"]})
        elif self.category or self.product_id:
            raise ValidationError({"scope": ["A global discount names neither a category nor a product"]})

    @invariant.post
    def percentage_within_bounds(self):
        if self.kind == DiscountKind.PERCENTAGE.value and self.value is not None and self.value > 100:
            raise ValidationError({"value": ["Percentage discount must be between 0 and 100"]})

    @invariant.post
    def end_date_after_start_date(self):
        if self.start_date and self.end_date and as_utc(self.end_date) <= as_utc(self.start_date):
            raise ValidationError({"end_date": ["End date must be after start date"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, name, scope, kind, value, category=None, product_id=None, start_date=None, end_date=None, active=True, description=None):
        from storefront.discount.events import DiscountCreated

        now = datetime.now(UTC)
        discount = cls(
            name=name,
            scope=scope,
            category=category or None,
            product_id=product_id or None,
            kind=kind,
            value=value,
            start_date=start_date,
            end_date=end_date,
            active=active,
            description=description,
            created_at=now,
            updated_at=now,
        )
        discount.raise_(
            DiscountCreated(
                discount_id=str(discount.id),
                name=discount.name,
                scope=discount.scope,
                kind=discount.kind,
                value=discount.value,
                category=discount.category,
                product_id=discount.product_id,
            )
        )
        return discount

    # -------------------------------------------------------------------
    # Behaviour
    # -------------------------------------------------------------------
    def update(self, clear=(), **changes):
        """Apply a partial edit. Keys left as None are untouched; names in `clear` are emptied."""
        from storefront.discount.events import DiscountUpdated

        unknown = set(changes) - set(_EDITABLE)
        if unknown:
            raise ValidationError({field: ["Field cannot be edited"] for field in sorted(unknown)})
        check_clear(clear, changes, _CLEARABLE)

        changed = sorted(field for field, value in changes.items() if value is not None)
        changed += [field for field in clear if field not in changed]

        # Switching scope clears the payload that belongs to the old scope
        if "scope" in changed:
            if changes["scope"] != DiscountScope.CATEGORY.value and "category" not in changed:
                changes["category"] = None
                changed.append("category")
            if changes["scope"] != DiscountScope.PRODUCT.value and "product_id" not in changed:
                changes["product_id"] = None
                changed.append("product_id")

        with atomic_change(self):
            for field in changed:
                setattr(self, field, changes.get(field))
            self.updated_at = datetime.now(UTC)

        self.raise_(
            DiscountUpdated(
                discount_id=str(self.id),
                changed_fields=",".join(sorted(changed)),
            )
        )

    def to_rule(self) -> DiscountRule:
        return DiscountRule(
            discount_id=str(self.id),
            name=self.name,
            scope=DiscountScope(self.scope),
            kind=DiscountKind(self.kind),
            value=self.value,
            category=self.category,
            product_id=str(self.product_id) if self.product_id else None,
            start_date=self.start_date,
            end_date=self.end_date,
            active=bool(self.active),
            created_at=self.created_at,
        )
