"""Coupon administration: commands, their handler and snapshot loading."""

import json

from protean import handle
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from storefront.coupon.coupon import Coupon
from storefront.coupon.terms import CouponKind, CouponTerms
from storefront.domain import logger, storefront
from storefront.exceptions import RuleCode, RuleViolation
from storefront.utils.clock import within_window


@storefront.command(part_of="Coupon")
class CreateCoupon:
    code = String(required=True, max_length=50)
    kind = String(required=True, choices=CouponKind)
    value = Float(required=True)
    min_purchase = Float(default=0.0)
    start_date = DateTime()
    end_date = DateTime()
    active = Boolean(default=True)
    usage_limit = Integer()
    applicable_categories = Text()  # JSON array of strings
    description = Text()


@storefront.command(part_of="Coupon")
class UpdateCoupon:
    coupon_id = Identifier(required=True)
    kind = String(choices=CouponKind)
    value = Float()
    min_purchase = Float()
    start_date = DateTime()
    end_date = DateTime()
    active = Boolean()
    usage_limit = Integer()
    applicable_categories = Text()  # JSON array of strings
    description = Text()
    clear_fields = Text()  # JSON array of field names to empty


@storefront.command(part_of="Coupon")
class DeleteCoupon:
    coupon_id = Identifier(required=True)


@storefront.command_handler(part_of=Coupon)
class ManageCouponHandler:
    @handle(CreateCoupon)
    def create_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        if repo.code_taken(command.code):
            raise RuleViolation(RuleCode.DUPLICATE_CODE, "Coupon code already exists", field="code")

        coupon = Coupon.create(
            code=command.code,
            kind=command.kind,
            value=command.value,
            min_purchase=command.min_purchase,
            start_date=command.start_date,
            end_date=command.end_date,
            active=command.active if command.active is not None else True,
            usage_limit=command.usage_limit,
            applicable_categories=_load_categories(command.applicable_categories),
            description=command.description,
        )
        repo.add(coupon)
        logger.info("coupon_created", coupon_id=str(coupon.id), code=coupon.code, kind=coupon.kind)
        return str(coupon.id)

    @handle(UpdateCoupon)
    def update_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        coupon = repo.get(command.coupon_id)
        coupon.update(
            kind=command.kind,
            value=command.value,
            min_purchase=command.min_purchase,
            start_date=command.start_date,
            end_date=command.end_date,
            active=command.active,
            usage_limit=command.usage_limit,
            applicable_categories=_load_categories(command.applicable_categories),
            description=command.description,
            clear=json.loads(command.clear_fields) if command.clear_fields else (),
        )
        repo.add(coupon)

    @handle(DeleteCoupon)
    def delete_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        coupon = repo.get(command.coupon_id)
        repo._dao.delete(coupon)
        logger.info("coupon_deleted", coupon_id=str(command.coupon_id), code=coupon.code)


def _load_categories(raw):
    if raw is None:
        return None
    return json.loads(raw)


def load_coupon_terms(code: str | None) -> CouponTerms | None:
    """Snapshot the coupon stored under `code`, or None when there is none."""
    coupon = current_domain.repository_for(Coupon).get_by_code(code)
    return coupon.to_terms() if coupon else None


def all_coupons(**filters) -> list[Coupon]:
    query = current_domain.repository_for(Coupon)._dao.query
    if filters:
        query = query.filter(**filters)
    return query.limit(None).all().items


def usable_coupons(now) -> list[Coupon]:
    """Coupons a customer could apply at `now`, ignoring cart-dependent checks."""
    return [
        coupon
        for coupon in all_coupons(active=True)
        if coupon.active and within_window(now, coupon.start_date, coupon.end_date) and not coupon.to_terms().exhausted
    ]
