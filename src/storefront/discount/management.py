"""Discount administration: commands, their handler and snapshot loading."""

import json

from protean import handle
from protean.fields import Boolean, DateTime, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.discount.discount import Discount
from storefront.discount.rules import DiscountKind, DiscountRule, DiscountScope, is_active
from storefront.domain import logger, storefront


@storefront.command(part_of="Discount")
class CreateDiscount:
    name = String(required=True, max_length=200)
    scope = String(required=True, choices=DiscountScope)
    kind = String(required=True, choices=DiscountKind)
    value = Float(required=True)
    category = String(max_length=100)
    product_id = Identifier()
    start_date = DateTime()
    end_date = DateTime()
    active = Boolean(default=True)
    description = Text()


@storefront.command(part_of="Discount")
class UpdateDiscount:
    discount_id = Identifier(required=True)
    name = String(max_length=200)
    scope = String(choices=DiscountScope)
    kind = String(choices=DiscountKind)
    value = Float()
    category = String(max_length=100)
    product_id = Identifier()
    start_date = DateTime()
    end_date = DateTime()
    active = Boolean()
    description = Text()
    clear_fields = Text()  # JSON array of field names to empty


@storefront.command(part_of="Discount")
class DeleteDiscount:
    discount_id = Identifier(required=True)


@storefront.command_handler(part_of=Discount)
class ManageDiscountHandler:
    @handle(CreateDiscount)
    def create_discount(self, command):
        discount = Discount.create(
            name=command.name,
            scope=command.scope,
            kind=command.kind,
            value=command.value,
            category=command.category,
            product_id=command.product_id,
            start_date=command.start_date,
            end_date=command.end_date,
            active=command.active if command.active is not None else True,
            description=command.description,
        )
        current_domain.repository_for(Discount).add(discount)
        logger.info("discount_created", discount_id=str(discount.id), scope=discount.scope, kind=discount.kind)
        return str(discount.id)

    @handle(UpdateDiscount)
    def update_discount(self, command):
        repo = current_domain.repository_for(Discount)
        discount = repo.get(command.discount_id)
        discount.update(
            name=command.name,
            scope=command.scope,
            kind=command.kind,
            value=command.value,
            category=command.category,
            product_id=command.product_id,
            start_date=command.start_date,
            end_date=command.end_date,
            active=command.active,
            description=command.description,
            clear=json.loads(command.clear_fields) if command.clear_fields else (),
        )
        repo.add(discount)

    @handle(DeleteDiscount)
    def delete_discount(self, command):
        repo = current_domain.repository_for(Discount)
        discount = repo.get(command.discount_id)
        repo._dao.delete(discount)
        logger.info("discount_deleted", discount_id=str(command.discount_id))


def all_discounts(**filters) -> list[Discount]:
    """Every stored discount matching `filters`. Snapshots are never truncated by a page size."""
    query = current_domain.repository_for(Discount)._dao.query
    if filters:
        query = query.filter(**filters)
    return query.limit(None).all().items


def load_discount_rules() -> list[DiscountRule]:
    """Snapshot every enabled discount. The date window is decided by the caller at its own `now`."""
    return [record.to_rule() for record in all_discounts(active=True)]


def active_discounts(now) -> list[Discount]:
    return [record for record in all_discounts(active=True) if is_active(record.to_rule(), now)]
