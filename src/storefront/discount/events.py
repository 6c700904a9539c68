"""Domain events for the Discount aggregate."""

from protean.fields import Float, Identifier, String

from storefront.domain import storefront


@storefront.event(part_of="Discount")
class DiscountCreated:
    """An admin added a discount rule."""

    __version__ = 1

    discount_id = Identifier(required=True)
    name = String(required=True)
    scope = String(required=True)
    kind = String(required=True)
    value = Float(required=True)
    category = String()
    product_id = Identifier()


@storefront.event(part_of="Discount")
class DiscountUpdated:
    __version__ = 1

    discount_id = Identifier(required=True)
    changed_fields = String()
