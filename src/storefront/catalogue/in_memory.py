"""Dictionary-backed catalogue for development and testing."""

from collections.abc import Iterable

from storefront.catalogue.port import Catalogue, ProductRecord


class InMemoryCatalogue(Catalogue):
    def __init__(self, products: Iterable[ProductRecord] = ()) -> None:
        self.products: dict[str, ProductRecord] = {}
        for product in products:
            self.add(product)

    def add(self, product: ProductRecord) -> None:
        self.products[str(product.product_id)] = product

    def lookup(self, product_ids: Iterable[str]) -> dict[str, ProductRecord]:
        found = {}
        for product_id in product_ids:
            record = self.products.get(str(product_id))
            if record is not None:
                found[str(product_id)] = record
        return found
