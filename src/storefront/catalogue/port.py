"""Catalogue port.

Product storage lives outside this service. At checkout the engine asks the
catalogue for the authoritative price, name, category and image of every
product in the cart; prices submitted by clients are never charged.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class ProductRecord:
    product_id: str
    name: str
    price: float
    category: str | None = None
    image: str | None = None


class Catalogue(ABC):
    @abstractmethod
    def lookup(self, product_ids: Iterable[str]) -> dict[str, ProductRecord]:
        """Return the records that exist, keyed by product id. Unknown ids are omitted."""
        ...
