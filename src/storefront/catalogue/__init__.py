"""Catalogue factory.

``get_catalogue()`` / ``set_catalogue()`` swap the adapter in use; the
default is an empty ``InMemoryCatalogue``.
"""

from storefront.catalogue.in_memory import InMemoryCatalogue
from storefront.catalogue.port import Catalogue, ProductRecord

__all__ = ["Catalogue", "InMemoryCatalogue", "ProductRecord", "get_catalogue", "reset_catalogue", "set_catalogue"]

_current_catalogue: Catalogue | None = None


def get_catalogue() -> Catalogue:
    global _current_catalogue
    if _current_catalogue is None:
        _current_catalogue = InMemoryCatalogue()
    return _current_catalogue


def set_catalogue(catalogue: Catalogue) -> None:
    global _current_catalogue
    _current_catalogue = catalogue


def reset_catalogue() -> None:
    global _current_catalogue
    _current_catalogue = None
