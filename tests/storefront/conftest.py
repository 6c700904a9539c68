import os

import pytest

from storefront.catalogue import InMemoryCatalogue, ProductRecord, reset_catalogue, set_catalogue
from storefront.gateway import reset_gateway, set_gateway
from storefront.gateway.fake_adapter import FakeRefundGateway


@pytest.fixture(scope="session")
def _storefront_domain(request):
    """Initialize the storefront domain once per session."""
    os.environ["PROTEAN_ENV"] = request.config.option.env

    from storefront.domain import storefront

    storefront.init()
    return storefront


@pytest.fixture(scope="session", autouse=True)
def setup_db(_storefront_domain):
    from storefront.utils.db import drop_db, setup_db

    setup_db(_storefront_domain)

    yield

    drop_db(_storefront_domain)


@pytest.fixture(autouse=True)
def run_around_tests(_storefront_domain, monkeypatch):
    """Push domain context before each test, cleanup after."""
    for knob in (
        "ADMIN_TRANSITION_POLICY",
        "CANCELLATION_WINDOW_HOURS",
        "COUPON_REDEEM_MAX_ATTEMPTS",
        "STALE_PAYMENT_HOURS",
    ):
        monkeypatch.delenv(knob, raising=False)

    ctx = _storefront_domain.domain_context()
    ctx.push()

    yield

    from protean import current_domain

    for _, provider in current_domain.providers.items():
        provider._data_reset()

    current_domain.event_store.store._data_reset()
    ctx.pop()

    reset_catalogue()
    reset_gateway()


@pytest.fixture()
def catalogue():
    """A catalogue with a small jewellery range."""
    catalogue = InMemoryCatalogue(
        [
            ProductRecord(product_id="ring-001", name="Gold Ring", price=1000.0, category="rings", image="ring.jpg"),
            ProductRecord(product_id="ring-002", name="Silver Ring", price=400.0, category="rings"),
            ProductRecord(product_id="neck-001", name="Pearl Necklace", price=2500.0, category="necklaces"),
            ProductRecord(product_id="ear-001", name="Stud Earrings", price=150.0, category="earrings"),
        ]
    )
    set_catalogue(catalogue)
    return catalogue


@pytest.fixture()
def gateway():
    gateway = FakeRefundGateway()
    set_gateway(gateway)
    return gateway
