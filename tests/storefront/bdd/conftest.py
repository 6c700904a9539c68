"""Shared BDD fixtures and step definitions for the storefront."""

import json

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then, when

from storefront.coupon.management import CreateCoupon
from storefront.discount.management import CreateDiscount
from storefront.exceptions import RuleViolation
from storefront.order.order import Order
from storefront.order.payment import RecordPaymentSuccess
from storefront.order.placement import PlaceOrder
from storefront.order.status import CancelOrder


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture(autouse=True)
def stocked_catalogue(catalogue):
    return catalogue


@pytest.fixture()
def error():
    """Container for captured rule violations."""
    return {"exc": None}


@pytest.fixture()
def checkout():
    """Place an order through the PlaceOrder command and return its id."""
    return _place_order


def _place_order(payment_method, quantity, product_id, coupon_code=None, expected_final_amount=None):
    return current_domain.process(
        PlaceOrder(
            customer_id="cust-bdd-001",
            items=json.dumps([{"product_id": product_id, "quantity": quantity}]),
            payment_method=payment_method,
            coupon_code=coupon_code,
            expected_final_amount=expected_final_amount,
        ),
        asynchronous=False,
    )


def load_order(order_id):
    return current_domain.repository_for(Order).get(order_id)


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a "{kind}" discount of {value:g} on category "{category}"'))
def category_discount(kind, value, category):
    current_domain.process(
        CreateDiscount(name=f"{category} {value:g}", scope="category", kind=kind, value=value, category=category),
        asynchronous=False,
    )


@given(parsers.cfparse('an inactive "{kind}" discount of {value:g} on category "{category}"'))
def inactive_category_discount(kind, value, category):
    current_domain.process(
        CreateDiscount(
            name=f"{category} {value:g}", scope="category", kind=kind, value=value, category=category, active=False
        ),
        asynchronous=False,
    )


@given(parsers.cfparse('a "{kind}" discount of {value:g} on product "{product_id}"'))
def product_discount(kind, value, product_id):
    current_domain.process(
        CreateDiscount(name=f"{product_id} {value:g}", scope="product", kind=kind, value=value, product_id=product_id),
        asynchronous=False,
    )


@given(parsers.cfparse('a "{kind}" coupon "{code}" worth {value:g} with minimum purchase {minimum:g}'))
def coupon_with_minimum(kind, code, value, minimum):
    current_domain.process(
        CreateCoupon(code=code, kind=kind, value=value, min_purchase=minimum),
        asynchronous=False,
    )


@given(parsers.cfparse('a "{kind}" coupon "{code}" worth {value:g} limited to {limit:d} use'))
def coupon_with_limit(kind, code, value, limit):
    current_domain.process(
        CreateCoupon(code=code, kind=kind, value=value, usage_limit=limit),
        asynchronous=False,
    )


@given(
    parsers.cfparse('the customer placed an order paid by "{method}" for {quantity:d} of "{product_id}"'),
    target_fixture="order_id",
)
def placed_order(method, quantity, product_id):
    return _place_order(method, quantity, product_id)


@given("the payment has succeeded")
def payment_succeeded(order_id):
    current_domain.process(RecordPaymentSuccess(order_id=order_id, payment_reference="pay_bdd"), asynchronous=False)


# ---------------------------------------------------------------------------
# When steps (shared)
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the customer cancels because "{reason}"'))
def customer_cancels(order_id, reason, error):
    try:
        current_domain.process(
            CancelOrder(order_id=order_id, cancelled_by="customer", reason=reason),
            asynchronous=False,
        )
    except RuleViolation as exc:
        error["exc"] = exc


# ---------------------------------------------------------------------------
# Then steps (shared)
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the action fails with "{code}"'))
def action_fails_with(error, code):
    assert error["exc"] is not None, "Expected a rule violation but none was raised"
    assert isinstance(error["exc"], RuleViolation)
    assert error["exc"].code.value == code


@then(parsers.cfparse('the order status is "{status}"'))
def order_status_is(order_id, status):
    assert load_order(order_id).order_status == status


@then(parsers.cfparse('the payment status is "{status}"'))
def payment_status_is(order_id, status):
    assert load_order(order_id).payment_status == status


@then(parsers.cfparse('the refund status is "{status}"'))
def refund_status_is(order_id, status):
    assert load_order(order_id).refund_status.value == status
