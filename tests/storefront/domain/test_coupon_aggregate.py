"""Tests for the Coupon aggregate."""

from datetime import UTC, datetime, timedelta

import pytest
from protean.exceptions import ValidationError

from storefront.coupon.coupon import Coupon
from storefront.coupon.events import CouponCreated, CouponUpdated
from storefront.coupon.terms import CouponKind


def _coupon(**overrides):
    values = dict(code="save10", kind="percentage", value=10.0)
    values.update(overrides)
    return Coupon.create(**values)


class TestCreation:
    def test_code_is_normalized(self):
        assert _coupon(code="  save10 ").code == "SAVE10"

    def test_create_raises_event(self):
        coupon = _coupon(usage_limit=3)
        event = coupon._events[0]
        assert isinstance(event, CouponCreated)
        assert event.code == "SAVE10"
        assert event.usage_limit == 3

    def test_defaults(self):
        coupon = _coupon()
        assert coupon.used_count == 0
        assert coupon.min_purchase == 0.0
        assert coupon.active is True
        assert coupon.categories == []

    def test_categories_are_stored_deduplicated(self):
        coupon = _coupon(applicable_categories=["rings", " rings", "", "earrings"])
        assert coupon.categories == ["earrings", "rings"]


class TestInvariants:
    def test_blank_code_rejected(self):
        with pytest.raises(ValidationError):
            _coupon(code="   ")

    def test_zero_value_rejected(self):
        with pytest.raises(ValidationError) as exc:
            _coupon(value=0.0)
        assert "Coupon value must be greater than zero" in str(exc.value)

    def test_percentage_above_100_rejected(self):
        with pytest.raises(ValidationError):
            _coupon(value=120.0)

    def test_flat_above_100_allowed(self):
        assert _coupon(kind="flat", value=500.0).value == 500.0

    def test_usage_limit_must_be_positive(self):
        with pytest.raises(ValidationError):
            _coupon(usage_limit=0)

    def test_end_before_start_rejected(self):
        start = datetime(2026, 6, 1, tzinfo=UTC)
        with pytest.raises(ValidationError):
            _coupon(start_date=start, end_date=start - timedelta(hours=1))


class TestUpdate:
    def test_update_changes_only_given_fields(self):
        coupon = _coupon()
        coupon._events.clear()
        coupon.update(min_purchase=250.0, value=None)
        assert coupon.min_purchase == 250.0
        assert coupon.value == 10.0

        event = coupon._events[0]
        assert isinstance(event, CouponUpdated)
        assert event.changed_fields == "min_purchase"

    def test_usage_limit_cannot_drop_below_used_count(self):
        coupon = _coupon(usage_limit=5)
        coupon.used_count = 3
        with pytest.raises(ValidationError):
            coupon.update(usage_limit=2)

    def test_code_is_not_editable(self):
        coupon = _coupon()
        with pytest.raises(ValidationError) as exc:
            coupon.update(code="OTHER")
        assert "code" in exc.value.messages

    def test_categories_are_replaced(self):
        coupon = _coupon(applicable_categories=["rings"])
        coupon.update(applicable_categories=["necklaces"])
        assert coupon.categories == ["necklaces"]

    def test_clearing_limit_and_window(self):
        start = datetime.now(UTC)
        coupon = _coupon(usage_limit=5, start_date=start, end_date=start + timedelta(days=7))
        coupon._events.clear()
        coupon.update(clear=["usage_limit", "end_date"])

        assert coupon.usage_limit is None
        assert coupon.end_date is None
        assert coupon.start_date is not None
        assert coupon._events[0].changed_fields == "end_date,usage_limit"

    def test_required_field_cannot_be_cleared(self):
        coupon = _coupon()
        with pytest.raises(ValidationError) as exc:
            coupon.update(clear=["value"])
        assert "value" in exc.value.messages
        assert coupon.value == 10.0

    def test_cannot_set_and_clear_together(self):
        coupon = _coupon(usage_limit=5)
        with pytest.raises(ValidationError) as exc:
            coupon.update(usage_limit=10, clear=["usage_limit"])
        assert "usage_limit" in exc.value.messages


def test_to_terms_snapshot():
    coupon = _coupon(usage_limit=2, applicable_categories=["rings"])
    terms = coupon.to_terms()
    assert terms.code == "SAVE10"
    assert terms.kind == CouponKind.PERCENTAGE
    assert terms.applicable_categories == frozenset({"rings"})
    assert terms.exhausted is False
