"""Tests for discount resolution: precedence, activity and amounts."""

from datetime import UTC, datetime, timedelta

import pytest

from storefront.discount.resolver import resolve_discount
from storefront.discount.rules import DiscountKind, DiscountRule, DiscountScope, discount_amount, is_active

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=UTC)


def _rule(discount_id, scope=DiscountScope.GLOBAL, kind=DiscountKind.PERCENTAGE, value=10.0, **kwargs):
    kwargs.setdefault("created_at", NOW - timedelta(days=1))
    return DiscountRule(discount_id=discount_id, name=discount_id, scope=scope, kind=kind, value=value, **kwargs)


class TestIsActive:
    def test_active_without_dates(self):
        assert is_active(_rule("d1"), NOW)

    def test_inactive_flag(self):
        assert not is_active(_rule("d1", active=False), NOW)

    def test_not_started(self):
        assert not is_active(_rule("d1", start_date=NOW + timedelta(hours=1)), NOW)

    def test_expired_even_when_flag_is_on(self):
        assert not is_active(_rule("d1", active=True, end_date=NOW - timedelta(seconds=1)), NOW)

    def test_window_bounds_are_inclusive(self):
        assert is_active(_rule("d1", start_date=NOW, end_date=NOW), NOW)

    def test_naive_dates_are_treated_as_utc(self):
        naive_start = datetime(2026, 6, 1, 11, 0)
        assert is_active(_rule("d1", start_date=naive_start), NOW)


class TestDiscountAmount:
    def test_percentage(self):
        assert discount_amount(_rule("d1", value=10.0), 1000.0) == 100.0

    def test_percentage_rounds_half_up(self):
        # 12.5% of 0.99 is 0.12375
        assert discount_amount(_rule("d1", value=12.5), 0.99) == 0.12

    def test_flat(self):
        assert discount_amount(_rule("d1", kind=DiscountKind.FLAT, value=50.0), 200.0) == 50.0

    def test_flat_is_clamped_to_price(self):
        assert discount_amount(_rule("d1", kind=DiscountKind.FLAT, value=500.0), 200.0) == 200.0

    def test_full_percentage_zeroes_price(self):
        assert discount_amount(_rule("d1", value=100.0), 80.0) == 80.0


class TestPrecedence:
    def test_no_rules_means_no_discount(self):
        resolved = resolve_discount("p1", "rings", 100.0, [], NOW)
        assert resolved.rule is None
        assert resolved.final_unit_price == 100.0

    def test_product_beats_category_and_global(self):
        rules = [
            _rule("global", value=50.0),
            _rule("category", scope=DiscountScope.CATEGORY, category="rings", value=40.0),
            _rule("product", scope=DiscountScope.PRODUCT, product_id="p1", value=5.0),
        ]
        resolved = resolve_discount("p1", "rings", 100.0, rules, NOW)
        assert resolved.rule.discount_id == "product"
        assert resolved.final_unit_price == 95.0

    def test_precedence_ignores_configuration_order(self):
        rules = [
            _rule("product", scope=DiscountScope.PRODUCT, product_id="p1", value=5.0),
            _rule("category", scope=DiscountScope.CATEGORY, category="rings", value=40.0),
            _rule("global", value=50.0),
        ]
        for ordering in (rules, list(reversed(rules))):
            assert resolve_discount("p1", "rings", 100.0, ordering, NOW).rule.discount_id == "product"

    def test_category_beats_global(self):
        rules = [_rule("global", value=50.0), _rule("category", scope=DiscountScope.CATEGORY, category="rings")]
        assert resolve_discount("p1", "rings", 100.0, rules, NOW).rule.discount_id == "category"

    def test_category_rule_for_other_category_does_not_apply(self):
        rules = [_rule("category", scope=DiscountScope.CATEGORY, category="necklaces")]
        assert resolve_discount("p1", "rings", 100.0, rules, NOW).rule is None

    def test_product_rule_for_other_product_does_not_apply(self):
        rules = [_rule("product", scope=DiscountScope.PRODUCT, product_id="p2"), _rule("global", value=5.0)]
        assert resolve_discount("p1", "rings", 100.0, rules, NOW).rule.discount_id == "global"

    def test_inactive_higher_tier_falls_through(self):
        rules = [
            _rule("product", scope=DiscountScope.PRODUCT, product_id="p1", end_date=NOW - timedelta(days=1)),
            _rule("global", value=5.0),
        ]
        assert resolve_discount("p1", None, 100.0, rules, NOW).rule.discount_id == "global"


class TestTieBreak:
    def test_most_recently_created_wins(self):
        rules = [
            _rule("older", value=50.0, created_at=NOW - timedelta(days=5)),
            _rule("newer", value=5.0, created_at=NOW - timedelta(days=1)),
        ]
        assert resolve_discount("p1", None, 100.0, rules, NOW).rule.discount_id == "newer"

    def test_equal_creation_prefers_larger_amount(self):
        created = NOW - timedelta(days=1)
        rules = [
            _rule("small", value=5.0, created_at=created),
            _rule("large", kind=DiscountKind.FLAT, value=30.0, created_at=created),
        ]
        assert resolve_discount("p1", None, 100.0, rules, NOW).rule.discount_id == "large"

    def test_full_tie_is_broken_by_id(self):
        created = NOW - timedelta(days=1)
        rules = [_rule("b", created_at=created), _rule("a", created_at=created)]
        assert resolve_discount("p1", None, 100.0, rules, NOW).rule.discount_id == "a"


@pytest.mark.parametrize(
    "kind,value",
    [
        (DiscountKind.PERCENTAGE, 0.0),
        (DiscountKind.PERCENTAGE, 33.3),
        (DiscountKind.PERCENTAGE, 100.0),
        (DiscountKind.FLAT, 0.0),
        (DiscountKind.FLAT, 19.99),
        (DiscountKind.FLAT, 10_000.0),
    ],
)
def test_final_unit_price_stays_within_bounds(kind, value):
    resolved = resolve_discount("p1", None, 49.99, [_rule("d", kind=kind, value=value)], NOW)
    assert 0.0 <= resolved.final_unit_price <= 49.99
