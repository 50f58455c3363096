import pytest
import sys
import os

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from statement_tool.engine.models import PricingRule, PricingTier
from statement_tool.engine.price_resolver import (
    PRIORITY_LEVELS, MatchContext, find_price_in_tiers, resolve_price, resolve_price_with_trace,
)


def tier(min_q, max_q, price):
    return PricingTier(min_quantity=min_q, max_quantity=max_q, price=price)


@pytest.fixture
def layered_rules():
    """One rule per scope level for product P1, each with a distinct base price."""
    return [
        PricingRule(id='general', product_id='P1', base_price=100),
        PricingRule(id='general-spec', product_id='P1', specification='A1', base_price=200),
        PricingRule(id='cat', product_id='P1', price_category='industry', base_price=300),
        PricingRule(id='cat-spec', product_id='P1', price_category='industry', specification='A1', base_price=400),
        PricingRule(id='cust', product_id='P1', customer_id='C9', base_price=500),
        PricingRule(id='cust-spec', product_id='P1', customer_id='C9', specification='A1', base_price=600),
    ]


# ----------------------------------------------------------------------------
# Tier resolution
# ----------------------------------------------------------------------------

def test_tier_boundaries_and_open_top_tier():
    tiers = [tier(1, 9, 100), tier(10, None, 80)]
    assert find_price_in_tiers(tiers, 9, 999) == 100
    assert find_price_in_tiers(tiers, 10, 999) == 80
    assert find_price_in_tiers(tiers, 1000, 999) == 80


def test_below_smallest_tier_uses_base_price():
    tiers = [tier(5, 9, 100), tier(10, None, 80)]
    assert find_price_in_tiers(tiers, 3, 120) == 120


def test_above_bounded_top_tier_keeps_top_price():
    """Quantities past the last max keep the last tier's price, not the base price."""
    tiers = [tier(1, 9, 100), tier(10, 49, 80)]
    assert find_price_in_tiers(tiers, 50, 120) == 80
    assert find_price_in_tiers(tiers, 5000, 120) == 80


def test_empty_tiers_return_base_price():
    assert find_price_in_tiers([], 1, 42) == 42
    assert find_price_in_tiers([], 10_000, 42) == 42


def test_unsorted_tiers_are_sorted_without_mutating_input():
    tiers = [tier(10, None, 80), tier(1, 9, 100)]
    assert find_price_in_tiers(tiers, 5, 120) == 100
    assert tiers[0].min_quantity == 10


def test_gap_between_tiers_uses_base_price():
    tiers = [tier(1, 5, 100), tier(10, 20, 80)]
    assert find_price_in_tiers(tiers, 7, 120) == 120


def test_more_than_five_tiers_are_supported():
    tiers = [tier(i * 10 + 1, i * 10 + 10, 100 - i) for i in range(8)]
    assert find_price_in_tiers(tiers, 75, 0) == 93


# ----------------------------------------------------------------------------
# Priority cascade
# ----------------------------------------------------------------------------

def test_priority_levels_are_in_fixed_order():
    names = [level.name for level in PRIORITY_LEVELS]
    assert names == ['customer_spec', 'customer', 'category_spec', 'category', 'general_spec', 'general']


@pytest.mark.parametrize("level_name,rule_id", [
    ('customer_spec', 'cust-spec'),
    ('customer', 'cust'),
    ('category_spec', 'cat-spec'),
    ('category', 'cat'),
    ('general_spec', 'general-spec'),
    ('general', 'general'),
])
def test_each_level_matches_only_its_own_scope(layered_rules, level_name, rule_id):
    level = next(lv for lv in PRIORITY_LEVELS if lv.name == level_name)
    ctx = MatchContext.build(customer_id='C9', price_category='industry', specification='A1')
    assert level.first_match(layered_rules, ctx).id == rule_id


def test_levels_skip_without_context():
    ctx = MatchContext.build(specification='A1')
    applicable = [lv.name for lv in PRIORITY_LEVELS if lv.applies_to(ctx)]
    assert applicable == ['general_spec', 'general']


@pytest.mark.parametrize("kwargs,expected", [
    (dict(specification='A1', customer_id='C9', customer_price_category='industry'), 600),
    (dict(specification='B2', customer_id='C9', customer_price_category='industry'), 500),
    (dict(specification='A1', customer_id='C1', customer_price_category='industry'), 400),
    (dict(specification='B2', customer_id='C1', customer_price_category='industry'), 300),
    (dict(specification='A1', customer_id='C1', customer_price_category='general'), 200),
    (dict(specification='B2', customer_id='C1', customer_price_category='general'), 100),
    (dict(), 100),
])
def test_cascade_degrades_from_specific_to_general(layered_rules, kwargs, expected):
    assert resolve_price('P1', 1, rules=layered_rules, **kwargs) == expected


def test_customer_rule_beats_general_rule():
    rules = [
        PricingRule(id='g', product_id='P1', base_price=100),
        PricingRule(id='c', product_id='P1', customer_id='C9', base_price=90),
    ]
    assert resolve_price('P1', 3, None, 'C9', None, rules) == 90
    assert resolve_price('P1', 3, None, 'C1', None, rules) == 100


def test_category_rule_beats_general_rule():
    rules = [
        PricingRule(id='g', product_id='P1', base_price=100),
        PricingRule(id='cat', product_id='P1', price_category='industry', base_price=70),
    ]
    assert resolve_price('P1', 3, None, 'C1', 'industry', rules) == 70


def test_customer_and_spec_wins_over_category():
    rules = [
        PricingRule(product_id='P1', customer_id='C9', specification='A1', base_price=500, tiers=[]),
        PricingRule(product_id='P1', price_category='industry', base_price=300, tiers=[]),
    ]
    assert resolve_price('P1', 5, 'A1', 'C9', 'industry', rules) == 500


def test_category_rule_with_customer_is_not_a_category_match():
    rules = [
        PricingRule(id='other', product_id='P1', customer_id='C2', price_category='industry', base_price=10),
        PricingRule(id='g', product_id='P1', base_price=100),
    ]
    assert resolve_price('P1', 1, None, 'C1', 'industry', rules) == 100


def test_first_rule_wins_within_a_level():
    rules = [
        PricingRule(id='first', product_id='P1', base_price=100),
        PricingRule(id='second', product_id='P1', base_price=90),
    ]
    assert resolve_price_with_trace('P1', 1, rules=rules).rule_id == 'first'


def test_fallback_to_first_active_rule_when_no_scope_matches():
    rules = [
        PricingRule(id='inactive', product_id='P1', customer_id='C2', base_price=1, is_active=False),
        PricingRule(id='other-cust', product_id='P1', customer_id='C2', base_price=250),
        PricingRule(id='other-cat', product_id='P1', price_category='vip', base_price=150),
    ]
    result = resolve_price_with_trace('P1', 1, customer_id='C1', customer_price_category='general', rules=rules)
    assert result.price == 250
    assert result.level == 'fallback'
    assert result.rule_id == 'other-cust'


def test_not_found_without_active_rules():
    rules = [
        PricingRule(product_id='P1', base_price=100, is_active=False),
        PricingRule(product_id='P2', base_price=100),
    ]
    assert resolve_price('P1', 1, rules=rules) is None
    assert resolve_price('P1', 1, rules=[]) is None


def test_empty_strings_count_as_missing_context():
    rules = [
        PricingRule(product_id='P1', customer_id='', specification='', base_price=100),
        PricingRule(product_id='P1', customer_id='C9', base_price=90),
    ]
    assert resolve_price('P1', 1, '', '', '', rules) == 100


def test_tier_price_applies_to_matched_rule():
    rules = [PricingRule(product_id='P1', base_price=10, tiers=[tier(1, 9, 100), tier(10, None, 80)])]
    assert resolve_price('P1', 12, rules=rules) == 80


def test_result_is_always_a_stored_price(layered_rules):
    rules = layered_rules + [PricingRule(product_id='P1', customer_id='C5', base_price=55,
                                         tiers=[tier(1, 4, 50), tier(5, None, 45)])]
    stored = {r.base_price for r in rules} | {t.price for r in rules for t in r.tiers}
    for qty in (1, 4, 5, 100):
        for cust in (None, 'C5', 'C9'):
            for spec in (None, 'A1'):
                assert resolve_price('P1', qty, spec, cust, 'industry', rules) in stored


def test_rules_may_be_plain_documents():
    rules = [{'productId': 'P1', 'basePrice': 100, 'isActive': True,
              'tiers': [{'minQuantity': 10, 'price': 80}]}]
    assert resolve_price('P1', 10, rules=rules) == 80


def test_trace_records_each_examined_level(layered_rules):
    result = resolve_price_with_trace('P1', 1, 'B2', 'C1', 'industry', layered_rules)
    assert result.level == 'category'
    text = result.get_trace_text()
    assert 'customer_spec' in text
    assert 'matched rule cat' in text


def test_specification_matches_exactly_including_whitespace():
    rules = [
        PricingRule(product_id='P1', customer_id='C9', specification='A1 ', base_price=500),
        PricingRule(product_id='P1', base_price=100),
    ]
    assert rules[0].specification == 'A1 '
    assert resolve_price('P1', 1, 'A1 ', 'C9', None, rules) == 500
    assert resolve_price('P1', 1, 'A1', 'C9', None, rules) == 100


def test_whitespace_only_specification_is_not_a_wildcard():
    rules = [
        PricingRule(id='blank-spec', product_id='P1', specification='  ', base_price=70),
        PricingRule(id='general', product_id='P1', base_price=100),
    ]
    assert rules[0].specification == '  '
    result = resolve_price_with_trace('P1', 1, rules=rules)
    assert result.rule_id == 'general'
    assert resolve_price('P1', 1, '  ', rules=rules) == 70


def test_documents_without_active_flag_are_ignored():
    rules = [
        {'id': 'unflagged', 'productId': 'P1', 'basePrice': 50},
        {'id': 'live', 'productId': 'P1', 'basePrice': 100, 'isActive': True},
    ]
    result = resolve_price_with_trace('P1', 1, rules=rules)
    assert result.rule_id == 'live'
    assert resolve_price('P1', 1, rules=rules[:1]) is None
