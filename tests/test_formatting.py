"""Tests for currency display helpers."""

import pytest

from storefront.formatting import format_number, format_price, spend_badge, split_tiers


@pytest.mark.parametrize("amount, tiers", [
    (0, (0, 0, 0)),
    (99, (0, 0, 99)),
    (100, (0, 1, 0)),
    (12345, (1, 23, 45)),
    (20000, (2, 0, 0)),
])
def test_split_tiers(amount, tiers):
    assert split_tiers(amount) == tiers


def test_format_price_skips_empty_tiers():
    assert format_price(0, 'WL', 'DL', 'BGL') == '0 WL'
    assert format_price(10050, 'WL', 'DL', 'BGL') == '1 BGL 50 WL'
    assert format_price(12345, 'WL', 'DL', 'BGL') == '1 BGL 23 DL 45 WL'
    assert format_price(300, 'WL', 'DL', 'BGL') == '3 DL'


def test_negative_amounts_are_rejected():
    with pytest.raises(ValueError):
        split_tiers(-1)
    with pytest.raises(ValueError):
        format_price(-100)


def test_format_number():
    assert format_number(1234567) == '1,234,567'
    assert format_number(None) == '0'


@pytest.mark.parametrize("spent, badge", [
    (0, '🌱 New Customer'),
    (1000, '⭐ Valued Customer'),
    (5000, '💎 Premium User'),
    (25000, '👑 VIP Customer'),
])
def test_spend_badge(spent, badge):
    assert spend_badge(spent) == badge
