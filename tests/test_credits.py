"""Tests for credit computation."""

from decimal import Decimal

from chatmeter.services.credits import compute_credits


def test_weighted_sum_of_tokens() -> None:
    assert compute_credits(100, 50, Decimal("1.1"), Decimal("2.5")) == Decimal("235")


def test_float_weights_are_exact() -> None:
    """Float weights go through their string form, so 0.1 stays 0.1."""
    assert compute_credits(3, 0, 0.1, 0.0) == Decimal("0.3")


def test_negative_tokens_count_as_zero() -> None:
    assert compute_credits(-10, 4, Decimal("1"), Decimal("2")) == Decimal("8")
    assert compute_credits(-1, -1, Decimal("1"), Decimal("1")) == Decimal("0")


def test_zero_usage_is_free() -> None:
    assert compute_credits(0, 0, Decimal("1.2"), Decimal("2.2")) == 0
