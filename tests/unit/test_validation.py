"""
Unit tests for input validators.

Tests cover:
- Amount parsing and bounds
- Rate range and precision
- Slug normalization
- Order id normalization
"""

from decimal import Decimal

import pytest

from affiliate_core.validators import (
    validate_amount,
    validate_order_id,
    validate_rate,
    validate_slug,
)


class TestValidateAmount:
    """Test amount validation."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("150000", Decimal("150000")),
            ("1500,50", Decimal("1500.50")),
            (" 42 ", Decimal("42")),
            (100, Decimal("100")),
            (Decimal("0.01"), Decimal("0.01")),
        ],
    )
    def test_valid_amounts(self, raw, expected):
        """Well-formed positive amounts are parsed."""
        is_valid, value, error = validate_amount(raw)
        assert is_valid is True
        assert value == expected
        assert error is None

    @pytest.mark.parametrize(
        "raw",
        [None, "", "abc", "0", "-10", "1.001", "NaN", "Infinity", True, 1.5],
    )
    def test_invalid_amounts(self, raw):
        """Malformed, non-positive and over-precise amounts are rejected."""
        is_valid, value, error = validate_amount(raw)
        assert is_valid is False
        assert value is None
        assert error

    def test_min_bound(self):
        """Amount below minimum is rejected."""
        is_valid, _, error = validate_amount("99", min_val=Decimal("100"))
        assert is_valid is False
        assert "100" in error

    def test_max_bound(self):
        """Amount above maximum is rejected."""
        is_valid, _, _ = validate_amount("101", max_val=Decimal("100"))
        assert is_valid is False

    def test_bounds_inclusive(self):
        """Bounds themselves are accepted."""
        assert validate_amount("100", min_val=Decimal("100"))[0] is True
        assert validate_amount("100", max_val=Decimal("100"))[0] is True


class TestValidateRate:
    """Test commission rate validation."""

    @pytest.mark.parametrize("raw", ["0", "0.15", "1", Decimal("0.123456")])
    def test_valid_rates(self, raw):
        """Rates within 0..1 are accepted."""
        is_valid, value, error = validate_rate(raw)
        assert is_valid is True
        assert value == Decimal(str(raw))
        assert error is None

    @pytest.mark.parametrize("raw", [None, "", "15", "-0.1", "1.01", "x", "0.1234567"])
    def test_invalid_rates(self, raw):
        """Out-of-range, malformed and over-precise rates are rejected."""
        is_valid, value, _ = validate_rate(raw)
        assert is_valid is False
        assert value is None


class TestValidateSlug:
    """Test slug validation."""

    def test_normalizes_case(self):
        """Slugs are lowercased and trimmed."""
        is_valid, slug, _ = validate_slug("  Summer-Sale-2026 ")
        assert is_valid is True
        assert slug == "summer-sale-2026"

    @pytest.mark.parametrize(
        "raw", [None, "", "ab", "-leading-dash", "has space", "under_score", "x" * 65]
    )
    def test_invalid_slugs(self, raw):
        """Short, long and malformed slugs are rejected."""
        is_valid, slug, error = validate_slug(raw)
        assert is_valid is False
        assert slug is None
        assert error


class TestValidateOrderId:
    """Test order id validation."""

    def test_string_order_id(self):
        """Order ids are trimmed."""
        assert validate_order_id(" ORD-1 ") == (True, "ORD-1", None)

    def test_integer_order_id(self):
        """Integer order ids are converted to strings."""
        assert validate_order_id(123) == (True, "123", None)

    @pytest.mark.parametrize("raw", [None, "", "   ", True, "x" * 65])
    def test_invalid_order_ids(self, raw):
        """Empty and oversized order ids are rejected."""
        is_valid, value, _ = validate_order_id(raw)
        assert is_valid is False
        assert value is None
