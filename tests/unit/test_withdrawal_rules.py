"""
Unit tests for withdrawal rules.

Tests cover:
- Display fee (proportional with a flat floor)
- Request input validation
- Operator resolution state machine
"""

from decimal import Decimal

import pytest

from affiliate_core.models.enums import WithdrawalStatus
from affiliate_core.services.withdrawal.withdrawal_fee import calculate_fee
from affiliate_core.services.withdrawal.withdrawal_lifecycle_handler import (
    check_resolution,
    parse_withdrawal_status,
)
from affiliate_core.services.withdrawal.withdrawal_validator import (
    validate_request_input,
)
from affiliate_core.utils.exceptions import (
    AlreadyProcessed,
    InvalidStatusTransition,
    ValidationError,
)


class TestWithdrawalFee:
    """Test fee calculation."""

    def test_floor_applies_to_small_amounts(self):
        """2% of 200,000 is below the 5,000 floor."""
        fee = calculate_fee(Decimal("200000"), Decimal("0.02"), Decimal("5000"))
        assert fee == Decimal("5000")

    def test_proportional_fee_for_large_amounts(self):
        """2% of 1,000,000 is 20,000."""
        fee = calculate_fee(Decimal("1000000"), Decimal("0.02"), Decimal("5000"))
        assert fee == Decimal("20000")

    def test_break_even(self):
        """At 250,000 both rules give 5,000."""
        fee = calculate_fee(Decimal("250000"), Decimal("0.02"), Decimal("5000"))
        assert fee == Decimal("5000")

    def test_rounding(self):
        """Fee is rounded to money precision."""
        fee = calculate_fee(Decimal("100.55"), Decimal("0.015"), Decimal("0"))
        assert fee == Decimal("1.51")


class TestRequestInput:
    """Test request input validation."""

    def test_valid_input(self):
        assert validate_request_input("200000", 1) == Decimal("200000")

    @pytest.mark.parametrize("amount", ["0", "-5", "abc", ""])
    def test_invalid_amount(self, amount):
        with pytest.raises(ValidationError) as exc_info:
            validate_request_input(amount, 1)
        assert exc_info.value.details["field"] == "amount"

    def test_missing_bank_account(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_request_input("200000", None)
        assert exc_info.value.details["field"] == "bank_account_id"


class TestResolution:
    """Test operator resolution transitions."""

    @pytest.mark.parametrize(
        "current, target",
        [
            (WithdrawalStatus.PENDING, WithdrawalStatus.PROCESSING),
            (WithdrawalStatus.PENDING, WithdrawalStatus.COMPLETED),
            (WithdrawalStatus.PENDING, WithdrawalStatus.REJECTED),
            (WithdrawalStatus.PROCESSING, WithdrawalStatus.COMPLETED),
            (WithdrawalStatus.PROCESSING, WithdrawalStatus.REJECTED),
        ],
    )
    def test_allowed(self, current, target):
        check_resolution(current, target)

    @pytest.mark.parametrize(
        "current", [WithdrawalStatus.COMPLETED, WithdrawalStatus.REJECTED]
    )
    def test_terminal_source(self, current):
        """Terminal withdrawals cannot change."""
        with pytest.raises(AlreadyProcessed):
            check_resolution(current, WithdrawalStatus.COMPLETED)

    def test_processing_to_processing(self):
        with pytest.raises(InvalidStatusTransition):
            check_resolution(WithdrawalStatus.PROCESSING, WithdrawalStatus.PROCESSING)

    def test_back_to_pending(self):
        with pytest.raises(InvalidStatusTransition):
            check_resolution(WithdrawalStatus.PROCESSING, WithdrawalStatus.PENDING)


class TestParseStatus:
    """Test status parsing."""

    def test_enum_passthrough(self):
        assert parse_withdrawal_status(WithdrawalStatus.REJECTED) is WithdrawalStatus.REJECTED

    def test_string_case_insensitive(self):
        assert parse_withdrawal_status(" completed ") == WithdrawalStatus.COMPLETED

    def test_unknown(self):
        with pytest.raises(ValidationError):
            parse_withdrawal_status("PAID")
