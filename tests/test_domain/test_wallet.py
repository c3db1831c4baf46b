"""
Tests for wallet ledger rules
"""
from decimal import Decimal

import pytest

from wathaci.domain.wallet import (
    balance_field, fee_for_percentage, is_rejected_debit, round_money, to_decimal, validate_ledger_request,
)


def test_validate_accepts_credit():
    assert validate_ledger_request("u1", Decimal("100"), "ZMW", "deposit") is None


def test_validate_accepts_zero_amount():
    """Zero is not subject to the minimum amount"""
    assert validate_ledger_request("u1", Decimal("0"), "USD", "refund") is None


@pytest.mark.parametrize("currency", [None, "EUR", "zmw"])
def test_validate_rejects_unknown_currency(currency):
    assert validate_ledger_request("u1", Decimal("1"), currency, "deposit") == "Invalid currency. Must be USD or ZMW"


def test_validate_requires_amount():
    assert validate_ledger_request("u1", None, "ZMW", "deposit") == "Amount is required"


def test_validate_rejects_amount_over_limit():
    error = validate_ledger_request("u1", Decimal("-100000.01"), "ZMW", "payout")
    assert error == "Transaction amount exceeds maximum limit (100,000)"


def test_validate_accepts_amount_at_limit():
    assert validate_ledger_request("u1", Decimal("100000"), "ZMW", "deposit") is None


def test_validate_rejects_amount_below_minimum():
    error = validate_ledger_request("u1", Decimal("0.001"), "ZMW", "deposit")
    assert error == "Transaction amount below minimum (0.01)"


def test_validate_rejects_sub_cent_precision():
    error = validate_ledger_request("u1", Decimal("10.555"), "ZMW", "deposit")
    assert error == "Amount must have at most 2 decimal places"
    assert validate_ledger_request("u1", Decimal("10.550"), "ZMW", "deposit") is None


def test_validate_rejects_unknown_type():
    error = validate_ledger_request("u1", Decimal("1"), "ZMW", "gift")
    assert error.startswith("Invalid transaction type")
    assert "withdrawal" in error


def test_validate_requires_user():
    assert validate_ledger_request(None, Decimal("1"), "ZMW", "deposit") == "User ID is required"


def test_balance_field_per_currency():
    assert balance_field("USD") == "balance_usd"
    assert balance_field("ZMW") == "balance_zmw"


def test_only_debits_are_rejected():
    assert is_rejected_debit(Decimal("-10"), Decimal("-5"))
    assert not is_rejected_debit(Decimal("-10"), Decimal("0"))
    # credits can never be refused, even on an overdrawn account
    assert not is_rejected_debit(Decimal("10"), Decimal("-5"))


def test_to_decimal():
    assert to_decimal("12.50") == Decimal("12.50")
    assert to_decimal(3) == Decimal("3")
    assert to_decimal(None) is None
    with pytest.raises(ValueError):
        to_decimal("abc")
    with pytest.raises(ValueError):
        to_decimal("NaN")


def test_fee_rounding():
    assert fee_for_percentage(Decimal("333"), Decimal("5")) == Decimal("16.65")
    assert fee_for_percentage(Decimal("10.10"), Decimal("2.5")) == Decimal("0.25")
    assert round_money(Decimal("1.005")) == Decimal("1.01")
