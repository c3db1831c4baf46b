"""
Tests for amount validation helpers
"""
import pytest

from wathaci.utils.validation import normalize_decimal_input, validate_and_normalize_amount, validate_decimal_amount


def test_normalize_decimal_comma():
    assert normalize_decimal_input(" 1 000,50 ") == "1000.50"


def test_validate_valid_amount():
    assert validate_decimal_amount("100.50") == (True, None)
    assert validate_decimal_amount("-20") == (True, None)


def test_validate_too_many_decimals():
    assert validate_decimal_amount("1.234") == (False, "At most 2 decimal places allowed")


def test_validate_garbage():
    assert validate_decimal_amount("ten") == (False, "Invalid amount")


def test_validate_and_normalize():
    assert validate_and_normalize_amount("250,5") == "250.5"
    assert validate_and_normalize_amount(75) == "75"
    with pytest.raises(ValueError, match="Invalid amount"):
        validate_and_normalize_amount("")
