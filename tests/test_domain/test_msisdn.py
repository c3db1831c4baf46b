"""
Tests for MSISDN normalization
"""
import pytest

from wathaci.domain.msisdn import is_valid_msisdn, normalize_msisdn


@pytest.mark.parametrize("raw, expected", [
    ("+260 97 1234567", "+260971234567"),
    ("260971234567", "+260971234567"),
    ("0971234567", "+971234567"),
    ("0260-971-234-567", "+260971234567"),
])
def test_normalize(raw, expected):
    assert normalize_msisdn(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "   ", "abc"])
def test_normalize_empty(raw):
    assert normalize_msisdn(raw) is None


@pytest.mark.parametrize("value", ["+260971234567", "260971234567", "123456789", "+123456789012345"])
def test_valid(value):
    assert is_valid_msisdn(value)


@pytest.mark.parametrize("value", [None, "", "+12345678", "+1234567890123456", "+26097 1234567", "097-123"])
def test_invalid(value):
    assert not is_valid_msisdn(value)
