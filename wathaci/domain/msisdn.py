"""
MSISDN (mobile number) normalization and validation
"""
import re

MSISDN_PATTERN = r"^\+?[0-9]{9,15}$"
MSISDN_REGEX = re.compile(MSISDN_PATTERN)


def normalize_msisdn(value: str | None) -> str | None:
    """
    Normalize a phone number entered by a user.

    - keeps an explicit "+" prefix and drops whitespace
    - otherwise keeps digits only, strips leading zeros and adds "+"

    Example:
        >>> normalize_msisdn("+260 97 1234567")
        '+260971234567'
        >>> normalize_msisdn("0260-971-234-567")
        '+260971234567'
        >>> normalize_msisdn("   ") is None
        True
    """
    if not value:
        return None
    trimmed = value.strip()
    if not trimmed:
        return None
    if trimmed.startswith("+"):
        return re.sub(r"\s+", "", trimmed)

    digits = re.sub(r"[^0-9]", "", trimmed)
    if not digits:
        return None
    return "+" + digits.lstrip("0")


def is_valid_msisdn(value: str | None) -> bool:
    if not value:
        return False
    return MSISDN_REGEX.match(value) is not None
