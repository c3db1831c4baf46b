"""
Wallet ledger rules - validation and balance arithmetic for apply_wallet_transaction
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Optional

CURRENCY_USD = "USD"
CURRENCY_ZMW = "ZMW"
CURRENCIES = (CURRENCY_USD, CURRENCY_ZMW)

TRANSACTION_TYPES = (
    "service_purchase",
    "subscription",
    "platform_fee",
    "payout",
    "refund",
    "deposit",
    "withdrawal",
)

TRANSACTION_STATUSES = ("pending", "processing", "successful", "failed", "refunded", "cancelled")

MAX_TRANSACTION_AMOUNT = Decimal("100000")
MIN_TRANSACTION_AMOUNT = Decimal("0.01")

DEFAULT_PLATFORM_FEE_PERCENTAGE = Decimal("5.00")

_CENT = Decimal("0.01")


def to_decimal(value) -> Optional[Decimal]:
    """Coerce int/str/float/Decimal to Decimal, None stays None."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError(f"Invalid amount: {value!r}")
    if not result.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return result


def validate_ledger_request(user_id, amount: Optional[Decimal], currency: Optional[str], transaction_type: Optional[str]) -> Optional[str]:
    """
    Check apply_wallet_transaction inputs.

    Returns:
        error message, or None when the request is acceptable
    """
    if currency is None or currency not in CURRENCIES:
        return "Invalid currency. Must be USD or ZMW"

    if amount is None:
        return "Amount is required"

    if abs(amount) > MAX_TRANSACTION_AMOUNT:
        return "Transaction amount exceeds maximum limit (100,000)"

    if abs(amount) < MIN_TRANSACTION_AMOUNT and amount != 0:
        return "Transaction amount below minimum (0.01)"

    if amount != amount.quantize(Decimal("0.01")):
        return "Amount must have at most 2 decimal places"

    if transaction_type is None or transaction_type not in TRANSACTION_TYPES:
        return "Invalid transaction type. Must be one of: " + ", ".join(TRANSACTION_TYPES)

    if user_id is None:
        return "User ID is required"

    return None


def balance_field(currency: str) -> str:
    """Name of the payment_accounts column holding the balance for a currency"""
    return "balance_usd" if currency == CURRENCY_USD else "balance_zmw"


def is_rejected_debit(amount: Decimal, new_balance: Decimal) -> bool:
    """Only debits may be refused for taking the balance below zero"""
    return amount < 0 and new_balance < 0


def round_money(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def fee_for_percentage(amount: Decimal, percentage: Decimal) -> Decimal:
    return round_money(amount * (percentage / Decimal("100")))
