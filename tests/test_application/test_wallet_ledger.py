"""
Tests for the wallet ledger use cases
"""
from decimal import Decimal

import pytest

from wathaci.application.wallet_ledger import (
    AdminRepairWalletTransactionUseCase, ApplyWalletTransactionUseCase, calculate_platform_fee,
)
from wathaci.infrastructure.db.models import AuditLog, PaymentAccount, PlatformFeeTier, Transaction


def _balance(db_session, user_id, field="balance_zmw"):
    db_session.expire_all()
    account = db_session.query(PaymentAccount).filter(PaymentAccount.user_id == user_id).one()
    return getattr(account, field)


def test_credit_creates_payment_account(db_session, sample_user):
    result = ApplyWalletTransactionUseCase(db_session).execute(
        user_id=sample_user.id, amount="150.00", currency="ZMW", transaction_type="deposit",
    )

    assert result["success"] is True
    assert result["previous_balance"] == Decimal("0")
    assert result["new_balance"] == Decimal("150.00")
    assert _balance(db_session, sample_user.id) == Decimal("150.00")

    tx = db_session.query(Transaction).filter(Transaction.id == result["transaction_id"]).one()
    assert tx.status == "successful"
    assert tx.amount == Decimal("150.00")


def test_debit_stores_absolute_amount(db_session, sample_user):
    use_case = ApplyWalletTransactionUseCase(db_session)
    use_case.execute(user_id=sample_user.id, amount=100, currency="USD", transaction_type="deposit")

    result = use_case.execute(user_id=sample_user.id, amount=-40, currency="USD", transaction_type="withdrawal")

    assert result["success"] is True
    assert result["new_balance"] == Decimal("60")
    tx = db_session.query(Transaction).filter(Transaction.id == result["transaction_id"]).one()
    assert tx.amount == Decimal("40")
    assert _balance(db_session, sample_user.id, "balance_usd") == Decimal("60")
    # the other currency is untouched
    assert _balance(db_session, sample_user.id, "balance_zmw") == Decimal("0")


def test_same_idempotency_key_applies_once(db_session, sample_user):
    use_case = ApplyWalletTransactionUseCase(db_session)
    first = use_case.execute(
        user_id=sample_user.id, amount=50, currency="ZMW", transaction_type="deposit", idempotency_key="lenco:evt-1",
    )
    replay = use_case.execute(
        user_id=sample_user.id, amount=50, currency="ZMW", transaction_type="deposit", idempotency_key="lenco:evt-1",
    )

    assert first["success"] is True
    assert replay == {
        "success": True,
        "idempotent": True,
        "transaction_id": first["transaction_id"],
        "message": "Transaction already processed",
    }
    assert _balance(db_session, sample_user.id) == Decimal("50")
    assert db_session.query(Transaction).filter(Transaction.idempotency_key == "lenco:evt-1").count() == 1


def test_insufficient_balance_leaves_wallet_untouched(db_session, sample_user):
    use_case = ApplyWalletTransactionUseCase(db_session)
    use_case.execute(user_id=sample_user.id, amount=20, currency="ZMW", transaction_type="deposit")

    result = use_case.execute(user_id=sample_user.id, amount=-25, currency="ZMW", transaction_type="payout")

    assert result == {
        "success": False,
        "error": "Insufficient balance",
        "current_balance": Decimal("20"),
        "requested_amount": Decimal("25"),
    }
    assert _balance(db_session, sample_user.id) == Decimal("20")
    assert db_session.query(Transaction).count() == 1


def test_debit_without_account_is_rejected(db_session, sample_user):
    result = ApplyWalletTransactionUseCase(db_session).execute(
        user_id=sample_user.id, amount=-1, currency="ZMW", transaction_type="payout",
    )
    assert result["success"] is False
    assert result["error"] == "Insufficient balance"
    assert db_session.query(PaymentAccount).count() == 0


@pytest.mark.parametrize("kwargs, error", [
    ({"currency": "EUR"}, "Invalid currency. Must be USD or ZMW"),
    ({"amount": None}, "Amount is required"),
    ({"amount": "abc"}, "Invalid amount: 'abc'"),
    ({"amount": "0.001"}, "Transaction amount below minimum (0.01)"),
    ({"amount": "10.555"}, "Amount must have at most 2 decimal places"),
    ({"transaction_type": "gift"}, None),
])
def test_invalid_requests(db_session, sample_user, kwargs, error):
    params = {"user_id": sample_user.id, "amount": 10, "currency": "ZMW", "transaction_type": "deposit"}
    params.update(kwargs)

    result = ApplyWalletTransactionUseCase(db_session).execute(**params)

    assert result["success"] is False
    if error:
        assert result["error"] == error
    assert db_session.query(Transaction).count() == 0


def test_transaction_insert_is_audited(db_session, sample_user):
    result = ApplyWalletTransactionUseCase(db_session).execute(
        user_id=sample_user.id, amount=5, currency="ZMW", transaction_type="deposit",
    )

    log = db_session.query(AuditLog).filter(AuditLog.table_name == "transactions").one()
    assert log.action == "INSERT"
    assert log.record_id == str(result["transaction_id"])
    assert log.user_id == sample_user.id
    assert log.new_data["status"] == "successful"


def test_admin_repair_requires_admin(db_session, sample_user, make_user):
    other = make_user()
    result = AdminRepairWalletTransactionUseCase(db_session).execute(
        actor_user_id=other.id, user_id=sample_user.id, amount=10, currency="ZMW", reason="test",
    )
    assert result == {"success": False, "error": "Unauthorized: Admin access required"}


def test_admin_repair_applies_refund(db_session, sample_user, make_user):
    admin = make_user(admin_role="admin")

    result = AdminRepairWalletTransactionUseCase(db_session).execute(
        actor_user_id=admin.id, user_id=sample_user.id, amount="12.5", currency="ZMW", reason="double charge",
    )

    assert result["success"] is True
    tx = db_session.query(Transaction).filter(Transaction.id == result["transaction_id"]).one()
    assert tx.transaction_type == "refund"
    assert tx.idempotency_key.startswith(f"ADMIN-{admin.id}-")
    adjustment = db_session.query(AuditLog).filter(AuditLog.action == "wallet_adjustment").one()
    assert adjustment.user_id == admin.id
    assert adjustment.record_id == str(sample_user.id)
    assert adjustment.metadata_json["reason"] == "double charge"


def test_calculate_platform_fee_uses_tier(db_session):
    db_session.add_all([
        PlatformFeeTier(min_amount=Decimal("0"), max_amount=Decimal("500"), fee_percentage=Decimal("5"), currency="ZMW"),
        PlatformFeeTier(min_amount=Decimal("500.01"), max_amount=None, fee_percentage=Decimal("2.5"), currency="ZMW"),
    ])
    db_session.commit()

    assert calculate_platform_fee(db_session, "100", "ZMW") == Decimal("5.00")
    assert calculate_platform_fee(db_session, "1000", "ZMW") == Decimal("25.00")


def test_calculate_platform_fee_falls_back_to_five_percent(db_session):
    assert calculate_platform_fee(db_session, "80", "USD") == Decimal("4.00")
