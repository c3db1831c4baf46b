"""
Wallet ledger - the only code path that changes payment_accounts balances

apply_wallet_transaction semantics:
    - validation errors, insufficient funds and unexpected failures come back
      as {"success": False, "error": ...}; nothing is raised to the caller
    - an idempotency key that was already recorded short-circuits to the
      original transaction id and leaves the balance untouched
    - the balance row is read with SELECT ... FOR UPDATE, so concurrent calls
      for the same user are serialized by the database
"""
import logging
import time
import uuid
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from wathaci.domain.wallet import (
    DEFAULT_PLATFORM_FEE_PERCENTAGE, balance_field, fee_for_percentage, is_rejected_debit,
    to_decimal, validate_ledger_request,
)
from wathaci.infrastructure.db.models import AuditLog, PaymentAccount, PlatformFeeTier, Transaction
from wathaci.security.policies import is_admin_user

logger = logging.getLogger(__name__)


def _idempotent_result(transaction_id) -> dict:
    return {
        "success": True,
        "idempotent": True,
        "transaction_id": transaction_id,
        "message": "Transaction already processed",
    }


class ApplyWalletTransactionUseCase:
    """
    Use case: apply a signed amount to a user's wallet and record the transaction

    Positive amounts credit the wallet, negative amounts debit it. The stored
    transaction always carries the absolute amount and status `successful`.
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        user_id: uuid.UUID | None,
        amount,
        currency: str | None,
        transaction_type: str | None,
        description: str | None = None,
        idempotency_key: str | None = None,
        provider_reference: str | None = None,
        metadata: dict | None = None,
    ) -> dict:
        try:
            amount = to_decimal(amount)
        except ValueError as exc:
            return {"success": False, "error": str(exc)}

        error = validate_ledger_request(user_id, amount, currency, transaction_type)
        if error:
            return {"success": False, "error": error}

        try:
            if idempotency_key is not None:
                existing_id = self._find_by_key(idempotency_key)
                if existing_id is not None:
                    return _idempotent_result(existing_id)

            field = balance_field(currency)
            account = (
                self.db.query(PaymentAccount)
                .filter(PaymentAccount.user_id == user_id)
                .with_for_update()
                .first()
            )
            if account is None:
                account = PaymentAccount(
                    user_id=user_id,
                    balance_zmw=Decimal("0"),
                    balance_usd=Decimal("0"),
                    pending_balance_zmw=Decimal("0"),
                    pending_balance_usd=Decimal("0"),
                )
                self.db.add(account)
                self.db.flush()

            current_balance = Decimal(getattr(account, field) or 0)
            new_balance = current_balance + amount

            if is_rejected_debit(amount, new_balance):
                self.db.rollback()
                return {
                    "success": False,
                    "error": "Insufficient balance",
                    "current_balance": current_balance,
                    "requested_amount": abs(amount),
                }

            transaction = Transaction(
                user_id=user_id,
                transaction_type=transaction_type,
                amount=abs(amount),
                currency=currency,
                status="successful",
                description=description,
                idempotency_key=idempotency_key,
                provider_reference=provider_reference,
                metadata_json=metadata or {},
            )
            self.db.add(transaction)
            setattr(account, field, new_balance)
            self.db.flush()
            transaction_id = transaction.id
            self.db.commit()

        except IntegrityError:
            # lost a race on the same idempotency key
            self.db.rollback()
            if idempotency_key is not None:
                existing_id = self._find_by_key(idempotency_key)
                if existing_id is not None:
                    return _idempotent_result(existing_id)
            logger.exception("Wallet transaction failed for user %s", user_id)
            return {"success": False, "error": "Transaction conflict, please retry"}

        except Exception as exc:
            self.db.rollback()
            logger.exception("Wallet transaction failed for user %s", user_id)
            return {"success": False, "error": str(exc)}

        logger.info(
            "Wallet %s %s %s for user %s (%s -> %s)",
            transaction_type, amount, currency, user_id, current_balance, new_balance,
        )
        return {
            "success": True,
            "transaction_id": transaction_id,
            "previous_balance": current_balance,
            "new_balance": new_balance,
            "amount": amount,
        }

    def _find_by_key(self, idempotency_key: str):
        row = (
            self.db.query(Transaction.id)
            .filter(Transaction.idempotency_key == idempotency_key)
            .first()
        )
        return row[0] if row else None


class AdminRepairWalletTransactionUseCase:
    """
    Use case: manual balance adjustment by an admin

    Recorded as a `refund` transaction keyed ADMIN-<actor>-<epoch>, plus a
    wallet_adjustment audit row carrying the ledger result.
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(self, actor_user_id: uuid.UUID | None, user_id: uuid.UUID, amount, currency: str, reason: str) -> dict:
        if not is_admin_user(self.db, actor_user_id):
            return {"success": False, "error": "Unauthorized: Admin access required"}

        result = ApplyWalletTransactionUseCase(self.db).execute(
            user_id=user_id,
            amount=amount,
            currency=currency,
            transaction_type="refund",
            description=f"Admin adjustment: {reason}",
            idempotency_key=f"ADMIN-{actor_user_id}-{time.time()}",
            provider_reference="admin",
            metadata={"adjusted_by": str(actor_user_id), "reason": reason},
        )

        self.db.add(AuditLog(
            user_id=actor_user_id,
            action="wallet_adjustment",
            table_name="payment_accounts",
            record_id=str(user_id),
            new_data={"amount": str(amount), "currency": currency},
            metadata_json={"reason": reason, "result": _json_result(result)},
        ))
        self.db.commit()
        return result


def _json_result(result: dict) -> dict:
    return {key: str(value) if isinstance(value, (Decimal, uuid.UUID)) else value for key, value in result.items()}


def calculate_platform_fee(db: Session, amount, currency: str) -> Decimal:
    """
    Fee for a payment amount: first active tier of the currency containing
    the amount, 5% when no tier matches. Rounded to 2 decimals.
    """
    amount = to_decimal(amount)
    tier = (
        db.query(PlatformFeeTier)
        .filter(
            PlatformFeeTier.currency == currency,
            PlatformFeeTier.is_active.is_(True),
            PlatformFeeTier.min_amount <= amount,
            (PlatformFeeTier.max_amount.is_(None)) | (PlatformFeeTier.max_amount >= amount),
        )
        .order_by(PlatformFeeTier.min_amount)
        .first()
    )
    percentage = Decimal(tier.fee_percentage) if tier else DEFAULT_PLATFORM_FEE_PERCENTAGE
    return fee_for_percentage(amount, percentage)
