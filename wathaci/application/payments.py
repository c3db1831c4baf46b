"""
Gateway payments and their webhook events

Each (provider, event_id) pair is stored in webhook_events before any side
effect. A redelivered event is a duplicate once it has been processed; an
event whose processing failed is processed again. A successful deposit
payment credits the wallet through the ledger with the idempotency key
"<provider>:<event_id>"; subscription payments activate their plan instead.
"""
import logging
import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from wathaci.application.subscriptions import StartSubscriptionUseCase
from wathaci.application.wallet_ledger import ApplyWalletTransactionUseCase
from wathaci.infrastructure.db.models import Payment, WebhookEvent
from wathaci.utils.dates import utcnow

logger = logging.getLogger(__name__)

SUCCESS_EVENTS = ("payment.successful", "collection.successful", "transfer.successful")
FAILURE_EVENTS = ("payment.failed", "collection.failed", "transfer.failed")


class PaymentValidationError(ValueError):
    pass


def _payment_reference(payload: dict) -> str | None:
    data = payload.get("data") or {}
    return data.get("reference") or payload.get("reference")


class RecordWebhookEventUseCase:
    """
    Use case: store and process one gateway event

    Returns:
        {"status": "duplicate" | "processed" | "ignored" | "failed", "event_id": ..., ...}
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(self, provider: str, event_id: str, event_type: str | None, payload: dict | None) -> dict:
        if not provider or not event_id:
            raise PaymentValidationError("provider and event_id are required")
        payload = payload or {}

        event = self._find(provider, event_id)
        if event is not None and event.processed:
            return {"status": "duplicate", "event_id": event_id}

        if event is None:
            event = WebhookEvent(provider=provider, event_id=event_id, event_type=event_type, payload=payload)
            self.db.add(event)
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                return {"status": "duplicate", "event_id": event_id}
        else:
            logger.info("Reprocessing webhook %s/%s after earlier failure: %s", provider, event_id, event.error)

        try:
            result = self._process(event)
        except Exception as exc:
            self.db.rollback()
            logger.exception("Webhook %s/%s processing failed", provider, event_id)
            event = self._find(provider, event_id)
            event.error = str(exc)
            self.db.commit()
            return {"status": "failed", "event_id": event_id, "error": str(exc)}

        event.processed = result["status"] != "failed"
        event.processed_at = utcnow() if event.processed else None
        event.error = result.get("error")
        self.db.commit()
        return result

    def _find(self, provider: str, event_id: str) -> WebhookEvent | None:
        return self.db.query(WebhookEvent).filter(
            WebhookEvent.provider == provider,
            WebhookEvent.event_id == event_id,
        ).first()

    def _process(self, event: WebhookEvent) -> dict:
        if event.event_type not in SUCCESS_EVENTS + FAILURE_EVENTS:
            return {"status": "ignored", "event_id": event.event_id}

        reference = _payment_reference(event.payload)
        payment = None
        if reference:
            payment = self.db.query(Payment).filter(Payment.reference == reference).first()
        if payment is None:
            return {"status": "failed", "event_id": event.event_id, "error": f"Payment not found: {reference}"}

        if event.event_type in FAILURE_EVENTS:
            payment.status = "failed"
            self.db.commit()
            return {"status": "processed", "event_id": event.event_id, "payment_id": payment.id}

        if payment.status != "succeeded":
            payment.status = "succeeded"
            payment.paid_at = utcnow()
            self.db.commit()

        if payment.type != "deposit":
            return self._settle_non_deposit(event, payment)

        ledger = ApplyWalletTransactionUseCase(self.db).execute(
            user_id=payment.user_id,
            amount=payment.amount,
            currency=payment.currency,
            transaction_type="deposit",
            description=f"{event.provider} payment {reference}",
            idempotency_key=f"{event.provider}:{event.event_id}",
            provider_reference=reference,
            metadata={"webhook_event_id": event.event_id},
        )
        if not ledger["success"]:
            return {"status": "failed", "event_id": event.event_id, "error": ledger["error"]}

        return {
            "status": "processed",
            "event_id": event.event_id,
            "payment_id": payment.id,
            "transaction_id": ledger["transaction_id"],
        }

    def _settle_non_deposit(self, event: WebhookEvent, payment: Payment) -> dict:
        """
        Subscription and other non-deposit payments never touch the wallet.

        A subscription payment carrying a plan_id starts that plan once; the
        new subscription id is kept in the payment metadata.
        """
        result = {"status": "processed", "event_id": event.event_id, "payment_id": payment.id}
        metadata = dict(payment.metadata_json or {})
        plan_id = metadata.get("plan_id")
        if payment.type != "subscription" or not plan_id:
            return result

        if not metadata.get("subscription_id"):
            subscription_id = StartSubscriptionUseCase(self.db).execute(
                user_id=payment.user_id,
                plan_id=uuid.UUID(str(plan_id)),
                currency=payment.currency,
            )
            metadata["subscription_id"] = str(subscription_id)
            payment.metadata_json = metadata
            self.db.commit()
            logger.info("Payment %s started subscription %s", payment.reference, subscription_id)

        result["subscription_id"] = metadata["subscription_id"]
        return result


class CreatePaymentUseCase:
    """
    Use case: register an outgoing gateway payment before redirecting the user
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        user_id: uuid.UUID,
        amount,
        currency: str,
        payment_provider: str,
        reference: str,
        payment_type: str = "subscription",
        metadata: dict | None = None,
    ) -> Payment:
        if not reference:
            raise PaymentValidationError("reference is required")
        payment = Payment(
            user_id=user_id,
            amount=amount,
            currency=currency,
            payment_provider=payment_provider,
            reference=reference,
            type=payment_type,
            status="initiated",
            metadata_json=metadata or {},
        )
        self.db.add(payment)
        self.db.flush()
        self.db.commit()
        return payment
