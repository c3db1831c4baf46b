"""
Tests for gateway payments and webhook processing
"""
from decimal import Decimal

import pytest

from wathaci.application.payments import CreatePaymentUseCase, PaymentValidationError, RecordWebhookEventUseCase
from wathaci.infrastructure.db.models import (
    Payment,
    PaymentAccount,
    Subscription,
    SubscriptionPlan,
    Transaction,
    WebhookEvent,
)


@pytest.fixture
def payment(db_session, sample_user):
    return CreatePaymentUseCase(db_session).execute(
        user_id=sample_user.id,
        amount=Decimal("250.00"),
        currency="ZMW",
        payment_provider="lenco",
        reference="WC-0001",
        payment_type="deposit",
    )


def _success_payload(reference="WC-0001"):
    return {"data": {"reference": reference, "status": "successful"}}


def test_successful_event_credits_wallet(db_session, sample_user, payment):
    result = RecordWebhookEventUseCase(db_session).execute(
        "lenco", "evt-1", "collection.successful", _success_payload(),
    )

    assert result["status"] == "processed"
    db_session.expire_all()
    stored = db_session.query(Payment).filter(Payment.id == payment.id).one()
    assert stored.status == "succeeded"
    assert stored.paid_at is not None

    account = db_session.query(PaymentAccount).filter(PaymentAccount.user_id == sample_user.id).one()
    assert account.balance_zmw == Decimal("250.00")
    tx = db_session.query(Transaction).filter(Transaction.id == result["transaction_id"]).one()
    assert tx.idempotency_key == "lenco:evt-1"
    assert tx.transaction_type == "deposit"

    event = db_session.query(WebhookEvent).filter(WebhookEvent.event_id == "evt-1").one()
    assert event.processed is True
    assert event.error is None


def test_redelivered_event_is_duplicate(db_session, sample_user, payment):
    use_case = RecordWebhookEventUseCase(db_session)
    use_case.execute("lenco", "evt-1", "collection.successful", _success_payload())

    again = use_case.execute("lenco", "evt-1", "collection.successful", _success_payload())

    assert again == {"status": "duplicate", "event_id": "evt-1"}
    account = db_session.query(PaymentAccount).filter(PaymentAccount.user_id == sample_user.id).one()
    assert account.balance_zmw == Decimal("250.00")
    assert db_session.query(Transaction).count() == 1


def test_failure_event_marks_payment_failed(db_session, payment):
    result = RecordWebhookEventUseCase(db_session).execute(
        "lenco", "evt-2", "collection.failed", _success_payload(),
    )

    assert result["status"] == "processed"
    db_session.expire_all()
    assert db_session.query(Payment).filter(Payment.id == payment.id).one().status == "failed"
    assert db_session.query(Transaction).count() == 0


def test_unknown_payment_is_recorded_as_failed(db_session):
    result = RecordWebhookEventUseCase(db_session).execute(
        "lenco", "evt-3", "payment.successful", _success_payload("NOPE"),
    )

    assert result["status"] == "failed"
    event = db_session.query(WebhookEvent).filter(WebhookEvent.event_id == "evt-3").one()
    assert event.processed is False
    assert event.error == "Payment not found: NOPE"


def test_other_events_are_ignored(db_session):
    result = RecordWebhookEventUseCase(db_session).execute("lenco", "evt-4", "transfer.pending", {})
    assert result == {"status": "ignored", "event_id": "evt-4"}


def test_event_requires_identifiers(db_session):
    with pytest.raises(PaymentValidationError):
        RecordWebhookEventUseCase(db_session).execute("lenco", "", "payment.successful", {})


def test_create_payment_requires_reference(db_session, sample_user):
    with pytest.raises(PaymentValidationError):
        CreatePaymentUseCase(db_session).execute(
            user_id=sample_user.id, amount=Decimal("1"), currency="ZMW", payment_provider="lenco", reference="",
        )


def test_failed_event_is_processed_again_on_redelivery(db_session, sample_user):
    use_case = RecordWebhookEventUseCase(db_session)
    first = use_case.execute("lenco", "evt-9", "collection.successful", _success_payload("WC-0009"))
    assert first["status"] == "failed"

    CreatePaymentUseCase(db_session).execute(
        user_id=sample_user.id,
        amount=Decimal("75.00"),
        currency="ZMW",
        payment_provider="lenco",
        reference="WC-0009",
        payment_type="deposit",
    )
    second = use_case.execute("lenco", "evt-9", "collection.successful", _success_payload("WC-0009"))

    assert second["status"] == "processed"
    account = db_session.query(PaymentAccount).filter(PaymentAccount.user_id == sample_user.id).one()
    assert account.balance_zmw == Decimal("75.00")
    event = db_session.query(WebhookEvent).filter(WebhookEvent.event_id == "evt-9").one()
    assert event.processed is True
    assert event.error is None

    third = use_case.execute("lenco", "evt-9", "collection.successful", _success_payload("WC-0009"))
    assert third == {"status": "duplicate", "event_id": "evt-9"}
    assert db_session.query(Transaction).count() == 1
    assert db_session.query(WebhookEvent).count() == 1


def test_subscription_payment_does_not_credit_wallet(db_session, sample_user):
    payment = CreatePaymentUseCase(db_session).execute(
        user_id=sample_user.id,
        amount=Decimal("150.00"),
        currency="ZMW",
        payment_provider="lenco",
        reference="WC-SUB-1",
    )

    result = RecordWebhookEventUseCase(db_session).execute(
        "lenco", "evt-sub-1", "payment.successful", _success_payload("WC-SUB-1"),
    )

    assert result == {"status": "processed", "event_id": "evt-sub-1", "payment_id": payment.id}
    db_session.expire_all()
    assert db_session.query(Payment).filter(Payment.id == payment.id).one().status == "succeeded"
    assert db_session.query(PaymentAccount).count() == 0
    assert db_session.query(Transaction).count() == 0


def test_subscription_payment_starts_plan_once(db_session, sample_user):
    plan = SubscriptionPlan(name="SME Starter", account_type="sme", billing_interval="monthly")
    db_session.add(plan)
    db_session.commit()
    CreatePaymentUseCase(db_session).execute(
        user_id=sample_user.id,
        amount=Decimal("150.00"),
        currency="ZMW",
        payment_provider="lenco",
        reference="WC-SUB-2",
        metadata={"plan_id": str(plan.id)},
    )

    use_case = RecordWebhookEventUseCase(db_session)
    first = use_case.execute("lenco", "evt-sub-2", "payment.successful", _success_payload("WC-SUB-2"))
    second = use_case.execute("lenco", "evt-sub-3", "payment.successful", _success_payload("WC-SUB-2"))

    assert first["status"] == "processed"
    assert second["subscription_id"] == first["subscription_id"]
    sub = db_session.query(Subscription).filter(Subscription.user_id == sample_user.id).one()
    assert str(sub.id) == first["subscription_id"]
    assert sub.plan_id == plan.id
    assert sub.status == "active"
    assert db_session.query(Transaction).count() == 0
