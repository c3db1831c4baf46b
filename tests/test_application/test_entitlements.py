"""
Tests for entitlements and the subscription use cases
"""
from datetime import datetime, timedelta, timezone

import pytest

from wathaci.application import entitlements
from wathaci.application.entitlements import (
    FREE_TIER_LIMITS, UNLIMITED, get_grace_period_end, get_user_entitlements, has_full_access,
)
from wathaci.application.subscriptions import (
    CancelSubscriptionUseCase, StartSubscriptionUseCase, SubscriptionValidationError,
    expire_due_subscriptions, period_end_for,
)
from wathaci.config import Settings
from wathaci.infrastructure.db.models import Subscription, SubscriptionPlan

AFTER_GRACE = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
DURING_GRACE = datetime(2025, 12, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def plan(db_session):
    plan = SubscriptionPlan(name="SME Starter", account_type="sme", billing_interval="monthly", features=["listing"])
    db_session.add(plan)
    db_session.commit()
    return plan


def test_grace_period_end_is_lusaka_midnight():
    assert get_grace_period_end() == datetime(2026, 1, 19, 22, 0, tzinfo=timezone.utc)


def test_grace_period_end_follows_configured_timezone(monkeypatch):
    monkeypatch.setattr(entitlements, "get_settings", lambda: Settings(TIMEZONE="Europe/London"))
    assert get_grace_period_end() == datetime(2026, 1, 20, 0, 0, tzinfo=timezone.utc)

    aware = Settings(GRACE_PERIOD_END=datetime(2026, 2, 1, 6, 0, tzinfo=timezone.utc))
    monkeypatch.setattr(entitlements, "get_settings", lambda: aware)
    assert get_grace_period_end() == datetime(2026, 2, 1, 6, 0, tzinfo=timezone.utc)


def test_everyone_has_full_access_during_grace(db_session, sample_user):
    assert has_full_access(db_session, sample_user.id, now=DURING_GRACE) is True


def test_no_access_after_grace_without_subscription(db_session, sample_user):
    assert has_full_access(db_session, sample_user.id, now=AFTER_GRACE) is False

    entitlements = get_user_entitlements(db_session, sample_user.id, now=AFTER_GRACE)
    assert entitlements["has_full_access"] is False
    assert entitlements["in_grace_period"] is False
    assert entitlements["subscription"] is None
    assert entitlements["limits"] == FREE_TIER_LIMITS


def test_admin_always_has_full_access(db_session, make_user):
    admin = make_user(admin_role="super_admin")

    entitlements = get_user_entitlements(db_session, admin.id, now=AFTER_GRACE)

    assert entitlements["has_full_access"] is True
    assert entitlements["is_admin"] is True
    assert entitlements["limits"]["funding_matches_per_month"] == UNLIMITED


def test_active_subscription_gives_full_access(db_session, sample_user, plan):
    StartSubscriptionUseCase(db_session).execute(user_id=sample_user.id, plan_id=plan.id, now=AFTER_GRACE)

    assert has_full_access(db_session, sample_user.id, now=AFTER_GRACE + timedelta(days=10)) is True
    # period ended
    assert has_full_access(db_session, sample_user.id, now=AFTER_GRACE + timedelta(days=40)) is False

    entitlements = get_user_entitlements(db_session, sample_user.id, now=AFTER_GRACE)
    assert entitlements["subscription"]["plan_name"] == "SME Starter"
    assert entitlements["subscription"]["features"] == ["listing"]


def test_trial_does_not_give_full_access(db_session, sample_user, plan):
    StartSubscriptionUseCase(db_session).execute(user_id=sample_user.id, plan_id=plan.id, trial=True, now=AFTER_GRACE)

    entitlements = get_user_entitlements(db_session, sample_user.id, now=AFTER_GRACE + timedelta(days=1))
    assert entitlements["has_full_access"] is False
    assert entitlements["subscription"]["status"] == "trialing"


def test_period_end_clamps_day():
    start = datetime(2025, 1, 31, tzinfo=timezone.utc)
    assert period_end_for(start, "monthly") == datetime(2025, 2, 28, tzinfo=timezone.utc)
    assert period_end_for(start, "quarterly") == datetime(2025, 4, 30, tzinfo=timezone.utc)
    assert period_end_for(start, "annually") == datetime(2026, 1, 31, tzinfo=timezone.utc)
    with pytest.raises(SubscriptionValidationError):
        period_end_for(start, "weekly")


def test_start_subscription_requires_active_plan(db_session, sample_user, plan):
    plan.is_active = False
    db_session.commit()
    with pytest.raises(SubscriptionValidationError):
        StartSubscriptionUseCase(db_session).execute(user_id=sample_user.id, plan_id=plan.id)


def test_cancel_subscription(db_session, sample_user, plan):
    sub_id = StartSubscriptionUseCase(db_session).execute(user_id=sample_user.id, plan_id=plan.id)
    use_case = CancelSubscriptionUseCase(db_session)

    use_case.execute(sub_id, sample_user.id)
    sub = db_session.query(Subscription).filter(Subscription.id == sub_id).one()
    assert sub.cancel_at_period_end is True
    assert sub.status == "active"

    use_case.execute(sub_id, sample_user.id, immediately=True)
    assert sub.status == "cancelled"
    assert sub.cancelled_at is not None

    with pytest.raises(SubscriptionValidationError, match="already cancelled"):
        use_case.execute(sub_id, sample_user.id)


def test_expire_due_subscriptions(db_session, sample_user, plan):
    due = StartSubscriptionUseCase(db_session).execute(user_id=sample_user.id, plan_id=plan.id, now=AFTER_GRACE)
    fresh = StartSubscriptionUseCase(db_session).execute(
        user_id=sample_user.id, plan_id=plan.id, now=AFTER_GRACE + timedelta(days=20),
    )

    expired = expire_due_subscriptions(db_session, now=AFTER_GRACE + timedelta(days=35))

    assert expired == 1
    statuses = {s.id: s.status for s in db_session.query(Subscription).all()}
    assert statuses == {due: "expired", fresh: "active"}
