"""
Subscription use cases - start, cancel and expire plan subscriptions.

Works directly with the ORM; audit rows for subscriptions are written by the
audit listeners on flush.
"""
import calendar
import logging
import uuid
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from wathaci.infrastructure.db.models import Subscription, SubscriptionPlan
from wathaci.utils.dates import as_utc, utcnow

logger = logging.getLogger(__name__)

BILLING_INTERVALS = ("monthly", "quarterly", "annually")
_INTERVAL_MONTHS = {"monthly": 1, "quarterly": 3, "annually": 12}

TRIAL_DAYS = 14


class SubscriptionValidationError(ValueError):
    pass


def _add_months(moment: datetime, n: int) -> datetime:
    """Add n months, clamping the day to the end of the target month."""
    month = moment.month - 1 + n
    year = moment.year + month // 12
    month = month % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def period_end_for(start: datetime, billing_interval: str) -> datetime:
    months = _INTERVAL_MONTHS.get(billing_interval)
    if months is None:
        raise SubscriptionValidationError(f"Unknown billing interval: {billing_interval}")
    return _add_months(start, months)


class StartSubscriptionUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        user_id: uuid.UUID,
        plan_id: uuid.UUID,
        currency: str = "ZMW",
        trial: bool = False,
        now: datetime | None = None,
    ) -> uuid.UUID:
        plan = self.db.query(SubscriptionPlan).filter(SubscriptionPlan.id == plan_id).first()
        if plan is None or not plan.is_active:
            raise SubscriptionValidationError("Subscription plan not found or inactive")

        now = now or utcnow()
        if trial:
            period_end = now + timedelta(days=TRIAL_DAYS)
            status = "trialing"
        else:
            period_end = period_end_for(now, plan.billing_interval)
            status = "active"

        sub = Subscription(
            user_id=user_id,
            plan_id=plan.id,
            status=status,
            current_period_start=now,
            current_period_end=period_end,
            trial_end=period_end if trial else None,
            currency=currency,
        )
        self.db.add(sub)
        self.db.flush()
        self.db.commit()
        return sub.id


class CancelSubscriptionUseCase:
    """
    Cancel at period end by default; immediately when requested.
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(self, subscription_id: uuid.UUID, user_id: uuid.UUID, immediately: bool = False) -> None:
        sub = self.db.query(Subscription).filter(
            Subscription.id == subscription_id,
            Subscription.user_id == user_id,
        ).first()
        if not sub:
            raise SubscriptionValidationError("Subscription not found")
        if sub.status in ("cancelled", "expired"):
            raise SubscriptionValidationError(f"Subscription is already {sub.status}")

        if immediately:
            sub.status = "cancelled"
            sub.cancelled_at = utcnow()
        else:
            sub.cancel_at_period_end = True
        self.db.commit()


def expire_due_subscriptions(db: Session, now: datetime | None = None) -> int:
    """
    Move subscriptions whose period has ended to `expired`.

    Returns:
        number of subscriptions expired
    """
    now = now or utcnow()
    candidates = (
        db.query(Subscription)
        .filter(Subscription.status.in_(("active", "trialing", "past_due")))
        .all()
    )
    expired = 0
    for sub in candidates:
        if as_utc(sub.current_period_end) <= now:
            sub.status = "expired"
            expired += 1
    if expired:
        db.commit()
        logger.info("Expired %d subscriptions", expired)
    return expired
