"""
Entitlements - who gets full access to premium features

Full access: admin / super_admin, everyone before the grace period ends,
or an `active` subscription whose current period has not ended.
"""
import uuid
from datetime import datetime
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from wathaci.config import get_settings
from wathaci.infrastructure.db.models import Subscription, SubscriptionPlan
from wathaci.security.policies import is_admin_user
from wathaci.utils.dates import as_utc, utcnow

UNLIMITED = -1

FULL_ACCESS_LIMITS = {
    "funding_matches_per_month": UNLIMITED,
    "contact_requests_per_week": UNLIMITED,
    "ai_analysis_enabled": True,
    "document_uploads_enabled": True,
    "premium_analytics": True,
}

FREE_TIER_LIMITS = {
    "funding_matches_per_month": 3,
    "contact_requests_per_week": 5,
    "ai_analysis_enabled": False,
    "document_uploads_enabled": False,
    "premium_analytics": False,
}


def get_grace_period_end() -> datetime:
    settings = get_settings()
    end = settings.GRACE_PERIOD_END
    if end.tzinfo is None:
        end = end.replace(tzinfo=ZoneInfo(settings.TIMEZONE))
    return as_utc(end)


def in_grace_period(now: datetime | None = None) -> bool:
    return (now or utcnow()) < get_grace_period_end()


def _has_active_subscription(db: Session, user_id, now: datetime) -> bool:
    subscriptions = (
        db.query(Subscription)
        .filter(Subscription.user_id == user_id, Subscription.status == "active")
        .all()
    )
    return any(as_utc(s.current_period_end) > now for s in subscriptions)


def has_full_access(db: Session, user_id: uuid.UUID, now: datetime | None = None) -> bool:
    now = now or utcnow()
    if is_admin_user(db, user_id):
        return True
    if in_grace_period(now):
        return True
    return _has_active_subscription(db, user_id, now)


def get_user_entitlements(db: Session, user_id: uuid.UUID, now: datetime | None = None) -> dict:
    """
    Entitlement summary for the client.

    Returns:
        {
            "has_full_access", "is_admin", "in_grace_period", "grace_period_end",
            "subscription": latest active/trialing subscription or None,
            "limits": feature limits (-1 = unlimited),
        }
    """
    now = now or utcnow()
    is_admin = is_admin_user(db, user_id)
    grace = in_grace_period(now)
    full_access = is_admin or grace or _has_active_subscription(db, user_id, now)

    row = (
        db.query(Subscription, SubscriptionPlan)
        .outerjoin(SubscriptionPlan, Subscription.plan_id == SubscriptionPlan.id)
        .filter(Subscription.user_id == user_id, Subscription.status.in_(("active", "trialing")))
        .order_by(Subscription.created_at.desc())
        .first()
    )
    subscription = None
    if row is not None:
        sub, plan = row
        subscription = {
            "id": sub.id,
            "status": sub.status,
            "plan_name": plan.name if plan else None,
            "current_period_end": as_utc(sub.current_period_end),
            "features": (plan.features if plan else None) or [],
        }

    return {
        "has_full_access": full_access,
        "is_admin": is_admin,
        "in_grace_period": grace,
        "grace_period_end": get_grace_period_end(),
        "subscription": subscription,
        "limits": dict(FULL_ACCESS_LIMITS if full_access else FREE_TIER_LIMITS),
    }
