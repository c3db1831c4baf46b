"""
Signup monitoring - users without profiles, signup statistics, backfill.
"""
import logging
import uuid
from datetime import timedelta
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from wathaci.application.profiles import ensure_profile_row, log_user_event, savepoint
from wathaci.infrastructure.db.models import Profile, User, UserEvent
from wathaci.utils.dates import as_utc, utcnow

logger = logging.getLogger(__name__)


def _users_without_profiles_query(db: Session):
    return (
        db.query(User)
        .outerjoin(Profile, Profile.id == User.id)
        .filter(Profile.id.is_(None))
    )


def users_without_profiles(db: Session) -> list[dict]:
    """Identities that have no profile row, with their latest signup event."""
    now = utcnow()
    result = []
    for user in _users_without_profiles_query(db).order_by(User.created_at).all():
        last_event = (
            db.query(UserEvent)
            .filter(UserEvent.user_id == user.id)
            .order_by(UserEvent.created_at.desc(), UserEvent.id.desc())
            .first()
        )
        created_at = as_utc(user.created_at)
        result.append({
            "user_id": user.id,
            "email": user.email,
            "user_created_at": created_at,
            "minutes_since_signup": round((now - created_at).total_seconds() / 60, 2),
            "last_event_type": last_event.event_type if last_event else None,
            "last_event_at": as_utc(last_event.created_at) if last_event else None,
        })
    return result


def get_signup_statistics(db: Session, hours: int = 24) -> dict:
    since = utcnow() - timedelta(hours=hours)

    rows = (
        db.query(User.id, Profile.id)
        .outerjoin(Profile, Profile.id == User.id)
        .filter(User.created_at > since)
        .all()
    )
    completed_users = {
        user_id for (user_id,) in db.query(UserEvent.user_id).filter(UserEvent.event_type == "signup_completed").all()
    }

    def _count_events(event_type: str) -> int:
        return (
            db.query(func.count(UserEvent.id))
            .filter(UserEvent.event_type == event_type, UserEvent.created_at > since)
            .scalar()
        ) or 0

    return {
        "period_hours": hours,
        "total_auth_users": len(rows),
        "total_profiles": sum(1 for _, profile_id in rows if profile_id is not None),
        "users_without_profiles": sum(1 for _, profile_id in rows if profile_id is None),
        "signup_completed_events": _count_events("signup_completed"),
        "profile_creation_errors": _count_events("profile_creation_error"),
        "healthy_signups": sum(
            1 for user_id, profile_id in rows if profile_id is not None and user_id in completed_users
        ),
    }


def monitor_signup_health(db: Session) -> dict:
    """Profile creation success rate for signups in the last hour."""
    now = utcnow()
    since = now - timedelta(hours=1)
    recent = db.query(func.count(User.id)).filter(User.created_at > since).scalar() or 0
    missing = _users_without_profiles_query(db).filter(User.created_at > since).count()

    if recent > 0:
        health = (Decimal(recent - missing) / Decimal(recent) * 100).quantize(Decimal("0.01"))
    else:
        health = Decimal("100.00")

    return {
        "check_time": now,
        "recent_signups_count": recent,
        "signups_missing_profiles": missing,
        "health_percentage": health,
    }


def get_user_signup_events(db: Session, user_id: uuid.UUID) -> list[dict]:
    events = (
        db.query(UserEvent)
        .filter(UserEvent.user_id == user_id)
        .order_by(UserEvent.created_at, UserEvent.id)
        .all()
    )
    return [
        {
            "event_id": e.id,
            "kind": e.event_type,
            "payload": e.payload,
            "created_at": as_utc(e.created_at),
        }
        for e in events
    ]


def backfill_missing_profiles(db: Session) -> list[dict]:
    """
    Create profiles for identities that were inserted without one
    (bulk imports, rows written outside the application).

    Returns:
        one {"user_id", "email", "backfill_status", "error_message"} per user
    """
    results = []
    conn = db.connection()
    for user in _users_without_profiles_query(db).order_by(User.created_at).all():
        metadata = user.raw_user_meta_data or {}
        full_name = metadata.get("full_name") or " ".join(
            part for part in (metadata.get("first_name"), metadata.get("last_name")) if part
        )
        phone = user.phone or metadata.get("phone")
        try:
            with savepoint(conn):
                ensure_profile_row(
                    conn,
                    user.id,
                    email=user.email,
                    full_name=full_name or None,
                    msisdn=metadata.get("msisdn") or phone,
                    profile_type=metadata.get("profile_type"),
                    account_type=metadata.get("account_type"),
                    phone=phone,
                    company_name=metadata.get("company_name") or metadata.get("business_name"),
                )
        except Exception as exc:
            logger.exception("Profile backfill failed for user %s", user.id)
            log_user_event(conn, user.id, "profile_backfill_error", user.email,
                           {"error": str(exc), "source": "backfill"})
            results.append({"user_id": user.id, "email": user.email, "backfill_status": "error", "error_message": str(exc)})
            continue

        log_user_event(conn, user.id, "profile_backfilled", user.email,
                       {"source": "backfill", "original_created_at": as_utc(user.created_at).isoformat()})
        results.append({"user_id": user.id, "email": user.email, "backfill_status": "success", "error_message": None})

    db.commit()
    if results:
        logger.info("Backfilled %d profiles", sum(1 for r in results if r["backfill_status"] == "success"))
    return results
