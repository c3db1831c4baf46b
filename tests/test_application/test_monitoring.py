"""
Tests for signup monitoring and profile backfill
"""
import uuid
from decimal import Decimal

import pytest
from sqlalchemy import insert

from wathaci.application.monitoring import (
    backfill_missing_profiles, get_signup_statistics, get_user_signup_events,
    monitor_signup_health, users_without_profiles,
)
from wathaci.infrastructure.db.models import Profile, User, UserEvent


@pytest.fixture
def raw_user(db_session):
    """An identity written outside the ORM, so the signup hook never ran"""
    user_id = uuid.uuid4()
    db_session.execute(insert(User.__table__).values(
        id=user_id,
        email="imported@example.com",
        raw_user_meta_data={"first_name": "Bwalya", "last_name": "Tembo", "account_type": "donor"},
    ))
    db_session.commit()
    return user_id


def test_users_without_profiles(db_session, sample_user, raw_user):
    rows = users_without_profiles(db_session)

    assert [r["user_id"] for r in rows] == [raw_user]
    assert rows[0]["email"] == "imported@example.com"
    assert rows[0]["last_event_type"] is None
    assert rows[0]["minutes_since_signup"] >= 0


def test_backfill_creates_missing_profiles(db_session, sample_user, raw_user):
    results = backfill_missing_profiles(db_session)

    assert results == [{
        "user_id": raw_user, "email": "imported@example.com", "backfill_status": "success", "error_message": None,
    }]
    profile = db_session.query(Profile).filter(Profile.id == raw_user).one()
    assert profile.full_name == "Bwalya Tembo"
    assert profile.account_type == "donor"

    event = db_session.query(UserEvent).filter(UserEvent.user_id == raw_user).one()
    assert event.event_type == "profile_backfilled"
    assert event.payload["source"] == "backfill"

    assert users_without_profiles(db_session) == []
    assert backfill_missing_profiles(db_session) == []


def test_signup_statistics(db_session, make_user, raw_user):
    make_user()
    make_user()

    stats = get_signup_statistics(db_session, hours=24)

    assert stats == {
        "period_hours": 24,
        "total_auth_users": 3,
        "total_profiles": 2,
        "users_without_profiles": 1,
        "signup_completed_events": 2,
        "profile_creation_errors": 0,
        "healthy_signups": 2,
    }


def test_signup_health(db_session, make_user, raw_user):
    make_user()
    make_user()

    health = monitor_signup_health(db_session)

    assert health["recent_signups_count"] == 3
    assert health["signups_missing_profiles"] == 1
    assert health["health_percentage"] == Decimal("66.67")


def test_signup_health_without_signups(db_session):
    assert monitor_signup_health(db_session)["health_percentage"] == Decimal("100.00")


def test_user_signup_events(db_session, sample_user):
    events = get_user_signup_events(db_session, sample_user.id)

    assert [e["kind"] for e in events] == ["auth_user_created", "signup_completed"]
    assert events[0]["created_at"].tzinfo is not None
