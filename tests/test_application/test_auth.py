"""
Tests for identity registration and password checks
"""
import pytest

from wathaci.auth import SignupError, create_user, get_user_by_email, hash_password, verify_password
from wathaci.infrastructure.db.models import Profile


def test_password_hashing():
    hashed = hash_password("s3cret-pass")
    assert hashed != "s3cret-pass"
    assert verify_password("s3cret-pass", hashed) is True
    assert verify_password("wrong", hashed) is False
    assert verify_password("s3cret-pass", None) is False


def test_create_user_creates_profile(db_session):
    user = create_user(
        db_session, " Lubinda@Example.com ", "s3cret-pass",
        metadata={"full_name": "Lubinda Mutale", "account_type": "professional"},
    )

    assert user.email == "lubinda@example.com"
    profile = db_session.query(Profile).filter(Profile.id == user.id).one()
    assert profile.full_name == "Lubinda Mutale"
    assert profile.account_type == "professional"
    assert get_user_by_email(db_session, "LUBINDA@example.com").id == user.id


def test_create_user_rejects_duplicates(db_session):
    create_user(db_session, "lubinda@example.com", "s3cret-pass")
    with pytest.raises(SignupError, match="already registered"):
        create_user(db_session, "LUBINDA@example.com", "other")


def test_create_user_requires_email(db_session):
    with pytest.raises(SignupError):
        create_user(db_session, "  ", "s3cret-pass")
