"""
Tests for the signup hook and profile/onboarding use cases
"""
import uuid

from sqlalchemy import insert

from wathaci.application.profiles import (
    CompleteProfileUseCase, EnsureProfileExistsUseCase, SaveOnboardingProgressUseCase, placeholder_email,
)
from wathaci.infrastructure.db.models import AuditLog, Profile, SmeProfile, User, UserEvent


def _events(db_session, user_id):
    return [
        e.event_type
        for e in db_session.query(UserEvent).filter(UserEvent.user_id == user_id).order_by(UserEvent.id).all()
    ]


def test_user_insert_creates_exactly_one_profile(db_session, make_user):
    user = make_user(
        email="chanda@example.com",
        metadata={"full_name": "Chanda Mwale", "account_type": "SME", "company_name": "Mwale Farms", "msisdn": "+260971234567"},
    )

    profiles = db_session.query(Profile).filter(Profile.id == user.id).all()
    assert len(profiles) == 1
    profile = profiles[0]
    assert profile.email == "chanda@example.com"
    assert profile.full_name == "Chanda Mwale"
    assert profile.account_type == "sme"
    assert profile.company_name == "Mwale Farms"
    assert profile.msisdn == "+260971234567"
    assert profile.profile_type == "customer"
    assert profile.onboarding_step == 1
    assert _events(db_session, user.id) == ["auth_user_created", "signup_completed"]


def test_unknown_account_type_is_stored_as_null(db_session, make_user):
    user = make_user(metadata={"account_type": "astronaut"})

    profile = db_session.query(Profile).filter(Profile.id == user.id).one()
    assert profile.account_type is None


def test_missing_email_gets_placeholder(db_session, make_user):
    user = make_user(email="")

    profile = db_session.query(Profile).filter(Profile.id == user.id).one()
    assert profile.email == placeholder_email(user.id)
    assert profile.email.endswith("@example.invalid")


def test_ensure_profile_is_idempotent_and_merges(db_session, make_user):
    user = make_user(email="ngosa@example.com", metadata={"full_name": "Ngosa"})
    use_case = EnsureProfileExistsUseCase(db_session)

    created = use_case.execute(
        user_id=user.id, email="other@example.com", full_name="Someone Else", company_name="Ngosa Ltd",
        account_type="investor",
    )

    assert created is False
    db_session.expire_all()
    profile = db_session.query(Profile).filter(Profile.id == user.id).one()
    # existing values win, empty ones are filled
    assert profile.email == "ngosa@example.com"
    assert profile.full_name == "Ngosa"
    assert profile.company_name == "Ngosa Ltd"
    assert profile.account_type == "investor"
    assert db_session.query(Profile).count() == 1


def test_ensure_profile_creates_missing_row(db_session):
    user_id = uuid.uuid4()
    # written outside the ORM, so no signup hook
    db_session.execute(insert(User.__table__).values(id=user_id, email="raw@example.com", raw_user_meta_data={}))
    db_session.commit()

    created = EnsureProfileExistsUseCase(db_session).execute(user_id=user_id, email="raw@example.com")

    assert created is True
    assert db_session.query(Profile).filter(Profile.id == user_id).count() == 1


def test_save_onboarding_progress_requires_user(db_session):
    result = SaveOnboardingProgressUseCase(db_session).execute(user_id=None, onboarding_step=2)
    assert result == {"success": False, "error": "Not authenticated"}


def test_save_onboarding_progress_rejects_unknown_type(db_session, sample_user):
    result = SaveOnboardingProgressUseCase(db_session).execute(
        user_id=sample_user.id, onboarding_step=2, account_type="wizard",
    )
    assert result == {"success": False, "error": "Invalid account type: wizard"}


def test_save_onboarding_progress_never_moves_back(db_session, sample_user):
    use_case = SaveOnboardingProgressUseCase(db_session)

    first = use_case.execute(
        user_id=sample_user.id, onboarding_step=3, account_type="investor", role_metadata={"ticket": "small"},
    )
    second = use_case.execute(user_id=sample_user.id, onboarding_step=1)

    assert first == {
        "success": True,
        "nextStep": 4,
        "profileCompleted": False,
        "onboarding_step": 3,
        "account_type": "investor",
    }
    assert second["onboarding_step"] == 3
    profile = db_session.query(Profile).filter(Profile.id == sample_user.id).one()
    assert profile.role_type == "investor"
    # metadata is only replaced when supplied
    assert profile.role_metadata == {"ticket": "small"}


def test_save_onboarding_progress_clamps_step(db_session, sample_user):
    result = SaveOnboardingProgressUseCase(db_session).execute(user_id=sample_user.id, onboarding_step=10)
    assert result["onboarding_step"] == 4
    assert result["nextStep"] == 4


def test_complete_profile_only_for_self(db_session, sample_user, make_user):
    other = make_user()
    result = CompleteProfileUseCase(db_session).execute(
        actor_user_id=other.id, user_id=sample_user.id, base_data={}, role_data={}, account_type="sme",
    )
    assert result == {"success": False, "error": "Unauthorized"}


def test_complete_profile_upserts_extension(db_session, sample_user):
    use_case = CompleteProfileUseCase(db_session)

    result = use_case.execute(
        actor_user_id=sample_user.id,
        user_id=sample_user.id,
        base_data={"city": "Lusaka", "full_name": None},
        role_data={"business_name": "Banda Foods", "top_needs": ["finance"]},
        account_type="sme",
    )

    assert result == {"success": True, "message": "Profile completed successfully"}
    profile = db_session.query(Profile).filter(Profile.id == sample_user.id).one()
    assert profile.is_profile_complete is True
    assert profile.onboarding_step == 4
    assert profile.city == "Lusaka"
    assert profile.full_name == "Amara Banda"
    sme = db_session.query(SmeProfile).filter(SmeProfile.profile_id == sample_user.id).one()
    assert sme.business_name == "Banda Foods"
    assert sme.top_needs == ["finance"]

    # second call updates the same extension row
    use_case.execute(
        actor_user_id=sample_user.id, user_id=sample_user.id, base_data=None,
        role_data={"business_name": "Banda Foods Ltd"}, account_type="sme",
    )
    rows = db_session.query(SmeProfile).filter(SmeProfile.profile_id == sample_user.id).all()
    assert len(rows) == 1
    assert rows[0].business_name == "Banda Foods Ltd"
    assert rows[0].top_needs == []


def test_profile_update_is_audited(db_session, sample_user):
    SaveOnboardingProgressUseCase(db_session).execute(user_id=sample_user.id, onboarding_step=2)

    log = db_session.query(AuditLog).filter(AuditLog.table_name == "profiles").one()
    assert log.action == "UPDATE"
    assert log.user_id == sample_user.id
    assert log.old_data["onboarding_step"] == 1
    assert log.new_data["onboarding_step"] == 2
